"""Bounded per-model client pools bound to a single interaction.

Within one ``ModelPool.interaction()`` block every lease of the same model name
returns the same client, so a designer called five times in a loop talks to one
connection. Leaving the block returns every bound client to its pool.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
import logging
import threading
import time
import uuid

from umlflow.engine.capabilities import ModelCapability
from umlflow.errors import PoolExhaustedError

logger = logging.getLogger(__name__)

ModelFactory = Callable[[str], ModelCapability]

_BINDINGS: ContextVar[dict[str, ModelCapability] | None] = ContextVar(
    "umlflow_model_bindings", default=None
)


class _ClientPool:
    def __init__(self, model_name: str, factory: ModelFactory, size: int) -> None:
        self.model_name = model_name
        self._factory = factory
        self._size = size
        self._idle: list[ModelCapability] = []
        self._created = 0
        self._condition = threading.Condition()

    @property
    def created(self) -> int:
        return self._created

    @property
    def idle(self) -> int:
        with self._condition:
            return len(self._idle)

    def borrow(self, timeout: float | None) -> ModelCapability:
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._condition:
            while True:
                if self._idle:
                    return self._idle.pop()
                if self._created < self._size:
                    self._created += 1
                    break
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    raise PoolExhaustedError(
                        f"No '{self.model_name}' client became available "
                        f"within {timeout}s (pool size {self._size})"
                    )
                self._condition.wait(timeout=remaining)
        try:
            return self._factory(self.model_name)
        except Exception:
            with self._condition:
                self._created -= 1
                self._condition.notify()
            raise

    def give_back(self, client: ModelCapability) -> None:
        with self._condition:
            self._idle.append(client)
            self._condition.notify()


class ModelPool:
    """Lends model clients, one per model name per interaction."""

    def __init__(
        self,
        factory: ModelFactory,
        *,
        size: int = 4,
        borrow_timeout: float | None = 30.0,
    ) -> None:
        if size < 1:
            raise ValueError(f"Pool size must be >= 1, got {size}")
        self._factory = factory
        self._size = size
        self._borrow_timeout = borrow_timeout
        self._pools: dict[str, _ClientPool] = {}
        self._lock = threading.Lock()

    def _pool_for(self, model_name: str) -> _ClientPool:
        with self._lock:
            pool = self._pools.get(model_name)
            if pool is None:
                pool = _ClientPool(model_name, self._factory, self._size)
                self._pools[model_name] = pool
            return pool

    def stats(self) -> dict[str, dict[str, int]]:
        with self._lock:
            pools = dict(self._pools)
        return {
            name: {"created": pool.created, "idle": pool.idle}
            for name, pool in pools.items()
        }

    @contextmanager
    def interaction(self) -> Iterator[str]:
        """Bind leased clients to the current context until the block exits."""
        if _BINDINGS.get() is not None:
            raise RuntimeError("ModelPool interactions cannot be nested")
        interaction_id = uuid.uuid4().hex[:12]
        bindings: dict[str, ModelCapability] = {}
        token = _BINDINGS.set(bindings)
        try:
            yield interaction_id
        finally:
            _BINDINGS.reset(token)
            for model_name, client in bindings.items():
                self._pool_for(model_name).give_back(client)
            if bindings:
                logger.debug(
                    f"Interaction {interaction_id} returned {sorted(bindings)}"
                )

    def lease(self, model_name: str) -> ModelCapability:
        """Return the client bound to this interaction, borrowing one if needed."""
        bindings = _BINDINGS.get()
        if bindings is None:
            raise RuntimeError(
                f"Model '{model_name}' leased outside ModelPool.interaction()"
            )
        client = bindings.get(model_name)
        if client is None:
            client = self._pool_for(model_name).borrow(self._borrow_timeout)
            bindings[model_name] = client
        return client

    def model(self, model_name: str) -> PooledModel:
        return PooledModel(self, model_name)


class PooledModel:
    """Model capability that leases its client from a pool on every call.

    Agents hold a ``PooledModel`` for their whole life; the client behind it is
    resolved from the active interaction at call time.
    """

    def __init__(self, pool: ModelPool, model_name: str) -> None:
        self._pool = pool
        self.model_name = model_name

    def complete(self, prompt: str, *, system: str | None = None) -> str:
        return self._pool.lease(self.model_name).complete(prompt, system=system)

    def __repr__(self) -> str:
        return f"PooledModel(model_name={self.model_name!r})"


__all__ = ["ModelFactory", "ModelPool", "PooledModel"]
