"""In-process tool provider backed by plain callables."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
from typing import Any

from umlflow.engine.capabilities import ToolSpec
from umlflow.errors import ToolInvocationFailure

logger = logging.getLogger(__name__)

ToolFunction = Callable[..., Any]


class StaticToolProvider:
    """Registers callables as tools; arguments are passed as keyword arguments.

    Every call is appended to ``calls`` so tests and dry runs can inspect what
    an agent asked for.
    """

    def __init__(self) -> None:
        self._tools: dict[str, tuple[ToolSpec, ToolFunction]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def register(
        self,
        name: str,
        fn: ToolFunction,
        *,
        description: str | None = None,
        input_schema: Mapping[str, Any] | None = None,
    ) -> StaticToolProvider:
        if name in self._tools:
            raise ValueError(f"Tool '{name}' is already registered")
        spec = ToolSpec(
            name=name,
            description=description or (fn.__doc__ or "").strip(),
            input_schema=dict(input_schema or {}),
        )
        self._tools[name] = (spec, fn)
        return self

    def list_tools(self) -> list[ToolSpec]:
        return [spec for spec, _ in self._tools.values()]

    def invoke(self, name: str, arguments: Mapping[str, Any]) -> Any:
        entry = self._tools.get(name)
        if entry is None:
            raise ToolInvocationFailure(name, "no such tool")
        _, fn = entry
        self.calls.append((name, dict(arguments)))
        try:
            return fn(**arguments)
        except ToolInvocationFailure:
            raise
        except Exception as exc:
            logger.warning(f"Tool {name} raised {type(exc).__name__}: {exc}")
            raise ToolInvocationFailure(name, str(exc)) from exc


__all__ = ["StaticToolProvider", "ToolFunction"]
