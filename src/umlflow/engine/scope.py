"""Per-invocation key/value state shared by the agents of one workflow run."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
import copy
from typing import Any

from umlflow.enums import ValueKind
from umlflow.errors import MissingKeyError, ScopeTypeError

_MISSING: Any = object()


def kind_of(value: Any) -> ValueKind:
    """Classify a value as text, number or structured record."""
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, bool):
        raise ScopeTypeError("Booleans are not valid scope values")
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, (Mapping, Sequence)) and not isinstance(
        value, (bytes, bytearray)
    ):
        return ValueKind.RECORD
    raise ScopeTypeError(
        f"Unsupported scope value of type {type(value).__name__}; "
        "expected text, number or record"
    )


class Scope:
    """Mutable state bag owned by exactly one workflow invocation.

    Once a key is written its value kind is fixed; a later write of another
    kind raises ScopeTypeError. Reads of unwritten keys raise MissingKeyError
    unless the caller supplies a default.
    """

    def __init__(self, seed: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = {}
        self._kinds: dict[str, ValueKind] = {}
        for key, value in (seed or {}).items():
            self.write(key, value)

    def read(self, key: str, default: Any = _MISSING) -> Any:
        if key in self._values:
            return self._values[key]
        if default is not _MISSING:
            return default
        raise MissingKeyError(key)

    def read_number(self, key: str, default: float = 0.0) -> float:
        """Read a numeric key, accepting numeric text and falling back to default."""
        value = self._values.get(key, default)
        if isinstance(value, bool):
            return default
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return default
        return default

    def _checked_kind(self, key: str, value: Any) -> ValueKind:
        kind = kind_of(value)
        existing = self._kinds.get(key)
        if existing is not None and existing != kind:
            raise ScopeTypeError(
                f"Scope key '{key}' holds {existing.value}; "
                f"refusing to overwrite it with {kind.value}"
            )
        return kind

    def write(self, key: str, value: Any) -> None:
        self._kinds[key] = self._checked_kind(key, value)
        self._values[key] = value

    def update(self, values: Mapping[str, Any]) -> None:
        """Write several keys; nothing is written if any value has the wrong kind."""
        kinds = {key: self._checked_kind(key, value) for key, value in values.items()}
        for key, value in values.items():
            self._kinds[key] = kinds[key]
            self._values[key] = value

    def contains(self, key: str) -> bool:
        return key in self._values

    __contains__ = contains

    def kind_of(self, key: str) -> ValueKind:
        if key not in self._kinds:
            raise MissingKeyError(key)
        return self._kinds[key]

    def keys(self) -> list[str]:
        return list(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def snapshot(self) -> dict[str, Any]:
        """Return a deep copy detached from further writes."""
        return copy.deepcopy(self._values)

    def __repr__(self) -> str:
        kinds = ", ".join(f"{key}:{kind.value}" for key, kind in self._kinds.items())
        return f"Scope({kinds})"
