"""Capabilities the engine hands to agents without knowing their transport."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import ConfigDict, Field

from umlflow.schema.base import TypedBaseModel


@runtime_checkable
class ModelCapability(Protocol):
    """Anything able to turn a rendered prompt into completion text."""

    def complete(self, prompt: str, *, system: str | None = None) -> str:
        """Return the model's reply to ``prompt``."""


class ToolSpec(TypedBaseModel):
    """Describes one externally invocable tool."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    description: str = ""
    input_schema: Mapping[str, Any] = Field(default_factory=dict)


@runtime_checkable
class ToolProvider(Protocol):
    """Named tools an agent may call while it runs.

    ``invoke`` raises ToolInvocationFailure; the agent decides whether to fold
    the failure into its output or abort.
    """

    def list_tools(self) -> list[ToolSpec]: ...

    def invoke(self, name: str, arguments: Mapping[str, Any]) -> Any: ...


__all__ = ["ModelCapability", "ToolProvider", "ToolSpec"]
