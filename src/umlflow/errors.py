"""Error taxonomy shared by the orchestration engine and its collaborators.

Hard errors (wiring mistakes, agent failures) abort a workflow invocation.
Running out of iterations without converging is not represented here: it is a
normal termination reason reported on the workflow result.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import ConfigDict, Field

from umlflow.schema.base import TypedBaseModel


class FailureCode(str, Enum):
    """Machine-readable codes attached to every orchestration error."""

    MISSING_KEY = "missing_key"
    SCOPE_TYPE = "scope_type"
    AGENT_CONTRACT = "agent_contract"
    AGENT_EXECUTION = "agent_execution"
    TOOL_INVOCATION = "tool_invocation"
    EMPTY_LOOP_BODY = "empty_loop_body"
    WIRING = "wiring"
    CANCELLED = "cancelled"
    POOL_EXHAUSTED = "pool_exhausted"
    MODEL_ADAPTER = "model_adapter"


class FailureReport(TypedBaseModel):
    """Structured payload describing why an invocation failed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    code: FailureCode = Field(..., description="Machine-actionable failure code")
    message: str = Field(..., description="Human-readable failure message")
    agent_name: str | None = Field(None, description="Agent that failed, if any")
    cause: str | None = Field(None, description="Underlying exception text")


class OrchestrationError(RuntimeError):
    """Base class for every error raised by umlflow."""

    code: FailureCode = FailureCode.AGENT_EXECUTION

    def to_payload(self) -> FailureReport:
        return FailureReport(code=self.code, message=str(self))


class MissingKeyError(OrchestrationError, KeyError):
    """A scope key was read before anything wrote it."""

    code = FailureCode.MISSING_KEY

    def __init__(self, key: str, reader: str | None = None) -> None:
        self.key = key
        self.reader = reader
        where = f" (read by {reader})" if reader else ""
        super().__init__(f"Scope key '{key}' has not been written{where}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return str(self.args[0])


class ScopeTypeError(OrchestrationError, TypeError):
    """A scope key was rewritten with a value of a different kind."""

    code = FailureCode.SCOPE_TYPE


class AgentContractError(OrchestrationError):
    """An agent returned keys it did not declare as outputs."""

    code = FailureCode.AGENT_CONTRACT


class AgentExecutionFailure(OrchestrationError):
    """An agent's underlying work failed and will not be retried by the engine."""

    code = FailureCode.AGENT_EXECUTION

    def __init__(self, agent_name: str, cause: BaseException) -> None:
        self.agent_name = agent_name
        self.cause = cause
        super().__init__(f"Agent '{agent_name}' failed: {cause}")

    def to_payload(self) -> FailureReport:
        return FailureReport(
            code=self.code,
            message=str(self),
            agent_name=self.agent_name,
            cause=f"{type(self.cause).__name__}: {self.cause}",
        )


class ToolInvocationFailure(OrchestrationError):
    """A tool call failed; only the invoking agent ever sees this."""

    code = FailureCode.TOOL_INVOCATION

    def __init__(self, tool_name: str, message: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Tool '{tool_name}' failed: {message}")


class EmptyLoopBodyError(OrchestrationError, ValueError):
    """A loop stage was configured without any sub-agents."""

    code = FailureCode.EMPTY_LOOP_BODY


class WiringError(OrchestrationError, ValueError):
    """Static validation of a planner's key flow failed at build time."""

    code = FailureCode.WIRING

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__("Invalid workflow wiring: " + "; ".join(self.problems))


class WorkflowCancelledError(OrchestrationError):
    """The invocation was cancelled between loop passes or stages."""

    code = FailureCode.CANCELLED


class PoolExhaustedError(OrchestrationError):
    """No pooled model client became available before the borrow timeout."""

    code = FailureCode.POOL_EXHAUSTED


class ModelAdapterError(OrchestrationError):
    """A model provider request failed after the adapter's own retries."""

    code = FailureCode.MODEL_ADAPTER

    def __init__(self, message: str, *, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient


def describe_failure(exc: BaseException) -> str:
    """Render a single user-facing sentence for a failed invocation."""
    if isinstance(exc, AgentExecutionFailure):
        return (
            f"The '{exc.agent_name}' step could not complete "
            f"({type(exc.cause).__name__}: {exc.cause})."
        )
    if isinstance(exc, WorkflowCancelledError):
        return "The workflow was cancelled before it finished."
    if isinstance(exc, OrchestrationError):
        return f"The workflow could not run: {exc}"
    return f"Unexpected error: {exc}"


def failure_payload(exc: BaseException) -> dict[str, Any]:
    if isinstance(exc, OrchestrationError):
        return exc.to_payload().model_dump(mode="json")
    return {"code": "unexpected", "message": str(exc)}


__all__ = [
    "FailureCode",
    "FailureReport",
    "OrchestrationError",
    "MissingKeyError",
    "ScopeTypeError",
    "AgentContractError",
    "AgentExecutionFailure",
    "ToolInvocationFailure",
    "EmptyLoopBodyError",
    "WiringError",
    "WorkflowCancelledError",
    "PoolExhaustedError",
    "ModelAdapterError",
    "describe_failure",
    "failure_payload",
]
