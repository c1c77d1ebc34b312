"""Structured payloads describing how a workflow invocation finished."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field

from umlflow.enums import CallStatus, TerminationReason
from umlflow.schema.base import TypedBaseModel


class AgentCallRecord(TypedBaseModel):
    """One agent call, kept in memory for the lifetime of the result."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    agent: str
    stage: str
    iteration: int | None = Field(
        None, description="1-based loop pass; None outside loop stages"
    )
    status: CallStatus
    started_at: datetime
    duration_seconds: float = Field(..., ge=0.0)
    outputs: list[str] = Field(default_factory=list)
    error: str | None = None


class LoopReport(TypedBaseModel):
    """Iteration count and termination reason of one loop stage."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    stage: str
    iterations: int = Field(..., ge=1)
    max_iterations: int = Field(..., ge=1)
    reason: TerminationReason
    score_history: list[float] = Field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.reason == TerminationReason.CONVERGED


class WorkflowResult(TypedBaseModel):
    """Final output plus termination metadata of one invocation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    workflow: str
    output_key: str
    output: Any
    loops: dict[str, LoopReport] = Field(default_factory=dict)
    calls: list[AgentCallRecord] = Field(default_factory=list)
    scope: Mapping[str, Any] = Field(default_factory=dict)

    @property
    def iterations(self) -> dict[str, int]:
        return {name: report.iterations for name, report in self.loops.items()}

    @property
    def termination_reasons(self) -> dict[str, TerminationReason]:
        return {name: report.reason for name, report in self.loops.items()}

    @property
    def success(self) -> bool:
        """True when every loop stage converged."""
        return all(report.converged for report in self.loops.values())

    def summary(self) -> dict[str, Any]:
        return {
            "workflow": self.workflow,
            "success": self.success,
            "loops": {
                name: {
                    "iterations": report.iterations,
                    "reason": report.reason.value,
                    "score_history": list(report.score_history),
                }
                for name, report in self.loops.items()
            },
            "calls": len(self.calls),
        }


__all__ = ["AgentCallRecord", "LoopReport", "WorkflowResult"]
