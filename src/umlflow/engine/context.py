"""Execution context threaded through stages and agents of one invocation."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any

from umlflow.engine.cancellation import CancellationToken
from umlflow.engine.result import AgentCallRecord, LoopReport
from umlflow.engine.scope import Scope


@dataclass
class RunContext:
    """Everything a stage needs to run: the scope plus run bookkeeping.

    A RunContext is created by the planner for each invocation and never
    outlives it.
    """

    scope: Scope
    cancellation: CancellationToken
    logger: Any = field(default_factory=lambda: logging.getLogger("umlflow.engine"))
    stage: str = ""
    iteration: int | None = None
    calls: list[AgentCallRecord] = field(default_factory=list)
    loops: dict[str, LoopReport] = field(default_factory=dict)

    def for_stage(self, stage: str, iteration: int | None = None) -> RunContext:
        """Return a view sharing scope and bookkeeping under a new stage label."""
        return RunContext(
            scope=self.scope,
            cancellation=self.cancellation,
            logger=self.logger,
            stage=stage,
            iteration=iteration,
            calls=self.calls,
            loops=self.loops,
        )
