"""Agent orchestration engine: scope, agents, stages and the planner.

This package must not import model adapters, tool transports or the UML
agents; those are injected as capabilities.
"""

from __future__ import annotations

from .agent import BaseAgent, FunctionAgent, PromptAgent, render_template
from .cancellation import CancellationToken
from .capabilities import ModelCapability, ToolProvider, ToolSpec
from .context import RunContext
from .planner import Planner, PlannerBuilder
from .predicates import ExitPredicate, ScoreAtLeast, never, score_at_least
from .result import AgentCallRecord, LoopReport, WorkflowResult
from .scope import Scope
from .stages import LoopStage, SequentialStage, Stage
from .wiring import validate_wiring

__all__ = [
    "AgentCallRecord",
    "BaseAgent",
    "CancellationToken",
    "ExitPredicate",
    "FunctionAgent",
    "LoopReport",
    "LoopStage",
    "ModelCapability",
    "Planner",
    "PlannerBuilder",
    "PromptAgent",
    "RunContext",
    "ScoreAtLeast",
    "Scope",
    "SequentialStage",
    "Stage",
    "ToolProvider",
    "ToolSpec",
    "WorkflowResult",
    "never",
    "render_template",
    "score_at_least",
    "validate_wiring",
]
