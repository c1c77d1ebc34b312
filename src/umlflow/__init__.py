"""umlflow: iterative multi-agent refinement of UML model specifications.

The ``engine`` package holds the orchestration core (scope, agents, loop and
sequential stages, planner). Everything else plugs into it: model adapters and
pools, tool providers, the UML agents and the reference workflow.
"""

from __future__ import annotations

__version__ = "0.1.0"

from umlflow.engine import (  # noqa: E402
    BaseAgent,
    CancellationToken,
    FunctionAgent,
    LoopStage,
    Planner,
    PlannerBuilder,
    PromptAgent,
    Scope,
    SequentialStage,
    WorkflowResult,
)
from umlflow.reference import WorkflowOutcome, execute  # noqa: E402

__all__ = [
    "BaseAgent",
    "CancellationToken",
    "FunctionAgent",
    "LoopStage",
    "Planner",
    "PlannerBuilder",
    "PromptAgent",
    "Scope",
    "SequentialStage",
    "WorkflowOutcome",
    "WorkflowResult",
    "__version__",
    "execute",
]
