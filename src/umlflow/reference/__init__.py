"""Reference workflows built on the orchestration engine."""

from __future__ import annotations

from .dry_run import build_dry_run_workflow
from .uml_specification import (
    MATERIALIZE_STAGE,
    REVISION_LOOP,
    WORKFLOW_NAME,
    UMLWorkflow,
    WorkflowOutcome,
    aexecute,
    build_uml_planner,
    build_uml_workflow,
    default_seed,
    execute,
)

__all__ = [
    "MATERIALIZE_STAGE",
    "REVISION_LOOP",
    "UMLWorkflow",
    "WORKFLOW_NAME",
    "WorkflowOutcome",
    "aexecute",
    "build_dry_run_workflow",
    "build_uml_planner",
    "build_uml_workflow",
    "default_seed",
    "execute",
]
