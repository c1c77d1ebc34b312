"""Reference workflow: refine a UML specification, then materialize it."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Any

from umlflow.agents import ModelCreator, UMLCritic, UMLDesigner, UMLParser, UMLScorer
from umlflow.config.settings import WorkflowSettings
from umlflow.constants import (
    BUSINESS_REQUIREMENT_KEY,
    CRITIQUE_KEY,
    MODEL_REQUIREMENTS_KEY,
    RESULT_KEY,
    SCORE_KEY,
    UML_SPEC_KEY,
)
from umlflow.engine import (
    CancellationToken,
    ModelCapability,
    Planner,
    PlannerBuilder,
    ToolProvider,
    WorkflowResult,
    score_at_least,
)
from umlflow.errors import (
    FailureReport,
    OrchestrationError,
    describe_failure,
)
from umlflow.models import ModelPool, build_adapter
from umlflow.models.pool import ModelFactory
from umlflow.tools import MCPToolProvider
from umlflow.utilities.logger_manager import LoggerManager

logger = logging.getLogger(__name__)

WORKFLOW_NAME = "UMLSpecificationAgent"
REVISION_LOOP = "umlRevisionLoop"
MATERIALIZE_STAGE = "materialize"
SEED_KEYS = (BUSINESS_REQUIREMENT_KEY, UML_SPEC_KEY, CRITIQUE_KEY)


def default_seed(business_requirement: str) -> dict[str, Any]:
    """Seed the requirement plus empty placeholders of the right kinds."""
    return {
        BUSINESS_REQUIREMENT_KEY: business_requirement,
        UML_SPEC_KEY: "",
        CRITIQUE_KEY: "",
        SCORE_KEY: 0.0,
        MODEL_REQUIREMENTS_KEY: {},
        RESULT_KEY: "",
    }


def build_uml_planner(
    *,
    designer_model: ModelCapability,
    critic_model: ModelCapability,
    tool_provider: ToolProvider,
    scorer_model: ModelCapability | None = None,
    max_iterations: int = 5,
    score_threshold: float = 0.8,
    logger_manager: LoggerManager | None = None,
) -> Planner:
    """Wire designer, critic and scorer into a loop followed by parse and create."""
    builder = (
        PlannerBuilder(WORKFLOW_NAME)
        .seed(*SEED_KEYS)
        .loop(
            REVISION_LOOP,
            [
                UMLDesigner(designer_model),
                UMLCritic(critic_model),
                UMLScorer(scorer_model),
            ],
            exit_predicate=score_at_least(SCORE_KEY, score_threshold),
            max_iterations=max_iterations,
            output_key=UML_SPEC_KEY,
        )
        .sequence(MATERIALIZE_STAGE, [UMLParser(), ModelCreator(tool_provider)])
        .output(RESULT_KEY)
    )
    if logger_manager is not None:
        builder.logger_manager(logger_manager)
    return builder.build()


@dataclass(frozen=True)
class UMLWorkflow:
    """A built planner together with the collaborators it was built from."""

    planner: Planner
    tool_provider: ToolProvider
    pool: ModelPool | None = None


def _adapter_factory(settings: WorkflowSettings) -> ModelFactory:
    def factory(model_name: str) -> ModelCapability:
        return build_adapter(
            {
                "model": model_name,
                "temperature": settings.temperature,
                "max_tokens": settings.max_tokens,
                "timeout": settings.request_timeout,
                "retry_attempts": settings.retry_attempts,
            }
        )

    return factory


def build_uml_workflow(
    settings: WorkflowSettings | None = None,
    *,
    tool_provider: ToolProvider | None = None,
    model_factory: ModelFactory | None = None,
    logger_manager: LoggerManager | None = None,
) -> UMLWorkflow:
    """Build the workflow with pooled models and an MCP tool provider."""
    resolved = settings or WorkflowSettings.from_mapping()
    pool = ModelPool(
        model_factory or _adapter_factory(resolved),
        size=resolved.pool_size,
        borrow_timeout=resolved.borrow_timeout,
    )
    tools = tool_provider or MCPToolProvider(
        resolved.mcp_url,
        client_key=resolved.mcp_client_key,
        timeout=resolved.mcp_timeout,
    )
    planner = build_uml_planner(
        designer_model=pool.model(resolved.designer_model),
        critic_model=pool.model(resolved.critic_model),
        scorer_model=pool.model(resolved.scorer_model),
        tool_provider=tools,
        max_iterations=resolved.max_iterations,
        score_threshold=resolved.score_threshold,
        logger_manager=logger_manager,
    )
    return UMLWorkflow(planner=planner, tool_provider=tools, pool=pool)


@dataclass(frozen=True)
class WorkflowOutcome:
    """What a caller of ``execute`` gets back, success or not."""

    text: str
    success: bool
    message: str
    result: WorkflowResult | None = None
    failure: FailureReport | None = None

    @property
    def converged(self) -> bool:
        return self.result is not None and self.result.success

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "success": self.success,
            "message": self.message,
            "result": None if self.result is None else self.result.summary(),
            "failure": (
                None if self.failure is None else self.failure.model_dump(mode="json")
            ),
        }


def _outcome_from_result(result: WorkflowResult) -> WorkflowOutcome:
    loop = result.loops[REVISION_LOOP]
    if result.success:
        message = f"UML specification converged after {loop.iterations} iteration(s)."
    else:
        message = (
            f"UML specification did not reach the score threshold within "
            f"{loop.max_iterations} iteration(s); the last revision was used."
        )
    return WorkflowOutcome(
        text=str(result.output),
        success=result.success,
        message=message,
        result=result,
    )


async def aexecute(
    business_requirement: str,
    *,
    workflow: UMLWorkflow | None = None,
    settings: WorkflowSettings | None = None,
    cancellation: CancellationToken | None = None,
) -> WorkflowOutcome:
    """Run the UML workflow for one requirement and describe the outcome.

    Orchestration errors are turned into a failed outcome carrying a
    user-facing message and a structured failure report.
    """
    resolved = workflow or build_uml_workflow(settings)
    seed = default_seed(business_requirement)
    try:
        if resolved.pool is None:
            result = await resolved.planner.ainvoke(seed, cancellation=cancellation)
        else:
            with resolved.pool.interaction():
                result = await resolved.planner.ainvoke(
                    seed, cancellation=cancellation
                )
    except OrchestrationError as exc:
        logger.error(f"{WORKFLOW_NAME} failed: {exc}")
        message = describe_failure(exc)
        return WorkflowOutcome(
            text=message,
            success=False,
            message=message,
            failure=exc.to_payload(),
        )
    return _outcome_from_result(result)


def execute(
    business_requirement: str,
    *,
    workflow: UMLWorkflow | None = None,
    settings: WorkflowSettings | None = None,
    cancellation: CancellationToken | None = None,
) -> WorkflowOutcome:
    """Blocking wrapper around ``aexecute``."""
    return asyncio.run(
        aexecute(
            business_requirement,
            workflow=workflow,
            settings=settings,
            cancellation=cancellation,
        )
    )


__all__ = [
    "MATERIALIZE_STAGE",
    "REVISION_LOOP",
    "UMLWorkflow",
    "WORKFLOW_NAME",
    "WorkflowOutcome",
    "aexecute",
    "build_uml_planner",
    "build_uml_workflow",
    "default_seed",
    "execute",
]
