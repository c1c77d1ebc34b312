from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import Any

from hypothesis import given, settings
from hypothesis import strategies as st
import pytest

from umlflow.engine import (
    CancellationToken,
    FunctionAgent,
    LoopStage,
    RunContext,
    Scope,
    never,
    score_at_least,
)
from umlflow.enums import CallStatus, TerminationReason
from umlflow.errors import (
    AgentExecutionFailure,
    EmptyLoopBodyError,
    WorkflowCancelledError,
)

from tests.utils.workflow_helpers import AgentFactory, scores_from


def _context(seed: dict[str, Any]) -> RunContext:
    return RunContext(scope=Scope(seed), cancellation=CancellationToken())


def _refinement_loop(
    recording_agent: AgentFactory,
    scores: Callable[[dict[str, Any]], float],
    *,
    max_iterations: int = 5,
    threshold: float = 0.8,
) -> LoopStage:
    passes = iter(range(1, 1000))
    return LoopStage(
        "refine",
        [
            recording_agent(
                "designer",
                requires=("req",),
                outputs=("spec",),
                fn=lambda inputs: f"spec v{next(passes)}",
            ),
            recording_agent("critic", requires=("spec",), outputs=("critique",)),
            recording_agent(
                "scorer", requires=("critique",), outputs=("score",), fn=scores
            ),
        ],
        exit_predicate=score_at_least("score", threshold),
        max_iterations=max_iterations,
        output_key="spec",
    )


@pytest.mark.asyncio
async def test_loop_converges_on_third_pass(
    recording_agent: AgentFactory, call_log: list[str]
) -> None:
    stage = _refinement_loop(recording_agent, scores_from([0.5, 0.6, 0.9]))
    context = _context({"req": "tracker"})

    published = await stage.run(context)

    report = context.loops["refine"]
    assert report.iterations == 3
    assert report.reason is TerminationReason.CONVERGED
    assert report.score_history == [0.5, 0.6, 0.9]
    assert published == {"spec": "spec v3"}
    assert call_log == ["designer", "critic", "scorer"] * 3


@pytest.mark.asyncio
async def test_loop_stops_at_cap_and_keeps_last_output(
    recording_agent: AgentFactory, call_log: list[str]
) -> None:
    stage = _refinement_loop(recording_agent, scores_from([0.5] * 5), max_iterations=5)
    context = _context({"req": "tracker"})

    published = await stage.run(context)

    report = context.loops["refine"]
    assert report.iterations == 5
    assert report.reason is TerminationReason.ITERATION_CAP_REACHED
    assert not report.converged
    assert published == {"spec": "spec v5"}
    assert len(call_log) == 15


@pytest.mark.asyncio
async def test_single_pass_when_first_score_meets_threshold(
    recording_agent: AgentFactory,
) -> None:
    stage = _refinement_loop(recording_agent, scores_from([0.8]), max_iterations=1)
    context = _context({"req": "tracker"})

    await stage.run(context)

    assert context.loops["refine"].iterations == 1
    assert context.loops["refine"].reason is TerminationReason.CONVERGED


@pytest.mark.asyncio
async def test_single_pass_cap_with_never_predicate(
    recording_agent: AgentFactory, call_log: list[str]
) -> None:
    stage = LoopStage(
        "refine",
        [recording_agent("designer", outputs=("spec",))],
        exit_predicate=never,
        max_iterations=1,
        output_key="spec",
    )
    context = _context({})

    await stage.run(context)

    report = context.loops["refine"]
    assert report.iterations == 1
    assert report.reason is TerminationReason.ITERATION_CAP_REACHED
    assert report.score_history == []
    assert call_log == ["designer"]


@pytest.mark.asyncio
async def test_agents_see_outputs_of_earlier_agents_in_same_pass() -> None:
    seen: list[str] = []

    def critic(inputs: dict[str, Any]) -> str:
        seen.append(inputs["spec"])
        return "ok"

    counter = iter(range(1, 10))
    stage = LoopStage(
        "refine",
        [
            FunctionAgent(
                "designer",
                lambda inputs: f"draft {next(counter)}",
                outputs=("spec",),
            ),
            FunctionAgent("critic", critic, requires=("spec",), outputs=("critique",)),
        ],
        exit_predicate=never,
        max_iterations=3,
        output_key="spec",
    )
    context = _context({})

    await stage.run(context)

    assert seen == ["draft 1", "draft 2", "draft 3"]


@pytest.mark.asyncio
async def test_failing_agent_aborts_loop_without_later_agents(
    recording_agent: AgentFactory, call_log: list[str]
) -> None:
    def explode(inputs: dict[str, Any]) -> str:
        raise RuntimeError("model unavailable")

    stage = LoopStage(
        "refine",
        [
            recording_agent("designer", outputs=("spec",), fn=explode),
            recording_agent("critic", requires=("spec",), outputs=("critique",)),
        ],
        exit_predicate=never,
        max_iterations=3,
        output_key="spec",
    )
    context = _context({})

    with pytest.raises(AgentExecutionFailure) as excinfo:
        await stage.run(context)

    assert excinfo.value.agent_name == "designer"
    assert isinstance(excinfo.value.cause, RuntimeError)
    assert call_log == ["designer"]
    assert "refine" not in context.loops
    assert [call.status for call in context.calls] == [CallStatus.FAILED]


@pytest.mark.asyncio
async def test_cancellation_takes_effect_between_passes(
    recording_agent: AgentFactory, call_log: list[str]
) -> None:
    token = CancellationToken()
    passes = iter(range(1, 100))

    def critic(inputs: dict[str, Any]) -> str:
        if inputs["spec"] == "spec v2":
            token.cancel("user interrupt")
        return "critique"

    stage = LoopStage(
        "refine",
        [
            recording_agent(
                "designer", outputs=("spec",), fn=lambda inputs: f"spec v{next(passes)}"
            ),
            recording_agent(
                "critic", requires=("spec",), outputs=("critique",), fn=critic
            ),
            recording_agent("scorer", requires=("critique",), outputs=("score",)),
        ],
        exit_predicate=never,
        max_iterations=5,
        output_key="spec",
    )
    context = RunContext(scope=Scope({}), cancellation=token)

    with pytest.raises(WorkflowCancelledError, match="pass 3 of loop 'refine'"):
        await stage.run(context)

    assert call_log == ["designer", "critic", "scorer"] * 2
    assert context.scope.read("spec") == "spec v2"
    assert context.loops == {}


def test_loop_rejects_empty_body_and_non_positive_cap(
    recording_agent: AgentFactory,
) -> None:
    with pytest.raises(EmptyLoopBodyError):
        LoopStage("refine", [], exit_predicate=never, max_iterations=3, output_key="x")
    with pytest.raises(ValueError):
        LoopStage(
            "refine",
            [recording_agent("designer", outputs=("x",))],
            exit_predicate=never,
            max_iterations=0,
            output_key="x",
        )


def test_loop_records_iteration_on_each_call(recording_agent: AgentFactory) -> None:
    stage = _refinement_loop(recording_agent, scores_from([0.1, 0.95]))
    context = _context({"req": "tracker"})

    asyncio.run(stage.run(context))

    iterations = [(call.agent, call.iteration) for call in context.calls]
    assert iterations[:3] == [("designer", 1), ("critic", 1), ("scorer", 1)]
    assert iterations[3:] == [("designer", 2), ("critic", 2), ("scorer", 2)]
    assert all(call.stage == "refine" for call in context.calls)


def _expected_passes(scores: Iterable[float], threshold: float, cap: int) -> int:
    for index, score in enumerate(scores, start=1):
        if score >= threshold or index == cap:
            return index
    return cap


@settings(max_examples=50, deadline=None)
@given(
    scores=st.lists(
        st.floats(min_value=0.0, max_value=1.0, allow_nan=False),
        min_size=8,
        max_size=8,
    ),
    cap=st.integers(min_value=1, max_value=8),
    threshold=st.floats(min_value=0.0, max_value=1.0, allow_nan=False),
)
def test_loop_pass_count_matches_first_converging_score(
    scores: list[float], cap: int, threshold: float
) -> None:
    calls: list[str] = []

    def scorer(inputs: dict[str, Any]) -> float:
        calls.append("scorer")
        return scores[len(calls) - 1]

    stage = LoopStage(
        "refine",
        [FunctionAgent("scorer", scorer, outputs=("score",))],
        exit_predicate=score_at_least("score", threshold),
        max_iterations=cap,
        output_key="score",
    )
    context = _context({})

    asyncio.run(stage.run(context))

    expected = _expected_passes(scores, threshold, cap)
    report = context.loops["refine"]
    assert report.iterations == expected
    assert 1 <= report.iterations <= cap
    assert report.converged == (scores[expected - 1] >= threshold)
