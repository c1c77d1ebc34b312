"""Loop and sequential stages composing agents into a workflow."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from typing import Any

from umlflow.engine.agent import BaseAgent
from umlflow.engine.context import RunContext
from umlflow.engine.predicates import ExitPredicate
from umlflow.engine.result import LoopReport
from umlflow.enums import StageKind, TerminationReason
from umlflow.errors import EmptyLoopBodyError


class Stage(ABC):
    """A named unit of a planner's ordered stage list."""

    kind: StageKind

    def __init__(self, name: str) -> None:
        if not name:
            raise ValueError("Stage name must not be empty")
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    async def run(self, context: RunContext) -> dict[str, Any]:
        """Run against the context's scope and return the stage's published keys."""

    @abstractmethod
    def iter_agents(self) -> Iterator[BaseAgent]:
        """Yield every agent reachable from this stage, in execution order."""


Step = BaseAgent | Stage


class LoopStage(Stage):
    """Repeats an ordered agent pipeline until it converges or hits its cap.

    Agents within a pass run strictly in declared order because later agents
    read what earlier ones wrote in the same pass. The exit predicate is only
    evaluated after a full pass; convergence wins over the cap when both hold
    on the same pass.
    """

    kind = StageKind.LOOP

    def __init__(
        self,
        name: str,
        sub_agents: Sequence[BaseAgent],
        *,
        exit_predicate: ExitPredicate,
        max_iterations: int,
        output_key: str,
    ) -> None:
        super().__init__(name)
        if not sub_agents:
            raise EmptyLoopBodyError(f"Loop stage '{name}' has no sub-agents")
        if max_iterations < 1:
            raise ValueError(
                f"Loop stage '{name}' needs max_iterations >= 1, got {max_iterations}"
            )
        self.sub_agents: tuple[BaseAgent, ...] = tuple(sub_agents)
        self.exit_predicate = exit_predicate
        self.max_iterations = max_iterations
        self.output_key = output_key

    def iter_agents(self) -> Iterator[BaseAgent]:
        yield from self.sub_agents

    async def run(self, context: RunContext) -> dict[str, Any]:
        scope = context.scope
        observe = getattr(self.exit_predicate, "observe", None)
        history: list[float] = []
        iteration = 0
        while True:
            context.cancellation.raise_if_cancelled(
                f"pass {iteration + 1} of loop '{self.name}'"
            )
            pass_context = context.for_stage(self.name, iteration + 1)
            for agent in self.sub_agents:
                await agent.run(pass_context)
            iteration += 1
            if callable(observe):
                history.append(float(observe(scope)))
                context.logger.info(
                    f"Loop {self.name} pass {iteration}/{self.max_iterations}: "
                    f"{self.exit_predicate} observed {history[-1]:.3f}"
                )
            if self.exit_predicate(scope):
                reason = TerminationReason.CONVERGED
                break
            if iteration >= self.max_iterations:
                reason = TerminationReason.ITERATION_CAP_REACHED
                break
        context.loops[self.name] = LoopReport(
            stage=self.name,
            iterations=iteration,
            max_iterations=self.max_iterations,
            reason=reason,
            score_history=history,
        )
        message = (
            f"Loop {self.name} finished after {iteration} pass(es): {reason.value}"
        )
        if reason is TerminationReason.CONVERGED:
            context.logger.info(message)
        else:
            context.logger.warning(message)
        return {self.output_key: scope.read(self.output_key)}

    def __repr__(self) -> str:
        names = [agent.name for agent in self.sub_agents]
        return (
            f"LoopStage(name={self.name!r}, sub_agents={names}, "
            f"max_iterations={self.max_iterations}, output_key={self.output_key!r})"
        )


class SequentialStage(Stage):
    """Runs each listed agent or nested stage exactly once, in order."""

    kind = StageKind.SEQUENTIAL

    def __init__(self, name: str, steps: Sequence[Step]) -> None:
        super().__init__(name)
        self.steps: tuple[Step, ...] = tuple(steps)

    def iter_agents(self) -> Iterator[BaseAgent]:
        for step in self.steps:
            if isinstance(step, Stage):
                yield from step.iter_agents()
            else:
                yield step

    async def run(self, context: RunContext) -> dict[str, Any]:
        published: dict[str, Any] = {}
        for step in self.steps:
            if isinstance(step, Stage):
                context.cancellation.raise_if_cancelled(f"stage '{step.name}'")
                published.update(await step.run(context.for_stage(step.name)))
            else:
                published.update(await step.run(context.for_stage(self.name)))
        return published

    def __repr__(self) -> str:
        names = [step.name for step in self.steps]
        return f"SequentialStage(name={self.name!r}, steps={names})"


__all__ = ["Stage", "Step", "LoopStage", "SequentialStage"]
