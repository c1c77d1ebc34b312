"""Sequential planner driving an ordered list of stages to completion."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from contextlib import nullcontext
import copy
import logging
from typing import TYPE_CHECKING, Any
import uuid

from umlflow.engine.agent import BaseAgent
from umlflow.engine.cancellation import CancellationToken
from umlflow.engine.context import RunContext
from umlflow.engine.predicates import ExitPredicate
from umlflow.engine.result import WorkflowResult
from umlflow.engine.scope import Scope
from umlflow.engine.stages import LoopStage, SequentialStage, Stage, Step
from umlflow.engine.wiring import validate_wiring
from umlflow.enums import OwnershipPolicy
from umlflow.errors import MissingKeyError

if TYPE_CHECKING:
    from umlflow.utilities.logger_manager import LoggerManager


class Planner:
    """Immutable workflow topology; each invocation gets its own scope.

    Stages run strictly one after another. Agent failures propagate to the
    caller unchanged and no later stage starts.
    """

    def __init__(
        self,
        name: str,
        stages: Sequence[Stage],
        *,
        output_key: str,
        seed_keys: Sequence[str],
        writers: Mapping[str, list[str]],
        ownership: OwnershipPolicy,
        logger_manager: LoggerManager | None = None,
    ) -> None:
        self._name = name
        self._stages = tuple(stages)
        self._output_key = output_key
        self._seed_keys = tuple(seed_keys)
        self._writers = {key: tuple(names) for key, names in writers.items()}
        self._ownership = ownership
        self._logger_manager = logger_manager
        self._logger: Any = (
            logger_manager.get_logger()
            if logger_manager is not None
            else logging.getLogger(__name__)
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def stages(self) -> tuple[Stage, ...]:
        return self._stages

    @property
    def output_key(self) -> str:
        return self._output_key

    @property
    def seed_keys(self) -> tuple[str, ...]:
        return self._seed_keys

    @property
    def ownership(self) -> OwnershipPolicy:
        return self._ownership

    def writers_of(self, key: str) -> tuple[str, ...]:
        return self._writers.get(key, ())

    def describe(self) -> list[dict[str, Any]]:
        """Plain description of the stage topology for CLIs and logs."""
        described: list[dict[str, Any]] = []
        for stage in self._stages:
            entry: dict[str, Any] = {
                "name": stage.name,
                "kind": stage.kind.value,
                "agents": [agent.name for agent in stage.iter_agents()],
            }
            if isinstance(stage, LoopStage):
                entry["max_iterations"] = stage.max_iterations
                entry["output_key"] = stage.output_key
                entry["exit_predicate"] = str(stage.exit_predicate)
            described.append(entry)
        return described

    async def ainvoke(
        self,
        seed: Mapping[str, Any],
        *,
        cancellation: CancellationToken | None = None,
    ) -> WorkflowResult:
        """Run every stage against a fresh scope built from ``seed``."""
        for key in self._seed_keys:
            if key not in seed:
                raise MissingKeyError(key, reader=f"workflow '{self._name}' seed")
        scope = Scope(copy.deepcopy(dict(seed)))
        context = RunContext(
            scope=scope,
            cancellation=cancellation or CancellationToken(),
            logger=self._logger,
        )
        invocation_id = uuid.uuid4().hex[:12]
        log_context = (
            self._logger_manager.context(
                workflow=self._name, invocation=invocation_id
            )
            if self._logger_manager is not None
            else nullcontext()
        )
        with log_context:
            self._logger.info(
                f"Workflow {self._name} [{invocation_id}] started "
                f"with {len(self._stages)} stage(s)"
            )
            for stage in self._stages:
                context.cancellation.raise_if_cancelled(f"stage '{stage.name}'")
                self._logger.info(f"Stage {stage.name} ({stage.kind.value}) started")
                await stage.run(context.for_stage(stage.name))
                self._logger.info(f"Stage {stage.name} completed")
            result = WorkflowResult(
                workflow=self._name,
                output_key=self._output_key,
                output=scope.read(self._output_key),
                loops=dict(context.loops),
                calls=list(context.calls),
                scope=scope.snapshot(),
            )
            self._logger.info(
                f"Workflow {self._name} [{invocation_id}] finished "
                f"(success={result.success})"
            )
        return result

    def invoke(
        self,
        seed: Mapping[str, Any],
        *,
        cancellation: CancellationToken | None = None,
    ) -> WorkflowResult:
        """Blocking wrapper around ``ainvoke``; not for use inside a running loop."""
        return asyncio.run(self.ainvoke(seed, cancellation=cancellation))

    def __repr__(self) -> str:
        names = [stage.name for stage in self._stages]
        return (
            f"Planner(name={self._name!r}, stages={names}, "
            f"output_key={self._output_key!r})"
        )


class PlannerBuilder:
    """Assembles an explicit ordered stage list and validates it once.

    The builder is the only mutable piece; ``build()`` freezes the topology.
    """

    def __init__(self, name: str = "workflow") -> None:
        self._name = name
        self._stages: list[Stage] = []
        self._seed_keys: list[str] = []
        self._output_key: str | None = None
        self._ownership = OwnershipPolicy.SINGLE_WRITER
        self._logger_manager: LoggerManager | None = None

    def seed(self, *keys: str) -> PlannerBuilder:
        """Declare keys every invocation seed must provide."""
        self._seed_keys.extend(key for key in keys if key not in self._seed_keys)
        return self

    def add_stage(self, stage: Stage) -> PlannerBuilder:
        self._stages.append(stage)
        return self

    def loop(
        self,
        name: str,
        sub_agents: Sequence[BaseAgent],
        *,
        exit_predicate: ExitPredicate,
        max_iterations: int,
        output_key: str,
    ) -> PlannerBuilder:
        return self.add_stage(
            LoopStage(
                name,
                sub_agents,
                exit_predicate=exit_predicate,
                max_iterations=max_iterations,
                output_key=output_key,
            )
        )

    def sequence(self, name: str, steps: Sequence[Step]) -> PlannerBuilder:
        return self.add_stage(SequentialStage(name, steps))

    def output(self, key: str) -> PlannerBuilder:
        self._output_key = key
        return self

    def ownership(self, policy: OwnershipPolicy) -> PlannerBuilder:
        self._ownership = policy
        return self

    def logger_manager(self, manager: LoggerManager) -> PlannerBuilder:
        self._logger_manager = manager
        return self

    def build(self) -> Planner:
        if not self._stages:
            raise ValueError(f"Workflow '{self._name}' has no stages")
        if self._output_key is None:
            raise ValueError(f"Workflow '{self._name}' has no output key")
        writers = validate_wiring(
            self._stages,
            seed_keys=self._seed_keys,
            output_key=self._output_key,
            ownership=self._ownership,
        )
        return Planner(
            self._name,
            self._stages,
            output_key=self._output_key,
            seed_keys=self._seed_keys,
            writers=writers,
            ownership=self._ownership,
            logger_manager=self._logger_manager,
        )
