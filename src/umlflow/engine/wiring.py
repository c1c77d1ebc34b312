"""Build-time validation of how scope keys flow between stages."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence

from umlflow.engine.agent import BaseAgent
from umlflow.engine.stages import LoopStage, SequentialStage, Stage
from umlflow.enums import OwnershipPolicy
from umlflow.errors import WiringError


class _KeyFlow:
    def __init__(self, seed_keys: Iterable[str]) -> None:
        self.available: set[str] = set(seed_keys)
        self.writers: dict[str, list[BaseAgent]] = defaultdict(list)
        self.stage_names: list[str] = []
        self.problems: list[str] = []

    def check_reads(self, agent: BaseAgent, visible: set[str], where: str) -> None:
        for key in agent.requires:
            if key not in visible:
                self.problems.append(
                    f"{where}: agent '{agent.name}' reads '{key}' "
                    "before any seed value or earlier agent provides it"
                )

    def produce(self, agent: BaseAgent) -> None:
        # The same instance reused in several places counts as one writer.
        for key in agent.outputs:
            if not any(writer is agent for writer in self.writers[key]):
                self.writers[key].append(agent)
            self.available.add(key)


def _walk(stage: Stage, flow: _KeyFlow) -> None:
    flow.stage_names.append(stage.name)
    if isinstance(stage, LoopStage):
        # On the first pass only keys written earlier in the body exist.
        visible = set(flow.available)
        body_outputs: set[str] = set()
        for agent in stage.sub_agents:
            flow.check_reads(agent, visible, f"loop '{stage.name}'")
            visible.update(agent.outputs)
            body_outputs.update(agent.outputs)
        for agent in stage.sub_agents:
            flow.produce(agent)
        if stage.output_key not in body_outputs:
            flow.problems.append(
                f"loop '{stage.name}': output key '{stage.output_key}' "
                "is not written by any sub-agent"
            )
        return
    if isinstance(stage, SequentialStage):
        for step in stage.steps:
            if isinstance(step, Stage):
                _walk(step, flow)
            else:
                flow.check_reads(step, flow.available, f"stage '{stage.name}'")
                flow.produce(step)
        return
    raise TypeError(f"Unsupported stage type: {type(stage).__name__}")


def validate_wiring(
    stages: Sequence[Stage],
    *,
    seed_keys: Iterable[str],
    output_key: str,
    ownership: OwnershipPolicy = OwnershipPolicy.SINGLE_WRITER,
) -> dict[str, list[str]]:
    """Check key flow across ``stages`` and return the writers of each key.

    Stage names must be unique across nesting levels because loop reports are
    keyed by stage name. Raises WiringError listing every problem found, not
    just the first.
    """
    flow = _KeyFlow(seed_keys)
    for stage in stages:
        _walk(stage, flow)
    names = flow.stage_names
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        flow.problems.insert(0, f"duplicate stage names: {duplicates}")
    if output_key not in flow.available:
        flow.problems.append(
            f"final output key '{output_key}' is never seeded or written"
        )
    if ownership is OwnershipPolicy.SINGLE_WRITER:
        for key, writers in sorted(flow.writers.items()):
            if len(writers) > 1:
                flow.problems.append(
                    f"key '{key}' has several writers "
                    f"{[writer.name for writer in writers]} "
                    "(single-writer ownership is enforced)"
                )
    if flow.problems:
        raise WiringError(flow.problems)
    return {
        key: [writer.name for writer in writers]
        for key, writers in flow.writers.items()
    }
