"""Agents: named transformations from declared scope inputs to declared outputs.

The engine pulls an agent's required inputs out of the scope, awaits the
agent's payload logic, checks that only declared outputs come back, and writes
them into the scope. Declaring keys up front lets the planner validate the key
flow of a whole workflow before anything runs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
import inspect
import re
import time
from typing import Any, final

from umlflow.engine.capabilities import ModelCapability, ToolProvider
from umlflow.engine.context import RunContext
from umlflow.engine.result import AgentCallRecord
from umlflow.enums import CallStatus
from umlflow.errors import (
    AgentContractError,
    AgentExecutionFailure,
    MissingKeyError,
    ScopeTypeError,
    WorkflowCancelledError,
)

# Engine errors that describe wiring or contract mistakes pass through as-is.
_PASSTHROUGH = (
    AgentContractError,
    AgentExecutionFailure,
    MissingKeyError,
    ScopeTypeError,
    WorkflowCancelledError,
)

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def render_template(template: str, values: Mapping[str, Any]) -> str:
    """Fill ``{{name}}`` placeholders; unknown names raise MissingKeyError."""

    def _substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in values:
            raise MissingKeyError(key, reader="prompt template")
        value = values[key]
        return value if isinstance(value, str) else str(value)

    return _PLACEHOLDER.sub(_substitute, template)


def template_keys(template: str) -> list[str]:
    """Return placeholder names in order of first appearance."""
    return list(dict.fromkeys(_PLACEHOLDER.findall(template)))


class BaseAgent(ABC):
    """Abstract base class for every agent run by the engine.

    Agents are stateless: the same instance may run in every pass of a loop
    and in any number of invocations. Subclasses implement ``_run_payload``.
    """

    def __init__(
        self,
        name: str,
        *,
        requires: Sequence[str] = (),
        outputs: Sequence[str] = (),
        tool_provider: ToolProvider | None = None,
        description: str | None = None,
    ) -> None:
        if not name:
            raise ValueError("Agent name must not be empty")
        if not outputs:
            raise ValueError(f"Agent '{name}' must declare at least one output key")
        self._name = name
        self._requires = tuple(dict.fromkeys(requires))
        self._outputs = tuple(dict.fromkeys(outputs))
        self._tool_provider = tool_provider
        self._description = description

    @property
    def name(self) -> str:
        return self._name

    @property
    def requires(self) -> tuple[str, ...]:
        return self._requires

    @property
    def outputs(self) -> tuple[str, ...]:
        return self._outputs

    @property
    def tool_provider(self) -> ToolProvider | None:
        return self._tool_provider

    @property
    def description(self) -> str:
        return self._description or self.__doc__ or self.__class__.__name__

    def coverage_report(self) -> dict[str, list[str]]:
        """Describe which scope keys the agent consumes and produces."""
        return {"consumes": list(self._requires), "produces": list(self._outputs)}

    @final
    async def run(self, context: RunContext) -> dict[str, Any]:
        """Run once against the context's scope and return what was written."""
        inputs = {key: context.scope.read(key) for key in self._requires}
        started_at = datetime.now(UTC)
        start = time.perf_counter()
        try:
            raw = await self._run_payload(inputs)
            produced = self._normalize_outputs(raw)
        except _PASSTHROUGH as exc:
            self._record(context, started_at, start, CallStatus.FAILED, [], exc)
            raise
        except Exception as exc:
            self._record(context, started_at, start, CallStatus.FAILED, [], exc)
            context.logger.error(
                f"Agent {self._name} failed in stage {context.stage}: {exc}"
            )
            raise AgentExecutionFailure(self._name, exc) from exc
        context.scope.update(produced)
        self._record(
            context, started_at, start, CallStatus.SUCCESS, list(produced), None
        )
        context.logger.debug(
            f"Agent {self._name} wrote {sorted(produced)} "
            f"(stage={context.stage}, iteration={context.iteration})"
        )
        return produced

    @abstractmethod
    async def _run_payload(self, inputs: dict[str, Any]) -> Any:
        """Agent-specific logic over the declared inputs."""

    def _normalize_outputs(self, raw: Any) -> dict[str, Any]:
        if raw is None:
            return {}
        # A single-output agent may legitimately produce an empty record.
        if isinstance(raw, Mapping) and not raw and len(self._outputs) > 1:
            return {}
        if isinstance(raw, Mapping) and raw and set(raw) <= set(self._outputs):
            return dict(raw)
        if len(self._outputs) == 1:
            return {self._outputs[0]: raw}
        keys = sorted(raw) if isinstance(raw, Mapping) else type(raw).__name__
        raise AgentContractError(
            f"Agent '{self._name}' returned {keys}; "
            f"declared outputs are {list(self._outputs)}"
        )

    def _record(
        self,
        context: RunContext,
        started_at: datetime,
        start: float,
        status: CallStatus,
        outputs: list[str],
        error: BaseException | None,
    ) -> None:
        context.calls.append(
            AgentCallRecord(
                agent=self._name,
                stage=context.stage,
                iteration=context.iteration,
                status=status,
                started_at=started_at,
                duration_seconds=max(0.0, time.perf_counter() - start),
                outputs=outputs,
                error=None if error is None else f"{type(error).__name__}: {error}",
            )
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(name={self._name!r}, "
            f"requires={list(self._requires)}, outputs={list(self._outputs)})"
        )


AgentFunction = Callable[[dict[str, Any]], Any]


class FunctionAgent(BaseAgent):
    """Adapts a plain (sync or async) callable into an agent."""

    def __init__(
        self,
        name: str,
        fn: AgentFunction,
        *,
        requires: Sequence[str] = (),
        outputs: Sequence[str] = (),
        tool_provider: ToolProvider | None = None,
        description: str | None = None,
    ) -> None:
        super().__init__(
            name,
            requires=requires,
            outputs=outputs,
            tool_provider=tool_provider,
            description=description,
        )
        self._fn = fn

    async def _run_payload(self, inputs: dict[str, Any]) -> Any:
        result = self._fn(inputs)
        if inspect.isawaitable(result):
            result = await result
        return result


class PromptAgent(BaseAgent):
    """Renders a prompt from scope inputs and asks a model to complete it.

    Required inputs default to the template's ``{{placeholders}}``. The blocking
    model call runs in a worker thread so the event loop stays responsive.
    """

    def __init__(
        self,
        name: str,
        model: ModelCapability,
        template: str,
        *,
        output_key: str,
        system_prompt: str | None = None,
        requires: Sequence[str] | None = None,
        tool_provider: ToolProvider | None = None,
        description: str | None = None,
    ) -> None:
        super().__init__(
            name,
            requires=template_keys(template) if requires is None else requires,
            outputs=(output_key,),
            tool_provider=tool_provider,
            description=description,
        )
        self.model = model
        self.template = template
        self.system_prompt = system_prompt

    def render(self, inputs: Mapping[str, Any]) -> str:
        return render_template(self.template, inputs)

    async def _run_payload(self, inputs: dict[str, Any]) -> Any:
        prompt = self.render(inputs)
        reply = await asyncio.to_thread(
            self.model.complete, prompt, system=self.system_prompt
        )
        return self.postprocess(reply)

    def postprocess(self, reply: str) -> Any:
        """Hook converting the raw completion into the output value."""
        return reply.strip()


__all__ = [
    "BaseAgent",
    "FunctionAgent",
    "PromptAgent",
    "render_template",
    "template_keys",
]
