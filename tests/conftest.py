from __future__ import annotations

from collections.abc import Callable, Generator, Sequence
from pathlib import Path
from typing import Any

import pytest

from tests.utils.workflow_helpers import AgentFactory
from umlflow.engine import FunctionAgent
from umlflow.utilities.logger_manager import LoggerConfig, LoggerManager


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real API keys and .env files out of every test."""
    monkeypatch.setenv("UMLFLOW_SKIP_DOTENV", "1")
    monkeypatch.delenv("MISTRAL_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.fixture
def logger_manager(tmp_path: Path) -> Generator[LoggerManager, None, None]:
    manager = LoggerManager(LoggerConfig(log_dir=tmp_path / "logs"))
    yield manager
    manager.close()


@pytest.fixture
def call_log() -> list[str]:
    return []


@pytest.fixture
def recording_agent(call_log: list[str]) -> AgentFactory:
    """Build FunctionAgents that append their name to ``call_log`` when run."""

    def factory(
        name: str,
        *,
        requires: Sequence[str] = (),
        outputs: Sequence[str] = ("out",),
        fn: Callable[[dict[str, Any]], Any] | None = None,
    ) -> FunctionAgent:
        def run(inputs: dict[str, Any]) -> Any:
            call_log.append(name)
            if fn is not None:
                return fn(inputs)
            return f"{name} output"

        return FunctionAgent(name, run, requires=requires, outputs=outputs)

    return factory
