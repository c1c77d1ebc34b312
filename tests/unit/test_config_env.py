from __future__ import annotations

import os
from pathlib import Path

from pydantic import ValidationError
import pytest

from umlflow.config import WorkflowSettings
from umlflow.config import validate_keys as core_validate
from umlflow.config.env import (
    configured_providers,
    key_for_provider,
    load_environment,
    validate_keys as env_validate,
)


def test_validate_keys_is_deduplicated() -> None:
    """Guard against multiple validate_keys definitions reappearing."""
    assert core_validate is env_validate


def test_validate_keys_lists_every_missing_variable() -> None:
    with pytest.raises(RuntimeError) as excinfo:
        env_validate(["Mistral", "OpenAI"])

    assert "MISTRAL_API_KEY, OPENAI_API_KEY" in str(excinfo.value)


def test_validate_keys_passes_when_configured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MISTRAL_API_KEY", "secret")

    env_validate(["mistral"])
    assert key_for_provider("Mistral") == "secret"
    assert list(configured_providers()) == ["Mistral"]


def test_unknown_provider_is_rejected() -> None:
    with pytest.raises(KeyError):
        env_validate(["Anthropic"])


def test_load_environment_reads_dotenv(tmp_path: Path) -> None:
    dotenv = tmp_path / ".env"
    dotenv.write_text("OPENAI_API_KEY=from-dotenv\n", encoding="utf-8")

    try:
        load_environment(dotenv)
        assert key_for_provider("OpenAI") == "from-dotenv"
    finally:
        os.environ.pop("OPENAI_API_KEY", None)


def test_load_environment_ignores_missing_file(tmp_path: Path) -> None:
    load_environment(tmp_path / "absent.env")

    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        key_for_provider("OpenAI")


def test_settings_are_validated() -> None:
    with pytest.raises(ValidationError):
        WorkflowSettings.from_mapping({"score_threshold": 1.5})
    with pytest.raises(ValidationError):
        WorkflowSettings.from_mapping({"unknown_option": True})
