"""YAML-backed settings for the UML workflow, validated with pydantic."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ConfigDict, Field
import yaml

from umlflow.config.defaults import LOGGING_DEFAULTS, WORKFLOW_DEFAULTS
from umlflow.schema.base import TypedBaseModel


class LoggingSettings(TypedBaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    log_level: str = str(LOGGING_DEFAULTS["log_level"])
    log_dir: str | None = None
    log_file_name: str = str(LOGGING_DEFAULTS["log_file_name"])
    structured_logging: bool = bool(LOGGING_DEFAULTS["structured_logging"])


class WorkflowSettings(TypedBaseModel):
    """Tunable parameters of the UML workflow and its collaborators."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_iterations: int = Field(..., ge=1)
    score_threshold: float = Field(..., ge=0.0, le=1.0)
    designer_model: str
    critic_model: str
    scorer_model: str
    mcp_url: str
    mcp_client_key: str
    mcp_timeout: float = Field(..., gt=0.0)
    pool_size: int = Field(..., ge=1)
    borrow_timeout: float = Field(..., gt=0.0)
    temperature: float = Field(..., ge=0.0, le=2.0)
    max_tokens: int = Field(..., ge=1)
    request_timeout: float = Field(..., gt=0.0)
    retry_attempts: int = Field(..., ge=0)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_mapping(
        cls, overrides: Mapping[str, Any] | None = None
    ) -> WorkflowSettings:
        """Merge ``overrides`` over the defaults and validate the result."""
        merged: dict[str, Any] = dict(WORKFLOW_DEFAULTS)
        merged.update(overrides or {})
        return cls(**merged)

    def with_overrides(self, **overrides: Any) -> WorkflowSettings:
        """Return a copy with non-None keyword overrides applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if not changes:
            return self
        return type(self).model_validate({**self.model_dump(), **changes})


def load_settings(path: str | Path | None) -> WorkflowSettings:
    """Load settings from a YAML file; a missing file yields the defaults."""
    if path is None:
        return WorkflowSettings.from_mapping()
    resolved = Path(path)
    if not resolved.is_file():
        return WorkflowSettings.from_mapping()
    raw = yaml.safe_load(resolved.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(
            f"Config file {resolved} must contain a mapping, got {type(raw).__name__}"
        )
    section = dict(raw.get("workflow", raw))
    if "logging" in raw and "logging" not in section:
        section["logging"] = raw["logging"]
    return WorkflowSettings.from_mapping(section)
