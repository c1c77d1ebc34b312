"""Configuration: provider keys, defaults and YAML settings."""

from __future__ import annotations

from .env import (
    KEY_REGISTRY,
    APIKeySpec,
    configured_providers,
    key_for_provider,
    load_environment,
    validate_keys,
)
from .settings import LoggingSettings, WorkflowSettings, load_settings

__all__ = [
    "APIKeySpec",
    "KEY_REGISTRY",
    "LoggingSettings",
    "WorkflowSettings",
    "configured_providers",
    "key_for_provider",
    "load_environment",
    "load_settings",
    "validate_keys",
]
