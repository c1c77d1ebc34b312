"""Loads and validates model provider API keys from the environment."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import os
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class APIKeySpec:
    """Describes how a provider exposes its API key in the environment."""

    provider: str
    env_var: str
    description: str


SKIP_DOTENV_ENV = "UMLFLOW_SKIP_DOTENV"

KEY_REGISTRY: tuple[APIKeySpec, ...] = (
    APIKeySpec("Mistral", "MISTRAL_API_KEY", "Mistral chat completions"),
    APIKeySpec("OpenAI", "OPENAI_API_KEY", "OpenAI chat completions"),
)


def load_environment(dotenv_path: str | Path | None = None) -> None:
    """Load a `.env` file when available to seed API key lookups.

    The implicit ``./.env`` lookup is skipped when ``UMLFLOW_SKIP_DOTENV`` is set.
    """
    if dotenv_path is None and os.getenv(SKIP_DOTENV_ENV) == "1":
        return
    path = Path(dotenv_path) if dotenv_path else Path(".env")
    if path.exists():
        load_dotenv(dotenv_path=path)


def _spec_for(provider: str) -> APIKeySpec:
    spec = next(
        (spec for spec in KEY_REGISTRY if spec.provider.lower() == provider.lower()),
        None,
    )
    if not spec:
        raise KeyError(f"Unknown provider: {provider}")
    return spec


def validate_keys(providers: Iterable[str] | None = None) -> None:
    """Ensure the keys of ``providers`` (default: all registered) are set."""
    specs = (
        KEY_REGISTRY
        if providers is None
        else tuple(_spec_for(provider) for provider in providers)
    )
    missing = [spec.env_var for spec in specs if not os.getenv(spec.env_var)]
    if missing:
        missing_list = ", ".join(missing)
        raise RuntimeError(
            f"Missing API keys: {missing_list}. "
            "Please define them in the environment or .env file."
        )


def key_for_provider(provider: str) -> str:
    """Return the configured key for a specific provider, or raise."""
    spec = _spec_for(provider)
    value = os.getenv(spec.env_var)
    if not value:
        raise RuntimeError(f"API key for {provider} ({spec.env_var}) is not configured")
    return value


def configured_providers() -> Iterable[str]:
    """List providers that currently have API keys configured."""
    return [spec.provider for spec in KEY_REGISTRY if os.getenv(spec.env_var)]


__all__ = [
    "KEY_REGISTRY",
    "SKIP_DOTENV_ENV",
    "APIKeySpec",
    "load_environment",
    "validate_keys",
    "configured_providers",
    "key_for_provider",
]
