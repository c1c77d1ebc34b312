"""Registry helpers for model/provider resolution."""

from __future__ import annotations

from enum import Enum


class Provider(str, Enum):
    """Supported chat-completion providers."""

    MISTRAL = "Mistral"
    OPENAI = "OpenAI"
    SCRIPTED = "Scripted"


MISTRAL_PREFIXES = ("mistral-", "pixtral-", "codestral-", "ministral-", "open-")
OPENAI_PREFIXES = ("gpt-", "o1", "o3", "o4")
SCRIPTED_PREFIX = "scripted"

MODEL_REGISTRY: dict[str, Provider] = {
    "mistral-large-latest": Provider.MISTRAL,
    "mistral-small-latest": Provider.MISTRAL,
    "pixtral-12b": Provider.MISTRAL,
    "gpt-4o-mini": Provider.OPENAI,
    "gpt-4o": Provider.OPENAI,
    "scripted": Provider.SCRIPTED,
}


def resolve_provider(model_name: str) -> Provider:
    """Resolve a model name into a provider."""
    if model_name in MODEL_REGISTRY:
        return MODEL_REGISTRY[model_name]
    if model_name.startswith(SCRIPTED_PREFIX):
        return Provider.SCRIPTED
    if model_name.startswith(MISTRAL_PREFIXES):
        return Provider.MISTRAL
    if model_name.startswith(OPENAI_PREFIXES):
        return Provider.OPENAI
    raise ValueError(f"Unknown model: {model_name}")


def validate_model_name(model_name: str) -> None:
    """Ensure the model name is recognized by the registry."""
    resolve_provider(model_name)


__all__ = [
    "Provider",
    "MODEL_REGISTRY",
    "resolve_provider",
    "validate_model_name",
]
