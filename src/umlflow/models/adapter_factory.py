"""Factory for selecting LLM adapters based on configuration."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from umlflow.config.env import load_environment
from umlflow.errors import ModelAdapterError
from umlflow.models.llm_adapter import (
    AdapterConfig,
    BaseLLMAdapter,
    MistralAdapter,
    OpenAIAdapter,
    ScriptedModel,
)
from umlflow.models.registry import Provider, resolve_provider

DEFAULT_TEMPERATURE = 0.2
DEFAULT_MAX_TOKENS = 4096
DEFAULT_TIMEOUT = 120.0
DEFAULT_RETRY_ATTEMPTS = 2

def _resolve_float(config: Mapping[str, Any], key: str, default: float) -> float:
    value = config.get(key)
    return default if value is None else float(value)


def _resolve_int(config: Mapping[str, Any], key: str, default: int) -> int:
    value = config.get(key)
    return default if value is None else int(value)


def _build_mistral_adapter(
    adapter_config: AdapterConfig, user_config: Mapping[str, Any]
) -> BaseLLMAdapter:
    base_url = user_config.get("base_url", MistralAdapter.DEFAULT_BASE_URL)
    return MistralAdapter(adapter_config, base_url=base_url)


def _build_openai_adapter(
    adapter_config: AdapterConfig, user_config: Mapping[str, Any]
) -> BaseLLMAdapter:
    _ = user_config
    return OpenAIAdapter(adapter_config)


def _build_scripted_adapter(
    adapter_config: AdapterConfig, user_config: Mapping[str, Any]
) -> BaseLLMAdapter:
    replies = user_config.get("replies") or [""]
    return ScriptedModel(replies, model_name=adapter_config.model_name)


_ADAPTER_BUILDERS: dict[
    Provider, Callable[[AdapterConfig, Mapping[str, Any]], BaseLLMAdapter]
] = {
    Provider.MISTRAL: _build_mistral_adapter,
    Provider.OPENAI: _build_openai_adapter,
    Provider.SCRIPTED: _build_scripted_adapter,
}


def build_adapter(config: Mapping[str, Any]) -> BaseLLMAdapter:
    """Build an adapter from a mapping holding at least ``model``."""
    load_environment()
    model_name = config.get("model")
    if not model_name:
        raise ModelAdapterError("Model selection is required; set `model`")
    try:
        provider = resolve_provider(str(model_name))
    except ValueError as exc:
        raise ModelAdapterError(str(exc)) from exc
    adapter_config = AdapterConfig(
        provider=provider.value,
        model_name=str(model_name),
        temperature=_resolve_float(config, "temperature", DEFAULT_TEMPERATURE),
        max_tokens=_resolve_int(config, "max_tokens", DEFAULT_MAX_TOKENS),
        timeout=_resolve_float(config, "timeout", DEFAULT_TIMEOUT),
        retry_attempts=_resolve_int(config, "retry_attempts", DEFAULT_RETRY_ATTEMPTS),
    )
    return _ADAPTER_BUILDERS[provider](adapter_config, config)


__all__ = ["build_adapter"]
