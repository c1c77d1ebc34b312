"""Model adapters, provider registry and interaction-scoped client pools."""

from __future__ import annotations

from umlflow.models.adapter_factory import build_adapter
from umlflow.models.llm_adapter import (
    AdapterConfig,
    BaseLLMAdapter,
    LLMResponse,
    MistralAdapter,
    OpenAIAdapter,
    ScriptedModel,
)
from umlflow.models.pool import ModelPool, PooledModel
from umlflow.models.registry import Provider, resolve_provider

__all__ = [
    "AdapterConfig",
    "BaseLLMAdapter",
    "LLMResponse",
    "MistralAdapter",
    "ModelPool",
    "OpenAIAdapter",
    "PooledModel",
    "Provider",
    "ScriptedModel",
    "build_adapter",
    "resolve_provider",
]
