"""Adapters exposing chat-completion providers as ``ModelCapability`` objects."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
import logging
import threading
import time
from typing import Any, cast
from urllib import parse as urllib_parse

from pydantic import ConfigDict, Field
import requests

from umlflow.config.env import key_for_provider
from umlflow.errors import ModelAdapterError
from umlflow.schema.base import TypedBaseModel
from umlflow.utilities.prompt_hash import prompt_fingerprint

logger = logging.getLogger(__name__)


class LLMResponse(TypedBaseModel):
    """Normalized response container for any backend adapter."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    text: str
    model: str
    prompt_hash: str
    metadata: Mapping[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class AdapterConfig:
    """Shared configuration used to initialize adapters."""

    provider: str
    model_name: str
    temperature: float = 0.2
    max_tokens: int = 4096
    timeout: float | None = None
    retry_attempts: int = 0
    retry_delay: float = 1.0


class BaseLLMAdapter(ABC):
    """Base adapter; ``complete`` satisfies the engine's model capability."""

    def __init__(self, config: AdapterConfig, client: Any | None = None) -> None:
        self._config = config
        self._client = client

    @property
    def config(self) -> AdapterConfig:
        return self._config

    @property
    def model_name(self) -> str:
        return self._config.model_name

    @abstractmethod
    def generate(self, prompt: str, *, system: str | None = None) -> LLMResponse:
        """Generate text from the language model."""

    def complete(self, prompt: str, *, system: str | None = None) -> str:
        response = self.generate(prompt, system=system)
        logger.debug(
            f"{self._config.provider}/{self._config.model_name} answered prompt "
            f"{response.prompt_hash} with {len(response.text)} chars"
        )
        return response.text

    def close(self) -> None:
        """Release network resources; no-op by default."""
        return None

    def _messages(self, prompt: str, system: str | None) -> list[dict[str, str]]:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages


class MistralAdapter(BaseLLMAdapter):
    """Adapter for Mistral chat completions over HTTPS."""

    DEFAULT_BASE_URL = "https://api.mistral.ai/v1/chat/completions"

    def __init__(
        self,
        config: AdapterConfig,
        base_url: str = DEFAULT_BASE_URL,
        client: Any | None = None,
        api_key: str | None = None,
    ) -> None:
        super().__init__(config, client=client)
        self.base_url = base_url
        self._api_key = api_key or self._resolve_api_key()
        timeout_value = config.timeout if config.timeout is not None else 120.0
        if timeout_value <= 0:
            raise ModelAdapterError("Mistral adapter timeout must be positive")
        self._timeout = timeout_value
        self.retry_attempts = max(0, int(config.retry_attempts))
        self._validate_base_url()

    def _resolve_api_key(self) -> str:
        try:
            return key_for_provider("Mistral")
        except RuntimeError as exc:
            raise ModelAdapterError(str(exc)) from exc

    def _validate_base_url(self) -> None:
        parsed = urllib_parse.urlparse(self.base_url)
        if parsed.scheme != "https" or not parsed.netloc:
            raise ModelAdapterError("Mistral base_url must be HTTPS with a host")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _post_once(self, payload: dict[str, Any]) -> dict[str, Any]:
        client = self._client or requests
        response = client.post(
            self.base_url,
            json=payload,
            headers=self._headers(),
            timeout=self._timeout,
        )
        status_code = getattr(response, "status_code", 200)
        if status_code == 429 or status_code >= 500:
            raise ModelAdapterError(
                f"Mistral API error: status {status_code}", transient=True
            )
        if status_code != 200:
            raise ModelAdapterError(f"Mistral API error: status {status_code}")
        return cast(dict[str, Any], response.json())

    def _call_with_retries(self, payload: dict[str, Any]) -> dict[str, Any]:
        attempts = self.retry_attempts + 1
        for attempt in range(1, attempts + 1):
            try:
                return self._post_once(payload)
            except ModelAdapterError as exc:
                if not exc.transient or attempt == attempts:
                    raise
                logger.warning(f"Mistral request attempt {attempt} failed: {exc}")
            except requests.RequestException as exc:
                if attempt == attempts:
                    raise ModelAdapterError(
                        f"Mistral request failed: {exc!s}", transient=True
                    ) from exc
                logger.warning(f"Mistral request attempt {attempt} failed: {exc}")
            time.sleep(self._config.retry_delay * attempt)
        raise ModelAdapterError("Mistral request failed without a response")

    def generate(self, prompt: str, *, system: str | None = None) -> LLMResponse:
        payload = {
            "model": self._config.model_name,
            "messages": self._messages(prompt, system),
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_tokens,
        }
        data = self._call_with_retries(payload)
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ModelAdapterError(f"Malformed Mistral response: {exc!s}") from exc
        return LLMResponse(
            text=text or "",
            model=self._config.model_name,
            prompt_hash=prompt_fingerprint(prompt, system),
            metadata={
                "provider": self._config.provider,
                "usage": data.get("usage", {}),
            },
        )


class OpenAIAdapter(BaseLLMAdapter):
    """Adapter that delegates to the OpenAI chat completions SDK."""

    def __init__(
        self,
        config: AdapterConfig,
        client: Any | None = None,
        api_key: str | None = None,
    ) -> None:
        super().__init__(config)
        if client is None:
            from openai import OpenAI

            client = OpenAI(
                api_key=api_key or key_for_provider("OpenAI"),
                timeout=config.timeout,
                max_retries=config.retry_attempts,
            )
        self._client = client

    def generate(self, prompt: str, *, system: str | None = None) -> LLMResponse:
        try:
            response = self._client.chat.completions.create(
                model=self._config.model_name,
                messages=self._messages(prompt, system),
                temperature=self._config.temperature,
                max_tokens=self._config.max_tokens,
            )
        except Exception as exc:
            raise ModelAdapterError(f"OpenAI request failed: {exc!s}") from exc
        text = response.choices[0].message.content or ""
        return LLMResponse(
            text=text,
            model=self._config.model_name,
            prompt_hash=prompt_fingerprint(prompt, system),
            metadata={"provider": self._config.provider},
        )

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()


class ScriptedModel(BaseLLMAdapter):
    """Deterministic model replaying canned replies, for tests and dry runs.

    Replies are consumed in order; once exhausted the last reply repeats. A
    responder callable may be given instead to compute replies from prompts.
    """

    def __init__(
        self,
        replies: Iterable[str] = (),
        *,
        responder: Callable[[str, str | None], str] | None = None,
        model_name: str = "scripted",
    ) -> None:
        super().__init__(AdapterConfig(provider="Scripted", model_name=model_name))
        self._replies: deque[str] = deque(replies)
        self._last: str | None = None
        self._responder = responder
        self._lock = threading.Lock()
        self.prompts: list[str] = []
        if not self._replies and responder is None:
            raise ValueError("ScriptedModel needs replies or a responder")

    def generate(self, prompt: str, *, system: str | None = None) -> LLMResponse:
        with self._lock:
            self.prompts.append(prompt)
            if self._responder is not None:
                text = self._responder(prompt, system)
            elif self._replies:
                text = self._replies.popleft()
                self._last = text
            else:
                text = cast(str, self._last)
        return LLMResponse(
            text=text,
            model=self._config.model_name,
            prompt_hash=prompt_fingerprint(prompt, system),
            metadata={"provider": "Scripted"},
        )


__all__ = [
    "AdapterConfig",
    "BaseLLMAdapter",
    "LLMResponse",
    "MistralAdapter",
    "OpenAIAdapter",
    "ScriptedModel",
]
