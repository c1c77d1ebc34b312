"""Critic agent reviewing a UML specification against the rulebook."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from umlflow.constants import CRITIQUE_KEY
from umlflow.engine.agent import PromptAgent
from umlflow.engine.capabilities import ModelCapability, ToolProvider

from ..prompts import CRITIC_SYSTEM_PROMPT, CRITIC_TEMPLATE
from .types import CriticResult

logger = logging.getLogger(__name__)


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Return the first JSON object embedded in ``text``, fenced or bare."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    return None


def parse_critique(text: str) -> CriticResult | None:
    """Parse a stored critique; None when it is not a critique object."""
    payload = extract_json_object(text)
    if payload is None:
        return None
    try:
        return CriticResult.model_validate(payload)
    except ValidationError:
        return None


class UMLCritic(PromptAgent):
    """Evaluates a UML specification and returns a structured critique.

    The critique is stored as compact JSON text. Replies without a JSON object
    are stored verbatim so the scorer can fall back to its model.
    """

    def __init__(
        self,
        model: ModelCapability,
        *,
        name: str = "UMLCritic",
        tool_provider: ToolProvider | None = None,
    ) -> None:
        super().__init__(
            name,
            model,
            CRITIC_TEMPLATE,
            output_key=CRITIQUE_KEY,
            system_prompt=CRITIC_SYSTEM_PROMPT,
            tool_provider=tool_provider,
        )

    def postprocess(self, reply: str) -> Any:
        payload = extract_json_object(reply)
        if payload is None:
            logger.warning(f"{self.name} reply carried no JSON object")
            return reply.strip()
        return json.dumps(payload, ensure_ascii=False)
