"""Designer agent drafting and revising the UML specification."""

from __future__ import annotations

import re
from typing import Any

from umlflow.constants import UML_SPEC_KEY
from umlflow.engine.agent import PromptAgent
from umlflow.engine.capabilities import ModelCapability, ToolProvider

from ..prompts import DESIGNER_SYSTEM_PROMPT, DESIGNER_TEMPLATE

_FENCE = re.compile(r"^```[A-Za-z0-9_-]*\s*\n(.*?)\n```\s*$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a single fence wrapping the whole reply, if present."""
    stripped = text.strip()
    match = _FENCE.match(stripped)
    return match.group(1).strip() if match else stripped


class UMLDesigner(PromptAgent):
    """Generates or revises a UML specification from requirements and critique."""

    def __init__(
        self,
        model: ModelCapability,
        *,
        name: str = "UMLDesigner",
        tool_provider: ToolProvider | None = None,
    ) -> None:
        super().__init__(
            name,
            model,
            DESIGNER_TEMPLATE,
            output_key=UML_SPEC_KEY,
            system_prompt=DESIGNER_SYSTEM_PROMPT,
            tool_provider=tool_provider,
        )

    def postprocess(self, reply: str) -> Any:
        return strip_code_fence(reply)
