"""Scorer agent turning a critique into a convergence score."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

from umlflow.constants import CRITIQUE_KEY, SCORE_KEY
from umlflow.engine.agent import BaseAgent, render_template
from umlflow.engine.capabilities import ModelCapability

from ..critic import CriticResult, parse_critique
from ..prompts import SCORER_TEMPLATE

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"[-+]?\d*\.?\d+(?:[eE][-+]?\d+)?")

CRITICAL_BASE = 0.4
PENALTY = 0.05
IMPORTANT_FLOOR = 0.5


def heuristic_score(critique: CriticResult) -> float:
    """Score a parsed critique; any critical issue keeps it below 0.5."""
    critical = len(critique.criticalIssues)
    important = len(critique.importantIssues)
    if critical:
        return round(max(0.0, CRITICAL_BASE - PENALTY * (critical - 1)), 4)
    return round(max(IMPORTANT_FLOOR, 1.0 - PENALTY * important), 4)


def parse_score(reply: str) -> float:
    """Take the first number in a model reply, clamped to [0, 1]."""
    match = _NUMBER.search(reply)
    if match is None:
        return 0.0
    return min(1.0, max(0.0, float(match.group(0))))


class UMLScorer(BaseAgent):
    """Scores a critique; asks the model only when the critique is not JSON."""

    def __init__(
        self,
        model: ModelCapability | None = None,
        *,
        name: str = "UMLScorer",
    ) -> None:
        super().__init__(name, requires=(CRITIQUE_KEY,), outputs=(SCORE_KEY,))
        self.model = model

    async def _run_payload(self, inputs: dict[str, Any]) -> Any:
        critique_text = str(inputs[CRITIQUE_KEY])
        critique = parse_critique(critique_text)
        if critique is not None:
            return heuristic_score(critique)
        if self.model is None:
            logger.warning(f"{self.name}: critique is not JSON and no model is set")
            return 0.0
        prompt = render_template(SCORER_TEMPLATE, {CRITIQUE_KEY: critique_text})
        reply = await asyncio.to_thread(self.model.complete, prompt)
        return parse_score(reply)
