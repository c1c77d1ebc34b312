from __future__ import annotations

from collections.abc import Callable, Iterable
import json
from typing import Any

from umlflow.engine import FunctionAgent

AgentFactory = Callable[..., FunctionAgent]


def scores_from(values: Iterable[float]) -> Callable[[dict[str, Any]], float]:
    """Return an agent body yielding the given scores in order."""
    iterator = iter(values)

    def next_score(inputs: dict[str, Any]) -> float:
        del inputs  # Unused
        return next(iterator)

    return next_score


def critique_json(critical: int = 0, important: int = 0) -> str:
    """Build a critique payload with the given number of issues."""
    issue = {"ruleArea": "Properties", "description": "issue", "location": "Task"}
    return json.dumps(
        {
            "approved": critical == 0,
            "overallAssessment": "assessment",
            "criticalIssues": [issue] * critical,
            "importantIssues": [issue] * important,
            "suggestions": [],
            "detailedFeedback": "",
        }
    )
