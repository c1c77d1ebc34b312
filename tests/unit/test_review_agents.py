from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from umlflow.agents import UMLCritic, UMLDesigner, UMLScorer
from umlflow.agents.critic import CriticResult, extract_json_object, parse_critique
from umlflow.agents.designer import strip_code_fence
from umlflow.agents.prompts import CRITIC_SYSTEM_PROMPT, DESIGNER_SYSTEM_PROMPT
from umlflow.agents.scorer import heuristic_score, parse_score
from umlflow.engine import CancellationToken, RunContext, Scope
from umlflow.models import ScriptedModel

from tests.utils.workflow_helpers import critique_json


def _run(agent: Any, seed: dict[str, Any]) -> Scope:
    scope = Scope(seed)
    asyncio.run(agent.run(RunContext(scope=scope, cancellation=CancellationToken())))
    return scope


def test_strip_code_fence_only_unwraps_whole_reply() -> None:
    assert strip_code_fence("```markdown\n# UML Design: A\n```") == "# UML Design: A"
    assert strip_code_fence("  plain text  ") == "plain text"
    assert strip_code_fence("intro\n```\ncode\n```") == "intro\n```\ncode\n```"


def test_designer_prompt_carries_requirement_spec_and_critique() -> None:
    model = ScriptedModel(["```\n# UML Design: Tracker\n```"])

    scope = _run(
        UMLDesigner(model),
        {
            "businessRequirement": "Track projects",
            "umlSpec": "",
            "critique": '{"criticalIssues": []}',
        },
    )

    assert scope.read("umlSpec") == "# UML Design: Tracker"
    prompt = model.prompts[0]
    assert "Requirements: Track projects" in prompt
    assert '{"criticalIssues": []}' in prompt


def test_critic_stores_compact_json_from_fenced_reply() -> None:
    reply = "Here you go:\n```json\n" + critique_json(critical=1) + "\n```"
    captured: list[str | None] = []

    def responder(prompt: str, system: str | None) -> str:
        captured.append(system)
        return reply

    scope = _run(
        UMLCritic(ScriptedModel(responder=responder)),
        {"umlSpec": "# UML Design: Tracker", "businessRequirement": "Track projects"},
    )

    stored = json.loads(scope.read("critique"))
    assert stored["approved"] is False
    assert len(stored["criticalIssues"]) == 1
    assert captured == [CRITIC_SYSTEM_PROMPT]


def test_critic_keeps_non_json_reply_verbatim() -> None:
    scope = _run(
        UMLCritic(ScriptedModel(["  Looks fine to me.  "])),
        {"umlSpec": "spec", "businessRequirement": "req"},
    )

    assert scope.read("critique") == "Looks fine to me."


def test_system_prompts_render_rulebook_without_template_braces() -> None:
    assert '"approved": boolean' in CRITIC_SYSTEM_PROMPT
    assert "{{" not in CRITIC_SYSTEM_PROMPT
    assert "{{" not in DESIGNER_SYSTEM_PROMPT


def test_extract_json_object_skips_non_object_braces() -> None:
    text = 'Set {a, b} then {"approved": true}'

    assert extract_json_object(text) == {"approved": True}
    assert extract_json_object("no json here") is None
    assert parse_critique("[1, 2]") is None


def test_critique_accepts_plain_string_issues() -> None:
    critique = parse_critique(
        json.dumps({"criticalIssues": ["Task.priority misuses an enum"]})
    )

    assert isinstance(critique, CriticResult)
    assert critique.criticalIssues == ["Task.priority misuses an enum"]
    assert heuristic_score(critique) == 0.4


@pytest.mark.parametrize(
    ("critical", "important", "expected"),
    [
        (0, 0, 1.0),
        (0, 1, 0.95),
        (0, 4, 0.8),
        (0, 20, 0.5),
        (1, 0, 0.4),
        (1, 3, 0.4),
        (3, 0, 0.3),
        (12, 0, 0.0),
    ],
)
def test_heuristic_score(critical: int, important: int, expected: float) -> None:
    critique = parse_critique(critique_json(critical, important))

    assert critique is not None
    assert heuristic_score(critique) == pytest.approx(expected)


@pytest.mark.parametrize(
    ("reply", "expected"),
    [("0.85", 0.85), ("Score: 0.6 overall", 0.6), ("1.7", 1.0), ("none", 0.0)],
)
def test_parse_score(reply: str, expected: float) -> None:
    assert parse_score(reply) == pytest.approx(expected)


def test_scorer_uses_heuristic_for_json_critique() -> None:
    model = ScriptedModel(["0.1"])

    scope = _run(UMLScorer(model), {"critique": critique_json(important=2)})

    assert scope.read("score") == pytest.approx(0.9)
    assert model.prompts == []


def test_scorer_falls_back_to_model_for_free_text() -> None:
    model = ScriptedModel(["I would rate this 0.75"])

    scope = _run(UMLScorer(model), {"critique": "Mostly fine, minor naming issues."})

    assert scope.read("score") == pytest.approx(0.75)
    assert "Mostly fine, minor naming issues." in model.prompts[0]


def test_scorer_without_model_scores_free_text_as_zero() -> None:
    scope = _run(UMLScorer(), {"critique": "unstructured"})

    assert scope.read("score") == 0.0
