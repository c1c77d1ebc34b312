"""Offline collaborators for running the UML workflow without any service.

The scripted designer answers with a draft that misuses an enumeration as a
property type, the scripted critic flags it, and the revision fixes it, so a
dry run converges on its second pass.
"""

from __future__ import annotations

import json
from typing import Any

from umlflow.agents.prompts import CRITIC_SYSTEM_PROMPT, DESIGNER_SYSTEM_PROMPT
from umlflow.config.settings import WorkflowSettings
from umlflow.models import ScriptedModel
from umlflow.tools import StaticToolProvider
from umlflow.utilities.logger_manager import LoggerManager

from .uml_specification import UMLWorkflow, build_uml_workflow

SAMPLE_UML = """\
# UML Design: Project Tracker

## Modules

* tracker.core: Projects, milestones and tasks
* tracker.people: Team members and their roles

## Types

### Class Project (module=tracker.core, stereotype=entity)

Description: A project with milestones and tasks.

Properties:

* name: STRING [1] {unique}
* startDate: DATE [0..1]

References:

* milestones: Milestone [0..*] {kind=composition, deletionPolicy=DELETE_OBJECT}
* tasks: Task [0..*] {kind=composition}

### Class Milestone (module=tracker.core, stereotype=entity)

Description: A dated checkpoint of a project.

Properties:

* title: STRING [1]
* dueDate: DATE [1]

### Class Task (module=tracker.core, stereotype=entity)

Description: A unit of work assigned to team members.

Properties:

* title: STRING [1]
* estimateHours: FLOAT [0..1] {default=1.0}

References:

* priority: Priority [1] {kind=association, deletionPolicy=VETO}
* assignees: TeamMember [0..*] {kind=association, deletionPolicy=CLEAR_REFERENCE}

### Class TeamMember (module=tracker.people, stereotype=entity)

Description: A person working on projects.

Properties:

* fullName: STRING [1]

References:

* role: Role [1] {kind=association}

### Enum Priority (module=tracker.core)

Values: LOW, MEDIUM, HIGH (default=MEDIUM)

### Enum Role (module=tracker.people)

Values: DEVELOPER, DESIGNER, MANAGER

## Global Constraints

* A milestone due date lies on or after the start date of its project.
"""

DRAFT_MARKER = "* priority: Priority [1] {default=MEDIUM}"

SAMPLE_UML_DRAFT = SAMPLE_UML.replace(
    "* estimateHours: FLOAT [0..1] {default=1.0}",
    "* estimateHours: FLOAT [0..1] {default=1.0}\n" + DRAFT_MARKER,
).replace(
    "* priority: Priority [1] {kind=association, deletionPolicy=VETO}\n", ""
)

DRAFT_CRITIQUE: dict[str, Any] = {
    "approved": False,
    "overallAssessment": "One hard-rule violation in class Task.",
    "criticalIssues": [
        {
            "ruleArea": "Properties",
            "description": "Task.priority uses enumeration Priority as a property.",
            "location": "Class Task",
            "impact": "The property cannot be created with primitive-only tools.",
            "recommendation": "Model priority as a reference with kind=association.",
        }
    ],
    "importantIssues": [],
    "suggestions": [],
    "detailedFeedback": "",
}

APPROVED_CRITIQUE: dict[str, Any] = {
    "approved": True,
    "overallAssessment": "The specification complies with the rulebook.",
    "criticalIssues": [],
    "importantIssues": [
        {
            "ruleArea": "References",
            "description": "TeamMember.role has no deletion policy.",
            "location": "Class TeamMember",
            "recommendation": "Consider VETO for the required role reference.",
        }
    ],
    "suggestions": [],
    "detailedFeedback": "",
}

TOOL_NAMES = (
    "create-module",
    "create-enumeration",
    "create-class",
    "create-property",
    "create-reference",
)


def scripted_reply(prompt: str, system: str | None) -> str:
    """Answer designer and critic prompts deterministically."""
    if system == DESIGNER_SYSTEM_PROMPT:
        if DRAFT_MARKER in prompt:
            return SAMPLE_UML
        return SAMPLE_UML_DRAFT
    if system == CRITIC_SYSTEM_PROMPT:
        critique = DRAFT_CRITIQUE if DRAFT_MARKER in prompt else APPROVED_CRITIQUE
        return "```json\n" + json.dumps(critique, indent=2) + "\n```"
    return "0.0"


def build_static_tools() -> StaticToolProvider:
    """Tool provider accepting every creation call and echoing its arguments."""
    provider = StaticToolProvider()
    for name in TOOL_NAMES:

        def _create(_tool: str = name, **arguments: Any) -> dict[str, Any]:
            return {"tool": _tool, "created": True, "arguments": arguments}

        provider.register(name, _create, description=f"Offline stand-in for {name}")
    return provider


def build_dry_run_workflow(
    settings: WorkflowSettings | None = None,
    *,
    logger_manager: LoggerManager | None = None,
) -> UMLWorkflow:
    """Build the workflow on scripted models and in-process tools."""
    return build_uml_workflow(
        settings,
        tool_provider=build_static_tools(),
        model_factory=lambda name: ScriptedModel(
            responder=scripted_reply, model_name=name
        ),
        logger_manager=logger_manager,
    )


__all__ = [
    "APPROVED_CRITIQUE",
    "DRAFT_CRITIQUE",
    "DRAFT_MARKER",
    "SAMPLE_UML",
    "SAMPLE_UML_DRAFT",
    "TOOL_NAMES",
    "build_dry_run_workflow",
    "build_static_tools",
    "scripted_reply",
]
