from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from umlflow.agents.model_creator import (
    ModelCreator,
    humanize,
    multiplicity_flags,
    preflight,
)
from umlflow.agents.parser import parse_uml_design
from umlflow.engine import CancellationToken, RunContext, Scope
from umlflow.errors import ToolInvocationFailure
from umlflow.reference.dry_run import (
    SAMPLE_UML,
    SAMPLE_UML_DRAFT,
    TOOL_NAMES,
    build_static_tools,
)
from umlflow.tools import StaticToolProvider


def _arguments(tools: StaticToolProvider, tool: str) -> list[dict[str, Any]]:
    return [arguments for name, arguments in tools.calls if name == tool]


@pytest.mark.parametrize(
    ("name", "label"),
    [
        ("timeEntry", "Time Entry"),
        ("IN_PROGRESS", "IN PROGRESS"),
        ("tracker.core", "Tracker Core"),
        ("TeamMember", "Team Member"),
    ],
)
def test_humanize(name: str, label: str) -> None:
    assert humanize(name) == label


@pytest.mark.parametrize(
    ("multiplicity", "flags"),
    [
        ("[1]", (True, False)),
        ("[0..1]", (False, False)),
        ("[0..*]", (False, True)),
        ("[*]", (False, True)),
        ("[1..*]", (True, True)),
        (None, (False, False)),
    ],
)
def test_multiplicity_flags(multiplicity: str | None, flags: tuple[bool, bool]) -> None:
    assert multiplicity_flags(multiplicity) == flags


def test_creates_elements_in_dependency_order() -> None:
    tools = build_static_tools()

    report = ModelCreator(tools).create(parse_uml_design(SAMPLE_UML))

    assert report.ok
    assert report.created == {
        "modules": 2,
        "enumerations": 2,
        "classes": 4,
        "properties": 7,
        "references": 5,
    }
    order = [name for name, _ in tools.calls]
    assert order == sorted(
        order,
        key=[
            "create-module",
            "create-enumeration",
            "create-class",
            "create-property",
            "create-reference",
        ].index,
    )


def test_tool_arguments_follow_the_parsed_model() -> None:
    tools = build_static_tools()

    ModelCreator(tools).create(parse_uml_design(SAMPLE_UML))

    module = _arguments(tools, "create-module")[0]
    assert module["moduleName"] == "tracker.core"
    assert module["label"] == {"en": "Tracker Core", "de": "Tracker Core"}
    priority = _arguments(tools, "create-enumeration")[0]
    assert [c["classifierName"] for c in priority["classifiers"]] == [
        "LOW",
        "MEDIUM",
        "HIGH",
    ]
    assert [c["default"] for c in priority["classifiers"]] == [False, True, False]
    name_property = _arguments(tools, "create-property")[0]
    assert name_property["className"] == "Project"
    assert name_property["mandatory"] is True
    assert name_property["multiple"] is False
    references = {
        (ref["className"], ref["referenceName"]): ref
        for ref in _arguments(tools, "create-reference")
    }
    milestones = references[("Project", "milestones")]
    assert milestones["composite"] is True
    assert milestones["multiple"] is True
    assert milestones["deletionPolicy"] == "DELETE_OBJECT"
    priority_ref = references[("Task", "priority")]
    assert priority_ref["targetModuleName"] == "tracker.core"
    assert priority_ref["composite"] is False
    assert "deletionPolicy" not in references[("TeamMember", "role")]


def test_unsupported_details_become_warnings() -> None:
    report = ModelCreator(build_static_tools()).create(parse_uml_design(SAMPLE_UML))

    assert report.warnings == [
        "Property 'Project.name': constraint 'unique' is not supported "
        "and was ignored.",
        "Property 'Task.estimateHours': default '1.0' is not supported "
        "and was ignored.",
        "Reference 'Project.tasks' has no deletionPolicy; the tool default applies.",
        "Reference 'TeamMember.role' has no deletionPolicy; the tool default applies.",
    ]


def test_validation_errors_abort_before_any_tool_call() -> None:
    tools = build_static_tools()

    report = ModelCreator(tools).create(parse_uml_design(SAMPLE_UML_DRAFT))

    assert report.aborted
    assert not report.ok
    assert tools.calls == []
    rendered = report.render()
    assert "Creation aborted; nothing was created." in rendered
    assert "Property 'Task.priority' has invalid type 'Priority'" in rendered


def test_preflight_reports_undeclared_modules() -> None:
    model = parse_uml_design(SAMPLE_UML)
    model["modules"] = [
        module for module in model["modules"] if module["name"] == "tracker.core"
    ]

    problems = preflight(model)

    assert problems == [
        "Missing module 'tracker.people' referenced by Role",
        "Missing module 'tracker.people' referenced by TeamMember",
    ]


def test_failed_class_skips_its_members_and_incoming_references() -> None:
    def refuse_team_member(**arguments: Any) -> dict[str, Any]:
        if arguments["className"] == "TeamMember":
            raise ToolInvocationFailure("create-class", "name clash")
        return {"created": True}

    tools = StaticToolProvider()
    for name in TOOL_NAMES:
        if name == "create-class":
            tools.register(name, refuse_team_member)
        else:
            tools.register(name, lambda **arguments: {"created": True})

    report = ModelCreator(tools).create(parse_uml_design(SAMPLE_UML))

    assert report.created["classes"] == 3
    assert report.failed["classes"] == 1
    assert report.created["properties"] == 6
    # Task.assignees targets TeamMember; TeamMember.role belongs to it.
    assert report.created["references"] == 3
    assert report.failed["references"] == 1
    assert report.errors == ["Tool 'create-class' failed: name clash"]
    assert not report.ok


def test_enum_typed_property_is_created_as_reference() -> None:
    model = parse_uml_design(SAMPLE_UML_DRAFT)
    model["validation"]["errors"] = []
    tools = build_static_tools()

    report = ModelCreator(tools).create(model)

    assert report.created["properties"] == 7
    assert report.created["references"] == 5
    assert (
        "Property 'Task.priority' typed by enumeration 'Priority' was created as "
        "a reference." in report.warnings
    )
    priority = [
        ref
        for ref in _arguments(tools, "create-reference")
        if ref["referenceName"] == "priority"
    ][0]
    assert priority["deletionPolicy"] == "CLEAR_REFERENCE"
    assert priority["mandatory"] is True


def test_agent_accepts_json_text_and_renders_report() -> None:
    model = parse_uml_design(SAMPLE_UML)
    scope = Scope({"modelRequirements": json.dumps(model)})
    context = RunContext(scope=scope, cancellation=CancellationToken())

    asyncio.run(ModelCreator(build_static_tools()).run(context))

    result = scope.read("result")
    assert result.startswith("Model creation for Project Tracker")
    assert "- classes: 4 created, 0 failed" in result
    assert "Warnings:" in result
