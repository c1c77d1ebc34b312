"""ModelCreator agent materializing a parsed UML record through tools."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
import json
import logging
from typing import Any

from umlflow.constants import MODEL_REQUIREMENTS_KEY, PRIMITIVE_TYPES, RESULT_KEY
from umlflow.engine.agent import BaseAgent
from umlflow.engine.capabilities import ToolProvider
from umlflow.errors import ToolInvocationFailure

from .mapping import (
    class_args,
    enumeration_args,
    module_args,
    property_args,
    reference_args,
)

logger = logging.getLogger(__name__)

CREATE_MODULE = "create-module"
CREATE_ENUMERATION = "create-enumeration"
CREATE_CLASS = "create-class"
CREATE_PROPERTY = "create-property"
CREATE_REFERENCE = "create-reference"

STEPS = ("modules", "enumerations", "classes", "properties", "references")


@dataclass
class CreationReport:
    """Outcome of one creation run, rendered as the workflow's text result."""

    application: str
    aborted: bool = False
    created: dict[str, int] = field(default_factory=lambda: dict.fromkeys(STEPS, 0))
    failed: dict[str, int] = field(default_factory=lambda: dict.fromkeys(STEPS, 0))
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.aborted and not self.errors

    def render(self) -> str:
        lines = [f"Model creation for {self.application}"]
        if self.aborted:
            lines.append("")
            lines.append("Creation aborted; nothing was created.")
        else:
            lines.append("")
            lines.append("Summary:")
            for step in STEPS:
                lines.append(
                    f"- {step}: {self.created[step]} created, "
                    f"{self.failed[step]} failed"
                )
        if self.errors:
            lines.append("")
            lines.append("Errors:")
            lines.extend(f"- {error}" for error in self.errors)
        if self.warnings:
            lines.append("")
            lines.append("Warnings:")
            lines.extend(f"- {warning}" for warning in self.warnings)
        return "\n".join(lines)


def _coerce_requirements(value: Any) -> dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, str):
        decoded = json.loads(value)
        if isinstance(decoded, dict):
            return decoded
    raise ValueError("modelRequirements must be a JSON object")


def preflight(model: Mapping[str, Any]) -> list[str]:
    """Return blocking problems; an empty list means creation may start."""
    validation = model.get("validation") or {}
    errors = [str(error) for error in validation.get("errors") or []]
    if errors:
        return errors
    modules = {module["name"] for module in model.get("modules", [])}
    problems = []
    for entry in [*model.get("enumerations", []), *model.get("classes", [])]:
        if entry.get("module") not in modules:
            problems.append(
                f"Missing module '{entry.get('module')}' referenced by {entry['name']}"
            )
    return problems


class ModelCreator(BaseAgent):
    """Creates TopLogic model elements from a parsed UML record.

    Tools are called in a fixed order: modules, enumerations, classes,
    properties, references. A failed tool call is recorded in the report and
    everything depending on the failed element is skipped.
    """

    def __init__(
        self, tool_provider: ToolProvider, *, name: str = "ModelCreator"
    ) -> None:
        super().__init__(
            name,
            requires=(MODEL_REQUIREMENTS_KEY,),
            outputs=(RESULT_KEY,),
            tool_provider=tool_provider,
        )
        self._tools = tool_provider

    async def _run_payload(self, inputs: dict[str, Any]) -> Any:
        model = _coerce_requirements(inputs[MODEL_REQUIREMENTS_KEY])
        report = await asyncio.to_thread(self.create, model)
        return report.render()

    def create(self, model: Mapping[str, Any]) -> CreationReport:
        report = CreationReport(
            application=str(model.get("applicationName") or "unnamed application")
        )
        problems = preflight(model)
        if problems:
            report.aborted = True
            report.errors.extend(problems)
            logger.warning(f"{self.name}: creation aborted ({len(problems)} problems)")
            return report

        enums = {enum["name"]: enum for enum in model.get("enumerations", [])}
        classes = {cls["name"]: cls for cls in model.get("classes", [])}
        failed_modules: set[str] = set()
        failed_types: set[str] = set()

        for module in model.get("modules", []):
            if not self._call(report, "modules", CREATE_MODULE, module_args(module)):
                failed_modules.add(module["name"])

        for enum in enums.values():
            if enum["module"] in failed_modules or not self._call(
                report, "enumerations", CREATE_ENUMERATION, enumeration_args(enum)
            ):
                failed_types.add(enum["name"])

        for cls in classes.values():
            if cls["module"] in failed_modules or not self._call(
                report, "classes", CREATE_CLASS, class_args(cls)
            ):
                failed_types.add(cls["name"])

        enum_properties: list[tuple[dict[str, Any], dict[str, Any]]] = []
        for cls in classes.values():
            if cls["name"] in failed_types:
                continue
            for prop in cls.get("properties", []):
                label = f"{cls['name']}.{prop['name']}"
                if prop["type"] in enums:
                    enum_properties.append((cls, prop))
                    report.warnings.append(
                        f"Property '{label}' typed by enumeration '{prop['type']}' "
                        "was created as a reference."
                    )
                    continue
                if prop["type"] not in PRIMITIVE_TYPES:
                    report.failed["properties"] += 1
                    report.errors.append(
                        f"Property '{label}' has unsupported type '{prop['type']}'."
                    )
                    continue
                if "unique" in (prop.get("constraints") or []):
                    report.warnings.append(
                        f"Property '{label}': constraint 'unique' is not supported "
                        "and was ignored."
                    )
                if prop.get("default") is not None:
                    report.warnings.append(
                        f"Property '{label}': default '{prop['default']}' is not "
                        "supported and was ignored."
                    )
                self._call(
                    report, "properties", CREATE_PROPERTY, property_args(cls, prop)
                )

        type_modules = {
            name: entry["module"] for name, entry in {**classes, **enums}.items()
        }
        for cls in classes.values():
            if cls["name"] in failed_types:
                continue
            for ref in cls.get("references", []):
                self._create_reference(report, cls, ref, type_modules, failed_types)
        for cls, prop in enum_properties:
            target = enums[prop["type"]]
            if target["name"] in failed_types:
                report.failed["references"] += 1
                continue
            self._call(
                report,
                "references",
                CREATE_REFERENCE,
                reference_args(
                    cls,
                    prop["name"],
                    target_module=target["module"],
                    target_class=target["name"],
                    multiplicity=prop.get("multiplicity"),
                    composite=False,
                    deletion_policy="CLEAR_REFERENCE",
                ),
            )

        logger.info(
            f"{self.name}: created {sum(report.created.values())} elements, "
            f"{sum(report.failed.values())} failed"
        )
        return report

    def _create_reference(
        self,
        report: CreationReport,
        cls: dict[str, Any],
        ref: dict[str, Any],
        type_modules: Mapping[str, str],
        failed_types: set[str],
    ) -> None:
        label = f"{cls['name']}.{ref['name']}"
        target_module = ref.get("targetModule") or type_modules.get(ref["targetClass"])
        if target_module is None:
            report.failed["references"] += 1
            report.errors.append(
                f"Reference '{label}' targets unknown type '{ref['targetClass']}'."
            )
            return
        if ref["targetClass"] in failed_types:
            report.failed["references"] += 1
            return
        deletion_policy = ref.get("deletionPolicy")
        if not deletion_policy:
            report.warnings.append(
                f"Reference '{label}' has no deletionPolicy; the tool default applies."
            )
        self._call(
            report,
            "references",
            CREATE_REFERENCE,
            reference_args(
                cls,
                ref["name"],
                target_module=target_module,
                target_class=ref["targetClass"],
                multiplicity=ref.get("multiplicity"),
                composite=ref.get("kind") == "composition",
                deletion_policy=deletion_policy,
            ),
        )

    def _call(
        self,
        report: CreationReport,
        step: str,
        tool: str,
        arguments: dict[str, Any],
    ) -> bool:
        try:
            self._tools.invoke(tool, arguments)
        except ToolInvocationFailure as exc:
            report.failed[step] += 1
            report.errors.append(str(exc))
            logger.warning(f"{self.name}: {exc}")
            return False
        report.created[step] += 1
        return True


__all__ = ["CreationReport", "ModelCreator", "preflight"]
