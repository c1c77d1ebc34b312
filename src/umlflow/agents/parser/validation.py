"""Validation rules applied to a parsed UML record."""

from __future__ import annotations

from collections import Counter
from typing import Any

from umlflow.constants import PRIMITIVE_TYPES

SINGLE_MULTIPLICITIES = frozenset({"[1]", "[0..1]"})
MANY_MULTIPLICITIES = frozenset({"[*]", "[0..*]", "[1..*]"})


def _duplicates(names: list[str]) -> list[str]:
    return sorted(name for name, count in Counter(names).items() if count > 1)


def _complementary(first: str | None, second: str | None) -> bool:
    return (first in SINGLE_MULTIPLICITIES and second in MANY_MULTIPLICITIES) or (
        first in MANY_MULTIPLICITIES and second in SINGLE_MULTIPLICITIES
    )


def resolve_target_modules(model: dict[str, Any]) -> None:
    """Fill each reference's ``targetModule`` from declared classes and enums."""
    modules = {
        entry["name"]: entry.get("module")
        for entry in [*model["enumerations"], *model["classes"]]
    }
    for cls in model["classes"]:
        for ref in cls["references"]:
            ref["targetModule"] = modules.get(ref["targetClass"])


def validate_model(model: dict[str, Any]) -> dict[str, list[str]]:
    """Return ``{"errors": [...], "warnings": [...]}`` for a parsed record."""
    errors: list[str] = []
    warnings: list[str] = []
    classes = model["classes"]
    enums = model["enumerations"]
    class_names = [cls["name"] for cls in classes]
    enum_names = [enum["name"] for enum in enums]
    known_types = set(class_names) | set(enum_names)

    if not model.get("applicationName"):
        warnings.append("Missing '# UML Design: <Application Name>' heading.")
    for name in _duplicates(class_names):
        errors.append(f"Duplicate class name '{name}'.")
    for name in _duplicates(enum_names):
        errors.append(f"Duplicate enum name '{name}'.")
    for name in sorted(set(class_names) & set(enum_names)):
        errors.append(f"Name '{name}' is declared as both class and enum.")

    for cls in classes:
        for prop in cls["properties"]:
            if prop["type"] not in PRIMITIVE_TYPES:
                errors.append(
                    f"Property '{cls['name']}.{prop['name']}' has invalid type "
                    f"'{prop['type']}' (properties must use primitive types only)."
                )
        for ref in cls["references"]:
            label = f"{cls['name']}.{ref['name']}"
            if ref["targetClass"] not in known_types:
                errors.append(
                    f"Reference '{label}' targets unknown type '{ref['targetClass']}'."
                )
            if ref.get("targetModule") is None:
                warnings.append(
                    f"Reference '{label}' target module could not be resolved."
                )
            if not ref.get("kind"):
                errors.append(f"Reference '{label}' is missing kind.")
            elif ref["kind"] not in ("association", "composition"):
                errors.append(f"Reference '{label}' has invalid kind '{ref['kind']}'.")
            if not ref.get("multiplicity"):
                errors.append(f"Reference '{label}' is missing multiplicity.")

    for enum in enums:
        if enum.get("properties") or enum.get("references"):
            errors.append(
                f"Enumeration '{enum['name']}' must not have properties or references."
            )
        default = enum.get("default")
        if default is not None and default not in enum["values"]:
            errors.append(
                f"Enumeration '{enum['name']}' default '{default}' "
                "is not one of its values."
            )

    warnings.extend(_pair_warnings(classes))
    return {"errors": errors, "warnings": warnings}


def _pair_warnings(classes: list[dict[str, Any]]) -> list[str]:
    warnings: list[str] = []
    seen: set[frozenset[str]] = set()
    by_name = {cls["name"]: cls for cls in classes}
    for cls in classes:
        for ref in cls["references"]:
            target = by_name.get(ref["targetClass"])
            if target is None or target is cls:
                continue
            for back in target["references"]:
                if back["targetClass"] != cls["name"]:
                    continue
                forward_label = f"{cls['name']}.{ref['name']}"
                back_label = f"{target['name']}.{back['name']}"
                pair = frozenset({forward_label, back_label})
                if pair in seen:
                    continue
                seen.add(pair)
                if ref.get("kind") == "composition" and back.get("kind") == (
                    "composition"
                ):
                    warnings.append(
                        f"Composition modeled in both directions between "
                        f"'{forward_label}' and '{back_label}'."
                    )
                if _complementary(ref.get("multiplicity"), back.get("multiplicity")):
                    warnings.append(
                        f"References '{forward_label}' and '{back_label}' look like "
                        "a forward/backward pair; model a single forward reference."
                    )
    return warnings


__all__ = ["resolve_target_modules", "validate_model"]
