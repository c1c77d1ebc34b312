"""Argument builders for the model-creation tools."""

from __future__ import annotations

import re
from typing import Any

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEPARATORS = re.compile(r"[_.\s]+")


def humanize(name: str) -> str:
    """Split camel case, underscores and dots into capitalized words."""
    words = _SEPARATORS.split(_CAMEL_BOUNDARY.sub(" ", name))
    return " ".join(word[:1].upper() + word[1:] for word in words if word)


def i18n(text: str) -> dict[str, str]:
    return {"en": text, "de": text}


def multiplicity_flags(multiplicity: str | None) -> tuple[bool, bool]:
    """Map a multiplicity such as ``[0..*]`` to (mandatory, multiple)."""
    value = (multiplicity or "").replace(" ", "")
    if value in ("[1]", "[1..1]"):
        return True, False
    if value in ("[*]", "[0..*]"):
        return False, True
    if value == "[1..*]":
        return True, True
    return False, False


def module_args(module: dict[str, Any]) -> dict[str, Any]:
    purpose = module.get("purpose") or ""
    return {
        "moduleName": module["name"],
        "label": i18n(humanize(module["name"])),
        "description": i18n(purpose),
    }


def enumeration_args(enum: dict[str, Any]) -> dict[str, Any]:
    default = enum.get("default")
    return {
        "moduleName": enum["module"],
        "enumName": enum["name"],
        "classifiers": [
            {
                "classifierName": value,
                "default": value == default,
                "label": i18n(humanize(value)),
                "description": i18n(""),
            }
            for value in enum.get("values", [])
        ],
        "label": i18n(humanize(enum["name"])),
        "description": i18n(enum.get("description") or ""),
    }


def class_args(cls: dict[str, Any]) -> dict[str, Any]:
    stereotype = cls.get("stereotype") or "entity"
    return {
        "moduleName": cls["module"],
        "className": cls["name"],
        "abstract": stereotype == "abstract",
        "final": stereotype == "final",
        "generalizations": list(cls.get("generalizations") or []),
        "label": i18n(humanize(cls["name"])),
        "description": i18n(cls.get("description") or ""),
    }


def property_args(cls: dict[str, Any], prop: dict[str, Any]) -> dict[str, Any]:
    mandatory, multiple = multiplicity_flags(prop.get("multiplicity"))
    return {
        "moduleName": cls["module"],
        "className": cls["name"],
        "propertyName": prop["name"],
        "propertyType": prop["type"],
        "mandatory": mandatory,
        "multiple": multiple,
        "ordered": "ordered" in (prop.get("constraints") or []),
        "bag": False,
        "abstract": False,
        "label": i18n(humanize(prop["name"])),
        "description": i18n(""),
    }


def reference_args(
    cls: dict[str, Any],
    name: str,
    *,
    target_module: str,
    target_class: str,
    multiplicity: str | None,
    composite: bool,
    deletion_policy: str | None,
) -> dict[str, Any]:
    mandatory, multiple = multiplicity_flags(multiplicity)
    args: dict[str, Any] = {
        "moduleName": cls["module"],
        "className": cls["name"],
        "referenceName": name,
        "targetModuleName": target_module,
        "targetClassName": target_class,
        "mandatory": mandatory,
        "multiple": multiple,
        "ordered": False,
        "bag": False,
        "abstract": False,
        "composite": composite,
        "aggregate": False,
        "navigate": True,
        "label": i18n(humanize(name)),
        "description": i18n(""),
    }
    if deletion_policy:
        args["deletionPolicy"] = deletion_policy
    return args
