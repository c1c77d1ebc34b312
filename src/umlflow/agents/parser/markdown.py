"""Line-oriented parser for the designer's markdown UML format."""

from __future__ import annotations

from enum import Enum
import re
from typing import Any

_APP = re.compile(r"^#\s+UML Design\s*:\s*(?P<name>.*)$", re.IGNORECASE)
_SECTION = re.compile(r"^##\s+(?P<title>.+?)\s*$")
_CLASS = re.compile(
    r"^###\s+Class\s+(?P<name>[\w.]+)\s*(?:\((?P<attrs>[^)]*)\))?\s*$",
    re.IGNORECASE,
)
_ENUM = re.compile(
    r"^###\s+Enum(?:eration)?\s+(?P<name>[\w.]+)\s*(?:\((?P<attrs>[^)]*)\))?\s*$",
    re.IGNORECASE,
)
_BULLET = re.compile(r"^[*\-+]\s+(?P<body>.+)$")
_MEMBER = re.compile(
    r"^(?P<name>[\w.]+)\s*:\s*(?P<type>[\w.]+)"
    r"\s*(?P<multiplicity>\[[^\]]*\])?"
    r"\s*(?:\{(?P<attrs>[^}]*)\})?"
)
_DEFAULT = re.compile(r"\(\s*default\s*=\s*(?P<value>[^)]*)\)", re.IGNORECASE)
_EMPTY_MARKERS = {"none", "n/a", "-", "(none)"}


class _Section(str, Enum):
    NONE = "none"
    MODULES = "modules"
    TYPES = "types"
    CONSTRAINTS = "constraints"


def _clean(text: str) -> str:
    return text.replace("**", "").replace("`", "").strip()


def split_attributes(raw: str | None) -> tuple[dict[str, str], list[str]]:
    """Split ``{a=b, flag}`` contents into key/value pairs and bare flags."""
    pairs: dict[str, str] = {}
    flags: list[str] = []
    for item in (raw or "").split(","):
        item = item.strip()
        if not item:
            continue
        if "=" in item:
            key, value = item.split("=", 1)
            pairs[key.strip()] = value.strip()
        else:
            flags.append(item)
    return pairs, flags


def _parse_member(body: str) -> dict[str, Any] | None:
    match = _MEMBER.match(body)
    if match is None:
        return None
    pairs, flags = split_attributes(match.group("attrs"))
    return {
        "name": match.group("name"),
        "type": match.group("type"),
        "multiplicity": match.group("multiplicity"),
        "pairs": pairs,
        "flags": flags,
    }


def _property(member: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": member["name"],
        "type": member["type"],
        "multiplicity": member["multiplicity"],
        "constraints": member["flags"],
        "default": member["pairs"].get("default"),
    }


def _reference(member: dict[str, Any]) -> dict[str, Any]:
    pairs = member["pairs"]
    return {
        "name": member["name"],
        "targetClass": member["type"],
        "targetModule": None,
        "multiplicity": member["multiplicity"],
        "kind": pairs.get("kind"),
        "deletionPolicy": pairs.get("deletionPolicy"),
        "constraints": [flag for flag in member["flags"] if flag == "navigate"],
    }


def _enum_values(text: str) -> tuple[list[str], str | None]:
    default: str | None = None
    match = _DEFAULT.search(text)
    if match is not None:
        default = match.group("value").strip() or None
        text = text[: match.start()] + text[match.end() :]
    values = [value.strip() for value in text.split(",") if value.strip()]
    return values, default


def parse_uml_markdown(text: str) -> tuple[dict[str, Any], list[str]]:
    """Parse a UML specification into a plain record.

    Returns the record and a list of lines that could not be parsed; the
    record's ``validation`` block is left for the validator to fill.
    """
    model: dict[str, Any] = {
        "applicationName": None,
        "modules": [],
        "classes": [],
        "enumerations": [],
        "globalConstraints": [],
    }
    unparsed: list[str] = []
    section = _Section.NONE
    current: dict[str, Any] | None = None
    member_kind: str | None = None

    for raw_line in text.splitlines():
        line = _clean(raw_line)
        if not line or line.startswith("---"):
            continue

        app = _APP.match(line)
        if app is not None:
            model["applicationName"] = app.group("name").strip() or None
            continue

        heading = _SECTION.match(line)
        if heading is not None and not line.startswith("###"):
            title = heading.group("title").lower()
            current, member_kind = None, None
            if title.startswith("module"):
                section = _Section.MODULES
            elif title.startswith("type"):
                section = _Section.TYPES
            elif title.startswith("global"):
                section = _Section.CONSTRAINTS
            else:
                section = _Section.NONE
                unparsed.append(raw_line)
            continue

        class_match = _CLASS.match(line)
        if class_match is not None:
            pairs, _ = split_attributes(class_match.group("attrs"))
            current = {
                "name": class_match.group("name"),
                "module": pairs.get("module"),
                "stereotype": pairs.get("stereotype", "entity"),
                "description": "",
                "properties": [],
                "references": [],
            }
            model["classes"].append(current)
            member_kind = None
            continue

        enum_match = _ENUM.match(line)
        if enum_match is not None:
            pairs, _ = split_attributes(enum_match.group("attrs"))
            current = {
                "name": enum_match.group("name"),
                "module": pairs.get("module"),
                "values": [],
                "default": None,
            }
            model["enumerations"].append(current)
            member_kind = None
            continue

        if section is _Section.TYPES and current is not None:
            lowered = line.lower()
            if lowered.startswith("description:"):
                current["description"] = line.split(":", 1)[1].strip()
                continue
            if lowered.startswith("properties:"):
                member_kind = "properties"
                continue
            if lowered.startswith("references:"):
                member_kind = "references"
                continue
            if lowered.startswith("values:") and "values" in current:
                values, default = _enum_values(line.split(":", 1)[1])
                current["values"] = values
                current["default"] = default
                continue

        bullet = _BULLET.match(line)
        if bullet is None:
            unparsed.append(raw_line)
            continue
        body = bullet.group("body").strip()
        if body.lower() in _EMPTY_MARKERS:
            continue

        if section is _Section.MODULES:
            name, _, purpose = body.partition(":")
            model["modules"].append({"name": name.strip(), "purpose": purpose.strip()})
        elif section is _Section.CONSTRAINTS:
            model["globalConstraints"].append(body)
        elif current is not None and member_kind is not None:
            member = _parse_member(body)
            if member is None:
                unparsed.append(raw_line)
            elif member_kind == "properties":
                current.setdefault("properties", []).append(_property(member))
            else:
                current.setdefault("references", []).append(_reference(member))
        else:
            unparsed.append(raw_line)

    return model, unparsed


__all__ = ["parse_uml_markdown", "split_attributes"]
