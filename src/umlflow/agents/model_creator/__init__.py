from __future__ import annotations

from .agent import CreationReport, ModelCreator, preflight
from .mapping import humanize, multiplicity_flags

__all__ = [
    "CreationReport",
    "ModelCreator",
    "humanize",
    "multiplicity_flags",
    "preflight",
]
