from __future__ import annotations

from .agent import UMLCritic, extract_json_object, parse_critique
from .types import CriticResult, CritiqueIssue

__all__ = [
    "CriticResult",
    "CritiqueIssue",
    "UMLCritic",
    "extract_json_object",
    "parse_critique",
]
