"""Scope keys and thresholds used by the reference UML workflow."""

from __future__ import annotations

BUSINESS_REQUIREMENT_KEY = "businessRequirement"
UML_SPEC_KEY = "umlSpec"
CRITIQUE_KEY = "critique"
SCORE_KEY = "score"
MODEL_REQUIREMENTS_KEY = "modelRequirements"
RESULT_KEY = "result"

DEFAULT_SCORE_THRESHOLD = 0.8
DEFAULT_MAX_ITERATIONS = 5

PRIMITIVE_TYPES: tuple[str, ...] = (
    "STRING",
    "INT",
    "BOOLEAN",
    "FLOAT",
    "DATE",
    "TRISTATE",
    "BINARY",
)
