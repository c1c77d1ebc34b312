"""Structured critique produced by the reviewer model."""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field

from umlflow.schema.base import TypedBaseModel


class CritiqueIssue(TypedBaseModel):
    """One critical or important finding."""

    model_config = ConfigDict(extra="allow")

    ruleArea: str = ""
    description: str = ""
    location: str = ""
    impact: str = ""
    recommendation: str = ""


class CriticResult(TypedBaseModel):
    """The reviewer's verdict on one UML specification."""

    model_config = ConfigDict(extra="allow")

    approved: bool = False
    overallAssessment: str = ""
    criticalIssues: list[CritiqueIssue | str] = Field(default_factory=list)
    importantIssues: list[CritiqueIssue | str] = Field(default_factory=list)
    suggestions: list[Any] = Field(default_factory=list)
    detailedFeedback: str = ""
