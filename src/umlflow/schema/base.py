"""Shared Pydantic base class with consistent configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class TypedBaseModel(BaseModel):
    """Common base for every pydantic payload exchanged by umlflow.

    Keeping one ConfigDict here means results, reports and settings agree on
    arbitrary-type handling without repeating it per model.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)
