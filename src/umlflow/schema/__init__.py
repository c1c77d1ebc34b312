"""Pydantic schema helpers."""

from __future__ import annotations

from .base import TypedBaseModel

__all__ = ["TypedBaseModel"]
