from __future__ import annotations

from .agent import UMLDesigner, strip_code_fence

__all__ = ["UMLDesigner", "strip_code_fence"]
