from __future__ import annotations

from .agent import UMLParser, parse_uml_design
from .markdown import parse_uml_markdown
from .validation import validate_model

__all__ = ["UMLParser", "parse_uml_design", "parse_uml_markdown", "validate_model"]
