from __future__ import annotations

from .agent import UMLScorer, heuristic_score, parse_score

__all__ = ["UMLScorer", "heuristic_score", "parse_score"]
