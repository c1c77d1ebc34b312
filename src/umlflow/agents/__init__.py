"""Agents of the reference UML workflow.

UMLDesigner, UMLCritic and UMLScorer form the revision loop; UMLParser and
ModelCreator turn the converged specification into model elements.
"""

from __future__ import annotations

from .critic import UMLCritic
from .designer import UMLDesigner
from .model_creator import ModelCreator
from .parser import UMLParser
from .scorer import UMLScorer

__all__ = ["ModelCreator", "UMLCritic", "UMLDesigner", "UMLParser", "UMLScorer"]
