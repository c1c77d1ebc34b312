"""Parser agent turning the converged UML text into a structured record."""

from __future__ import annotations

import logging
from typing import Any

from umlflow.constants import MODEL_REQUIREMENTS_KEY, UML_SPEC_KEY
from umlflow.engine.agent import BaseAgent

from ..designer import strip_code_fence
from .markdown import parse_uml_markdown
from .validation import resolve_target_modules, validate_model

logger = logging.getLogger(__name__)


def parse_uml_design(text: str) -> dict[str, Any]:
    """Parse and validate a UML specification; never raises on bad input."""
    model, unparsed = parse_uml_markdown(strip_code_fence(text))
    resolve_target_modules(model)
    validation = validate_model(model)
    for line in unparsed:
        validation["warnings"].append(f"Ignored unrecognized line: {line.strip()}")
    model["validation"] = validation
    return model


class UMLParser(BaseAgent):
    """Parses TopLogic UML design specifications into structured data."""

    def __init__(self, *, name: str = "UMLParser") -> None:
        super().__init__(
            name, requires=(UML_SPEC_KEY,), outputs=(MODEL_REQUIREMENTS_KEY,)
        )

    async def _run_payload(self, inputs: dict[str, Any]) -> Any:
        model = parse_uml_design(str(inputs[UML_SPEC_KEY]))
        validation = model["validation"]
        logger.info(
            f"{self.name}: {len(model['classes'])} classes, "
            f"{len(model['enumerations'])} enums, "
            f"{len(validation['errors'])} errors, "
            f"{len(validation['warnings'])} warnings"
        )
        return {MODEL_REQUIREMENTS_KEY: model}
