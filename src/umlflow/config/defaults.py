"""Explicit default settings for the reference UML workflow."""

from __future__ import annotations

from umlflow.constants import DEFAULT_MAX_ITERATIONS, DEFAULT_SCORE_THRESHOLD

WORKFLOW_DEFAULTS: dict[str, object] = {
    "max_iterations": DEFAULT_MAX_ITERATIONS,
    "score_threshold": DEFAULT_SCORE_THRESHOLD,
    "designer_model": "mistral-large-latest",
    "critic_model": "mistral-large-latest",
    "scorer_model": "pixtral-12b",
    "mcp_url": "http://localhost:8080/tl-ai-demo/mcp",
    "mcp_client_key": "UMLSpecificationAgent",
    "mcp_timeout": 60.0,
    "pool_size": 4,
    "borrow_timeout": 30.0,
    "temperature": 0.2,
    "max_tokens": 4096,
    "request_timeout": 120.0,
    "retry_attempts": 2,
}

LOGGING_DEFAULTS: dict[str, object] = {
    "log_level": "INFO",
    "log_dir": None,
    "log_file_name": "umlflow.log",
    "structured_logging": False,
}
