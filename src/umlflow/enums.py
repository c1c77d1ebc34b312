"""Centralized semantic enums for umlflow."""

from __future__ import annotations

from enum import Enum


class ValueKind(str, Enum):
    """Kinds of values a scope key may hold."""

    TEXT = "text"
    NUMBER = "number"
    RECORD = "record"


class TerminationReason(str, Enum):
    """Why a loop stage stopped repeating its pipeline."""

    CONVERGED = "converged"
    ITERATION_CAP_REACHED = "iteration-cap-reached"


class StageKind(str, Enum):
    LOOP = "loop"
    SEQUENTIAL = "sequential"


class CallStatus(str, Enum):
    """Outcome of a single agent call recorded on the workflow result."""

    SUCCESS = "success"
    FAILED = "failed"


class OwnershipPolicy(str, Enum):
    """How the planner treats two agents declaring the same output key."""

    SINGLE_WRITER = "single_writer"
    LAST_WRITE_WINS = "last_write_wins"
