"""Exit predicates deciding when a loop stage has converged."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from umlflow.engine.scope import Scope

ExitPredicate = Callable[[Scope], bool]


@dataclass(frozen=True)
class ScoreAtLeast:
    """Converges once a numeric scope key reaches a threshold.

    An unset key reads as ``default`` so the check before the scorer's first
    write reports "not converged" instead of failing.
    """

    key: str
    threshold: float
    default: float = 0.0

    def observe(self, scope: Scope) -> float:
        return scope.read_number(self.key, self.default)

    def __call__(self, scope: Scope) -> bool:
        return self.observe(scope) >= self.threshold

    def __str__(self) -> str:
        return f"{self.key} >= {self.threshold}"


def score_at_least(key: str, threshold: float, default: float = 0.0) -> ScoreAtLeast:
    return ScoreAtLeast(key=key, threshold=threshold, default=default)


def never(scope: Scope) -> bool:
    """Predicate that never converges; the loop always runs to its cap."""
    del scope  # Unused
    return False
