"""
Versioned scoring policy: categories, weights and badge thresholds.

Every Score records the policy version that produced it, so historical rows are
never reinterpreted under newer thresholds.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Tuple


class CategoryKind(str, Enum):
    CODE_QUALITY = "codeQuality"
    PROBLEM_SOLVING = "problemSolving"
    BUG_RISK = "bugRisk"
    DEVOPS_EXECUTION = "devopsExecution"
    OPTIMIZATION = "optimization"
    DOCUMENTATION = "documentation"
    GIT_MATURITY = "gitMaturity"
    COLLABORATION = "collaboration"
    DELIVERY_SPEED = "deliverySpeed"
    SECURITY = "security"


_BADGE_ORDER = ("RED", "YELLOW", "GREEN")


class BadgeTier(str, Enum):
    """Ordered trust tier: RED < YELLOW < GREEN."""

    RED = "RED"
    YELLOW = "YELLOW"
    GREEN = "GREEN"

    @property
    def rank(self) -> int:
        return _BADGE_ORDER.index(self.value)

    def __lt__(self, other):
        if not isinstance(other, BadgeTier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, BadgeTier):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, BadgeTier):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, BadgeTier):
            return NotImplemented
        return self.rank >= other.rank


ALL_CATEGORIES: Tuple[CategoryKind, ...] = tuple(CategoryKind)


@dataclass(frozen=True)
class ScoringPolicy:
    version: str
    categories: Tuple[CategoryKind, ...] = ALL_CATEGORIES
    weights: Mapping[CategoryKind, float] = field(
        default_factory=lambda: MappingProxyType({c: 1.0 for c in ALL_CATEGORIES})
    )
    green_threshold: int = 75
    yellow_threshold: int = 50
    # When False, redacted secrets are recorded in applied rules without changing the score.
    penalize_redacted_secrets: bool = False

    def __post_init__(self) -> None:
        if not self.categories:
            raise ValueError("policy needs at least one category")
        missing = [c for c in self.categories if c not in self.weights]
        if missing:
            raise ValueError(f"policy {self.version} has no weight for {[c.value for c in missing]}")
        if any(self.weights[c] <= 0 for c in self.categories):
            raise ValueError(f"policy {self.version} weights must be positive")
        if not 0 <= self.yellow_threshold <= self.green_threshold <= 100:
            raise ValueError(f"policy {self.version} thresholds must satisfy 0 <= yellow <= green <= 100")


DEFAULT_POLICY = ScoringPolicy(version="2026.1")
