from .gateway import SanitizedBundle, SanitizedDocument, SourceDocument, sanitize
from .policy import DEFAULT_POLICY, BadgeTier, CategoryKind, ScoringPolicy
from .redact import RedactionFinding, redact
from .review import ReviewOutcome, run_review
from .scoring import (
    CategoryJudgment,
    EvidenceItem,
    ReviewSignals,
    ReviewStatus,
    RuleApplication,
    Score,
    aggregate,
    build_score,
    classify,
)
from .secrets import PLACEHOLDER, SecretKind, scan

__all__ = [
    "PLACEHOLDER",
    "DEFAULT_POLICY",
    "BadgeTier",
    "CategoryJudgment",
    "CategoryKind",
    "EvidenceItem",
    "RedactionFinding",
    "ReviewOutcome",
    "ReviewSignals",
    "ReviewStatus",
    "RuleApplication",
    "SanitizedBundle",
    "SanitizedDocument",
    "Score",
    "ScoringPolicy",
    "SecretKind",
    "SourceDocument",
    "aggregate",
    "build_score",
    "classify",
    "redact",
    "run_review",
    "sanitize",
    "scan",
]
