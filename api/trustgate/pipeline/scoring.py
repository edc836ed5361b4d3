"""
Deterministic scoring: rule adjustments, aggregation and badge classification.

The reviewer supplies one 0-10 judgment per category. Sanity rules may cap or
zero individual categories (each change is recorded as a RuleApplication),
then the adjusted values are aggregated into a 0-100 total and mapped to a
badge. The total is a pure function of the per-category values and the badge a
pure function of the total.
"""

import logging
import math
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..errors import IncompleteJudgmentError, InvalidInputError, ScoreRangeError
from .policy import DEFAULT_POLICY, BadgeTier, CategoryKind, ScoringPolicy

logger = logging.getLogger(__name__)


class ReviewStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    REVIEWED = "REVIEWED"


@dataclass(frozen=True)
class EvidenceItem:
    description: str
    path: Optional[str] = None
    line: Optional[int] = None


@dataclass(frozen=True)
class CategoryJudgment:
    category: CategoryKind
    value: float
    evidence: Tuple[EvidenceItem, ...] = ()


@dataclass(frozen=True)
class RuleApplication:
    rule: str
    category: CategoryKind
    action: str
    reason: str


@dataclass(frozen=True)
class ReviewSignals:
    """Optional static-analysis and PR signals. Unknown values are None and never trigger rules."""

    security_alert_count: Optional[int] = None
    ci_status: Optional[str] = None
    lint_errors: Optional[int] = None
    docker_issue_count: Optional[int] = None
    pr_size: Optional[int] = None
    pr_description: Optional[str] = None


@dataclass(frozen=True)
class Score:
    submission_id: str
    per_category: Mapping[CategoryKind, float]
    total_score: int
    badge: BadgeTier
    applied_rules: Tuple[RuleApplication, ...]
    policy_version: str
    evidence: Tuple[str, ...] = ()
    findings_count: int = 0
    status: ReviewStatus = ReviewStatus.REVIEWED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "submission_id": self.submission_id,
            "per_category": {c.value: v for c, v in self.per_category.items()},
            "total_score": self.total_score,
            "badge": self.badge.value,
            "applied_rules": [
                {"rule": r.rule, "category": r.category.value, "action": r.action, "reason": r.reason}
                for r in self.applied_rules
            ],
            "policy_version": self.policy_version,
            "evidence": list(self.evidence),
            "findings_count": self.findings_count,
            "status": self.status.value,
        }


# ============================================================================
# Validation Helpers
# ============================================================================

def _category(key: Union[CategoryKind, str]) -> CategoryKind:
    try:
        return CategoryKind(key)
    except ValueError:
        raise InvalidInputError(f"Unknown category: {key!r}", category=str(key)) from None


def _check_range(category: CategoryKind, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
        raise ScoreRangeError(f"{category.value} must be a finite number", category=category.value)
    if value < 0 or value > 10:
        raise ScoreRangeError(f"{category.value}={value} is outside 0-10", category=category.value)
    return value


def _validated(per_category: Mapping[Any, Any], policy: ScoringPolicy) -> Dict[CategoryKind, float]:
    """Normalize keys, reject missing categories, range-check values."""
    values = {_category(k): v for k, v in per_category.items()}
    missing = [c.value for c in policy.categories if c not in values]
    if missing:
        raise IncompleteJudgmentError(
            f"Review incomplete: missing {len(missing)} of {len(policy.categories)} categories",
            missing=missing,
        )
    return {c: _check_range(c, values[c]) for c in policy.categories}


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def judgments_to_map(judgments: Iterable[CategoryJudgment]) -> Dict[CategoryKind, float]:
    """Collapse reviewer judgments into a category map; duplicates are rejected."""
    out: Dict[CategoryKind, float] = {}
    for j in judgments:
        category = _category(j.category)
        if category in out:
            raise IncompleteJudgmentError(
                f"Reviewer returned duplicate judgments for {category.value}",
                duplicate=category.value,
            )
        out[category] = j.value
    return out


# ============================================================================
# Aggregation and Classification
# ============================================================================

def aggregate(per_category: Mapping[Any, Any], policy: ScoringPolicy = DEFAULT_POLICY) -> int:
    """
    Combine per-category 0-10 values into a 0-100 total.

    total = round(sum(w * v) / sum(w) * 10), rounding half up. With the default
    equal weights this is round(sum / (10 * n) * 100). Summation runs in the
    policy's category order with exact decimals, so the mapping's iteration
    order cannot change the result.
    """
    values = _validated(per_category, policy)
    weighted = Decimal(0)
    total_weight = Decimal(0)
    for c in policy.categories:
        w = Decimal(str(policy.weights[c]))
        weighted += w * Decimal(str(values[c]))
        total_weight += w
    return _round_half_up(weighted / total_weight * 10)


def classify(total_score: Any, policy: ScoringPolicy = DEFAULT_POLICY) -> BadgeTier:
    """Map a 0-100 total to a badge. Out-of-range input is a bug, not a recoverable path."""
    if (
        isinstance(total_score, bool)
        or not isinstance(total_score, Real)
        or not math.isfinite(total_score)
        or total_score < 0
        or total_score > 100
    ):
        logger.error("classify() received out-of-range total score %r", total_score)
        raise ScoreRangeError(f"Total score {total_score!r} is outside 0-100")

    if total_score >= policy.green_threshold:
        return BadgeTier.GREEN
    if total_score >= policy.yellow_threshold:
        return BadgeTier.YELLOW
    return BadgeTier.RED


# ============================================================================
# Sanity Rules
# ============================================================================

def _cap(
    adjusted: Dict[CategoryKind, float],
    applied: List[RuleApplication],
    rule: str,
    category: CategoryKind,
    cap: float,
    reason: str,
) -> None:
    if category in adjusted and adjusted[category] > cap:
        adjusted[category] = cap
        applied.append(RuleApplication(rule=rule, category=category, action=f"Capped at {cap:g}", reason=reason))


def apply_rules(
    per_category: Mapping[CategoryKind, float],
    signals: Optional[ReviewSignals] = None,
    findings_count: int = 0,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> Tuple[Dict[CategoryKind, float], List[RuleApplication]]:
    """
    Apply post-hoc adjustments and return (adjusted values, applied rules).

    Input is not mutated. Caps are only recorded when they change a value.
    """
    adjusted = dict(per_category)
    applied: List[RuleApplication] = []
    signals = signals or ReviewSignals()
    security = CategoryKind.SECURITY

    # 1) Secrets found by static analysis -> security = 0
    if signals.security_alert_count and signals.security_alert_count > 0 and security in adjusted:
        adjusted[security] = 0
        applied.append(
            RuleApplication(
                rule="SECRET_FOUND",
                category=security,
                action="Set to 0",
                reason=f"{signals.security_alert_count} potential secret(s) found",
            )
        )

    # 2) Secrets redacted from the submission before review
    if findings_count > 0 and security in adjusted:
        reason = f"{findings_count} secret(s) redacted before review"
        if policy.penalize_redacted_secrets:
            adjusted[security] = 0
            applied.append(RuleApplication("SECRET_REDACTED", security, "Set to 0", reason))
        else:
            applied.append(
                RuleApplication("SECRET_REDACTED", security, "Recorded", f"{reason}; no adjustment under policy {policy.version}")
            )

    # 3) CI failure -> bugRisk <= 3, deliverySpeed <= 4
    if signals.ci_status == "failure":
        _cap(adjusted, applied, "CI_FAILURE", CategoryKind.BUG_RISK, 3, "CI/CD pipeline failed")
        _cap(adjusted, applied, "CI_FAILURE", CategoryKind.DELIVERY_SPEED, 4, "CI/CD pipeline failed")

    # 4) Lint errors > 50 -> codeQuality <= 4
    if signals.lint_errors is not None and signals.lint_errors > 50:
        _cap(
            adjusted, applied, "LINT_ERRORS_HIGH", CategoryKind.CODE_QUALITY, 4,
            f"{signals.lint_errors} lint errors found",
        )

    # 5) Docker issues >= 3 -> devopsExecution <= 4
    if signals.docker_issue_count is not None and signals.docker_issue_count >= 3:
        _cap(
            adjusted, applied, "DOCKER_ISSUES_HIGH", CategoryKind.DEVOPS_EXECUTION, 4,
            f"{signals.docker_issue_count} Docker issues found",
        )

    # 6) Large diff -> collaboration <= 4
    if signals.pr_size is not None and signals.pr_size > 2000:
        _cap(
            adjusted, applied, "LARGE_DIFF", CategoryKind.COLLABORATION, 4,
            f"PR size is {signals.pr_size} lines (too large)",
        )

    # 7) Blank PR description -> documentation <= 4
    if signals.pr_description is not None and not signals.pr_description.strip():
        _cap(adjusted, applied, "NO_PR_DESCRIPTION", CategoryKind.DOCUMENTATION, 4, "No PR description provided")

    for c, v in adjusted.items():
        adjusted[c] = max(0, min(10, v))

    return adjusted, applied


def build_evidence(
    judgments: Iterable[CategoryJudgment],
    applied_rules: Iterable[RuleApplication],
    signals: Optional[ReviewSignals] = None,
    findings_count: int = 0,
) -> List[str]:
    """Human-readable evidence lines for the score detail view."""
    evidence: List[str] = []

    for j in judgments:
        for item in j.evidence:
            where = ""
            if item.path:
                where = f" ({item.path}:{item.line})" if item.line is not None else f" ({item.path})"
            evidence.append(f"{j.category.value}: {item.description}{where}")

    if signals is not None:
        if signals.ci_status:
            evidence.append(f"CI/CD: Status = {signals.ci_status}")
        if signals.lint_errors is not None:
            evidence.append(f"Lint: {signals.lint_errors} errors")
        if signals.security_alert_count is not None:
            if signals.security_alert_count > 0:
                evidence.append(f"Security: {signals.security_alert_count} potential secret(s) found")
            else:
                evidence.append("Security: No secrets detected")
        if signals.pr_size:
            label = "very large" if signals.pr_size > 2000 else ("large" if signals.pr_size > 1000 else "acceptable")
            evidence.append(f"PR size: {signals.pr_size} lines ({label})")

    if findings_count:
        evidence.append(f"Sanitization: {findings_count} secret(s) redacted before review")

    for rule in applied_rules:
        evidence.append(f"Rule applied: {rule.rule} -> {rule.category.value} {rule.action} ({rule.reason})")

    return evidence


def build_score(
    submission_id: str,
    judgments: Union[Iterable[CategoryJudgment], Mapping[Any, Any]],
    *,
    signals: Optional[ReviewSignals] = None,
    findings_count: int = 0,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> Score:
    """Validate judgments, apply rules, aggregate and classify into a terminal Score."""
    if isinstance(judgments, Mapping):
        judgment_list: List[CategoryJudgment] = [
            CategoryJudgment(category=_category(k), value=v) for k, v in judgments.items()
        ]
    else:
        judgment_list = list(judgments)

    raw = _validated(judgments_to_map(judgment_list), policy)
    adjusted, applied = apply_rules(raw, signals, findings_count, policy)
    total = aggregate(adjusted, policy)
    badge = classify(total, policy)

    return Score(
        submission_id=submission_id,
        per_category={c: adjusted[c] for c in policy.categories},
        total_score=total,
        badge=badge,
        applied_rules=tuple(applied),
        policy_version=policy.version,
        evidence=tuple(build_evidence(judgment_list, applied, signals, findings_count)),
        findings_count=findings_count,
    )
