"""
Review orchestration: sanitize -> judge -> aggregate -> classify.

Sanitization of the whole bundle completes before the reviewer is called.
The reviewer call is the only blocking step; it runs under a timeout and any
failure surfaces as a retryable ExternalReviewerError. Nothing here retries
and nothing here persists: a run either returns a complete Score or raises.
"""

import logging
import threading
from concurrent.futures import Executor, Future
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from ..errors import ExternalReviewerError, InvalidInputError, PipelineError
from .gateway import SanitizedBundle, SourceDocument, sanitize
from .policy import DEFAULT_POLICY, ScoringPolicy
from .scoring import CategoryJudgment, ReviewSignals, ReviewStatus, Score, build_score

logger = logging.getLogger(__name__)

Reviewer = Callable[[SanitizedBundle], Sequence[CategoryJudgment]]

# ============================================================================
# Lifecycle
# ============================================================================

_TRANSITIONS = {
    ReviewStatus.NOT_STARTED: {ReviewStatus.IN_PROGRESS},
    ReviewStatus.IN_PROGRESS: {ReviewStatus.SUBMITTED},
    ReviewStatus.SUBMITTED: {ReviewStatus.REVIEWED},
    # A re-run produces a new Score; the prior REVIEWED one is left untouched.
    ReviewStatus.REVIEWED: {ReviewStatus.REVIEWED},
}


def advance(current: ReviewStatus, target: ReviewStatus) -> ReviewStatus:
    """Validate a lifecycle transition and return the new status."""
    if target not in _TRANSITIONS[current]:
        raise InvalidInputError(
            f"Cannot move submission from {current.value} to {target.value}",
            current=current.value,
            target=target.value,
        )
    return target


@dataclass(frozen=True)
class ReviewOutcome:
    score: Score
    bundle: SanitizedBundle


# ============================================================================
# Reviewer Call
# ============================================================================

def call_reviewer(reviewer: Reviewer, bundle: SanitizedBundle, timeout: Optional[float] = None) -> List[CategoryJudgment]:
    """
    Invoke the reviewer on a sanitized bundle, bounded by `timeout` seconds.

    Timeouts and unexpected reviewer exceptions become ExternalReviewerError.
    Pipeline errors raised by the reviewer itself propagate unchanged.
    """
    if not isinstance(bundle, SanitizedBundle):
        raise InvalidInputError("Reviewer only accepts a sanitized bundle")

    future: Future = Future()

    def _run() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(reviewer(bundle))
        except BaseException as exc:
            future.set_exception(exc)

    # Daemon thread: a hung reviewer is abandoned after the timeout and must
    # not keep the interpreter alive at shutdown.
    threading.Thread(target=_run, name="reviewer", daemon=True).start()

    try:
        judgments = future.result(timeout=timeout)
    except FutureTimeout:
        logger.warning("Reviewer call timed out after %ss", timeout)
        raise ExternalReviewerError(f"Reviewer timed out after {timeout}s", timeout=timeout) from None
    except PipelineError:
        raise
    except Exception as exc:
        logger.warning("Reviewer call failed: %s", type(exc).__name__)
        raise ExternalReviewerError(f"Reviewer call failed: {exc}") from exc

    if judgments is None:
        raise ExternalReviewerError("Reviewer returned no judgments")
    return list(judgments)


# ============================================================================
# Public API
# ============================================================================

def run_review(
    submission_id: str,
    bundle: Union[SanitizedBundle, Sequence[Union[SourceDocument, Mapping[str, Any]]]],
    reviewer: Reviewer,
    *,
    signals: Optional[ReviewSignals] = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
    timeout: Optional[float] = None,
    status: ReviewStatus = ReviewStatus.SUBMITTED,
    executor: Optional[Executor] = None,
) -> ReviewOutcome:
    """
    Run the full pipeline for one submission and return a terminal Score.

    An already sanitized bundle may be passed back in to retry only the
    reviewer call; sanitization is deterministic so the result is the same.
    """
    if not isinstance(submission_id, str) or not submission_id.strip():
        raise InvalidInputError("submission_id is required")
    advance(status, ReviewStatus.REVIEWED)

    if isinstance(bundle, SanitizedBundle):
        sanitized = bundle
    else:
        sanitized = sanitize(bundle, executor=executor)

    logger.info("Review %s: %d document(s) sanitized, calling reviewer", submission_id, len(sanitized))
    judgments = call_reviewer(reviewer, sanitized, timeout=timeout)

    score = build_score(
        submission_id,
        judgments,
        signals=signals,
        findings_count=sanitized.findings_count,
        policy=policy,
    )
    score = replace(score, status=ReviewStatus.REVIEWED)
    logger.info(
        "Review %s complete: total=%d badge=%s rules=%d policy=%s",
        submission_id,
        score.total_score,
        score.badge.value,
        len(score.applied_rules),
        score.policy_version,
    )
    return ReviewOutcome(score=score, bundle=sanitized)
