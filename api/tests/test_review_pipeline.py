import threading

import pytest

from trustgate.errors import ExternalReviewerError, IncompleteJudgmentError, InvalidInputError
from trustgate.pipeline.gateway import sanitize
from trustgate.pipeline.policy import BadgeTier, CategoryKind
from trustgate.pipeline.review import advance, call_reviewer, run_review
from trustgate.pipeline.scoring import ReviewSignals, ReviewStatus


class RecordingReviewer:
    """Returns fixed judgments and keeps every bundle it was shown."""

    def __init__(self, judgments):
        self.judgments = judgments
        self.seen = []

    def __call__(self, bundle):
        self.seen.append(bundle)
        return self.judgments


def test_end_to_end_review(scenario_bundle, scenario_judgments):
    reviewer = RecordingReviewer(scenario_judgments)

    outcome = run_review("sub-42", scenario_bundle, reviewer)

    (shown,) = reviewer.seen
    assert all("s3cr3tValue123" not in (d.content or "") for d in shown)
    assert shown is outcome.bundle

    score = outcome.score
    assert score.submission_id == "sub-42"
    assert score.total_score == 70
    assert score.badge == BadgeTier.YELLOW
    assert score.status == ReviewStatus.REVIEWED
    assert score.findings_count == 1
    assert [(r.rule, r.action) for r in score.applied_rules] == [("SECRET_REDACTED", "Recorded")]


def test_signals_flow_into_rules(scenario_bundle, scenario_judgments):
    outcome = run_review(
        "sub-42",
        scenario_bundle,
        RecordingReviewer(scenario_judgments),
        signals=ReviewSignals(ci_status="failure"),
    )
    assert outcome.score.per_category[CategoryKind.BUG_RISK] == 3
    assert outcome.score.per_category[CategoryKind.DELIVERY_SPEED] == 4
    assert outcome.score.total_score == 63


def test_invalid_bundle_never_reaches_reviewer(scenario_judgments):
    reviewer = RecordingReviewer(scenario_judgments)
    with pytest.raises(InvalidInputError):
        run_review("sub-1", [{"path": "ok.py", "content": "x"}, {"content": "no path"}], reviewer)
    assert reviewer.seen == []


def test_incomplete_review_can_be_retried_with_same_bundle(scenario_bundle, scenario_judgments):
    sanitized = sanitize(scenario_bundle)
    partial = RecordingReviewer(scenario_judgments[:-1])

    with pytest.raises(IncompleteJudgmentError) as exc:
        run_review("sub-1", sanitized, partial)
    assert exc.value.details["missing"] == ["security"]

    full = RecordingReviewer(scenario_judgments)
    outcome = run_review("sub-1", sanitized, full)
    assert full.seen == [sanitized]
    assert outcome.bundle is sanitized
    assert outcome.score.total_score == 70


def test_reviewer_timeout_is_external_error(scenario_bundle):
    release = threading.Event()

    def hung_reviewer(bundle):
        release.wait(5)
        return []

    try:
        with pytest.raises(ExternalReviewerError) as exc:
            run_review("sub-1", scenario_bundle, hung_reviewer, timeout=0.05)
        assert exc.value.retryable is True

        # The abandoned call must not block interpreter shutdown.
        hung = [t for t in threading.enumerate() if t.name == "reviewer" and t.is_alive()]
        assert hung
        assert all(t.daemon for t in hung)
    finally:
        release.set()


def test_unexpected_reviewer_failure_is_wrapped(scenario_bundle):
    def broken(bundle):
        raise ConnectionError("connection reset")

    with pytest.raises(ExternalReviewerError) as exc:
        run_review("sub-1", scenario_bundle, broken)
    assert isinstance(exc.value.__cause__, ConnectionError)


def test_reviewer_pipeline_errors_pass_through(scenario_bundle):
    def incomplete(bundle):
        raise IncompleteJudgmentError("reviewer gave up")

    with pytest.raises(IncompleteJudgmentError):
        run_review("sub-1", scenario_bundle, incomplete)


def test_reviewer_returning_nothing(scenario_bundle):
    with pytest.raises(ExternalReviewerError):
        run_review("sub-1", scenario_bundle, lambda bundle: None)


def test_reviewer_requires_sanitized_bundle(scenario_bundle, scenario_judgments):
    reviewer = RecordingReviewer(scenario_judgments)
    with pytest.raises(InvalidInputError):
        call_reviewer(reviewer, scenario_bundle)
    assert reviewer.seen == []


def test_submission_must_be_ready_for_review(scenario_bundle, scenario_judgments):
    reviewer = RecordingReviewer(scenario_judgments)
    with pytest.raises(InvalidInputError):
        run_review("sub-1", scenario_bundle, reviewer, status=ReviewStatus.NOT_STARTED)
    with pytest.raises(InvalidInputError):
        run_review("  ", scenario_bundle, reviewer)
    assert reviewer.seen == []

    rerun = run_review("sub-1", scenario_bundle, reviewer, status=ReviewStatus.REVIEWED)
    assert rerun.score.status == ReviewStatus.REVIEWED


def test_lifecycle_transitions():
    status = ReviewStatus.NOT_STARTED
    for target in (ReviewStatus.IN_PROGRESS, ReviewStatus.SUBMITTED, ReviewStatus.REVIEWED):
        status = advance(status, target)
    assert status == ReviewStatus.REVIEWED

    with pytest.raises(InvalidInputError):
        advance(ReviewStatus.REVIEWED, ReviewStatus.IN_PROGRESS)
    with pytest.raises(InvalidInputError):
        advance(ReviewStatus.NOT_STARTED, ReviewStatus.REVIEWED)
