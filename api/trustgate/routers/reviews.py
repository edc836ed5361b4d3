from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..cache import ReviewCache
from ..dependencies import get_review_cache, get_reviewer, get_reviewer_timeout, get_session
from ..pipeline.gateway import SourceDocument
from ..pipeline.review import Reviewer, run_review
from ..pipeline.scoring import ReviewStatus
from ..repository import latest_score, save_score, score_history
from ..schemas import ReviewIn, ScoreHistoryOut, ScoreOut

router = APIRouter()


def execute_review(
    submission_id: str,
    payload: ReviewIn,
    *,
    session: Session,
    cache: ReviewCache,
    reviewer: Reviewer,
    timeout: float,
    status: ReviewStatus,
) -> ScoreOut:
    """Run the pipeline, store the new Score and drop any cached copy."""
    outcome = run_review(
        submission_id,
        [SourceDocument(path=f.path, content=f.content) for f in payload.files],
        reviewer,
        signals=payload.signals.to_domain() if payload.signals else None,
        timeout=timeout,
        status=status,
    )
    # Persist only once the whole run has succeeded.
    record = save_score(session, outcome.score)
    cache.invalidate(submission_id)
    return ScoreOut.model_validate(record)


@router.post("/{submission_id}", response_model=ScoreOut)
def review_submission(
    submission_id: str,
    payload: ReviewIn,
    session: Session = Depends(get_session),
    cache: ReviewCache = Depends(get_review_cache),
    reviewer: Reviewer = Depends(get_reviewer),
    timeout: float = Depends(get_reviewer_timeout),
) -> ScoreOut:
    """
    Full pipeline: sanitize -> external review -> aggregate -> classify.

    All files are sanitized before the reviewer is called. The reviewer call is
    bounded by REVIEWER_TIMEOUT_SECONDS.

    Errors (structured, never retried here):
    - `invalid_input` (422): a file without a path
    - `review_incomplete` (502): reviewer omitted categories; retry the review
    - `reviewer_unavailable` (503): network/timeout/provider error; retry with backoff
    """
    return execute_review(
        submission_id,
        payload,
        session=session,
        cache=cache,
        reviewer=reviewer,
        timeout=timeout,
        status=ReviewStatus.SUBMITTED,
    )


@router.get("/{submission_id}", response_model=ScoreOut)
def get_latest_score(
    submission_id: str,
    session: Session = Depends(get_session),
    cache: ReviewCache = Depends(get_review_cache),
) -> ScoreOut:
    """Return the newest Score, read through the result cache."""
    cached = cache.get(submission_id)
    if cached is not None:
        return ScoreOut(**cached)

    record = latest_score(session, submission_id)
    if record is None:
        raise HTTPException(status_code=404, detail="No score for this submission")
    out = ScoreOut.model_validate(record)
    cache.put(submission_id, out.model_dump())
    return out


@router.get("/{submission_id}/history", response_model=ScoreHistoryOut)
def get_score_history(
    submission_id: str,
    limit: int = 20,
    session: Session = Depends(get_session),
) -> ScoreHistoryOut:
    """All Scores for a submission, newest first."""
    items = [ScoreOut.model_validate(r) for r in score_history(session, submission_id, limit=limit)]
    return ScoreHistoryOut(submission_id=submission_id, items=items)
