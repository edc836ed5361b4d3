import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..cache import ReviewCache
from ..dependencies import get_review_cache, get_reviewer, get_reviewer_timeout, get_session
from ..pipeline.review import Reviewer
from ..pipeline.scoring import ReviewStatus
from ..schemas import ReviewIn, ScoreOut
from .reviews import execute_review

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/reviews/{submission_id}/rerun", response_model=ScoreOut)
def rerun_review(
    submission_id: str,
    payload: ReviewIn,
    session: Session = Depends(get_session),
    cache: ReviewCache = Depends(get_review_cache),
    reviewer: Reviewer = Depends(get_reviewer),
    timeout: float = Depends(get_reviewer_timeout),
) -> ScoreOut:
    """
    Re-run the full pipeline for an already reviewed submission.

    Produces a new terminal Score; earlier Scores stay in the history untouched.
    """
    logger.info("Admin re-run requested for submission %s", submission_id)
    return execute_review(
        submission_id,
        payload,
        session=session,
        cache=cache,
        reviewer=reviewer,
        timeout=timeout,
        status=ReviewStatus.REVIEWED,
    )
