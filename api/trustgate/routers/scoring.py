from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..cache import ReviewCache
from ..dependencies import get_review_cache, get_session
from ..pipeline.scoring import build_score
from ..repository import save_score
from ..schemas import ComputeScoreIn, ScoreOut

router = APIRouter()


@router.post("/compute", response_model=ScoreOut)
def compute_score(
    payload: ComputeScoreIn,
    session: Session = Depends(get_session),
    cache: ReviewCache = Depends(get_review_cache),
) -> ScoreOut:
    """
    Aggregate reviewer judgments into a total score and badge.

    No reviewer call is made; the caller supplies all ten category judgments.
    When `submission_id` is given the result is stored as a new Score row.

    Errors:
    - `review_incomplete` (502) when any category is missing
    """
    signals = payload.signals.to_domain() if payload.signals else None
    score = build_score(
        payload.submission_id or "",
        [j.to_domain() for j in payload.judgments],
        signals=signals,
    )

    if payload.submission_id:
        record = save_score(session, score)
        cache.invalidate(payload.submission_id)
        return ScoreOut.model_validate(record)

    out = score.to_dict()
    out["submission_id"] = None
    return ScoreOut(**out)
