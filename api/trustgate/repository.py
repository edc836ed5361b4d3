"""
Score persistence. Rows are append-only: each review inserts a new row and
history is read newest first.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import ScoreRecord
from .pipeline.scoring import Score


def save_score(session: Session, score: Score) -> ScoreRecord:
    """Insert a new score row and commit. Prior rows for the submission are kept."""
    data = score.to_dict()
    record = ScoreRecord(
        submission_id=data["submission_id"],
        policy_version=data["policy_version"],
        per_category=data["per_category"],
        total_score=data["total_score"],
        badge=data["badge"],
        applied_rules=data["applied_rules"],
        evidence=data["evidence"],
        findings_count=data["findings_count"],
        status=data["status"],
    )
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def _newest_first(submission_id: str):
    return (
        select(ScoreRecord)
        .where(ScoreRecord.submission_id == submission_id)
        .order_by(ScoreRecord.created_at.desc(), ScoreRecord.id.desc())
    )


def latest_score(session: Session, submission_id: str) -> Optional[ScoreRecord]:
    return session.scalars(_newest_first(submission_id).limit(1)).first()


def score_history(session: Session, submission_id: str, limit: int = 20) -> List[ScoreRecord]:
    return list(session.scalars(_newest_first(submission_id).limit(max(1, min(100, limit)))))
