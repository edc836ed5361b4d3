from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Integer, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests).
JSONType = sa.JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class ScoreRecord(Base):
    """One completed review. Re-running a review inserts a new row; rows are never updated."""

    __tablename__ = "scores"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    submission_id: Mapped[str] = mapped_column(Text, nullable=False)
    policy_version: Mapped[str] = mapped_column(Text, nullable=False)

    per_category: Mapped[dict] = mapped_column(JSONType, nullable=False)
    total_score: Mapped[int] = mapped_column(Integer, nullable=False)
    badge: Mapped[str] = mapped_column(Text, nullable=False)

    applied_rules: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    evidence: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    findings_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="REVIEWED")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("total_score BETWEEN 0 AND 100", name="scores_total_score_range_check"),
        CheckConstraint("badge IN ('RED','YELLOW','GREEN')", name="scores_badge_check"),
        Index("ix_scores_submission_created", "submission_id", "created_at"),
    )
