from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .pipeline.policy import CategoryKind
from .pipeline.scoring import CategoryJudgment, EvidenceItem, ReviewSignals


class DocumentIn(BaseModel):
    """
    One file (or diff) of a submission.
    - path: repository-relative path, required
    - content: text content; empty content is passed through untouched
    """

    path: str = Field(min_length=1)
    content: Optional[str] = None


class SanitizeIn(BaseModel):
    files: List[DocumentIn]


class FindingOut(BaseModel):
    kind: str
    start: int
    end: int
    replacement: str
    rule_id: str


class SanitizedDocumentOut(BaseModel):
    """
    Sanitized copy of a document. Raw content is never returned.
    suspicious_tokens: credential-shaped tokens no rule classified (coverage signal)
    """

    path: str
    content: Optional[str]
    findings: List[FindingOut]
    removed_lines: List[int]
    suspicious_tokens: int
    withheld: bool


class SanitizeOut(BaseModel):
    documents: List[SanitizedDocumentOut]
    findings_count: int


class EvidenceIn(BaseModel):
    description: str
    path: Optional[str] = None
    line: Optional[int] = None


class JudgmentIn(BaseModel):
    category: CategoryKind
    value: float = Field(ge=0, le=10)
    evidence: List[EvidenceIn] = []

    def to_domain(self) -> CategoryJudgment:
        return CategoryJudgment(
            category=self.category,
            value=self.value,
            evidence=tuple(EvidenceItem(e.description, e.path, e.line) for e in self.evidence),
        )


class SignalsIn(BaseModel):
    """Optional static-analysis / PR signals that drive sanity rules."""

    security_alert_count: Optional[int] = Field(default=None, ge=0)
    ci_status: Optional[str] = None
    lint_errors: Optional[int] = Field(default=None, ge=0)
    docker_issue_count: Optional[int] = Field(default=None, ge=0)
    pr_size: Optional[int] = Field(default=None, ge=0)
    pr_description: Optional[str] = None

    def to_domain(self) -> ReviewSignals:
        return ReviewSignals(**self.model_dump())


class ComputeScoreIn(BaseModel):
    judgments: List[JudgmentIn]
    signals: Optional[SignalsIn] = None
    submission_id: Optional[str] = None


class ReviewIn(BaseModel):
    files: List[DocumentIn]
    signals: Optional[SignalsIn] = None


class RuleApplicationOut(BaseModel):
    rule: str
    category: str
    action: str
    reason: str


class ScoreOut(BaseModel):
    """
    Output of the scoring pipeline.
    total_score: 0-100, derived only from per_category
    badge: RED | YELLOW | GREEN, derived only from total_score
    """

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    submission_id: Optional[str] = None
    per_category: Dict[str, float]
    total_score: int
    badge: Literal["RED", "YELLOW", "GREEN"]
    applied_rules: List[RuleApplicationOut]
    policy_version: str
    evidence: List[str]
    findings_count: int
    status: str = "REVIEWED"


class ScoreHistoryOut(BaseModel):
    submission_id: str
    items: List[ScoreOut]
