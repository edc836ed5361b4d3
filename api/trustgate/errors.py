"""
Error taxonomy for the sanitization and scoring pipeline.

Every error carries a stable `code` and a `retryable` flag so the API layer can
surface it as a structured result. Nothing inside the pipeline retries on its
own; the flag only tells the caller what it may do.
"""

from typing import Any, Dict


class PipelineError(Exception):
    """Base class for all pipeline failures surfaced to callers."""

    code = "pipeline_error"
    status_code = 500
    retryable = False

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.code,
            "message": self.message,
            "retryable": self.retryable,
            **({"details": self.details} if self.details else {}),
        }


class InvalidInputError(PipelineError):
    """Malformed bundle or request. The caller must fix the request."""

    code = "invalid_input"
    status_code = 422


class IncompleteJudgmentError(PipelineError):
    """Reviewer returned fewer than the required categories.

    Only the reviewer call may be retried; sanitization output can be reused.
    """

    code = "review_incomplete"
    status_code = 502
    retryable = True


class ExternalReviewerError(PipelineError):
    """Network failure, timeout or bad response from the external reviewer."""

    code = "reviewer_unavailable"
    status_code = 503
    retryable = True


class ScoreRangeError(PipelineError):
    """A score fell outside its valid range. Indicates a bug, never expected."""

    code = "score_out_of_range"
    status_code = 500
