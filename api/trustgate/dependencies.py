"""FastAPI dependencies. Tests override these through `app.dependency_overrides`."""

import os

from fastapi import Request

from .ai_service.service import review_bundle
from .cache import ReviewCache
from .db import get_session  # noqa: F401  re-exported for routers
from .pipeline.review import Reviewer


def get_reviewer() -> Reviewer:
    return review_bundle


def get_reviewer_timeout() -> float:
    return float(os.getenv("REVIEWER_TIMEOUT_SECONDS", "30"))


def get_review_cache(request: Request) -> ReviewCache:
    cache = getattr(request.app.state, "review_cache", None)
    if cache is None:
        raise RuntimeError("Review cache is not initialized; the app lifespan did not run")
    return cache
