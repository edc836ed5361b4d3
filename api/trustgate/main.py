import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .cache import ReviewCache
from .db import init_db
from .errors import PipelineError, ScoreRangeError
from .routers import admin, health, reviews, sanitize, scoring

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

# API metadata for OpenAPI documentation
description = """
## TrustGate Submission Review API

Sanitizes developer project submissions and turns automated review judgments
into a stable, auditable trust score and badge.

### Key Features

* **Sanitize-before-send:** every file is stripped of credentials before any external call
* **Deterministic scoring:** equal-weighted aggregation of ten category judgments to a 0-100 total
* **Badges:** GREEN (>= 75), YELLOW (50-74), RED (< 50), under a versioned scoring policy
* **Auditable:** applied rules and redaction counts are stored with every Score; history is append-only

### Quick Start

1. **Health Check:** `GET /health`
2. **Sanitize only:** `POST /sanitize` (no external calls)
3. **Score judgments:** `POST /scoring/compute`
4. **Full review:** `POST /reviews/{submission_id}` (requires OPENAI_API_KEY or DEEPSEEK_API_KEY)
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.review_cache = ReviewCache()
    if os.getenv("INIT_DB_ON_STARTUP", "1") == "1":
        try:
            init_db()
        except SQLAlchemyError:
            logger.warning("Database initialization failed; continuing without schema setup", exc_info=True)
    yield
    app.state.review_cache.clear()


app = FastAPI(
    title="TrustGate Submission Review API",
    description=description,
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "health", "description": "Service health and database connectivity checks"},
        {"name": "sanitize", "description": "Secret redaction for submission bundles (no external calls)"},
        {"name": "scoring", "description": "Aggregate category judgments into a total score and badge"},
        {"name": "reviews", "description": "Full review pipeline and score history"},
        {"name": "admin", "description": "Administrative re-runs of the review pipeline"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    if isinstance(exc, ScoreRangeError):
        logger.error("Score range violation on %s: %s", request.url.path, exc.message, exc_info=exc)
    else:
        logger.info("%s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(sanitize.router, prefix="/sanitize", tags=["sanitize"])
app.include_router(scoring.router, prefix="/scoring", tags=["scoring"])
app.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])
