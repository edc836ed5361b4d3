"""
External reviewer: send a sanitized bundle to an LLM and parse category judgments.

Only a SanitizedBundle is accepted, so raw submission content cannot reach the
provider. The client makes exactly one request per call (SDK retries are
disabled); retry policy belongs to the caller.
"""

from __future__ import annotations

import json
import logging
import os
import re
from numbers import Real
from typing import Any, Dict, List

import openai
from openai import OpenAI

from trustgate.errors import ExternalReviewerError, InvalidInputError
from trustgate.pipeline.gateway import SanitizedBundle
from trustgate.pipeline.policy import CategoryKind
from trustgate.pipeline.scoring import CategoryJudgment, EvidenceItem

logger = logging.getLogger(__name__)

MAX_FILE_CHARS = 6000
MAX_PROMPT_CHARS = 48000

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE)


def _reviewer_timeout() -> float:
    return float(os.getenv("REVIEWER_TIMEOUT_SECONDS", "30"))


def _resolve_ai_provider(prefer_deepseek: bool = False) -> tuple[str, str, str | None]:
    openai_key = os.getenv("OPENAI_API_KEY", "").strip()
    openai_base = os.getenv("OPENAI_BASE_URL", "").strip()
    deepseek_key = os.getenv("DEEPSEEK_API_KEY", "").strip()
    deepseek_base = os.getenv("DEEPSEEK_BASE_URL", "https://api.deepseek.com").strip()

    if prefer_deepseek and deepseek_key:
        return "deepseek", deepseek_key, deepseek_base
    if openai_key:
        return "openai", openai_key, openai_base or None
    if deepseek_key:
        return "deepseek", deepseek_key, deepseek_base
    return "", "", None


def _build_ai_client(prefer_deepseek: bool = False) -> tuple[OpenAI, str]:
    provider, api_key, base_url = _resolve_ai_provider(prefer_deepseek)
    if not api_key:
        raise ExternalReviewerError("OPENAI_API_KEY not set and no DEEPSEEK_API_KEY available")

    kwargs: Dict[str, Any] = {"api_key": api_key, "timeout": _reviewer_timeout(), "max_retries": 0}
    if base_url:
        kwargs["base_url"] = base_url
    return OpenAI(**kwargs), provider


# ---- Prompt construction ----

def _build_prompt(bundle: SanitizedBundle) -> str:
    """Render sanitized documents into a single review prompt, capped in size."""
    categories = ", ".join(c.value for c in CategoryKind)
    header = (
        "System: You are a senior code reviewer scoring a developer's project submission.\n\n"
        "Task: Score each category from 0 (poor) to 10 (excellent): " + categories + ".\n"
        "Secrets in the code were replaced with [REDACTED]; do not speculate about them.\n"
        "Respond with a single JSON object only. Each key is a category name and each value is\n"
        '{"score": <number 0-10>, "evidence": [{"description": "...", "path": "...", "line": <int>}]}.\n\n'
        "Files:\n"
    )

    parts: List[str] = [header]
    used = len(header)
    for doc in bundle:
        if isinstance(doc.content, str):
            body = doc.content[:MAX_FILE_CHARS]
        elif doc.content is None:
            body = ""
        else:
            body = "(binary content omitted)"
        block = f"\n--- {doc.path} ---\n{body}\n"
        if used + len(block) > MAX_PROMPT_CHARS:
            parts.append("\n(remaining files omitted for length)\n")
            break
        parts.append(block)
        used += len(block)
    return "".join(parts)


# ---- Response parsing ----

def _extract_json(text: str) -> Dict[str, Any]:
    fenced = _FENCED_JSON_RE.search(text)
    if fenced:
        candidate = fenced.group(1)
    else:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise ExternalReviewerError("Reviewer response contained no JSON object")
        candidate = text[start:end + 1]
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise ExternalReviewerError(f"Reviewer response was not valid JSON: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise ExternalReviewerError("Reviewer response JSON must be an object")
    return parsed


def _parse_evidence(raw: Any) -> tuple[EvidenceItem, ...]:
    if not isinstance(raw, list):
        return ()
    items: List[EvidenceItem] = []
    for entry in raw:
        if isinstance(entry, str) and entry.strip():
            items.append(EvidenceItem(description=entry.strip()))
        elif isinstance(entry, dict) and str(entry.get("description") or "").strip():
            line = entry.get("line")
            items.append(
                EvidenceItem(
                    description=str(entry["description"]).strip(),
                    path=entry.get("path") or None,
                    line=line if isinstance(line, int) and not isinstance(line, bool) else None,
                )
            )
    return tuple(items)


def parse_judgments(text: str) -> List[CategoryJudgment]:
    """
    Parse reviewer output into judgments.

    Accepts `{"codeQuality": 8, ...}` or `{"codeQuality": {"score": 8, "evidence": [...]}, ...}`,
    optionally wrapped in a fenced code block. Unknown keys are ignored; missing
    categories are left missing so aggregation can reject the review.
    """
    if not text or not text.strip():
        raise ExternalReviewerError("Reviewer returned an empty response")

    parsed = _extract_json(text)
    if isinstance(parsed.get("scores"), dict):
        parsed = parsed["scores"]

    judgments: List[CategoryJudgment] = []
    for category in CategoryKind:
        if category.value not in parsed:
            continue
        entry = parsed[category.value]
        evidence: tuple[EvidenceItem, ...] = ()
        if isinstance(entry, dict):
            evidence = _parse_evidence(entry.get("evidence"))
            entry = entry.get("score")
        if isinstance(entry, bool) or not isinstance(entry, Real) or not 0 <= entry <= 10:
            raise ExternalReviewerError(f"Invalid {category.value} score: {entry!r}", category=category.value)
        judgments.append(CategoryJudgment(category=category, value=float(entry), evidence=evidence))
    return judgments


# ---- Public API ----

def review_bundle(bundle: SanitizedBundle) -> List[CategoryJudgment]:
    """
    Ask the configured LLM provider to judge a sanitized bundle.

    Raises ExternalReviewerError on configuration, network, timeout or
    response-format problems.
    """
    if not isinstance(bundle, SanitizedBundle):
        raise InvalidInputError("Reviewer only accepts a sanitized bundle")

    client, provider = _build_ai_client()
    prompt = _build_prompt(bundle)
    logger.info("Sending %d sanitized document(s) to %s reviewer", len(bundle), provider)

    try:
        if provider == "deepseek":
            resp = client.chat.completions.create(
                model=os.getenv("DEEPSEEK_MODEL", "deepseek-chat"),
                messages=[{"role": "user", "content": prompt}],
                temperature=0.2,
                max_tokens=1500,
            )
            text = resp.choices[0].message.content or ""
        else:
            resp = client.responses.create(
                model=os.getenv("REVIEWER_MODEL", "gpt-4.1-mini"),
                input=prompt,
                temperature=0.2,
            )
            text = getattr(resp, "output_text", None) or ""
    except openai.APITimeoutError as exc:
        raise ExternalReviewerError("Reviewer request timed out") from exc
    except openai.APIStatusError as exc:
        raise ExternalReviewerError(f"Reviewer returned HTTP {exc.status_code}", status=exc.status_code) from exc
    except openai.OpenAIError as exc:
        raise ExternalReviewerError(f"Reviewer request failed: {type(exc).__name__}") from exc

    return parse_judgments(text)
