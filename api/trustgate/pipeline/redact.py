"""
Redaction of secrets from a single text (file content or diff).

Two passes, in this order:

1. Line pass: drop lines that are sensitive as a whole (a bare `.env`
   reference, a comment labeled secret/password/token). It works on the
   original line set, before any span has been computed.
2. Span pass: run the detector over the line-filtered text and replace every
   detection with a fixed placeholder.

Output offsets do not correspond to input offsets once lines are removed or
spans replaced. Finding spans index into the line-filtered text.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .secrets import PLACEHOLDER, SecretKind, scan

# ============================================================================
# Line Patterns
# ============================================================================

REMOVE_LINE_PATTERNS = [
    re.compile(r"^\s*\.env", re.IGNORECASE),
    # Comment labeled as a secret: `# secret: ...`, `// TOKEN=...`, or the bare label.
    re.compile(
        r"^\s*(?:#|//|--|;|/\*|\*)\s*(?:secrets?|passwords?|passwd|tokens?)\b\s*(?:[:=]|\*/\s*$|$)",
        re.IGNORECASE,
    ),
]


@dataclass(frozen=True)
class RedactionFinding:
    kind: SecretKind
    span: Tuple[int, int]
    replacement: str
    rule_id: str = ""


@dataclass(frozen=True)
class Redaction:
    text: str
    findings: Tuple[RedactionFinding, ...]
    removed_lines: Tuple[int, ...]


def _remove_sensitive_lines(text: str) -> Tuple[str, Tuple[int, ...]]:
    """Drop whole lines matching REMOVE_LINE_PATTERNS; return 1-based removed line numbers."""
    kept: List[str] = []
    removed: List[int] = []
    for lineno, line in enumerate(text.split("\n"), start=1):
        if any(p.search(line) for p in REMOVE_LINE_PATTERNS):
            removed.append(lineno)
        else:
            kept.append(line)
    if not removed:
        return text, ()
    return "\n".join(kept), tuple(removed)


# ============================================================================
# Public API
# ============================================================================

def redact(text: Optional[str]) -> Redaction:
    """
    Redact secrets from text and return the sanitized text plus the audit trail.
    """
    if not text:
        return Redaction(text=text or "", findings=(), removed_lines=())

    filtered, removed_lines = _remove_sensitive_lines(text)

    findings: List[RedactionFinding] = []
    parts: List[str] = []
    cursor = 0
    for det in scan(filtered):
        parts.append(filtered[cursor:det.start])
        parts.append(PLACEHOLDER)
        findings.append(
            RedactionFinding(kind=det.kind, span=det.span, replacement=PLACEHOLDER, rule_id=det.rule_id)
        )
        cursor = det.end
    parts.append(filtered[cursor:])

    return Redaction(text="".join(parts), findings=tuple(findings), removed_lines=removed_lines)


def redact_text(text: Optional[str]) -> str:
    """Convenience wrapper that returns only the redacted string."""
    if not text:
        return ""
    return redact(text).text
