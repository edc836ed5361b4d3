"""
Secret detection for submitted source files and diffs.

Detection is a declarative table of rules, one matcher per rule, checked in a
fixed priority order. The table is deliberately conservative: over-redaction is
acceptable, a missed credential is not. The detector is a pure function over
its input and never raises on content.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

PLACEHOLDER = "[REDACTED]"


class SecretKind(str, Enum):
    API_KEY = "api_key"
    ACCESS_TOKEN = "access_token"
    PASSWORD = "password"
    GENERIC_SECRET = "generic_secret"
    PRIVATE_KEY = "private_key"
    CLOUD_CREDENTIAL = "cloud_credential"
    ENV_REFERENCE = "env_reference"
    VCS_TOKEN = "vcs_token"
    STRUCTURED_TOKEN = "structured_token"


@dataclass(frozen=True)
class DetectionRule:
    """A single matcher. If the pattern defines a `value` group only that span is reported."""

    rule_id: str
    kind: SecretKind
    pattern: re.Pattern


@dataclass(frozen=True)
class Detection:
    kind: SecretKind
    start: int
    end: int
    rule_id: str

    @property
    def span(self) -> Tuple[int, int]:
        return (self.start, self.end)


# ============================================================================
# Pattern Building Blocks
# ============================================================================

# An already-redacted value must never match again, whatever follows it.
_NOT_PLACEHOLDER = r"(?!\[REDACTED\])"

# Optional closing quote on the key, so JSON-style `"password": ...` is covered.
_ASSIGN = r"[\"']?\s*[:=]\s*"


def _value(min_len: int) -> str:
    """Assigned value: a quoted string (quotes included) or a bare token."""
    return (
        rf"(?P<value>{_NOT_PLACEHOLDER}"
        rf"(?:\"[^\"\n]{{{min_len},}}\""
        rf"|'[^'\n]{{{min_len},}}'"
        rf"|[^\"'\s]{{{min_len},}}))"
    )


def _assignment(key: str, min_len: int) -> re.Pattern:
    return re.compile(key + _ASSIGN + _value(min_len), re.IGNORECASE)


_PEM_LABEL = r"(?:[A-Z0-9]+\s+)*?PRIVATE\s+KEY"


# ============================================================================
# Rule Table (priority order)
# ============================================================================

DETECTION_RULES: Tuple[DetectionRule, ...] = (
    DetectionRule(
        "private_key_block",
        SecretKind.PRIVATE_KEY,
        re.compile(
            rf"(?:-----)?BEGIN\s+{_PEM_LABEL}(?:-----)?[\s\S]*?(?:-----)?END\s+{_PEM_LABEL}(?:-----)?",
            re.IGNORECASE,
        ),
    ),
    # A key header without a footer (e.g. a truncated diff hunk) redacts to the end.
    DetectionRule(
        "private_key_unterminated",
        SecretKind.PRIVATE_KEY,
        re.compile(
            rf"-----BEGIN\s+{_PEM_LABEL}-----(?![\s\S]*?END\s+{_PEM_LABEL})[\s\S]*",
            re.IGNORECASE,
        ),
    ),
    DetectionRule(
        "aws_credential_pair",
        SecretKind.CLOUD_CREDENTIAL,
        re.compile(
            r"aws_access_key_id" + _ASSIGN
            + r"(?P<value>[\"']?[A-Z0-9]{16,}[\"']?[ \t]*\r?\n[ \t]*(?:export[ \t]+)?"
            + r"[\"']?aws_secret_access_key" + _ASSIGN + r"[\"']?[A-Za-z0-9/+=]{20,}[\"']?)",
            re.IGNORECASE,
        ),
    ),
    DetectionRule(
        "aws_key_pair_inline",
        SecretKind.CLOUD_CREDENTIAL,
        re.compile(r"(?<![A-Za-z0-9])(?:AKIA|ASIA)[0-9A-Z]{16}[:/,;|][A-Za-z0-9/+=]{40}(?![A-Za-z0-9/+=])"),
    ),
    DetectionRule("aws_access_key_id", SecretKind.CLOUD_CREDENTIAL, _assignment(r"aws[_-]?access[_-]?key[_-]?id", 10)),
    DetectionRule(
        "aws_secret_access_key",
        SecretKind.CLOUD_CREDENTIAL,
        _assignment(r"aws[_-]?secret[_-]?access[_-]?key", 20),
    ),
    DetectionRule(
        "aws_access_key_bare",
        SecretKind.CLOUD_CREDENTIAL,
        re.compile(r"(?<![A-Za-z0-9])(?:AKIA|ASIA)[0-9A-Z]{16}(?![A-Za-z0-9])"),
    ),
    DetectionRule(
        "github_token",
        SecretKind.VCS_TOKEN,
        re.compile(r"(?<![A-Za-z0-9_])gh[pousr]_[A-Za-z0-9]{36,255}"),
    ),
    DetectionRule(
        "github_fine_grained_pat",
        SecretKind.VCS_TOKEN,
        re.compile(r"(?<![A-Za-z0-9_])github_pat_[A-Za-z0-9_]{22,255}"),
    ),
    DetectionRule(
        "jwt",
        SecretKind.STRUCTURED_TOKEN,
        re.compile(r"eyJ[A-Za-z0-9_=-]+\.eyJ[A-Za-z0-9_=-]+\.?[A-Za-z0-9_.+/=-]*"),
    ),
    DetectionRule(
        "bearer_token",
        SecretKind.ACCESS_TOKEN,
        re.compile(r"\bbearer\s+(?P<value>[A-Za-z0-9\-._~+/]{20,}=*)", re.IGNORECASE),
    ),
    DetectionRule("access_token", SecretKind.ACCESS_TOKEN, _assignment(r"access[_-]?token", 10)),
    DetectionRule("token", SecretKind.ACCESS_TOKEN, _assignment(r"token", 10)),
    DetectionRule("api_key", SecretKind.API_KEY, _assignment(r"api[_-]?key", 10)),
    DetectionRule("password", SecretKind.PASSWORD, _assignment(r"(?:password|passwd)", 6)),
    DetectionRule("secret_key", SecretKind.GENERIC_SECRET, _assignment(r"secret[_-]?key", 10)),
    DetectionRule("secret", SecretKind.GENERIC_SECRET, _assignment(r"secret", 10)),
    DetectionRule(
        "process_env",
        SecretKind.ENV_REFERENCE,
        re.compile(r"process\.env\.[A-Za-z_][A-Za-z0-9_]*"),
    ),
    DetectionRule(
        "import_meta_env",
        SecretKind.ENV_REFERENCE,
        re.compile(r"import\.meta\.env\.[A-Za-z_][A-Za-z0-9_]*"),
    ),
    DetectionRule(
        "os_environ",
        SecretKind.ENV_REFERENCE,
        re.compile(r"os\.environ(?:\.get\(\s*|\[\s*)[\"'][^\"'\n]+[\"']\s*[\])]?"),
    ),
    DetectionRule(
        "os_getenv",
        SecretKind.ENV_REFERENCE,
        re.compile(r"os\.getenv\(\s*[\"'][^\"'\n]+[\"']\s*\)?"),
    ),
    DetectionRule(
        "env_file",
        SecretKind.ENV_REFERENCE,
        re.compile(r"(?<![\w.$])\.env(?:\.[A-Za-z0-9_-]+)*\b(?:[ \t]*[:=][ \t]*[^\n]*)?"),
    ),
)


# Long credential-shaped tokens: letters and digits mixed, 32+ chars.
_SUSPICIOUS_TOKEN_RE = re.compile(r"[A-Za-z0-9+/_=-]{32,}")
_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


# ============================================================================
# Public API
# ============================================================================

def _match_span(match: re.Match) -> Tuple[int, int]:
    if "value" in match.re.groupindex and match.group("value") is not None:
        return match.span("value")
    return match.span()


def scan(text: Optional[str], rules: Tuple[DetectionRule, ...] = DETECTION_RULES) -> List[Detection]:
    """
    Return non-overlapping detections ordered by start offset.

    When matches overlap, the earliest start wins, then the longest span, then
    the rule that comes first in the table.
    """
    if not text or not isinstance(text, str):
        return []

    candidates: List[Tuple[int, int, int, DetectionRule]] = []
    for priority, rule in enumerate(rules):
        for m in rule.pattern.finditer(text):
            start, end = _match_span(m)
            if end > start:
                candidates.append((start, -(end - start), priority, rule))

    candidates.sort(key=lambda c: (c[0], c[1], c[2]))

    detections: List[Detection] = []
    last_end = -1
    for start, neg_len, _priority, rule in candidates:
        if start < last_end:
            continue
        end = start - neg_len
        detections.append(Detection(kind=rule.kind, start=start, end=end, rule_id=rule.rule_id))
        last_end = end
    return detections


def suspicious_token_count(text: Optional[str]) -> int:
    """
    Count long credential-shaped tokens that no rule classified.

    Zero findings is not proof of safety; this gives operators a coverage
    signal. Pure hex runs (commit SHAs, digests) are not counted.
    """
    if not text or not isinstance(text, str):
        return 0
    count = 0
    for m in _SUSPICIOUS_TOKEN_RE.finditer(text):
        token = m.group(0)
        if _HEX_RE.match(token):
            continue
        if any(c.isdigit() for c in token) and any(c.isalpha() for c in token):
            count += 1
    return count
