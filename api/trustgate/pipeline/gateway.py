"""
Sanitization gateway: redact a whole submission bundle before it leaves the
trust boundary.

The gateway is the only producer of `SanitizedBundle`, and the reviewer client
only accepts that type, so reviewer judgments cannot be obtained for content
that did not pass through here. Content problems never raise: a document that
cannot be redacted is withheld instead of forwarded.
"""

import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from ..errors import InvalidInputError
from .redact import RedactionFinding, redact
from .secrets import PLACEHOLDER, suspicious_token_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceDocument:
    path: str
    content: Union[str, bytes, None] = None


@dataclass(frozen=True)
class SanitizedDocument:
    path: str
    content: Union[str, bytes, None]
    findings: Tuple[RedactionFinding, ...] = ()
    removed_lines: Tuple[int, ...] = ()
    suspicious_tokens: int = 0
    withheld: bool = False


class SanitizedBundle:
    """Ordered, immutable result of one sanitization pass."""

    __slots__ = ("_documents",)

    def __init__(self, documents: Sequence[SanitizedDocument], *, _token: object = None) -> None:
        if _token is not _GATEWAY_TOKEN:
            raise TypeError("SanitizedBundle can only be created by the sanitization gateway")
        self._documents = tuple(documents)

    @property
    def documents(self) -> Tuple[SanitizedDocument, ...]:
        return self._documents

    @property
    def findings_count(self) -> int:
        return sum(len(d.findings) for d in self._documents)

    @property
    def removed_lines_count(self) -> int:
        return sum(len(d.removed_lines) for d in self._documents)

    def __iter__(self) -> Iterator[SanitizedDocument]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __getitem__(self, index: int) -> SanitizedDocument:
        return self._documents[index]

    def __repr__(self) -> str:
        return f"SanitizedBundle(documents={len(self._documents)}, findings={self.findings_count})"


_GATEWAY_TOKEN = object()


# ============================================================================
# Helpers
# ============================================================================

def _coerce(index: int, item: Union[SourceDocument, Mapping[str, Any]]) -> SourceDocument:
    """Normalize one bundle entry; only a missing path is an input error."""
    if isinstance(item, SourceDocument):
        doc = item
    elif isinstance(item, SanitizedDocument):
        doc = SourceDocument(path=item.path, content=item.content)
    elif isinstance(item, Mapping):
        path = item.get("path") or item.get("filename")
        doc = SourceDocument(path=path, content=item.get("content"))  # type: ignore[arg-type]
    else:
        raise InvalidInputError(f"Bundle entry {index} is not a document", index=index)

    if not isinstance(doc.path, str) or not doc.path.strip():
        raise InvalidInputError(f"Bundle entry {index} is missing a path", index=index)
    return doc


def sanitize_document(doc: SourceDocument) -> SanitizedDocument:
    """Sanitize one document. Never raises on content."""
    if not isinstance(doc.content, str) or not doc.content:
        return SanitizedDocument(path=doc.path, content=doc.content)

    try:
        result = redact(doc.content)
        suspicious = suspicious_token_count(result.text)
    except Exception:
        # Withhold rather than forward content we could not inspect.
        logger.exception("Redaction failed for %s; content withheld", doc.path)
        return SanitizedDocument(path=doc.path, content=PLACEHOLDER, withheld=True)

    if suspicious and not result.findings:
        logger.warning(
            "No secrets detected in %s but %d credential-shaped token(s) remain",
            doc.path,
            suspicious,
        )

    return SanitizedDocument(
        path=doc.path,
        content=result.text,
        findings=result.findings,
        removed_lines=result.removed_lines,
        suspicious_tokens=suspicious,
    )


# ============================================================================
# Public API
# ============================================================================

def sanitize(
    bundle: Sequence[Union[SourceDocument, Mapping[str, Any]]],
    *,
    executor: Optional[Executor] = None,
) -> SanitizedBundle:
    """
    Sanitize every document of a bundle, one-to-one and in input order.

    All identities are validated before any content is processed. When an
    executor is given documents are redacted in parallel; the call still
    returns only once every document is done.
    """
    if bundle is None or isinstance(bundle, (str, bytes)) or not isinstance(bundle, Sequence):
        raise InvalidInputError("Bundle must be a sequence of documents")

    docs = [_coerce(i, item) for i, item in enumerate(bundle)]

    if executor is not None:
        sanitized: List[SanitizedDocument] = list(executor.map(sanitize_document, docs))
    else:
        sanitized = [sanitize_document(d) for d in docs]

    out = SanitizedBundle(sanitized, _token=_GATEWAY_TOKEN)
    logger.info(
        "Sanitized %d document(s): %d finding(s), %d line(s) removed",
        len(out),
        out.findings_count,
        out.removed_lines_count,
    )
    return out


def sanitize_diff(diff: Optional[str]) -> str:
    """Sanitize a raw diff/patch string."""
    return sanitize_document(SourceDocument(path="<diff>", content=diff or "")).content or ""
