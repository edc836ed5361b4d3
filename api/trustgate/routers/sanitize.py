from fastapi import APIRouter

from ..pipeline.gateway import SourceDocument, sanitize
from ..schemas import FindingOut, SanitizedDocumentOut, SanitizeIn, SanitizeOut

router = APIRouter()


@router.post("", response_model=SanitizeOut)
def sanitize_bundle(payload: SanitizeIn) -> SanitizeOut:
    """
    Redact secrets from a submission bundle.

    Runs the same sanitization the review pipeline applies before any content
    is sent to the external reviewer. No external calls are made.

    Returns, per file:
    - `content`: sanitized text with secrets replaced by `[REDACTED]`
    - `findings`: kind and span of each redaction (spans index into the
      line-filtered text)
    - `removed_lines`: 1-based line numbers dropped as sensitive
    - `suspicious_tokens`: credential-shaped tokens that no rule classified

    Example request:
    ```json
    {"files": [{"path": "config.py", "content": "password: \\"s3cr3tValue123\\""}]}
    ```
    """
    bundle = sanitize([SourceDocument(path=f.path, content=f.content) for f in payload.files])
    documents = [
        SanitizedDocumentOut(
            path=d.path,
            content=d.content if isinstance(d.content, str) or d.content is None else None,
            findings=[
                FindingOut(
                    kind=f.kind.value,
                    start=f.span[0],
                    end=f.span[1],
                    replacement=f.replacement,
                    rule_id=f.rule_id,
                )
                for f in d.findings
            ],
            removed_lines=list(d.removed_lines),
            suspicious_tokens=d.suspicious_tokens,
            withheld=d.withheld,
        )
        for d in bundle
    ]
    return SanitizeOut(documents=documents, findings_count=bundle.findings_count)
