import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

import trustgate.pipeline.gateway as gateway
from trustgate.errors import InvalidInputError
from trustgate.pipeline.gateway import (
    SanitizedBundle,
    SourceDocument,
    sanitize,
    sanitize_diff,
)
from trustgate.pipeline.secrets import PLACEHOLDER


def test_end_to_end_bundle_sanitization(scenario_bundle):
    bundle = sanitize(scenario_bundle)

    assert [d.path for d in bundle] == ["app/config.py", "app/utils.py"]
    first, second = bundle
    assert "password: [REDACTED]" in first.content
    assert "s3cr3tValue123" not in first.content
    assert len(first.findings) == 1
    assert second.content == scenario_bundle[1]["content"]
    assert second.findings == ()
    assert bundle.findings_count == 1


def test_sanitize_is_idempotent(scenario_bundle, known_secrets_document):
    docs = scenario_bundle + [
        {"path": "keys.txt", "content": known_secrets_document},
        {"path": "a.py", "content": 'TOKEN = "abcdefghijklmn"+suffix\n'},
        {"path": "b.py", "content": 'db_password = "hunter22".encode()\n'},
    ]
    once = sanitize(docs)
    assert once.findings_count == 7
    twice = sanitize(list(once))
    assert [d.content for d in twice] == [d.content for d in once]
    assert twice.findings_count == 0


def test_missing_path_is_invalid_input():
    with pytest.raises(InvalidInputError):
        sanitize([{"content": "x = 1"}])
    with pytest.raises(InvalidInputError):
        sanitize([SourceDocument(path="  ", content="x = 1")])
    with pytest.raises(InvalidInputError):
        sanitize("not a bundle")  # type: ignore[arg-type]


def test_empty_and_binary_content_pass_through():
    blob = b"\x89PNG password=supersecret"
    bundle = sanitize(
        [
            SourceDocument(path="empty.txt", content=""),
            SourceDocument(path="none.txt", content=None),
            SourceDocument(path="logo.png", content=blob),
        ]
    )
    assert [d.content for d in bundle] == ["", None, blob]
    assert bundle.findings_count == 0


def test_filename_alias_is_accepted():
    (doc,) = sanitize([{"filename": "src/app.js", "content": "const a = 1;"}])
    assert doc.path == "src/app.js"


def test_parallel_sanitization_matches_sequential(scenario_bundle, known_secrets_document):
    docs = scenario_bundle * 5 + [{"path": "keys.txt", "content": known_secrets_document}]
    with ThreadPoolExecutor(max_workers=4) as pool:
        parallel = sanitize(docs, executor=pool)
    sequential = sanitize(docs)
    assert [d.content for d in parallel] == [d.content for d in sequential]
    assert [d.path for d in parallel] == [d.path for d in sequential]


def test_redaction_failure_withholds_content(monkeypatch):
    def boom(text):
        raise RuntimeError("regex engine exploded")

    monkeypatch.setattr(gateway, "redact", boom)
    (doc,) = sanitize([SourceDocument(path="a.py", content="password: 'hunter2hunter2'")])

    assert doc.withheld is True
    assert doc.content == PLACEHOLDER
    assert doc.findings == ()


def test_bundle_cannot_be_built_outside_gateway():
    with pytest.raises(TypeError):
        SanitizedBundle([])


def test_suspicious_tokens_are_reported(caplog):
    content = "blob = 'Zm9vYmFyYmF6cXV4MTIzNDU2Nzg5MGFiY2RlZg'\n"
    with caplog.at_level(logging.WARNING, logger="trustgate.pipeline.gateway"):
        (doc,) = sanitize([SourceDocument(path="blob.py", content=content)])
    assert doc.suspicious_tokens == 1
    assert doc.findings == ()
    assert "blob.py" in caplog.text


def test_sanitize_diff():
    diff = "+++ b/settings.py\n+SECRET_KEY = 'django-insecure-abcdefghij'\n"
    out = sanitize_diff(diff)
    assert "django-insecure-abcdefghij" not in out
    assert PLACEHOLDER in out
