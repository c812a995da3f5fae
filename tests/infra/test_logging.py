"""Tests for the secret-redacting log processor."""

from __future__ import annotations

from cablecast.infra.logging import redact_secrets


def test_secret_keys_are_masked():
    event = redact_secrets(None, None, {"event": "connect", "api_key": "abc123"})
    assert event["api_key"] == "***REDACTED***"
    assert event["event"] == "connect"


def test_credentials_in_urls_are_scrubbed():
    event = redact_secrets(
        None, None, {"url": "http://media:8096/Items?api_key=abc123&limit=5"}
    )
    assert event["url"] == "http://media:8096/Items?api_key=***&limit=5"


def test_nested_values_are_scrubbed():
    event = redact_secrets(None, None, {"paths": ["/media?token=xyz"], "meta": {"u": "a?password=p"}})
    assert event["paths"] == ["/media?token=***"]
    assert event["meta"] == {"u": "a?password=***"}
