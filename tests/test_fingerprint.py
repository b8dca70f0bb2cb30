"""Tests for content fingerprints."""

import hashlib

from github_notify.core import fingerprint


def test_fingerprint_is_sha256_hex() -> None:
    """Fingerprint is the lowercase hex SHA-256 of the UTF-8 text."""
    assert fingerprint("hello") == hashlib.sha256(b"hello").hexdigest()
    assert len(fingerprint("hello")) == 64


def test_fingerprint_is_deterministic() -> None:
    assert fingerprint("📁 acme/api\n📝 Fix it") == fingerprint("📁 acme/api\n📝 Fix it")


def test_fingerprint_changes_with_content() -> None:
    """Any edit to the rendered text yields a new fingerprint."""
    assert fingerprint("body v1") != fingerprint("body v2")
    assert fingerprint("") == hashlib.sha256(b"").hexdigest()
