"""Content fingerprints used as dedup keys."""

import hashlib


def fingerprint(message: str) -> str:
    """Return the SHA-256 hex digest of a rendered alert message.

    The digest covers the exact UTF-8 bytes, so any change in wording,
    whitespace or truncation point yields a different key.
    """
    return hashlib.sha256(message.encode("utf-8")).hexdigest()
