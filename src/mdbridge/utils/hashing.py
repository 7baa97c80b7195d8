"""MD5 helper for ledger content fingerprints (not used for security)."""

from __future__ import annotations

import hashlib


def md5_hash(data: str) -> str:
    """Return the hex-encoded MD5 digest of *data* encoded as UTF-8.

    >>> md5_hash("hello")
    '5d41402abc4b2a76b9719d911017c592'
    """
    return hashlib.md5(data.encode("utf-8")).hexdigest()
