"""Secret / payload redaction for debug dumps.

Request and response bodies written by ``debug_dump_payload`` pass through
:func:`redact` first:

* values under sensitive keys (``app_secret``, ``tenant_access_token``,
  ``Authorization`` ...) are masked, keeping only the last four characters;
* every known secret string is scrubbed wherever it appears;
* ``bytes`` values (media uploads) become ``<binary:N_bytes>``.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterable
from typing import Any

# A key containing any of these substrings (case-insensitive) is redacted.
_SENSITIVE_KEY_PATTERNS: frozenset[str] = frozenset({
    "token",
    "secret",
    "password",
    "authorization",
    "cookie",
    "api_key",
})

_BEARER_RE = re.compile(r"(Bearer\s+)\S+")


def _placeholder(secret: str) -> str:
    suffix = secret[-4:] if len(secret) >= 8 else "****"
    return f"<redacted:...{suffix}>"


def _mask(value: str, secrets: list[str]) -> str:
    for secret in secrets:
        if secret and secret in value:
            value = value.replace(secret, _placeholder(secret))
    return _BEARER_RE.sub(lambda m: f"{m.group(1)}<redacted>", value)


def _redact_value(value: Any, secrets: list[str]) -> Any:
    if isinstance(value, dict):
        return _redact_dict(value, secrets)
    if isinstance(value, (list, tuple)):
        return [_redact_value(item, secrets) for item in value]
    if isinstance(value, (bytes, bytearray)):
        return f"<binary:{len(value)}_bytes>"
    if isinstance(value, str):
        return _mask(value, secrets)
    return value


def _redact_dict(d: dict, secrets: list[str]) -> dict:
    result: dict = {}
    for key, value in d.items():
        key_lower = key.lower() if isinstance(key, str) else ""
        if any(pat in key_lower for pat in _SENSITIVE_KEY_PATTERNS):
            if isinstance(value, str) and value:
                result[key] = _placeholder(value)
            else:
                result[key] = "<redacted>"
        else:
            result[key] = _redact_value(value, secrets)
    return result


def redact(payload: dict, secrets: str | Iterable[str] | None = None) -> dict:
    """Return a deep copy of *payload* with sensitive data redacted.

    Parameters
    ----------
    payload:
        The dictionary to sanitise (request body, headers, response body).
    secrets:
        One secret or several (app secret, tenant token, integration
        token).  Each is scrubbed from every string in the tree.

    Returns
    -------
    dict
        A new dictionary; *payload* is never mutated.

    >>> redact({"app_secret": "s3cr3t-value-1234"})
    {'app_secret': '<redacted:...1234>'}
    """
    if secrets is None:
        secret_list: list[str] = []
    elif isinstance(secrets, str):
        secret_list = [secrets]
    else:
        secret_list = [s for s in secrets if s]
    return _redact_dict(copy.deepcopy(payload), secret_list)
