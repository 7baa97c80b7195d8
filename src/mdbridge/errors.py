"""Full error hierarchy for mdbridge.

Every public error class inherits from :class:`MdBridgeError`. Each carries a
machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

Error codes are defined as a :class:`str` enum so that they serialise
naturally to JSON and can be matched with simple ``==`` comparisons.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error mdbridge can raise."""

    CONFIG_ERROR = "CONFIG_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    SERVER_ERROR = "SERVER_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    API_ERROR = "API_ERROR"
    CONVERSION_ERROR = "CONVERSION_ERROR"
    RENDER_ERROR = "RENDER_ERROR"
    UPLOAD_ERROR = "UPLOAD_ERROR"
    LEDGER_ERROR = "LEDGER_ERROR"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class MdBridgeError(Exception):
    """Base exception for all mdbridge errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
    cause:
        The underlying exception, if this error wraps another.
    """

    default_code: str = ErrorCode.API_ERROR

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        code: str | None = None,
    ) -> None:
        self.code: str = code or self.default_code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class MdBridgeConfigError(MdBridgeError):
    """Required configuration (credentials, identifiers) is missing or invalid.

    Context keys: ``missing``.
    """

    default_code = ErrorCode.CONFIG_ERROR


# ---------------------------------------------------------------------------
# API / transport errors
# ---------------------------------------------------------------------------

class MdBridgeValidationError(MdBridgeError):
    """The platform returned 400: the request payload was invalid.

    Context keys: ``status_code``, ``platform_code``, ``body``.
    """

    default_code = ErrorCode.VALIDATION_ERROR


class MdBridgeAuthError(MdBridgeError):
    """The platform rejected the credentials (401 or an invalid-token code)."""

    default_code = ErrorCode.AUTH_ERROR


class MdBridgePermissionError(MdBridgeError):
    """The app or integration lacks access to the resource (403).

    Context keys: ``operation``.
    """

    default_code = ErrorCode.PERMISSION_ERROR


class MdBridgeNotFoundError(MdBridgeError):
    """The requested resource does not exist (404).

    Context keys: ``path``.
    """

    default_code = ErrorCode.NOT_FOUND


class MdBridgeRateLimitError(MdBridgeError):
    """The platform reported a rate-limit violation.

    Context keys: ``retry_after``.
    """

    default_code = ErrorCode.RATE_LIMITED


class MdBridgeServerError(MdBridgeError):
    """The platform answered with a 5xx status."""

    default_code = ErrorCode.SERVER_ERROR


class MdBridgeNetworkError(MdBridgeError):
    """A transport-level failure occurred (timeout, DNS, connection reset).

    Context keys: ``url``.
    """

    default_code = ErrorCode.NETWORK_ERROR


class MdBridgeAPIError(MdBridgeError):
    """The platform envelope carried a non-zero business error code.

    Context keys: ``platform_code``, ``data``.
    """

    default_code = ErrorCode.API_ERROR


# ---------------------------------------------------------------------------
# Conversion / rendering / upload
# ---------------------------------------------------------------------------

class MdBridgeConversionError(MdBridgeError):
    """A block could not be converted into a platform payload.

    Context keys: ``kind``.
    """

    default_code = ErrorCode.CONVERSION_ERROR


class MdBridgeRenderError(MdBridgeError):
    """The external diagram renderer failed or produced no output.

    Context keys: ``command``, ``returncode``, ``stderr``.
    """

    default_code = ErrorCode.RENDER_ERROR


class MdBridgeUploadError(MdBridgeError):
    """A document upload step returned an unusable response.

    Context keys: ``document_id``, ``step``.
    """

    default_code = ErrorCode.UPLOAD_ERROR


class MdBridgeLedgerError(MdBridgeError):
    """The local metadata ledger could not be written.

    Context keys: ``path``.
    """

    default_code = ErrorCode.LEDGER_ERROR
