import time
from email.utils import parsedate_to_datetime
from typing import Any, Optional

import anthropic
import httpx
import openai
from google.genai import errors as genai_errors


class ModelMuxError(Exception):
    """Base class for every error raised by modelmux."""


class ConfigurationError(ModelMuxError):
    """
    Missing or invalid handler configuration (credentials, unknown options).
    Raised at construction time and never retried.
    """


class ConversionError(ModelMuxError):
    """
    The canonical conversation cannot be represented in the backend's native
    format. Raised before any network call is made.
    """


class UnsupportedContentType(ConversionError):
    """A content block of an unknown type was encountered."""


class BackendError(ModelMuxError):
    """Base class for failures reported by a backend call."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientBackendError(BackendError):
    """
    Retryable: rate limits, timeouts, connection resets, 5xx.
    ``retry_after`` carries the backend's hint in seconds, when it sent one.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after


class PermanentBackendError(BackendError):
    """
    Non-retryable: auth failure, invalid request, unknown model or feature.
    """


class StreamTerminationError(ModelMuxError):
    """
    A stream failed after chunks had already been delivered to the caller.
    The original failure is kept as ``__cause__``.
    """


# Status codes worth retrying; everything else that carries a status is permanent.
TRANSIENT_STATUS_CODES = frozenset({408, 409, 429})

_CONNECTION_ERRORS = (
    openai.APIConnectionError,
    anthropic.APIConnectionError,
    httpx.TransportError,
    ConnectionError,
    TimeoutError,
)


def extract_retry_after(err: Any) -> Optional[float]:
    """
    Extract a retry hint, in seconds, from an SDK error's HTTP response.

    Handles:
    - retry-after-ms: 1500 (milliseconds)
    - Retry-After: 60 (integer seconds)
    - Retry-After: Wed, 21 Oct 2015 07:28:00 GMT (HTTP date format)
    """
    response = getattr(err, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None

    value = headers.get("retry-after-ms")
    if value is not None:
        try:
            return max(0.0, float(value) / 1000.0)
        except ValueError:
            pass

    value = headers.get("retry-after")
    if value is None:
        return None
    value = str(value).strip()

    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    return max(0.0, retry_at.timestamp() - time.time())


_STATUS_ERRORS = (
    openai.APIStatusError,
    anthropic.APIStatusError,
    genai_errors.APIError,
    httpx.HTTPStatusError,
)

# SDK failures without an HTTP status (e.g. response validation)
_SDK_ERRORS = (openai.APIError, anthropic.APIError)


def _status_code(err: Any) -> Optional[int]:
    # openai/anthropic expose ``status_code``; google-genai exposes ``code``
    for attr in ("status_code", "code"):
        value = getattr(err, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(err, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_transient_status(status: int) -> bool:
    return status in TRANSIENT_STATUS_CODES or 500 <= status <= 599


def translate_error(err: BaseException) -> BaseException:
    """
    Map vendor SDK errors onto the modelmux taxonomy.

    modelmux errors are returned unchanged. SDK and HTTP errors that carry a
    status are classified by that status; transport failures are transient;
    other SDK errors are permanent. Anything else (a ``TypeError``, a
    ``ValueError`` raised by caller input) is not a backend failure and is
    returned unchanged.
    """
    if isinstance(err, ModelMuxError):
        return err

    if isinstance(err, _CONNECTION_ERRORS):
        return TransientBackendError(str(err) or "Connection error")

    if isinstance(err, _STATUS_ERRORS):
        status = _status_code(err)
        if status is not None and is_transient_status(status):
            return TransientBackendError(
                str(err) or f"Backend error (status={status})",
                status_code=status,
                retry_after=extract_retry_after(err),
            )
        return PermanentBackendError(
            str(err) or f"Backend error (status={status})",
            status_code=status,
        )

    if isinstance(err, _SDK_ERRORS):
        return PermanentBackendError(str(err) or err.__class__.__name__)

    return err
