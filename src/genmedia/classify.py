"""Error classification and sanitization.

``classify`` maps any exception to exactly one ``ErrorClassification``.
Structured signals come first: a pinned classification, the exception type,
then the HTTP status found anywhere in the cause chain, then the provider
layer's ``retryable`` flag when no status is known. Message text is a
fallback for errors that carry no structure:

- safety/policy wording is always consulted, because the service reports
  request-level content rejections only in text;
- credential, validation and not-found wording is consulted before status
  rules, matching the service's habit of answering a bad key with a 400;
- network/timeout wording is consulted only when no status code is present.

Anything unrecognized is ``PERMANENT``: never retry what cannot be positively
identified as transient.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Literal, NoReturn

from genmedia._http import NOT_FOUND, PERMANENT_STATUS_CODES, TRANSIENT_STATUS_CODES
from genmedia.errors import (
    ConfigurationError,
    ResultError,
    SafetyBlockedError,
    SanitizedError,
    ValidationError,
)
from genmedia.providers._errors import extract_status_code, is_transport_error

RuntimeMode = Literal["default", "hardened"]


class ErrorClassification(Enum):
    """What a caller should do about an error."""

    TRANSIENT = "TRANSIENT"
    PERMANENT = "PERMANENT"
    USER_ACTIONABLE = "USER_ACTIONABLE"
    SAFETY_BLOCKED = "SAFETY_BLOCKED"
    AUDIO_BLOCKED = "AUDIO_BLOCKED"


_SAFETY_MARKERS = ("safety", "blocked", "policy", "responsible ai")
_USER_MARKERS = (
    "api key",
    "api_key",
    "credential",
    "not found",
    "validation",
    "invalid",
)
_NETWORK_MARKERS = (
    "network",
    "timeout",
    "timed out",
    "econnreset",
    "connection reset",
    "connection refused",
)

SANITIZED_MESSAGES: dict[ErrorClassification, str] = {
    ErrorClassification.TRANSIENT: "A temporary error occurred. Please try again.",
    ErrorClassification.PERMANENT: (
        "The request could not be completed. Please check your inputs."
    ),
    ErrorClassification.USER_ACTIONABLE: (
        "An error occurred. Please check your configuration."
    ),
    ErrorClassification.SAFETY_BLOCKED: (
        "Generation was blocked due to content safety policies."
    ),
    ErrorClassification.AUDIO_BLOCKED: (
        "Generation was blocked due to audio processing issues."
    ),
}


def _mentions(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


def _pinned(error: BaseException) -> ErrorClassification | None:
    value = getattr(error, "classification", None)
    if isinstance(value, ErrorClassification):
        return value
    if isinstance(error, ResultError):
        return ErrorClassification.PERMANENT
    return None


def classify(error: BaseException) -> ErrorClassification:
    """Classify *error*; total and deterministic."""
    pinned = _pinned(error)
    if pinned is not None:
        return pinned

    message = str(error).lower()
    status = extract_status_code(error)

    # 1. Content rejected by the service.
    if isinstance(error, SafetyBlockedError) or _mentions(message, _SAFETY_MARKERS):
        if "audio" in message:
            return ErrorClassification.AUDIO_BLOCKED
        return ErrorClassification.SAFETY_BLOCKED

    # 2. The caller's input or credentials are wrong.
    if isinstance(error, (ValidationError, ConfigurationError)):
        return ErrorClassification.USER_ACTIONABLE
    if status == NOT_FOUND or _mentions(message, _USER_MARKERS):
        return ErrorClassification.USER_ACTIONABLE

    # 3. Rejected outright.
    if status in PERMANENT_STATUS_CODES:
        return ErrorClassification.PERMANENT

    # 4. Worth another attempt.
    if status in TRANSIENT_STATUS_CODES:
        return ErrorClassification.TRANSIENT
    if status is None and getattr(error, "retryable", None) is True:
        return ErrorClassification.TRANSIENT
    if is_transport_error(error):
        return ErrorClassification.TRANSIENT
    if status is None and _mentions(message, _NETWORK_MARKERS):
        return ErrorClassification.TRANSIENT

    return ErrorClassification.PERMANENT


def is_transient(error: BaseException) -> bool:
    """True when *error* classifies as TRANSIENT. Cancellation never is."""
    if isinstance(error, asyncio.CancelledError):
        return False
    return classify(error) is ErrorClassification.TRANSIENT


def sanitize(error: BaseException, mode: RuntimeMode = "default") -> BaseException:
    """Return the error a caller should see in *mode*.

    In ``"hardened"`` mode this is a new ``SanitizedError`` carrying one of
    five fixed messages. In ``"default"`` mode it is *error* itself. The
    original is never mutated or logged.
    """
    if mode != "hardened" or not isinstance(error, Exception):
        return error
    if isinstance(error, SanitizedError):
        return error
    classification = classify(error)
    return SanitizedError(
        SANITIZED_MESSAGES[classification], classification=classification
    )


def raise_sanitized(error: BaseException, mode: RuntimeMode) -> NoReturn:
    """Raise *error* as the caller should see it in *mode*.

    A sanitized replacement is raised without its cause so raw service text
    does not leak through the traceback.
    """
    surfaced = sanitize(error, mode)
    if surfaced is error:
        raise error
    raise surfaced from None
