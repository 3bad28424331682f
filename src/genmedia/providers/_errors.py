"""Shared provider-side error helpers.

SDK exceptions are mapped into ``APIError`` at the provider boundary so the
classifier and the polling loops can read status codes and retry hints from
structured fields instead of message text.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any

import httpx

from genmedia._http import RPC_STATUS_TO_HTTP, TRANSIENT_STATUS_CODES
from genmedia.errors import APIError, RateLimitError, _walk_exception_chain


def _status_from(e: BaseException) -> int | None:
    for attr in ("status_code", "code", "status"):
        value = getattr(e, attr, None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    response = getattr(e, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int) and 100 <= value <= 599:
        return value
    # google-genai errors also carry the rpc status name, e.g. "NOT_FOUND".
    rpc_status = getattr(e, "status", None)
    if isinstance(rpc_status, str):
        return RPC_STATUS_TO_HTTP.get(rpc_status.upper())
    return None


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        status = _status_from(e)
        if status is not None:
            return status
    return None


# protobuf Duration strings, e.g. "8s" or "8.352104981s".
_DURATION = re.compile(r"^(\d+(?:\.\d+)?)s$")
_RETRY_INFO_TYPE = "RetryInfo"


def _seconds(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value >= 0 else None
    if isinstance(value, str):
        text = value.strip()
        m = _DURATION.match(text)
        if m:
            return float(m.group(1))
        try:
            seconds = float(text)
        except ValueError:
            return None
        return seconds if seconds >= 0 else None
    return None


def _from_attribute(e: BaseException) -> float | None:
    return _seconds(getattr(e, "retry_after_s", None))


def _from_header(e: BaseException) -> float | None:
    headers: Any = getattr(getattr(e, "response", None), "headers", None)
    getter = getattr(headers, "get", None)
    if not callable(getter):
        return None
    return _seconds(getter("Retry-After"))


def _from_retry_info(e: BaseException) -> float | None:
    """Read ``retryDelay`` from the google.rpc error body on ``.details``.

    Shape::

        {"error": {"details": [{"@type": "...RetryInfo", "retryDelay": "8s"}]}}
    """
    details: Any = getattr(e, "details", None)
    body = details.get("error") if isinstance(details, dict) else None
    entries = body.get("details") if isinstance(body, dict) else None
    for entry in entries if isinstance(entries, list) else ():
        if not isinstance(entry, dict):
            continue
        if _RETRY_INFO_TYPE not in str(entry.get("@type", "")):
            continue
        delay = entry.get("retryDelay")
        if isinstance(delay, str) and _DURATION.match(delay):
            return _seconds(delay)
    return None


_RETRY_AFTER_SOURCES = (_from_attribute, _from_header, _from_retry_info)


def extract_retry_after_s(exc: BaseException) -> float | None:
    """Walk the exception chain to find a server-suggested delay in seconds."""
    for e in _walk_exception_chain(exc):
        for source in _RETRY_AFTER_SOURCES:
            seconds = source(e)
            if seconds is not None:
                return seconds
    return None


def is_transport_error(exc: BaseException) -> bool:
    """True when the chain holds a transport-level failure (timeout, reset, ...)."""
    for e in _walk_exception_chain(exc):
        if isinstance(e, (TimeoutError, asyncio.TimeoutError, ConnectionError)):
            return True
        if isinstance(e, httpx.TransportError):
            return True
    return False


def _auth_hint(status_code: int | None, cause_message: str) -> str | None:
    cause_lower = cause_message.lower()
    if status_code in {401, 403} or (
        status_code == 400 and ("api key" in cause_lower or "api_key" in cause_lower)
    ):
        return (
            "Check credentials/permissions "
            "(set GOOGLE_GENAI_API_KEY or pass Config(api_key=...))."
        )
    return None


def wrap_provider_error(
    exc: BaseException,
    *,
    provider: str,
    phase: str,
    message: str | None = None,
    hint: str | None = None,
) -> APIError:
    """Map provider SDK exceptions into APIError with stable retry metadata."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    if isinstance(exc, APIError):
        if exc.provider is None:
            exc.provider = provider
        if exc.phase is None:
            exc.phase = phase
        if hint is not None and exc.hint is None:
            exc.hint = hint
        return exc

    status_code = extract_status_code(exc)
    retry_after_s = extract_retry_after_s(exc)

    retryable = retry_after_s is not None or is_transport_error(exc)
    if isinstance(status_code, int) and status_code in TRANSIENT_STATUS_CODES:
        retryable = True

    derived_hint = hint if hint is not None else _auth_hint(status_code, str(exc))

    msg = message or f"{provider} {phase} failed"
    err_cls: type[APIError] = RateLimitError if status_code == 429 else APIError

    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    cause = str(exc)
    return err_cls(
        f"{msg}{status_note}: {cause}" if cause else f"{msg}{status_note}",
        hint=derived_hint,
        retryable=retryable,
        status_code=status_code,
        retry_after_s=retry_after_s,
        provider=provider,
        phase=phase,
    )
