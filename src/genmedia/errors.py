"""Exception hierarchy for genmedia."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from genmedia._http import http_status_for

if TYPE_CHECKING:
    from collections.abc import Iterator

    from genmedia.classify import ErrorClassification


class GenMediaError(Exception):
    """Base exception for all genmedia errors.

    Subclasses may pin a ``classification`` so the classifier does not have
    to guess from message text.
    """

    classification: ErrorClassification | None = None

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(GenMediaError):
    """Configuration validation or resolution failed."""


class MissingCredentialsError(ConfigurationError):
    """No API key could be resolved."""


class ValidationError(GenMediaError):
    """Request parameters or local inputs were rejected before any remote call."""


class APIError(GenMediaError):
    """A remote call failed.

    The provider layer attaches structured metadata so callers can classify
    and retry without substring matching.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        retryable: bool | None = None,
        status_code: int | None = None,
        retry_after_s: float | None = None,
        provider: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.retryable = retryable
        self.status_code = status_code
        self.retry_after_s = retry_after_s
        self.provider = provider
        self.phase = phase


class RateLimitError(APIError):
    """Rate limit exceeded (HTTP 429)."""


class AssetProcessingError(APIError):
    """The service reported a terminal FAILED state for an uploaded asset."""

    def __init__(self, message: str, *, asset_name: str, reason: str) -> None:
        super().__init__(message, phase="upload")
        self.asset_name = asset_name
        self.reason = reason


class AssetTimeoutError(GenMediaError):
    """An uploaded asset did not become ACTIVE within the attempt budget.

    The service may still be processing it; ``asset_name`` identifies it.
    """

    def __init__(self, message: str, *, asset_name: str, attempts: int) -> None:
        super().__init__(
            message,
            hint="Try again in a few minutes; the file may still be processing.",
        )
        self.asset_name = asset_name
        self.attempts = attempts


class OperationFailedError(APIError):
    """A long-running operation finished with an error payload."""

    def __init__(
        self,
        message: str,
        *,
        operation_name: str | None,
        code: int | None = None,
        details: Any | None = None,
    ) -> None:
        super().__init__(message, status_code=http_status_for(code), phase="poll")
        self.operation_name = operation_name
        self.code = code
        self.details = details


class OperationTimeoutError(GenMediaError):
    """Polling gave up before the operation finished.

    The timeout is local only: the remote job keeps running and can be
    tracked again using ``operation_name``.
    """

    def __init__(
        self,
        message: str,
        *,
        operation_name: str | None,
        elapsed_s: float,
        attempts: int,
    ) -> None:
        super().__init__(
            message,
            hint="Resume tracking later with the operation name.",
        )
        self.operation_name = operation_name
        self.elapsed_s = elapsed_s
        self.attempts = attempts


class ResultError(GenMediaError):
    """A result was requested from an operation that cannot provide one."""


class SafetyBlockedError(GenMediaError):
    """The service filtered the generated output."""

    def __init__(self, message: str, *, reasons: list[str] | None = None) -> None:
        super().__init__(message, hint="Rephrase the prompt or change the inputs.")
        self.reasons = list(reasons or [])


class SanitizedError(GenMediaError):
    """A generic, classification-specific replacement for a raw error."""

    def __init__(self, message: str, *, classification: ErrorClassification) -> None:
        super().__init__(message)
        self.classification = classification


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, once each."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
