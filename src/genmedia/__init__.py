"""genmedia: image and video generation jobs against Google GenAI.

Public API:
    - BatchOrchestrator: upload, submit, poll, extract, and clean up
    - OperationSubmitter / OperationPoller: one job at a time
    - AssetUploader / managed_asset / cleanup: remote file lifecycle
    - classify / sanitize: error taxonomy for callers
    - Config: Configuration dataclass
"""

from __future__ import annotations

import logging

from genmedia.classify import ErrorClassification, classify, sanitize
from genmedia.cleanup import cleanup, managed_asset
from genmedia.config import Config
from genmedia.errors import (
    APIError,
    AssetProcessingError,
    AssetTimeoutError,
    ConfigurationError,
    GenMediaError,
    MissingCredentialsError,
    OperationFailedError,
    OperationTimeoutError,
    RateLimitError,
    ResultError,
    SafetyBlockedError,
    SanitizedError,
    ValidationError,
)
from genmedia.models import (
    AssetState,
    GenerationParams,
    OperationHandle,
    RemoteAsset,
    RequestKind,
    ResultRef,
)
from genmedia.operations import OperationPoller, OperationSubmitter
from genmedia.orchestrator import BatchOrchestrator
from genmedia.polling import PollPolicy
from genmedia.providers import GeminiBackend
from genmedia.results import ResultDownloader, extract
from genmedia.uploads import AssetUploader

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("genmedia")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("genmedia").addHandler(logging.NullHandler())


def create_orchestrator(
    config: Config, *, logger: logging.Logger | None = None
) -> BatchOrchestrator:
    """Build an orchestrator wired to the Gemini backend with *config*'s policies."""
    if not config.api_key:
        raise MissingCredentialsError(
            "api_key required for real API",
            hint="Set GOOGLE_GENAI_API_KEY or pass Config(api_key=...).",
        )
    backend = GeminiBackend(config.api_key, logger=logger)
    mode = config.mode or "default"
    return BatchOrchestrator(
        backend,
        mode=mode,
        uploader=AssetUploader(
            backend, policy=config.asset_poll, mode=mode, logger=logger
        ),
        operation_policy=config.operation_poll,
        logger=logger,
    )


__all__ = [
    "APIError",
    "AssetProcessingError",
    "AssetState",
    "AssetTimeoutError",
    "AssetUploader",
    "BatchOrchestrator",
    "Config",
    "ConfigurationError",
    "ErrorClassification",
    "GeminiBackend",
    "GenMediaError",
    "GenerationParams",
    "MissingCredentialsError",
    "OperationFailedError",
    "OperationHandle",
    "OperationPoller",
    "OperationSubmitter",
    "OperationTimeoutError",
    "PollPolicy",
    "RateLimitError",
    "RemoteAsset",
    "RequestKind",
    "ResultDownloader",
    "ResultError",
    "ResultRef",
    "SafetyBlockedError",
    "SanitizedError",
    "ValidationError",
    "classify",
    "cleanup",
    "create_orchestrator",
    "extract",
    "managed_asset",
    "sanitize",
]
