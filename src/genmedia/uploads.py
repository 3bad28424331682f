"""Upload a local asset and wait until the service has processed it.

Uploaded videos go through ``PENDING``/``PROCESSING`` before they can be
referenced by a generation request. ``AssetUploader`` polls the file state
with adaptive backoff until it is ``ACTIVE`` (ready) or ``FAILED``.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
import time
from typing import TYPE_CHECKING, Any

from genmedia._http import TOO_MANY_REQUESTS
from genmedia.classify import is_transient, raise_sanitized
from genmedia.constants import VIDEO_RECOMMENDED_MAX
from genmedia.errors import (
    APIError,
    AssetProcessingError,
    AssetTimeoutError,
    RateLimitError,
)
from genmedia.models import AssetState, RemoteAsset
from genmedia.polling import ASSET_POLL_POLICY
from genmedia.providers._errors import extract_retry_after_s, extract_status_code
from genmedia.validation import validate_video_path

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from genmedia.classify import RuntimeMode
    from genmedia.polling import PollPolicy
    from genmedia.providers.base import MediaBackend

    Sleep = Callable[[float], Awaitable[Any]]
    Clock = Callable[[], float]


def _file_error_message(file_obj: Any) -> str | None:
    err = getattr(file_obj, "error", None)
    if err is None:
        return None
    if isinstance(err, dict):
        return str(err.get("message") or err.get("details") or err)
    return str(getattr(err, "message", None) or err)


def asset_from_file(file_obj: Any) -> RemoteAsset:
    """Build a ``RemoteAsset`` from a Files API object."""
    name = getattr(file_obj, "name", None)
    if not isinstance(name, str) or not name:
        raise APIError("Upload did not return a file identifier", phase="upload")
    uri = getattr(file_obj, "uri", None)
    size = getattr(file_obj, "size_bytes", None)
    return RemoteAsset(
        name=name,
        uri=uri if isinstance(uri, str) and uri else name,
        mime_type=getattr(file_obj, "mime_type", None),
        size_bytes=size if isinstance(size, int) else None,
        state=AssetState.parse(getattr(file_obj, "state", None)),
        display_name=getattr(file_obj, "display_name", None),
        error=_file_error_message(file_obj),
        expiration_time=getattr(file_obj, "expiration_time", None),
    )


def _processing_error(name: str, error: str | None) -> AssetProcessingError:
    reason = error or "unknown error"
    return AssetProcessingError(
        f"File processing failed: {reason}", asset_name=name, reason=reason
    )


def _is_rate_limited(exc: BaseException) -> bool:
    return (
        isinstance(exc, RateLimitError)
        or extract_status_code(exc) == TOO_MANY_REQUESTS
    )


class AssetUploader:
    """Uploads local files and waits for them to become ACTIVE."""

    def __init__(
        self,
        backend: MediaBackend,
        *,
        policy: PollPolicy = ASSET_POLL_POLICY,
        mode: RuntimeMode = "default",
        sleep: Sleep | None = None,
        clock: Clock | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.backend = backend
        self.policy = policy
        self.mode = mode
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic
        self._log = logger or logging.getLogger(__name__)

    async def upload(
        self, path: str | Path, *, display_name: str | None = None
    ) -> RemoteAsset:
        """Validate, upload, and wait until the asset is ACTIVE.

        Raises:
            ValidationError: The local file failed pre-upload checks.
            AssetProcessingError: The service reported ``FAILED``.
            AssetTimeoutError: The attempt budget ran out; names the asset.
        """
        asset = await self.send(path, display_name=display_name)
        return await self.ready(asset)

    async def send(
        self, path: str | Path, *, display_name: str | None = None
    ) -> RemoteAsset:
        """Validate and upload *path* without waiting for processing.

        The returned asset exists on the service in whatever state the upload
        reported; releasing it is the caller's job.
        """
        try:
            mime_type, size = validate_video_path(path)
            p = Path(path)
            self._log.info("Uploading %s (%.1fMB)", p.name, size / (1024 * 1024))
            if size > VIDEO_RECOMMENDED_MAX:
                self._log.warning(
                    "%s is larger than %dMB; processing may take several minutes",
                    p.name,
                    VIDEO_RECOMMENDED_MAX // (1024 * 1024),
                )
            file_obj = await self.backend.upload_file(
                p, mime_type=mime_type, display_name=display_name or p.name
            )
            asset = asset_from_file(file_obj)
        except Exception as e:
            raise_sanitized(e, self.mode)
        self._log.debug("Uploaded %s as %s", p.name, asset.name)
        return asset

    async def ready(self, asset: RemoteAsset) -> RemoteAsset:
        """Wait until an asset returned by ``send`` is ACTIVE.

        A terminal state reported by the upload itself is acted on without
        another lookup.
        """
        if asset.is_ready:
            return asset
        try:
            if asset.state is AssetState.FAILED:
                raise _processing_error(asset.name, asset.error)
            return await self._wait(asset.name, state=asset.state)
        except AssetTimeoutError:
            raise
        except Exception as e:
            raise_sanitized(e, self.mode)

    async def wait_until_ready(self, name: str) -> RemoteAsset:
        """Poll an already-uploaded asset by name until it is ACTIVE."""
        try:
            return await self._wait(name)
        except AssetTimeoutError:
            raise
        except Exception as e:
            raise_sanitized(e, self.mode)

    async def _wait(
        self, name: str, *, state: AssetState | None = None
    ) -> RemoteAsset:
        policy = self.policy
        interval = next(policy.intervals())
        started = self._clock()
        last_state = state

        for attempt in range(1, policy.max_attempts + 1):
            try:
                current = asset_from_file(await self.backend.get_file(name))
            except Exception as e:
                if not is_transient(e):
                    raise
                if attempt == policy.max_attempts:
                    break
                if _is_rate_limited(e):
                    cooldown = max(
                        policy.rate_limit_cooldown_s, extract_retry_after_s(e) or 0.0
                    )
                    self._log.warning(
                        "Rate limited while checking %s; waiting %.0fs", name, cooldown
                    )
                    await self._sleep(cooldown)
                else:
                    self._log.debug(
                        "Transient error checking %s (attempt %d/%d): %s",
                        name,
                        attempt,
                        policy.max_attempts,
                        e,
                    )
                    await self._sleep(interval)
                    interval = policy.next_interval(interval)
                continue

            if current.state is not last_state:
                self._log.debug(
                    "Asset %s: %s -> %s",
                    name,
                    last_state.value if last_state else None,
                    current.state.value,
                )
                last_state = current.state

            if current.state is AssetState.ACTIVE:
                self._log.info(
                    "Asset %s is ready after %.1fs", name, self._clock() - started
                )
                return current
            if current.state is AssetState.FAILED:
                raise _processing_error(name, current.error)

            if attempt < policy.max_attempts:
                await self._sleep(interval)
                interval = policy.next_interval(interval)

        raise AssetTimeoutError(
            f"File {name} did not become ACTIVE after {policy.max_attempts} attempts "
            f"({self._clock() - started:.0f}s). It may still be processing.",
            asset_name=name,
            attempts=policy.max_attempts,
        )
