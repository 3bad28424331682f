"""Submit generation requests and poll long-running operations.

``OperationSubmitter`` turns a ``RequestKind`` plus ``GenerationParams`` into
exactly one remote call. Immediate kinds (images, video analysis) come back
as handles that are already ``done``. Video kinds come back as running
operations, which ``OperationPoller`` refreshes at a fixed interval until
they finish.

Retry happens only inside the poller. Errors reach the caller through
``raise_sanitized`` so hardened deployments never see raw service text.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
import logging
import time
from typing import TYPE_CHECKING, Any

from genmedia._http import NOT_FOUND
from genmedia.classify import is_transient, raise_sanitized
from genmedia.constants import (
    DEFAULT_VEO_MODEL,
    FILE_RETENTION_HOURS,
    GEMINI_IMAGE_MODEL,
    IMAGEN_MODEL,
    VEO_EXTENSION_RESOLUTION,
    VEO_FIXED_DURATION_S,
    VIDEO_ANALYSIS_MODEL,
)
from genmedia.errors import (
    APIError,
    OperationFailedError,
    OperationTimeoutError,
)
from genmedia.models import OperationHandle, ProgressEvent, RequestKind
from genmedia.polling import OPERATION_POLL_POLICY
from genmedia.providers._errors import extract_status_code
from genmedia.providers.models import (
    ContentRequest,
    FilePart,
    ImagesRequest,
    VideoRequest,
)
from genmedia.validation import validate_request

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from genmedia.classify import RuntimeMode
    from genmedia.models import GenerationParams
    from genmedia.polling import PollPolicy
    from genmedia.providers.base import MediaBackend

    Sleep = Callable[[float], Awaitable[Any]]
    Clock = Callable[[], float]
    ProgressCallback = Callable[[OperationHandle, float], Any]

_DEFAULT_MODELS: dict[RequestKind, str] = {
    RequestKind.IMAGE: GEMINI_IMAGE_MODEL,
    RequestKind.IMAGEN: IMAGEN_MODEL,
    RequestKind.VIDEO_ANALYSIS: VIDEO_ANALYSIS_MODEL,
}


def default_model(kind: RequestKind) -> str:
    """Model used for *kind* when the params do not name one."""
    return _DEFAULT_MODELS.get(kind, DEFAULT_VEO_MODEL)


def _preview(text: str | None, limit: int = 100) -> str:
    if not text:
        return ""
    return text if len(text) <= limit else f"{text[:limit]}..."


# ---------------------------------------------------------------------------
# Request builders
# ---------------------------------------------------------------------------


def build_content_request(
    kind: RequestKind, model: str, params: GenerationParams
) -> ContentRequest:
    """Gemini image generation or video analysis."""
    if kind is RequestKind.VIDEO_ANALYSIS:
        clip = params.clip
        file_part = FilePart(
            uri=params.file_uri or "",
            mime_type=params.mime_type or "video/mp4",
            start_offset=clip.start_offset if clip else None,
            end_offset=clip.end_offset if clip else None,
        )
        return ContentRequest(model=model, parts=[params.prompt, file_part])
    return ContentRequest(
        model=model,
        parts=[params.prompt, *params.input_images],
        aspect_ratio=params.aspect_ratio,
    )


def build_images_request(model: str, params: GenerationParams) -> ImagesRequest:
    """Imagen generation; one request may return several images."""
    config: dict[str, Any] = {"number_of_images": params.number_of_images}
    if params.aspect_ratio:
        config["aspect_ratio"] = params.aspect_ratio
    if params.person_generation:
        config["person_generation"] = params.person_generation
    return ImagesRequest(model=model, prompt=params.prompt, config=config)


def _common_video_config(params: GenerationParams) -> dict[str, Any]:
    config: dict[str, Any] = {}
    if params.negative_prompt:
        config["negative_prompt"] = params.negative_prompt
    if params.aspect_ratio:
        config["aspect_ratio"] = params.aspect_ratio
    return config


def build_video_request(
    kind: RequestKind, model: str, params: GenerationParams
) -> VideoRequest:
    """Build the Veo request variant for *kind*."""
    config = _common_video_config(params)

    if kind in (RequestKind.TEXT_TO_VIDEO, RequestKind.IMAGE_TO_VIDEO):
        if params.resolution:
            config["resolution"] = params.resolution
        if params.duration_seconds:
            config["duration_seconds"] = params.duration_seconds
        if params.person_generation:
            config["person_generation"] = params.person_generation
        if params.seed is not None:
            config["seed"] = params.seed
        image = params.first_frame if kind is RequestKind.IMAGE_TO_VIDEO else None
        return VideoRequest(
            model=model, prompt=params.prompt, image=image, config=config
        )

    if kind is RequestKind.REFERENCE_IMAGES:
        config["duration_seconds"] = VEO_FIXED_DURATION_S
        config["reference_images"] = list(params.reference_images)
        return VideoRequest(model=model, prompt=params.prompt, config=config)

    if kind is RequestKind.INTERPOLATION:
        config["duration_seconds"] = VEO_FIXED_DURATION_S
        config["last_frame"] = params.last_frame
        return VideoRequest(
            model=model,
            prompt=params.prompt or "",
            image=params.first_frame,
            config=config,
        )

    if kind is RequestKind.EXTENSION:
        config.pop("aspect_ratio", None)
        config["number_of_videos"] = 1
        config["resolution"] = VEO_EXTENSION_RESOLUTION
        return VideoRequest(
            model=model,
            prompt=params.prompt or None,
            video=params.video,
            config=config,
        )

    raise ValueError(f"{kind.value} is not a video generation mode")


# ---------------------------------------------------------------------------
# Submitter
# ---------------------------------------------------------------------------


class OperationSubmitter:
    """Validates and submits one generation request per call.

    Never retries: a rejected submission is final.
    """

    def __init__(
        self,
        backend: MediaBackend,
        *,
        mode: RuntimeMode = "default",
        logger: logging.Logger | None = None,
    ) -> None:
        self.backend = backend
        self.mode = mode
        self._log = logger or logging.getLogger(__name__)

    async def submit(
        self, kind: RequestKind, params: GenerationParams
    ) -> OperationHandle:
        """Submit *params* as *kind* and return the resulting handle."""
        model = params.model or default_model(kind)
        try:
            validate_request(kind, model, params)
            self._log.info("Starting %s generation with %s", kind.value, model)
            self._log.debug("Prompt: %r", _preview(params.prompt))
            if kind is RequestKind.VIDEO_ANALYSIS:
                return await self._analyze(model, params)
            if kind is RequestKind.IMAGE:
                response = await self.backend.generate_content(
                    build_content_request(kind, model, params)
                )
                return OperationHandle.completed(response, kind=kind, model=model)
            if kind is RequestKind.IMAGEN:
                response = await self.backend.generate_images(
                    build_images_request(model, params)
                )
                return OperationHandle.completed(response, kind=kind, model=model)

            operation = await self.backend.generate_videos(
                build_video_request(kind, model, params)
            )
            handle = OperationHandle.from_sdk(operation, kind=kind)
            handle = replace(
                handle, metadata={"model": model, **(handle.metadata or {})}
            )
            self._log.info("Video generation started (operation: %s)", handle.name)
            return handle
        except Exception as e:
            self._log.error("%s submission failed: %s", kind.value, type(e).__name__)
            raise_sanitized(e, self.mode)

    async def _analyze(self, model: str, params: GenerationParams) -> OperationHandle:
        self._log.debug("Analyzing %s", params.file_uri)
        try:
            response = await self.backend.generate_content(
                build_content_request(RequestKind.VIDEO_ANALYSIS, model, params)
            )
        except APIError as e:
            if extract_status_code(e) != NOT_FOUND:
                raise
            raise APIError(
                "Video file not found. The file may have expired (files expire "
                f"after {FILE_RETENTION_HOURS} hours) or was deleted.",
                hint="Upload the video again.",
                status_code=NOT_FOUND,
                provider=e.provider,
                phase=e.phase,
            ) from e
        self._log.info("Video analysis complete")
        return OperationHandle.completed(
            response, kind=RequestKind.VIDEO_ANALYSIS, model=model
        )

    def resume(self, name: str, *, kind: RequestKind | None = None) -> OperationHandle:
        """Handle for an operation submitted earlier, e.g. after a poll timeout."""
        return OperationHandle(name=name, done=False, kind=kind)


# ---------------------------------------------------------------------------
# Poller
# ---------------------------------------------------------------------------


def _failure(handle: OperationHandle) -> OperationFailedError:
    payload = handle.error or {}
    message = payload.get("message") or "unknown error"
    code = payload.get("code")
    suffix = f" (code {code})" if code is not None else ""
    return OperationFailedError(
        f"Video generation failed: {message}{suffix}",
        operation_name=handle.name,
        code=code if isinstance(code, int) else None,
        details=payload.get("details"),
    )


class OperationPoller:
    """Refreshes a long-running operation until it is terminal.

    ``track`` exposes each successful poll as a ``ProgressEvent``; ``wait``
    consumes that stream and returns the terminal handle.
    """

    def __init__(
        self,
        backend: MediaBackend,
        *,
        mode: RuntimeMode = "default",
        sleep: Sleep | None = None,
        clock: Clock | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.backend = backend
        self.mode = mode
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic
        self._log = logger or logging.getLogger(__name__)

    async def track(
        self, handle: OperationHandle, policy: PollPolicy = OPERATION_POLL_POLICY
    ) -> AsyncIterator[ProgressEvent]:
        """Yield one event per successful poll, ending with the terminal one.

        Nothing is yielded for a handle that is already done. A terminal
        handle with an error payload raises ``OperationFailedError`` instead
        of being yielded.

        Raises:
            OperationFailedError: The operation finished with an error.
            OperationTimeoutError: ``policy.max_attempts`` polls without a
                terminal state. The remote job is not cancelled.
        """
        if handle.done:
            if handle.error:
                raise_sanitized(_failure(handle), self.mode)
            return

        started = self._clock()
        current = handle
        target: Any = handle.raw if handle.raw is not None else handle.name
        intervals = policy.intervals()

        for attempt in range(1, policy.max_attempts + 1):
            await self._sleep(next(intervals))
            try:
                refreshed = await self.backend.get_operation(target)
            except Exception as e:
                if is_transient(e):
                    self._log.warning(
                        "Poll %d/%d for %s failed, will retry: %s",
                        attempt,
                        policy.max_attempts,
                        current.name,
                        type(e).__name__,
                    )
                    continue
                raise_sanitized(e, self.mode)

            target = refreshed
            polled = OperationHandle.from_sdk(refreshed, kind=handle.kind)
            current = replace(
                polled, metadata={**(handle.metadata or {}), **(polled.metadata or {})}
            )
            elapsed = self._clock() - started
            if current.done:
                if current.error:
                    self._log.error("Operation %s failed", current.name)
                    raise_sanitized(_failure(current), self.mode)
                self._log.info(
                    "Operation %s completed after %.0fs", current.name, elapsed
                )
            else:
                self._log.debug(
                    "Operation %s still running (%.0fs elapsed, poll %d/%d)",
                    current.name,
                    elapsed,
                    attempt,
                    policy.max_attempts,
                )
            yield ProgressEvent(current, elapsed)
            if current.done:
                return

        elapsed = self._clock() - started
        raise OperationTimeoutError(
            f"Video generation timed out after {elapsed:.0f}s "
            f"({policy.max_attempts} attempts). The operation may still be "
            f"processing. Operation: {current.name}",
            operation_name=current.name,
            elapsed_s=elapsed,
            attempts=policy.max_attempts,
        )

    async def wait(
        self,
        handle: OperationHandle,
        policy: PollPolicy = OPERATION_POLL_POLICY,
        on_progress: ProgressCallback | None = None,
    ) -> OperationHandle:
        """Return the terminal handle; no network call if *handle* is done.

        *on_progress* is called with ``(handle, elapsed_s)`` after each
        successful poll that is not yet terminal.
        """
        final = handle
        async for event in self.track(handle, policy):
            final = event.handle
            if not final.done and on_progress is not None:
                on_progress(final, event.elapsed_s)
        return final
