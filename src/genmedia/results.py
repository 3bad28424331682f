"""Extract artifacts from terminal handles and write them to disk.

``extract`` and ``extract_all`` only read the handle already in memory.
Their preconditions (terminal, successful, expected payload) are checked
before ``ResultDownloader.download`` makes any network call.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from genmedia.classify import raise_sanitized
from genmedia.constants import DEFAULT_VEO_MODEL, VEO_MODEL_CONSTRAINTS
from genmedia.errors import ResultError, SafetyBlockedError
from genmedia.models import DownloadResult, RequestKind, ResultRef

if TYPE_CHECKING:
    from genmedia.classify import RuntimeMode
    from genmedia.models import OperationHandle
    from genmedia.providers.base import MediaBackend

NO_ANALYSIS_TEXT = "No analysis could be generated for this video."


def _model_of(handle: OperationHandle) -> str:
    model = (handle.metadata or {}).get("model")
    return model if isinstance(model, str) and model else DEFAULT_VEO_MODEL


def has_audio(model: str) -> bool:
    """Whether videos from *model* carry a native audio track."""
    constraints = VEO_MODEL_CONSTRAINTS.get(model)
    return bool(constraints and constraints.native_audio)


def _infer_kind(response: Any) -> str:
    if getattr(response, "generated_videos", None) is not None:
        return "video"
    if getattr(response, "generated_images", None) is not None:
        return "imagen"
    return "content"


def _candidate_parts(response: Any) -> list[Any]:
    parts: list[Any] = []
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        parts.extend(getattr(content, "parts", None) or [])
    return parts


def _content_block_reason(response: Any) -> str | None:
    feedback = getattr(response, "prompt_feedback", None)
    reason = getattr(feedback, "block_reason", None)
    if reason:
        return str(getattr(reason, "name", reason))
    for candidate in getattr(response, "candidates", None) or []:
        finish = getattr(candidate, "finish_reason", None)
        name = str(getattr(finish, "name", finish) or "")
        if name in ("SAFETY", "PROHIBITED_CONTENT", "IMAGE_SAFETY", "BLOCKLIST"):
            return name
    return None


def _videos(handle: OperationHandle, response: Any) -> list[ResultRef]:
    generated = getattr(response, "generated_videos", None) or []
    refs: list[ResultRef] = []
    audio = has_audio(_model_of(handle))
    for item in generated:
        video = getattr(item, "video", None)
        if video is None:
            continue
        data = getattr(video, "video_bytes", None)
        refs.append(
            ResultRef(
                kind="video",
                mime_type=getattr(video, "mime_type", None) or "video/mp4",
                data=bytes(data) if data else None,
                video=video,
                has_audio=audio,
            )
        )
    if not refs:
        reasons = list(getattr(response, "rai_media_filtered_reasons", None) or [])
        if reasons or getattr(response, "rai_media_filtered_count", None):
            raise SafetyBlockedError(
                "Video was blocked by safety filters: "
                + ("; ".join(reasons) or "no reason given"),
                reasons=reasons,
            )
    return refs


def _imagen(response: Any) -> list[ResultRef]:
    refs: list[ResultRef] = []
    reasons: list[str] = []
    for item in getattr(response, "generated_images", None) or []:
        image = getattr(item, "image", None)
        data = getattr(image, "image_bytes", None)
        if data:
            refs.append(
                ResultRef(
                    kind="image",
                    mime_type=getattr(image, "mime_type", None) or "image/png",
                    data=bytes(data),
                )
            )
        elif getattr(item, "rai_filtered_reason", None):
            reasons.append(str(item.rai_filtered_reason))
    if not refs and reasons:
        raise SafetyBlockedError(
            "Image was blocked by safety filters: " + "; ".join(reasons),
            reasons=reasons,
        )
    return refs


def _content_images(response: Any) -> list[ResultRef]:
    refs: list[ResultRef] = []
    for part in _candidate_parts(response):
        inline = getattr(part, "inline_data", None)
        data = getattr(inline, "data", None)
        if data:
            refs.append(
                ResultRef(
                    kind="image",
                    mime_type=getattr(inline, "mime_type", None) or "image/png",
                    data=bytes(data),
                )
            )
    if not refs:
        reason = _content_block_reason(response)
        if reason:
            raise SafetyBlockedError(
                f"Image generation was blocked by safety filters: {reason}",
                reasons=[reason],
            )
    return refs


def _analysis_text(response: Any) -> list[ResultRef]:
    reason = _content_block_reason(response)
    texts = [getattr(p, "text", None) for p in _candidate_parts(response)]
    text = "".join(t for t in texts if isinstance(t, str)).strip()
    if not text and reason:
        raise SafetyBlockedError(
            f"Video analysis was blocked by safety filters: {reason}",
            reasons=[reason],
        )
    return [
        ResultRef(kind="text", mime_type="text/plain", text=text or NO_ANALYSIS_TEXT)
    ]


def extract_all(handle: OperationHandle) -> list[ResultRef]:
    """Every artifact carried by a terminal, successful handle.

    Raises:
        ResultError: The handle is not done, finished with an error, or has
            no artifact of the expected shape.
        SafetyBlockedError: The service filtered every output.
    """
    if not handle.done:
        raise ResultError(
            "Cannot extract result: operation is not complete. "
            "Wait for the operation to finish first."
        )
    if handle.error:
        message = handle.error.get("message") or "unknown error"
        raise ResultError(f"Cannot extract result: operation failed: {message}")

    response = handle.response
    if response is None:
        raise ResultError("No result in operation response")

    kind = handle.kind
    if kind is RequestKind.VIDEO_ANALYSIS:
        return _analysis_text(response)
    if kind is RequestKind.IMAGEN:
        refs = _imagen(response)
    elif kind is RequestKind.IMAGE:
        refs = _content_images(response)
    elif kind is not None and kind.is_long_running:
        refs = _videos(handle, response)
    else:
        inferred = _infer_kind(response)
        if inferred == "video":
            refs = _videos(handle, response)
        elif inferred == "imagen":
            refs = _imagen(response)
        else:
            refs = _content_images(response)

    if not refs:
        label = "video" if kind is None or kind.is_long_running else "image"
        raise ResultError(f"No {label} found in operation response")
    return refs


def extract(handle: OperationHandle) -> ResultRef:
    """The first artifact of a terminal, successful handle."""
    return extract_all(handle)[0]


class ResultDownloader:
    """Writes extracted artifacts to local paths."""

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

    async def download(
        self, handle: OperationHandle, destination: str | Path, *, index: int = 0
    ) -> DownloadResult:
        """Write the *index*-th artifact of *handle* to *destination*."""
        try:
            refs = extract_all(handle)
            if index >= len(refs):
                raise ResultError(
                    f"Result index {index} out of range ({len(refs)} available)"
                )
            return await self._save(refs[index], destination)
        except Exception as e:
            raise_sanitized(e, self.mode)

    async def save(self, ref: ResultRef, destination: str | Path) -> DownloadResult:
        """Write one artifact, fetching video bytes when they are not inline."""
        try:
            return await self._save(ref, destination)
        except Exception as e:
            raise_sanitized(e, self.mode)

    async def _save(self, ref: ResultRef, destination: str | Path) -> DownloadResult:
        path = Path(destination)
        if ref.kind == "text":
            payload = (ref.text or "").encode("utf-8")
        elif ref.data is not None:
            payload = ref.data
        elif ref.kind == "video" and ref.video is not None:
            self._log.info("Downloading video to %s", path)
            payload = await self.backend.download_video(ref.video)
        else:
            raise ResultError(f"No {ref.kind} data to save")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(payload)
        self._log.debug("Saved %s (%d bytes)", path, len(payload))
        return DownloadResult(path=path, ref=ref)
