"""Domain models shared by the submitter, pollers, and extractor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal, NamedTuple

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path


class AssetState(Enum):
    """Processing state of an uploaded asset."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (AssetState.ACTIVE, AssetState.FAILED)

    @classmethod
    def parse(cls, value: Any) -> AssetState:
        """Normalize SDK enums and strings like ``"FileState.ACTIVE"``.

        ``STATE_UNSPECIFIED`` and anything unknown map to PENDING, which is
        never terminal.
        """
        if value is None:
            return cls.PENDING
        name = getattr(value, "name", None)
        text = name if isinstance(name, str) and name else str(value)
        text = text.strip().split(".")[-1].upper()
        try:
            return cls(text)
        except ValueError:
            return cls.PENDING


@dataclass(frozen=True)
class RemoteAsset:
    """A file held by the remote service, referenced later by ``uri``."""

    name: str
    uri: str
    mime_type: str | None
    size_bytes: int | None
    state: AssetState
    display_name: str | None = None
    error: str | None = None
    #: Reported by the service; not enforced locally.
    expiration_time: datetime | None = None

    @property
    def is_ready(self) -> bool:
        return self.state is AssetState.ACTIVE


class RequestKind(Enum):
    """Generation request variants understood by the submitter."""

    IMAGE = "image"
    IMAGEN = "imagen"
    VIDEO_ANALYSIS = "video-analysis"
    TEXT_TO_VIDEO = "text-to-video"
    IMAGE_TO_VIDEO = "image-to-video"
    REFERENCE_IMAGES = "reference-images"
    INTERPOLATION = "interpolation"
    EXTENSION = "extension"

    @property
    def is_long_running(self) -> bool:
        return self not in (
            RequestKind.IMAGE,
            RequestKind.IMAGEN,
            RequestKind.VIDEO_ANALYSIS,
        )


@dataclass(frozen=True)
class ImageInput:
    """Raw image bytes with their MIME type."""

    data: bytes
    mime_type: str = "image/png"


@dataclass(frozen=True)
class ReferenceImage:
    """A guide image for reference-image video generation."""

    image: ImageInput
    reference_type: str = "asset"


@dataclass(frozen=True)
class ClipRange:
    """Already-validated clip boundaries in whole seconds."""

    start_s: int | None = None
    end_s: int | None = None

    @property
    def start_offset(self) -> str | None:
        return None if self.start_s is None else f"{self.start_s}s"

    @property
    def end_offset(self) -> str | None:
        return None if self.end_s is None else f"{self.end_s}s"


@dataclass(frozen=True)
class GenerationParams:
    """Parameters for one generation request.

    Only the fields relevant to the chosen ``RequestKind`` are read.
    """

    prompt: str = ""
    model: str | None = None
    aspect_ratio: str | None = None
    resolution: str | None = None
    duration_seconds: int | None = None
    negative_prompt: str | None = None
    person_generation: str | None = None
    seed: int | None = None
    number_of_images: int = 1
    input_images: tuple[ImageInput, ...] = ()
    reference_images: tuple[ReferenceImage, ...] = ()
    first_frame: ImageInput | None = None
    last_frame: ImageInput | None = None
    #: Video object returned by a previous generation (see ``ResultRef.video``).
    video: Any | None = None
    file_uri: str | None = None
    mime_type: str | None = None
    clip: ClipRange | None = None


@dataclass(frozen=True)
class OperationHandle:
    """A submitted job.

    Immediate jobs produce a handle that is already ``done``. Long-running
    jobs keep the SDK operation in ``raw`` so the poller can refresh it.
    """

    name: str | None
    done: bool
    kind: RequestKind | None = None
    response: Any | None = None
    error: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    raw: Any | None = field(default=None, repr=False, compare=False)

    @property
    def succeeded(self) -> bool:
        """Terminal without an error payload. False while still running."""
        return self.done and self.error is None

    @classmethod
    def completed(
        cls, response: Any, *, kind: RequestKind, model: str | None = None
    ) -> OperationHandle:
        """Wrap an immediate response as a terminal handle."""
        return cls(
            name=None,
            done=True,
            kind=kind,
            response=response,
            metadata={"model": model} if model else None,
        )

    @classmethod
    def from_sdk(
        cls, operation: Any, *, kind: RequestKind | None = None
    ) -> OperationHandle:
        """Build a handle from a google-genai operation object."""
        error = getattr(operation, "error", None)
        if error is not None and not isinstance(error, dict):
            error = {
                "message": getattr(error, "message", None) or str(error),
                "code": getattr(error, "code", None),
            }
        metadata = getattr(operation, "metadata", None)
        return cls(
            name=getattr(operation, "name", None),
            done=bool(getattr(operation, "done", False)),
            kind=kind,
            response=getattr(operation, "response", None),
            error=error or None,
            metadata=dict(metadata) if isinstance(metadata, dict) else None,
            raw=operation,
        )


ResultKind = Literal["video", "image", "text"]


@dataclass(frozen=True)
class ResultRef:
    """A reference to one generated artifact.

    ``video`` is the SDK video object, reusable as ``GenerationParams.video``
    for an extension request.
    """

    kind: ResultKind
    mime_type: str | None = None
    data: bytes | None = None
    text: str | None = None
    video: Any | None = field(default=None, repr=False)
    has_audio: bool | None = None


@dataclass(frozen=True)
class DownloadResult:
    """Where an artifact was written, plus the reference it came from."""

    path: Path
    ref: ResultRef


class ProgressEvent(NamedTuple):
    """One successful poll of an operation; the last one may be terminal."""

    handle: OperationHandle
    elapsed_s: float


@dataclass(frozen=True)
class JobResult:
    """One finished job in a batch: what was asked and what came back."""

    prompt: str
    kind: RequestKind
    model: str
    params: GenerationParams
    handle: OperationHandle
    refs: tuple[ResultRef, ...]
