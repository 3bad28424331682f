"""Request payloads for the provider transport layer.

Builders in ``genmedia.operations`` produce these SDK-agnostic shapes; the
backend converts them into SDK types at the last moment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from genmedia.models import ImageInput


@dataclass(frozen=True)
class FilePart:
    """A reference to an uploaded file, optionally clipped."""

    uri: str
    mime_type: str
    start_offset: str | None = None
    end_offset: str | None = None


@dataclass(frozen=True)
class ContentRequest:
    """An immediate ``generate_content`` call.

    ``parts`` holds ``str``, ``ImageInput`` and ``FilePart`` items.
    """

    model: str
    parts: list[str | ImageInput | FilePart]
    aspect_ratio: str | None = None


@dataclass(frozen=True)
class ImagesRequest:
    """An immediate ``generate_images`` call."""

    model: str
    prompt: str
    config: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VideoRequest:
    """A long-running ``generate_videos`` call.

    ``config`` keys follow the SDK's ``GenerateVideosConfig`` field names;
    ``last_frame`` and ``reference_images`` hold ``ImageInput`` /
    ``ReferenceImage`` values.
    """

    model: str
    prompt: str | None = None
    image: ImageInput | None = None
    video: Any | None = None
    config: dict[str, Any] = field(default_factory=dict)
