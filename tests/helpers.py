"""Test helpers: SDK-shaped builders and a virtual clock.

The builders return plain objects with the attribute names the google-genai
SDK uses, which is all the production code reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

from tests.conftest import FakeBackend

__all__ = [
    "FakeBackend",
    "FakeTimer",
    "SdkError",
    "content_response",
    "imagen_response",
    "sdk_file",
    "sdk_operation",
    "sdk_video",
    "text_response",
    "video_response",
]


@dataclass
class FakeTimer:
    """Virtual time: ``sleep`` records the wait and advances ``clock``."""

    now: float = 0.0
    sleeps: list[float] = field(default_factory=list)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def clock(self) -> float:
        return self.now


class SdkError(Exception):
    """Mimics google-genai ``APIError``: numeric ``code`` plus rpc ``status``."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        status: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status = status
        self.details = details


def sdk_file(
    name: str = "files/abc",
    state: str | None = "PROCESSING",
    *,
    uri: str | None = None,
    mime_type: str = "video/mp4",
    size_bytes: int | None = 1024,
    error: Any = None,
) -> Any:
    return SimpleNamespace(
        name=name,
        uri=uri if uri is not None else f"https://files.example/{name}",
        mime_type=mime_type,
        size_bytes=size_bytes,
        state=type("State", (), {"name": state})() if state else None,
        display_name=None,
        error=error,
        expiration_time=None,
    )


def sdk_operation(
    name: str = "operations/op1",
    *,
    done: bool = False,
    response: Any = None,
    error: Any = None,
    metadata: dict[str, Any] | None = None,
) -> Any:
    return SimpleNamespace(
        name=name, done=done, response=response, error=error, metadata=metadata
    )


def sdk_video(data: bytes | None = b"mp4-bytes", *, uri: str | None = None) -> Any:
    return SimpleNamespace(video_bytes=data, mime_type="video/mp4", uri=uri)


def video_response(
    *videos: Any, filtered_reasons: list[str] | None = None
) -> Any:
    return SimpleNamespace(
        generated_videos=[SimpleNamespace(video=v) for v in videos],
        rai_media_filtered_reasons=filtered_reasons,
        rai_media_filtered_count=len(filtered_reasons) if filtered_reasons else None,
    )


def imagen_response(*images: bytes, filtered_reason: str | None = None) -> Any:
    generated = [
        SimpleNamespace(
            image=SimpleNamespace(image_bytes=data, mime_type="image/png"),
            rai_filtered_reason=None,
        )
        for data in images
    ]
    if filtered_reason:
        generated.append(
            SimpleNamespace(image=None, rai_filtered_reason=filtered_reason)
        )
    return SimpleNamespace(generated_images=generated)


def _candidates(parts: list[Any], finish_reason: str | None = None) -> list[Any]:
    return [
        SimpleNamespace(
            content=SimpleNamespace(parts=parts), finish_reason=finish_reason
        )
    ]


def content_response(
    *images: bytes, block_reason: str | None = None, text: str | None = None
) -> Any:
    parts: list[Any] = []
    if text:
        parts.append(SimpleNamespace(text=text, inline_data=None))
    parts.extend(
        SimpleNamespace(
            text=None, inline_data=SimpleNamespace(data=d, mime_type="image/png")
        )
        for d in images
    )
    return SimpleNamespace(
        candidates=_candidates(parts),
        prompt_feedback=SimpleNamespace(block_reason=block_reason),
    )


def text_response(*texts: str, finish_reason: str | None = None) -> Any:
    parts = [SimpleNamespace(text=t, inline_data=None) for t in texts]
    return SimpleNamespace(
        candidates=_candidates(parts, finish_reason),
        prompt_feedback=None,
    )
