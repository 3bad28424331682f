"""Gemini backend: SDK call shapes and error mapping.

The google-genai client is replaced with fakes on ``backend._client`` so the
conversion from request payloads to SDK types is exercised without network.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

from google.genai import types
import pytest

from genmedia.errors import APIError, MissingCredentialsError, RateLimitError
from genmedia.models import ImageInput
from genmedia.providers import GeminiBackend, MediaBackend
from genmedia.providers.models import (
    ContentRequest,
    FilePart,
    ImagesRequest,
    VideoRequest,
)
from tests.helpers import FakeBackend, SdkError, sdk_file

pytestmark = pytest.mark.contract

PNG = ImageInput(b"\x89PNG\r\n\x1a\n", "image/png")


class _FakeGeminiFiles:
    """Captures Files API interactions."""

    def __init__(self, *, result: Any = None, error: BaseException | None = None):
        self.result = result
        self.error = error
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def _call(self, method: str, **kwargs: Any) -> Any:
        self.calls.append((method, kwargs))
        if self.error is not None:
            raise self.error
        return self.result

    async def upload(self, **kwargs: Any) -> Any:
        return await self._call("upload", **kwargs)

    async def get(self, **kwargs: Any) -> Any:
        return await self._call("get", **kwargs)

    async def delete(self, **kwargs: Any) -> Any:
        return await self._call("delete", **kwargs)

    async def download(self, **kwargs: Any) -> Any:
        return await self._call("download", **kwargs)


def _backend_with_files(files: Any) -> GeminiBackend:
    backend = GeminiBackend("test-key")
    backend._client = type(
        "Client",
        (),
        {"aio": type("Aio", (), {"files": files})()},
    )()
    return backend


def _backend_with_models(**methods: Any) -> GeminiBackend:
    backend = GeminiBackend("test-key")
    fake_models = MagicMock()
    for name, fn in methods.items():
        setattr(fake_models, name, fn)
    fake_aio = MagicMock()
    fake_aio.models = fake_models
    backend._client = MagicMock()
    backend._client.aio = fake_aio
    return backend


def test_backend_requires_api_key() -> None:
    with pytest.raises(MissingCredentialsError):
        GeminiBackend("")


def test_backends_satisfy_the_protocol() -> None:
    assert isinstance(GeminiBackend("test-key"), MediaBackend)
    assert isinstance(FakeBackend(), MediaBackend)


def test_client_is_created_lazily() -> None:
    assert GeminiBackend("test-key")._client is None


# =============================================================================
# Immediate generation
# =============================================================================


@pytest.mark.asyncio
async def test_generate_content_converts_file_part_with_clip() -> None:
    captured: dict[str, Any] = {}

    async def fake_generate_content(**kwargs: Any) -> Any:
        captured.update(kwargs)
        return "response"

    backend = _backend_with_models(generate_content=fake_generate_content)

    result = await backend.generate_content(
        ContentRequest(
            model="gemini-2.5-flash",
            parts=[
                "Describe the video",
                FilePart(
                    uri="https://files/v",
                    mime_type="video/mp4",
                    start_offset="30s",
                    end_offset="90s",
                ),
            ],
        )
    )

    assert result == "response"
    assert captured["config"] is None
    text_part, file_part = captured["contents"]
    assert text_part.text == "Describe the video"
    assert file_part.file_data.file_uri == "https://files/v"
    assert file_part.video_metadata.start_offset == "30s"
    assert file_part.video_metadata.end_offset == "90s"


@pytest.mark.asyncio
async def test_generate_content_sets_image_aspect_ratio() -> None:
    captured: dict[str, Any] = {}

    async def fake_generate_content(**kwargs: Any) -> Any:
        captured.update(kwargs)
        return "response"

    backend = _backend_with_models(generate_content=fake_generate_content)

    await backend.generate_content(
        ContentRequest(
            model="gemini-2.5-flash-image", parts=["Edit", PNG], aspect_ratio="16:9"
        )
    )

    assert captured["config"].image_config.aspect_ratio == "16:9"
    assert captured["contents"][1].inline_data.data == PNG.data


@pytest.mark.asyncio
async def test_generate_images_passes_config() -> None:
    captured: dict[str, Any] = {}

    async def fake_generate_images(**kwargs: Any) -> Any:
        captured.update(kwargs)
        return "images"

    backend = _backend_with_models(generate_images=fake_generate_images)

    await backend.generate_images(
        ImagesRequest(
            model="imagen-4.0-generate-001",
            prompt="a cat",
            config={"number_of_images": 2, "aspect_ratio": "4:3"},
        )
    )

    assert captured["prompt"] == "a cat"
    assert isinstance(captured["config"], types.GenerateImagesConfig)
    assert captured["config"].number_of_images == 2


@pytest.mark.asyncio
async def test_generate_errors_are_wrapped_with_status() -> None:
    async def failing(**kwargs: Any) -> Any:
        raise SdkError("quota exceeded", code=429)

    backend = _backend_with_models(generate_content=failing)

    with pytest.raises(RateLimitError) as exc_info:
        await backend.generate_content(ContentRequest(model="m", parts=["p"]))

    assert exc_info.value.provider == "gemini"
    assert exc_info.value.phase == "generate"
    assert exc_info.value.status_code == 429


# =============================================================================
# Long-running generation
# =============================================================================


@pytest.mark.asyncio
async def test_generate_videos_builds_sdk_types() -> None:
    captured: dict[str, Any] = {}

    async def fake_generate_videos(**kwargs: Any) -> Any:
        captured.update(kwargs)
        return "operation"

    backend = _backend_with_models(generate_videos=fake_generate_videos)

    result = await backend.generate_videos(
        VideoRequest(
            model="veo-3.1-generate-preview",
            prompt="",
            image=PNG,
            config={"duration_seconds": 8, "last_frame": PNG},
        )
    )

    assert result == "operation"
    assert captured["prompt"] == ""
    assert captured["image"].image_bytes == PNG.data
    config = captured["config"]
    assert isinstance(config, types.GenerateVideosConfig)
    assert config.duration_seconds == 8
    assert config.last_frame.mime_type == "image/png"


@pytest.mark.asyncio
async def test_generate_videos_omits_empty_fields() -> None:
    captured: dict[str, Any] = {}

    async def fake_generate_videos(**kwargs: Any) -> Any:
        captured.update(kwargs)
        return "operation"

    backend = _backend_with_models(generate_videos=fake_generate_videos)

    await backend.generate_videos(
        VideoRequest(model="veo-2.0-generate-001", prompt="p")
    )

    assert set(captured) == {"model", "prompt"}


@pytest.mark.asyncio
async def test_get_operation_by_name_builds_an_operation() -> None:
    captured: list[Any] = []

    async def fake_get(operation: Any) -> Any:
        captured.append(operation)
        return operation

    backend = GeminiBackend("test-key")
    backend._client = MagicMock()
    backend._client.aio.operations.get = fake_get

    await backend.get_operation("operations/resume-me")

    assert isinstance(captured[0], types.GenerateVideosOperation)
    assert captured[0].name == "operations/resume-me"


@pytest.mark.asyncio
async def test_get_operation_wraps_transient_errors() -> None:
    async def fake_get(operation: Any) -> Any:
        raise SdkError("backend unavailable", code=503)

    backend = GeminiBackend("test-key")
    backend._client = MagicMock()
    backend._client.aio.operations.get = fake_get

    with pytest.raises(APIError) as exc_info:
        await backend.get_operation(object())

    assert exc_info.value.retryable is True
    assert exc_info.value.phase == "poll"


# =============================================================================
# Files
# =============================================================================


@pytest.mark.asyncio
async def test_upload_passes_mime_type_and_display_name(tmp_path: Path) -> None:
    files = _FakeGeminiFiles(result=sdk_file("files/abc", "PROCESSING"))
    backend = _backend_with_files(files)
    path = tmp_path / "clip.mp4"

    result = await backend.upload_file(path, mime_type="video/mp4", display_name="clip")

    assert result.name == "files/abc"
    method, kwargs = files.calls[0]
    assert method == "upload"
    assert kwargs == {
        "file": path,
        "config": {"mime_type": "video/mp4", "display_name": "clip"},
    }


@pytest.mark.asyncio
async def test_get_file_wraps_errors() -> None:
    files = _FakeGeminiFiles(error=SdkError("unavailable", code=503))
    backend = _backend_with_files(files)

    with pytest.raises(APIError) as exc_info:
        await backend.get_file("files/abc")

    assert exc_info.value.status_code == 503
    assert exc_info.value.phase == "file_state"


@pytest.mark.asyncio
async def test_delete_not_found_keeps_status() -> None:
    files = _FakeGeminiFiles(error=SdkError("gone", status="NOT_FOUND"))
    backend = _backend_with_files(files)

    with pytest.raises(APIError) as exc_info:
        await backend.delete_file("files/abc")

    assert exc_info.value.status_code == 404
    assert files.calls == [("delete", {"name": "files/abc"})]


@pytest.mark.asyncio
async def test_download_returns_inline_bytes_without_a_client() -> None:
    backend = GeminiBackend("test-key")
    video = type("Video", (), {"video_bytes": b"inline"})()

    assert await backend.download_video(video) == b"inline"
    assert backend._client is None


@pytest.mark.asyncio
async def test_download_fetches_remote_video() -> None:
    files = _FakeGeminiFiles(result=b"remote-bytes")
    backend = _backend_with_files(files)
    video = type("Video", (), {"video_bytes": None, "uri": "https://v"})()

    assert await backend.download_video(video) == b"remote-bytes"
    assert files.calls == [("download", {"file": video})]


@pytest.mark.asyncio
async def test_download_without_data_is_an_error() -> None:
    backend = _backend_with_files(_FakeGeminiFiles(result=None))
    video = type("Video", (), {"video_bytes": None})()

    with pytest.raises(APIError, match="no data"):
        await backend.download_video(video)
