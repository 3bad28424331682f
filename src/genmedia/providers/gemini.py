"""Gemini backend built on the google-genai SDK."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from genmedia.errors import APIError, MissingCredentialsError
from genmedia.models import ImageInput, ReferenceImage
from genmedia.providers._errors import wrap_provider_error
from genmedia.providers.models import FilePart

if TYPE_CHECKING:
    from pathlib import Path

    from genmedia.providers.models import ContentRequest, ImagesRequest, VideoRequest

PROVIDER = "gemini"


class GeminiBackend:
    """Google GenAI backend for images, Veo video, and the Files API.

    One authenticated client is created lazily and reused for every call.
    """

    def __init__(self, api_key: str, *, logger: logging.Logger | None = None) -> None:
        """Create a backend with an API key."""
        if not api_key:
            raise MissingCredentialsError(
                "API key is required",
                hint="Set GOOGLE_GENAI_API_KEY or pass Config(api_key=...).",
            )
        self.api_key = api_key
        self._client: Any = None
        self._log = logger or logging.getLogger(__name__)

    def _get_client(self) -> Any:
        """Lazy-initialize the google-genai client."""
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=self.api_key)
        return self._client

    # -- conversions ------------------------------------------------------

    @staticmethod
    def _image(value: ImageInput) -> Any:
        from google.genai import types

        return types.Image(image_bytes=value.data, mime_type=value.mime_type)

    def _content_parts(self, parts: list[Any]) -> list[Any]:
        """Convert request parts to google-genai SDK types."""
        from google.genai import types

        converted: list[Any] = []
        for p in parts:
            if isinstance(p, str):
                converted.append(types.Part.from_text(text=p))
            elif isinstance(p, ImageInput):
                converted.append(
                    types.Part.from_bytes(data=p.data, mime_type=p.mime_type)
                )
            elif isinstance(p, FilePart):
                video_metadata = None
                if p.start_offset is not None or p.end_offset is not None:
                    video_metadata = types.VideoMetadata(
                        start_offset=p.start_offset, end_offset=p.end_offset
                    )
                converted.append(
                    types.Part(
                        file_data=types.FileData(
                            file_uri=p.uri, mime_type=p.mime_type
                        ),
                        video_metadata=video_metadata,
                    )
                )
            else:
                converted.append(p)
        return converted

    def _video_config(self, config: dict[str, Any]) -> Any:
        from google.genai import types

        kwargs = dict(config)
        last_frame = kwargs.get("last_frame")
        if isinstance(last_frame, ImageInput):
            kwargs["last_frame"] = self._image(last_frame)
        refs = kwargs.get("reference_images")
        if refs:
            kwargs["reference_images"] = [
                types.VideoGenerationReferenceImage(
                    image=self._image(r.image), reference_type=r.reference_type
                )
                for r in refs
                if isinstance(r, ReferenceImage)
            ]
        return types.GenerateVideosConfig(**kwargs) if kwargs else None

    # -- immediate generation ---------------------------------------------

    async def generate_content(self, request: ContentRequest) -> Any:
        """Run ``generate_content`` for image generation or video analysis."""
        client = self._get_client()
        from google.genai import types

        config = None
        if request.aspect_ratio is not None:
            config = types.GenerateContentConfig(
                image_config=types.ImageConfig(aspect_ratio=request.aspect_ratio)
            )
        try:
            return await client.aio.models.generate_content(
                model=request.model,
                contents=self._content_parts(request.parts),
                config=config,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e, provider=PROVIDER, phase="generate", message="Gemini generate failed"
            ) from e

    async def generate_images(self, request: ImagesRequest) -> Any:
        """Run ``generate_images`` (Imagen)."""
        client = self._get_client()
        from google.genai import types

        try:
            return await client.aio.models.generate_images(
                model=request.model,
                prompt=request.prompt,
                config=types.GenerateImagesConfig(**request.config),
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e, provider=PROVIDER, phase="generate", message="Imagen generate failed"
            ) from e

    # -- long-running generation ------------------------------------------

    async def generate_videos(self, request: VideoRequest) -> Any:
        """Start a Veo generation and return the operation."""
        client = self._get_client()

        kwargs: dict[str, Any] = {"model": request.model}
        if request.prompt is not None:
            kwargs["prompt"] = request.prompt
        if request.image is not None:
            kwargs["image"] = self._image(request.image)
        if request.video is not None:
            kwargs["video"] = request.video
        config = self._video_config(request.config)
        if config is not None:
            kwargs["config"] = config

        try:
            return await client.aio.models.generate_videos(**kwargs)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e, provider=PROVIDER, phase="submit", message="Veo submit failed"
            ) from e

    async def get_operation(self, operation: Any) -> Any:
        """Refresh an operation by handle, or by name when resuming."""
        client = self._get_client()
        if isinstance(operation, str):
            from google.genai import types

            operation = types.GenerateVideosOperation(name=operation)
        try:
            return await client.aio.operations.get(operation)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e, provider=PROVIDER, phase="poll", message="Operation refresh failed"
            ) from e

    async def download_video(self, video: Any) -> bytes:
        """Fetch the bytes of a generated video."""
        inline = getattr(video, "video_bytes", None)
        if isinstance(inline, (bytes, bytearray)) and inline:
            return bytes(inline)

        client = self._get_client()
        try:
            data = await client.aio.files.download(file=video)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e, provider=PROVIDER, phase="download", message="Video download failed"
            ) from e
        if not isinstance(data, (bytes, bytearray)):
            raise APIError("Video download returned no data", phase="download")
        return bytes(data)

    # -- files ------------------------------------------------------------

    async def upload_file(
        self, path: Path, *, mime_type: str, display_name: str | None = None
    ) -> Any:
        """Upload a file to the Files API."""
        client = self._get_client()
        config: dict[str, Any] = {"mime_type": mime_type}
        if display_name:
            config["display_name"] = display_name
        try:
            return await client.aio.files.upload(file=path, config=config)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e, provider=PROVIDER, phase="upload", message="Gemini upload failed"
            ) from e

    async def get_file(self, name: str) -> Any:
        """Read a file's current state."""
        client = self._get_client()
        try:
            return await client.aio.files.get(name=name)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e, provider=PROVIDER, phase="file_state", message="File lookup failed"
            ) from e

    async def delete_file(self, name: str) -> None:
        """Delete a file from the Files API."""
        client = self._get_client()
        try:
            await client.aio.files.delete(name=name)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e, provider=PROVIDER, phase="delete", message="File delete failed"
            ) from e
