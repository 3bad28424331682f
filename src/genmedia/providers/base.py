"""Backend protocol: the three call families of the remote media service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

    from genmedia.providers.models import ContentRequest, ImagesRequest, VideoRequest


@runtime_checkable
class MediaBackend(Protocol):
    """Minimal backend protocol.

    Every method raises ``APIError`` (with structured status metadata) on
    failure. Return values are the service's raw objects; callers read them
    by attribute.
    """

    async def generate_content(self, request: ContentRequest) -> Any:
        """Immediate generation returning a candidates/parts response."""
        ...

    async def generate_images(self, request: ImagesRequest) -> Any:
        """Immediate generation returning ``generated_images``."""
        ...

    async def generate_videos(self, request: VideoRequest) -> Any:
        """Start a long-running generation and return its operation."""
        ...

    async def get_operation(self, operation: Any) -> Any:
        """Return a refreshed copy of *operation* (an operation or its name)."""
        ...

    async def upload_file(
        self, path: Path, *, mime_type: str, display_name: str | None = None
    ) -> Any:
        """Upload a local file and return the service's file object."""
        ...

    async def get_file(self, name: str) -> Any:
        """Return the current file object for *name*."""
        ...

    async def delete_file(self, name: str) -> None:
        """Delete the file *name*."""
        ...

    async def download_video(self, video: Any) -> bytes:
        """Return the bytes of a generated video."""
        ...
