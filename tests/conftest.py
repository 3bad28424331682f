"""Pytest configuration and fixtures.

Provides the scripted backend double, environment isolation, logging
configuration, and automatic API test skipping. Fixtures here are autouse
unless noted.
"""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass, field
import logging
import os
from typing import Any

import pytest

# =============================================================================
# Test Doubles
# =============================================================================


def _next(script: list[Any], call: str) -> Any:
    if not script:
        raise AssertionError(f"unexpected {call} call: script exhausted")
    item = script.pop(0)
    if isinstance(item, BaseException):
        raise item
    return item


@dataclass
class FakeBackend:
    """Backend test double driven by per-method scripts.

    Each script is consumed front to back. Exceptions in a script are raised
    instead of returned. Requests and call counts are recorded for assertions.
    """

    content_script: list[Any] = field(default_factory=list)
    images_script: list[Any] = field(default_factory=list)
    videos_script: list[Any] = field(default_factory=list)
    operation_script: list[Any] = field(default_factory=list)
    file_script: list[Any] = field(default_factory=list)
    upload_result: Any = None
    delete_error: BaseException | None = None
    video_bytes: bytes = b"downloaded-video"

    content_requests: list[Any] = field(default_factory=list)
    images_requests: list[Any] = field(default_factory=list)
    video_requests: list[Any] = field(default_factory=list)
    polled: list[Any] = field(default_factory=list)
    uploads: list[dict[str, Any]] = field(default_factory=list)
    file_lookups: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    downloads: list[Any] = field(default_factory=list)

    @property
    def get_operation_calls(self) -> int:
        return len(self.polled)

    @property
    def get_file_calls(self) -> int:
        return len(self.file_lookups)

    @property
    def remote_calls(self) -> int:
        return (
            len(self.content_requests)
            + len(self.images_requests)
            + len(self.video_requests)
            + len(self.polled)
            + len(self.uploads)
            + len(self.file_lookups)
            + len(self.deleted)
            + len(self.downloads)
        )

    async def generate_content(self, request: Any) -> Any:
        self.content_requests.append(request)
        return _next(self.content_script, "generate_content")

    async def generate_images(self, request: Any) -> Any:
        self.images_requests.append(request)
        return _next(self.images_script, "generate_images")

    async def generate_videos(self, request: Any) -> Any:
        self.video_requests.append(request)
        return _next(self.videos_script, "generate_videos")

    async def get_operation(self, operation: Any) -> Any:
        self.polled.append(operation)
        return _next(self.operation_script, "get_operation")

    async def upload_file(
        self, path: Any, *, mime_type: str, display_name: str | None = None
    ) -> Any:
        self.uploads.append(
            {"path": path, "mime_type": mime_type, "display_name": display_name}
        )
        if isinstance(self.upload_result, BaseException):
            raise self.upload_result
        return self.upload_result

    async def get_file(self, name: str) -> Any:
        self.file_lookups.append(name)
        return _next(self.file_script, "get_file")

    async def delete_file(self, name: str) -> None:
        self.deleted.append(name)
        if self.delete_error is not None:
            raise self.delete_error

    async def download_video(self, video: Any) -> bytes:
        self.downloads.append(video)
        return self.video_bytes


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_provider_env(request, monkeypatch):
    """Ensure a clean credential and mode environment for each test.

    Clears GOOGLE_GENAI_*, GEMINI_* and GENMEDIA_* env vars.
    Opt-out: @pytest.mark.allow_env_pollution or @pytest.mark.api
    """
    if request.node.get_closest_marker("allow_env_pollution") or (
        "api" in request.node.keywords
    ):
        return

    for key in list(os.environ.keys()):
        if key.startswith(("GOOGLE_GENAI_", "GEMINI_", "GENMEDIA_")):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)


# =============================================================================
# Pytest Hooks
# =============================================================================

API_TESTS_REASON = "API tests require ENABLE_API_TESTS=1"


def _api_tests_enabled() -> bool:
    return bool(os.getenv("ENABLE_API_TESTS"))


def pytest_collection_modifyitems(items):
    """Automatically skip API tests when not explicitly enabled."""
    if _api_tests_enabled():
        return
    skip_api = pytest.mark.skip(reason=API_TESTS_REASON)
    for item in items:
        if "api" in item.keywords:
            item.add_marker(skip_api)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def api_key():
    """Return GOOGLE_GENAI_API_KEY (or GEMINI_API_KEY) or skip the test."""
    key = os.getenv("GOOGLE_GENAI_API_KEY") or os.getenv("GEMINI_API_KEY")
    if not key:
        pytest.skip("GOOGLE_GENAI_API_KEY not set")
    return key
