"""Artifact file naming and metadata sidecars."""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path

import pytest

from genmedia.models import (
    GenerationParams,
    JobResult,
    OperationHandle,
    RequestKind,
    ResultRef,
)
from genmedia.output import OutputWriter, extension_for, generate_filename
from genmedia.results import ResultDownloader
from tests.helpers import FakeBackend

pytestmark = pytest.mark.unit

NOW = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _job(kind: RequestKind, refs: tuple[ResultRef, ...], **params) -> JobResult:
    return JobResult(
        prompt="A Cat, on the Moon!",
        kind=kind,
        model="imagen-4.0-generate-001",
        params=GenerationParams(prompt="A Cat, on the Moon!", **params),
        handle=OperationHandle(name=None, done=True, kind=kind),
        refs=refs,
    )


def test_filename_is_timestamp_and_slug() -> None:
    assert (
        generate_filename("A Cat, on the Moon!", now=NOW)
        == "20250102_030405_a-cat-on-the-moon.png"
    )


def test_filename_slug_is_truncated() -> None:
    name = generate_filename("word " * 40, "mp4", max_length=10, now=NOW)

    assert name == "20250102_030405_word-word-.mp4"


@pytest.mark.parametrize(
    ("mime", "kind", "expected"),
    [
        ("image/jpeg", "image", "jpg"),
        ("video/mp4", "video", "mp4"),
        (None, "video", "mp4"),
        (None, "text", "txt"),
        ("application/x-unknown", "image", "png"),
    ],
)
def test_extension_for(mime: str | None, kind: str, expected: str) -> None:
    assert extension_for(mime, kind) == expected


@pytest.mark.asyncio
async def test_writer_numbers_multiple_outputs_and_writes_sidecar(
    tmp_path: Path,
) -> None:
    refs = (
        ResultRef(kind="image", mime_type="image/png", data=b"one"),
        ResultRef(kind="image", mime_type="image/png", data=b"two"),
    )
    writer = OutputWriter(ResultDownloader(FakeBackend()), tmp_path)

    paths = await writer.write(_job(RequestKind.IMAGEN, refs, number_of_images=2))

    first, second, sidecar = paths
    assert first.parent == tmp_path / "imagen-4.0-generate-001"
    assert first.name.endswith("_a-cat-on-the-moon_1.png")
    assert second.name.endswith("_2.png")
    assert first.read_bytes() == b"one"
    metadata = json.loads(sidecar.read_text(encoding="utf-8"))
    assert sidecar.suffix == ".json"
    assert metadata["kind"] == "imagen"
    assert metadata["prompt"] == "A Cat, on the Moon!"
    assert metadata["parameters"] == {"number_of_images": 2}
    assert metadata["outputs"] == [first.name, second.name]


@pytest.mark.asyncio
async def test_writer_saves_analysis_text(tmp_path: Path) -> None:
    refs = (ResultRef(kind="text", mime_type="text/plain", text="Two people talk."),)
    writer = OutputWriter(ResultDownloader(FakeBackend()), tmp_path)

    text_path, sidecar = await writer(
        _job(RequestKind.VIDEO_ANALYSIS, refs, file_uri="https://files/v")
    )

    assert text_path.suffix == ".txt"
    assert text_path.read_text(encoding="utf-8") == "Two people talk."
    metadata = json.loads(sidecar.read_text(encoding="utf-8"))
    assert metadata["text"] == "Two people talk."
    assert metadata["parameters"]["file_uri"] == "https://files/v"
