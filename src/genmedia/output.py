"""On-disk layout for generated artifacts and their metadata sidecars.

Layout: ``<output_dir>/<model>/<YYYYMMDD_HHMMSS>_<slug>.<ext>``, with a
``.json`` file of the same stem describing how the artifact was made.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
import re
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from genmedia.models import GenerationParams, JobResult
    from genmedia.results import ResultDownloader

log = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
    "video/mp4": "mp4",
    "text/plain": "txt",
}


def extension_for(mime_type: str | None, kind: str) -> str:
    """File extension for an artifact's MIME type."""
    if mime_type in _EXTENSIONS:
        return _EXTENSIONS[mime_type]
    return {"video": "mp4", "text": "txt"}.get(kind, "png")


def generate_filename(
    prompt: str,
    extension: str = "png",
    *,
    max_length: int = 50,
    now: datetime | None = None,
) -> str:
    """``YYYYMMDD_HHMMSS_<slug>.<ext>`` where the slug is the sanitized prompt."""
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d_%H%M%S")
    slug = re.sub(r"[^a-z0-9\s]", "", prompt.lower()).strip()
    slug = re.sub(r"\s+", "-", slug)[:max_length]
    return f"{stamp}_{slug}.{extension}"


class GenerationMetadata(BaseModel):
    """JSON sidecar written next to each artifact."""

    model: str
    kind: str
    timestamp: str
    prompt: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    outputs: list[str] = Field(default_factory=list)
    operation_name: str | None = None
    has_audio: bool | None = None
    text: str | None = None


def _parameters(params: GenerationParams) -> dict[str, Any]:
    """JSON-safe request parameters; binary inputs are summarized."""
    out: dict[str, Any] = {}
    for key in (
        "aspect_ratio",
        "resolution",
        "duration_seconds",
        "negative_prompt",
        "person_generation",
        "seed",
        "file_uri",
    ):
        value = getattr(params, key)
        if value is not None:
            out[key] = value
    if params.number_of_images != 1:
        out["number_of_images"] = params.number_of_images
    if params.input_images:
        out["input_images"] = len(params.input_images)
    if params.reference_images:
        out["reference_images"] = len(params.reference_images)
    if params.first_frame is not None:
        out["first_frame"] = True
    if params.last_frame is not None:
        out["last_frame"] = True
    if params.clip is not None:
        out["start_offset"] = params.clip.start_offset
        out["end_offset"] = params.clip.end_offset
    return out


class OutputWriter:
    """Persists each finished job under ``output_dir``."""

    def __init__(self, downloader: ResultDownloader, output_dir: str | Path) -> None:
        self.downloader = downloader
        self.output_dir = Path(output_dir)

    def model_dir(self, model: str) -> Path:
        return self.output_dir / model

    async def __call__(self, job: JobResult) -> list[Path]:
        return await self.write(job)

    async def write(self, job: JobResult) -> list[Path]:
        """Write every artifact of *job* and one metadata sidecar."""
        now = datetime.now(timezone.utc)
        directory = self.model_dir(job.model)
        written: list[Path] = []
        for i, ref in enumerate(job.refs):
            name = generate_filename(
                job.prompt, extension_for(ref.mime_type, ref.kind), now=now
            )
            path = directory / name
            if len(job.refs) > 1:
                path = path.with_name(f"{path.stem}_{i + 1}{path.suffix}")
            result = await self.downloader.save(ref, path)
            written.append(result.path)

        first = job.refs[0] if job.refs else None
        metadata = GenerationMetadata(
            model=job.model,
            kind=job.kind.value,
            timestamp=now.isoformat(),
            prompt=job.prompt,
            parameters=_parameters(job.params),
            outputs=[p.name for p in written],
            operation_name=job.handle.name,
            has_audio=first.has_audio if first else None,
            text=first.text if first and first.kind == "text" else None,
        )
        if written:
            sidecar = written[0].with_suffix(".json")
        else:
            sidecar = directory / generate_filename(job.prompt, "json", now=now)
        sidecar.parent.mkdir(parents=True, exist_ok=True)
        sidecar.write_text(metadata.model_dump_json(indent=2), encoding="utf-8")
        log.info("Saved %d file(s) to %s", len(written), directory)
        return [*written, sidecar]
