"""Parameter validation and local input checks.

Everything here runs before any remote call and raises ``ValidationError``,
which the classifier reports as ``USER_ACTIONABLE``.
"""

from __future__ import annotations

from pathlib import Path
import re

from genmedia.constants import (
    GEMINI_IMAGE_INPUTS_MAX,
    GEMINI_IMAGE_MODELS,
    IMAGE_ASPECT_RATIOS,
    IMAGE_MAX_FILE_SIZE,
    IMAGE_MIME_TYPES,
    IMAGE_PROMPT_MAX_LENGTH,
    IMAGEN_MAX_IMAGES,
    IMAGEN_MIN_IMAGES,
    IMAGEN_MODEL,
    PERSON_GENERATION_VALUES,
    VEO_CHARS_PER_TOKEN,
    VEO_EXTENSION_RESOLUTION,
    VEO_MODEL_CONSTRAINTS,
    VIDEO_MAX_FILE_SIZE,
    VIDEO_MIME_TYPES,
)
from genmedia.errors import ValidationError
from genmedia.models import ClipRange, GenerationParams, ImageInput, RequestKind

_MB = 1024 * 1024

# ---------------------------------------------------------------------------
# Image models
# ---------------------------------------------------------------------------


def validate_image_params(model: str, params: GenerationParams) -> None:
    """Validate an immediate image request for Gemini or Imagen."""
    if model != IMAGEN_MODEL and model not in GEMINI_IMAGE_MODELS:
        valid = ", ".join((*GEMINI_IMAGE_MODELS, IMAGEN_MODEL))
        raise ValidationError(
            f"Unknown image model: {model!r}", hint=f"Valid models: {valid}"
        )

    if not params.prompt:
        raise ValidationError("Prompt is required")
    if len(params.prompt) > IMAGE_PROMPT_MAX_LENGTH:
        raise ValidationError(
            f"Prompt exceeds maximum length of {IMAGE_PROMPT_MAX_LENGTH} characters"
        )

    if params.aspect_ratio and params.aspect_ratio not in IMAGE_ASPECT_RATIOS:
        raise ValidationError(
            f"Invalid aspect ratio {params.aspect_ratio!r}",
            hint=f"Must be one of: {', '.join(IMAGE_ASPECT_RATIOS)}",
        )

    if model == IMAGEN_MODEL:
        n = params.number_of_images
        if n < IMAGEN_MIN_IMAGES or n > IMAGEN_MAX_IMAGES:
            raise ValidationError(
                f"number_of_images must be between {IMAGEN_MIN_IMAGES} "
                f"and {IMAGEN_MAX_IMAGES}, got {n}"
            )
        if params.input_images:
            raise ValidationError(
                "Imagen does not support input images",
                hint="Use a Gemini image model for image-to-image generation.",
            )
        return

    if len(params.input_images) > GEMINI_IMAGE_INPUTS_MAX:
        raise ValidationError(
            f"Gemini supports at most {GEMINI_IMAGE_INPUTS_MAX} input image, "
            f"got {len(params.input_images)}"
        )
    if params.number_of_images != 1:
        raise ValidationError(
            "Gemini generates one image per request",
            hint="Use Imagen to generate multiple images.",
        )


# ---------------------------------------------------------------------------
# Veo models
# ---------------------------------------------------------------------------


def validate_veo_params(
    model: str, params: GenerationParams, kind: RequestKind
) -> None:
    """Validate a Veo request against the model's constraint table.

    Checks run in a fixed order so the first problem reported is stable:
    model, prompt, aspect ratio, resolution, duration, 1080p rules, feature
    support, then the fields each kind requires.
    """
    constraints = VEO_MODEL_CONSTRAINTS.get(model)
    if constraints is None:
        raise ValidationError(
            f"Unknown Veo model: {model!r}",
            hint=f"Valid models: {', '.join(VEO_MODEL_CONSTRAINTS)}",
        )
    if not kind.is_long_running:
        raise ValidationError(f"{kind.value} is not a video generation mode")

    if kind not in (RequestKind.EXTENSION, RequestKind.INTERPOLATION):
        if not params.prompt:
            raise ValidationError("Prompt is required")
    max_chars = constraints.prompt_max_tokens * VEO_CHARS_PER_TOKEN
    if params.prompt and len(params.prompt) > max_chars:
        raise ValidationError(
            "Prompt exceeds maximum length of approximately "
            f"{constraints.prompt_max_tokens} tokens"
        )

    if params.aspect_ratio and params.aspect_ratio not in constraints.aspect_ratios:
        raise ValidationError(
            f"Invalid aspect ratio {params.aspect_ratio!r} for {model}",
            hint=f"Must be one of: {', '.join(constraints.aspect_ratios)}",
        )
    if params.resolution and params.resolution not in constraints.resolutions:
        raise ValidationError(
            f"Invalid resolution {params.resolution!r} for {model}",
            hint=f"Must be one of: {', '.join(constraints.resolutions)}",
        )
    if (
        params.duration_seconds is not None
        and params.duration_seconds not in constraints.durations
    ):
        raise ValidationError(
            f"Invalid duration {params.duration_seconds!r} for {model}",
            hint=f"Must be one of: {', '.join(map(str, constraints.durations))}",
        )

    if params.resolution == "1080p":
        need = constraints.hd_requires_duration
        if need is not None and params.duration_seconds not in (None, need):
            raise ValidationError(
                f"1080p resolution requires {need}-second duration for {model}, "
                f"got {params.duration_seconds}s"
            )
        ratio = constraints.hd_aspect_ratio
        if ratio and params.aspect_ratio and params.aspect_ratio != ratio:
            raise ValidationError(
                f"1080p resolution requires {ratio} aspect ratio for {model}, "
                f"got {params.aspect_ratio}"
            )

    if kind not in constraints.features:
        raise ValidationError(
            f"{kind.value} mode is not supported by {model}",
            hint="This feature requires Veo 3.1 or Veo 3.1 Fast.",
        )

    if kind is RequestKind.IMAGE_TO_VIDEO and params.first_frame is None:
        raise ValidationError("An input image is required for image-to-video mode")

    if kind is RequestKind.REFERENCE_IMAGES:
        count = len(params.reference_images)
        if count == 0:
            raise ValidationError("At least one reference image is required")
        if count > constraints.max_reference_images:
            raise ValidationError(
                f"Maximum {constraints.max_reference_images} reference images "
                f"allowed, got {count}"
            )

    if kind is RequestKind.INTERPOLATION:
        if params.first_frame is None:
            raise ValidationError("first_frame is required for interpolation mode")
        if params.last_frame is None:
            raise ValidationError("last_frame is required for interpolation mode")

    if kind is RequestKind.EXTENSION:
        if params.video is None:
            raise ValidationError(
                "A previously generated video is required for extension mode"
            )
        if params.resolution and params.resolution != VEO_EXTENSION_RESOLUTION:
            raise ValidationError(
                f"Video extension requires {VEO_EXTENSION_RESOLUTION} resolution, "
                f"got {params.resolution}"
            )

    if (
        params.person_generation
        and params.person_generation not in PERSON_GENERATION_VALUES
    ):
        raise ValidationError(
            f"Invalid person_generation value: {params.person_generation!r}",
            hint=f"Must be one of: {', '.join(PERSON_GENERATION_VALUES)}",
        )


# ---------------------------------------------------------------------------
# Time offsets
# ---------------------------------------------------------------------------

_SECONDS = re.compile(r"^(\d+)s?$")
_MINUTES_SECONDS = re.compile(r"^(\d+)m(\d+)s?$")
_CLOCK = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_time_offset(offset: str | int) -> int:
    """Parse an offset such as ``"90s"``, ``"1m30s"`` or ``"1:15:30"`` to seconds."""
    if isinstance(offset, bool):
        raise ValidationError(f"Invalid time offset: {offset!r}")
    if isinstance(offset, int):
        if offset < 0:
            raise ValidationError("Time offset cannot be negative")
        return offset

    text = str(offset).strip()
    if not text:
        raise ValidationError("Time offset cannot be empty")

    if m := _SECONDS.match(text):
        return int(m.group(1))

    if m := _MINUTES_SECONDS.match(text):
        minutes, seconds = int(m.group(1)), int(m.group(2))
        if seconds >= 60:
            raise ValidationError("Seconds must be less than 60 in XmYs format")
        return minutes * 60 + seconds

    if m := _CLOCK.match(text):
        first, second, third = m.group(1), m.group(2), m.group(3)
        if third is None:
            minutes, seconds = int(first), int(second)
            if seconds >= 60:
                raise ValidationError(
                    "Invalid time format: seconds must be less than 60"
                )
            return minutes * 60 + seconds
        hours, minutes, seconds = int(first), int(second), int(third)
        if minutes >= 60 or seconds >= 60:
            raise ValidationError(
                "Invalid time format: minutes and seconds must be less than 60"
            )
        return hours * 3600 + minutes * 60 + seconds

    raise ValidationError(
        f"Invalid time offset format: {text!r}",
        hint="Use seconds (90 or 90s), 1m30s, MM:SS or HH:MM:SS.",
    )


def validate_clip(
    start: str | int | None = None, end: str | int | None = None
) -> ClipRange | None:
    """Parse optional clip boundaries; ``None`` when neither is given."""
    if start is None and end is None:
        return None
    start_s = None if start is None else parse_time_offset(start)
    end_s = None if end is None else parse_time_offset(end)
    if start_s is not None and end_s is not None and end_s <= start_s:
        raise ValidationError(
            f"End offset ({end} = {end_s}s) must be greater than "
            f"start offset ({start} = {start_s}s)"
        )
    return ClipRange(start_s=start_s, end_s=end_s)


# ---------------------------------------------------------------------------
# Local files
# ---------------------------------------------------------------------------


def validate_video_path(path: str | Path) -> tuple[str, int]:
    """Check a local video before upload; return ``(mime_type, size_bytes)``."""
    p = Path(path)
    if not p.is_file():
        raise ValidationError(f"Video file not found: {p}")

    mime_type = VIDEO_MIME_TYPES.get(p.suffix.lower())
    if mime_type is None:
        raise ValidationError(
            f"Unsupported video format: {p.suffix or '(none)'}",
            hint=f"Supported extensions: {', '.join(VIDEO_MIME_TYPES)}",
        )

    size = p.stat().st_size
    if size == 0:
        raise ValidationError(f"Video file is empty: {p}")
    if size > VIDEO_MAX_FILE_SIZE:
        raise ValidationError(
            f"Video file is {size / _MB:.1f}MB, maximum is "
            f"{VIDEO_MAX_FILE_SIZE // _MB}MB"
        )
    return mime_type, size


def _looks_like_image(head: bytes) -> bool:
    return (
        head.startswith(b"\x89PNG")
        or head.startswith(b"\xff\xd8\xff")
        or head[8:12] == b"WEBP"
        or head.startswith(b"GIF")
    )


def load_image(path: str | Path) -> ImageInput:
    """Read a local PNG, JPEG, WebP or GIF file into an ``ImageInput``."""
    p = Path(path)
    try:
        size = p.stat().st_size
        if size > IMAGE_MAX_FILE_SIZE:
            raise ValidationError(
                f"Image file size exceeds maximum of {IMAGE_MAX_FILE_SIZE // _MB}MB"
            )
        data = p.read_bytes()
    except FileNotFoundError:
        raise ValidationError(f"Image file not found: {p}") from None
    except PermissionError:
        raise ValidationError(f"Permission denied reading image file: {p}") from None
    except IsADirectoryError:
        raise ValidationError(f"Image path is a directory: {p}") from None

    if not data:
        raise ValidationError(f"Image file is empty: {p}")
    if not _looks_like_image(data[:12]):
        raise ValidationError(
            f"File does not appear to be a valid image (PNG, JPEG, WebP, or GIF): {p}"
        )
    return ImageInput(
        data=data, mime_type=IMAGE_MIME_TYPES.get(p.suffix.lower(), "image/png")
    )


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def _check_image_family(kind: RequestKind, model: str) -> None:
    if kind is RequestKind.IMAGE and model == IMAGEN_MODEL:
        raise ValidationError(
            f"{model!r} is an Imagen model and cannot serve a Gemini image request",
            hint="Submit Imagen models as RequestKind.IMAGEN.",
        )
    if kind is RequestKind.IMAGEN and model in GEMINI_IMAGE_MODELS:
        raise ValidationError(
            f"{model!r} is a Gemini image model and cannot serve an Imagen request",
            hint="Submit Gemini image models as RequestKind.IMAGE.",
        )


def validate_request(kind: RequestKind, model: str, params: GenerationParams) -> None:
    """Run the checks that apply to *kind* before it is submitted."""
    if kind in (RequestKind.IMAGE, RequestKind.IMAGEN):
        _check_image_family(kind, model)
        validate_image_params(model, params)
    elif kind is RequestKind.VIDEO_ANALYSIS:
        if not params.prompt:
            raise ValidationError("Prompt is required")
        if not params.file_uri:
            raise ValidationError(
                "An uploaded file URI is required for video analysis",
                hint="Upload the video first and pass the asset's uri.",
            )
    else:
        validate_veo_params(model, params, kind)
