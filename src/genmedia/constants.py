"""Project-wide constants: models, per-model constraints, and limits."""

from __future__ import annotations

from dataclasses import dataclass

from genmedia.models import RequestKind

# ==============================================================================
# Models
# ==============================================================================

GEMINI_IMAGE_MODEL = "gemini-2.5-flash-image"
GEMINI_3_PRO_IMAGE_MODEL = "gemini-3-pro-image-preview"
IMAGEN_MODEL = "imagen-4.0-generate-001"
VIDEO_ANALYSIS_MODEL = "gemini-2.5-flash"

VEO_3_1 = "veo-3.1-generate-preview"
VEO_3_1_FAST = "veo-3.1-fast-generate-preview"
VEO_3 = "veo-3.0-generate-001"
VEO_3_FAST = "veo-3.0-fast-generate-001"
VEO_2 = "veo-2.0-generate-001"

DEFAULT_VEO_MODEL = VEO_3_1

# ==============================================================================
# File Processing Configuration
# ==============================================================================

_MB = 1024 * 1024

VIDEO_MAX_FILE_SIZE = 200 * _MB
VIDEO_RECOMMENDED_MAX = 20 * _MB
IMAGE_MAX_FILE_SIZE = 50 * _MB

VIDEO_MIME_TYPES: dict[str, str] = {
    ".mp4": "video/mp4",
    ".mpeg": "video/mpeg",
    ".mpg": "video/mpg",
    ".mov": "video/mov",
    ".avi": "video/avi",
    ".flv": "video/x-flv",
    ".webm": "video/webm",
    ".wmv": "video/wmv",
    ".3gp": "video/3gpp",
}

IMAGE_MIME_TYPES: dict[str, str] = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}

# Uploaded files are kept by the service for about this long.
FILE_RETENTION_HOURS = 48

# ==============================================================================
# Image Models
# ==============================================================================

IMAGE_ASPECT_RATIOS = ("1:1", "3:4", "4:3", "9:16", "16:9")
IMAGE_PROMPT_MAX_LENGTH = 10000
GEMINI_IMAGE_INPUTS_MAX = 1
IMAGEN_MIN_IMAGES = 1
IMAGEN_MAX_IMAGES = 4

GEMINI_IMAGE_MODELS = (GEMINI_IMAGE_MODEL, GEMINI_3_PRO_IMAGE_MODEL)

# ==============================================================================
# Veo Models
# ==============================================================================

VEO_ASPECT_RATIOS = ("16:9", "9:16")
VEO_RESOLUTIONS = ("720p", "1080p")
PERSON_GENERATION_VALUES = ("allow_all", "allow_adult", "dont_allow")

# Prompt limit is ~1024 tokens; checked as roughly four characters per token.
VEO_PROMPT_MAX_TOKENS = 1024
VEO_CHARS_PER_TOKEN = 4

# Reference-image and interpolation requests are fixed at eight seconds.
VEO_FIXED_DURATION_S = 8
VEO_EXTENSION_RESOLUTION = "720p"


@dataclass(frozen=True)
class VeoConstraints:
    """Feature support and parameter limits for one Veo model."""

    resolutions: tuple[str, ...]
    durations: tuple[int, ...]
    features: frozenset[RequestKind]
    native_audio: bool
    aspect_ratios: tuple[str, ...] = VEO_ASPECT_RATIOS
    max_reference_images: int = 0
    #: ``None`` when 1080p is unsupported.
    hd_requires_duration: int | None = None
    #: Aspect ratio 1080p is limited to, or ``None`` for any.
    hd_aspect_ratio: str | None = None
    prompt_max_tokens: int = VEO_PROMPT_MAX_TOKENS


_BASIC = frozenset({RequestKind.TEXT_TO_VIDEO, RequestKind.IMAGE_TO_VIDEO})
_FULL = _BASIC | {
    RequestKind.REFERENCE_IMAGES,
    RequestKind.INTERPOLATION,
    RequestKind.EXTENSION,
}


def _veo_3_1() -> VeoConstraints:
    return VeoConstraints(
        resolutions=VEO_RESOLUTIONS,
        durations=(4, 6, 8),
        features=_FULL,
        native_audio=True,
        max_reference_images=3,
        hd_requires_duration=8,
    )


def _veo_3() -> VeoConstraints:
    return VeoConstraints(
        resolutions=VEO_RESOLUTIONS,
        durations=(4, 6, 8),
        features=_BASIC,
        native_audio=True,
        hd_requires_duration=8,
        hd_aspect_ratio="16:9",
    )


VEO_MODEL_CONSTRAINTS: dict[str, VeoConstraints] = {
    VEO_3_1: _veo_3_1(),
    VEO_3_1_FAST: _veo_3_1(),
    VEO_3: _veo_3(),
    VEO_3_FAST: _veo_3(),
    VEO_2: VeoConstraints(
        resolutions=("720p",),
        durations=(5, 6, 8),
        features=_BASIC,
        native_audio=False,
    ),
}

# ==============================================================================
# Polling
# ==============================================================================

VIDEO_POLL_INTERVAL_START_S = 10.0
VIDEO_POLL_INTERVAL_MAX_S = 30.0
VIDEO_POLL_MAX_ATTEMPTS = 120
RATE_LIMIT_COOLDOWN_S = 60.0

VEO_POLL_INTERVAL_S = 10.0
VEO_POLL_MAX_ATTEMPTS = 60
