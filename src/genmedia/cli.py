"""Command-line interface: ``genmedia image|video|analyze``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from genmedia import create_orchestrator
from genmedia.config import DEFAULT_OUTPUT_DIR, Config
from genmedia.constants import (
    DEFAULT_VEO_MODEL,
    GEMINI_IMAGE_MODEL,
    IMAGE_ASPECT_RATIOS,
    IMAGEN_MODEL,
    PERSON_GENERATION_VALUES,
    VEO_ASPECT_RATIOS,
    VEO_MODEL_CONSTRAINTS,
    VEO_RESOLUTIONS,
    VIDEO_ANALYSIS_MODEL,
)
from genmedia.errors import GenMediaError
from genmedia.models import GenerationParams, ReferenceImage, RequestKind
from genmedia.output import OutputWriter
from genmedia.results import ResultDownloader
from genmedia.validation import load_image, validate_clip

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from genmedia.models import JobResult, OperationHandle

log = logging.getLogger("genmedia.cli")

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] %(message)s"
LOG_LEVELS = ("debug", "info", "warning", "error")


def configure_logging(level: str = "info") -> logging.Logger:
    """Attach one stream handler to the ``genmedia`` logger.

    Calling it again replaces the handler instead of stacking another.
    """
    logger = logging.getLogger("genmedia")
    for handler in list(logger.handlers):
        if getattr(handler, "_genmedia_cli", False):
            logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._genmedia_cli = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-p",
        "--prompt",
        action="append",
        required=True,
        help="Generation prompt. Repeat for a batch; jobs run in order.",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        default=None,
        help=(
            "Output directory "
            f"(default: $GENMEDIA_OUTPUT_DIR or {DEFAULT_OUTPUT_DIR})."
        ),
    )
    parser.add_argument(
        "--api-key",
        default=None,
        help="API key override. Usually read from GOOGLE_GENAI_API_KEY.",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=LOG_LEVELS,
        help="Logging verbosity.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="genmedia",
        description="Generate images and videos, or analyze videos, with Google GenAI",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    image = sub.add_parser("image", help="Generate images (Gemini or Imagen).")
    _add_common_args(image)
    image.add_argument(
        "--model",
        default=GEMINI_IMAGE_MODEL,
        help=f"Image model (default: {GEMINI_IMAGE_MODEL}; Imagen: {IMAGEN_MODEL}).",
    )
    image.add_argument(
        "-i", "--input-image", default=None, help="Input image to edit (Gemini only)."
    )
    image.add_argument(
        "-a", "--aspect-ratio", default="1:1", choices=IMAGE_ASPECT_RATIOS
    )
    image.add_argument(
        "-n",
        "--number-of-images",
        type=int,
        default=1,
        help="Images per request (Imagen only, 1-4).",
    )

    video = sub.add_parser("video", help="Generate videos with Veo.")
    _add_common_args(video)
    video.add_argument(
        "--model", default=DEFAULT_VEO_MODEL, choices=tuple(VEO_MODEL_CONSTRAINTS)
    )
    video.add_argument(
        "--image", default=None, help="Starting image (image-to-video)."
    )
    video.add_argument(
        "--last-frame",
        default=None,
        help="Final frame; with --image selects interpolation.",
    )
    video.add_argument(
        "--reference-image",
        action="append",
        default=None,
        help="Guide image for reference-image mode (repeat up to 3 times).",
    )
    video.add_argument("--aspect-ratio", default=None, choices=VEO_ASPECT_RATIOS)
    video.add_argument("--resolution", default=None, choices=VEO_RESOLUTIONS)
    video.add_argument("--duration", type=int, default=None, help="Seconds.")
    video.add_argument("--negative-prompt", default=None)
    video.add_argument(
        "--person-generation", default=None, choices=PERSON_GENERATION_VALUES
    )
    video.add_argument("--seed", type=int, default=None)

    analyze = sub.add_parser(
        "analyze", help="Analyze a local video; it is uploaded once per batch."
    )
    _add_common_args(analyze)
    analyze.add_argument("--video", required=True, help="Local video file.")
    analyze.add_argument("--model", default=VIDEO_ANALYSIS_MODEL)
    analyze.add_argument(
        "--start", default=None, help="Clip start (90, 90s, 1m30s, 1:30, 1:15:30)."
    )
    analyze.add_argument("--end", default=None, help="Clip end; must follow --start.")
    return parser


def video_kind(args: argparse.Namespace) -> RequestKind:
    """Pick the Veo mode from which image arguments were given."""
    if args.reference_image:
        return RequestKind.REFERENCE_IMAGES
    if args.last_frame:
        return RequestKind.INTERPOLATION
    if args.image:
        return RequestKind.IMAGE_TO_VIDEO
    return RequestKind.TEXT_TO_VIDEO


def _print_progress(handle: OperationHandle, elapsed_s: float) -> None:
    print(f"  ... still generating ({elapsed_s:.0f}s elapsed)", file=sys.stderr)


async def run(args: argparse.Namespace, config: Config) -> int:
    """Execute a parsed command against a live backend."""
    orchestrator = create_orchestrator(config)
    downloader = ResultDownloader(orchestrator.backend, mode=orchestrator.mode)
    writer = OutputWriter(downloader, config.output_dir or DEFAULT_OUTPUT_DIR)
    saved: list[Path] = []

    async def sink(job: JobResult) -> None:
        paths = await writer.write(job)
        saved.extend(paths)
        for ref in job.refs:
            if ref.kind == "text":
                print(f"\n[{job.prompt}]\n{ref.text}\n")

    if args.command == "analyze":
        clip = validate_clip(args.start, args.end)
        await orchestrator.run_analysis_batch(
            args.video, args.prompt, model=args.model, clip=clip, sink=sink
        )
    elif args.command == "image":
        kind = RequestKind.IMAGEN if args.model == IMAGEN_MODEL else RequestKind.IMAGE
        inputs = (load_image(args.input_image),) if args.input_image else ()
        params = GenerationParams(
            model=args.model,
            aspect_ratio=args.aspect_ratio,
            number_of_images=args.number_of_images,
            input_images=inputs,
        )
        await orchestrator.run_batch(kind, args.prompt, params, sink=sink)
    else:
        kind = video_kind(args)
        params = GenerationParams(
            model=args.model,
            aspect_ratio=args.aspect_ratio,
            resolution=args.resolution,
            duration_seconds=args.duration,
            negative_prompt=args.negative_prompt,
            person_generation=args.person_generation,
            seed=args.seed,
            first_frame=load_image(args.image) if args.image else None,
            last_frame=load_image(args.last_frame) if args.last_frame else None,
            reference_images=tuple(
                ReferenceImage(load_image(p)) for p in args.reference_image or ()
            ),
        )
        await orchestrator.run_batch(
            kind, args.prompt, params, sink=sink, on_progress=_print_progress
        )

    for path in saved:
        print(path)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = Config(api_key=args.api_key, output_dir=args.output_dir)
        return asyncio.run(run(args, config))
    except GenMediaError as exc:
        hint = f"\nHint: {exc.hint}" if exc.hint else ""
        print(f"Error: {exc}{hint}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
