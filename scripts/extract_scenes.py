"""CLI for sampling scenes from short videos and exporting the catalog."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from scenekit.config import build_config_from_env
from scenekit.data import FrameSampler, SamplingOptions, iter_video_files
from scenekit.errors import SceneKitError
from scenekit.service.analyzer import BaseSceneAnalyzer, GeminiSceneAnalyzer
from scenekit.service.export_service import export_archive, export_tsv
from scenekit.session import SessionController

LOGGER = logging.getLogger("scenekit.scripts.extract_scenes")


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _log_progress(event: str, payload: dict[str, object]) -> None:
    if event in ("extraction_progress", "analysis_progress"):
        LOGGER.info("%s: %s/%s (%s%%)", event, payload["current"], payload["total"], payload["percentage"])


async def process_video(
    controller: SessionController,
    video_path: Path,
    *,
    options: SamplingOptions,
    output_dir: Path,
    analyze: bool,
    select_all: bool,
    archive: bool,
) -> list[Path]:
    """Extract one video into a session and write its exports; returns written paths."""
    session = await controller.start_extraction(video_path, options)
    if analyze:
        await controller.start_analysis()
    if select_all:
        controller.select_all()

    target_dir = output_dir / session.source.stem
    written = [export_tsv(session.scenes, session.source.stem, target_dir)]
    if archive and session.selected_count:
        written.append(export_archive(session.scenes, target_dir / f"{session.source.stem}_scenes.zip"))
    elif archive:
        LOGGER.warning("No scenes selected for %s; skipping archive", video_path.name)
    return written


async def run(
    sources: Sequence[Path],
    *,
    options: SamplingOptions,
    output_dir: Path,
    analyze: bool,
    select_all: bool,
    archive: bool,
    analyzer: Optional[BaseSceneAnalyzer] = None,
    analysis_concurrency: int = 1,
    analysis_timeout: Optional[float] = None,
    sampler: Optional[FrameSampler] = None,
) -> int:
    controller = SessionController(
        sampler=sampler,
        analyzer=analyzer,
        analysis_concurrency=analysis_concurrency,
        analysis_timeout=analysis_timeout,
    )
    controller.subscribe(_log_progress)
    failures = 0
    try:
        for video_path in sources:
            LOGGER.info("Processing %s", video_path)
            try:
                written = await process_video(
                    controller,
                    video_path,
                    options=options,
                    output_dir=output_dir,
                    analyze=analyze,
                    select_all=select_all,
                    archive=archive,
                )
            except SceneKitError as exc:
                LOGGER.error("Failed to process %s: %s", video_path.name, exc)
                failures += 1
                continue
            for path in written:
                LOGGER.info("Wrote %s", path)
    finally:
        controller.clear_session()
    return failures


def collect_sources(source: Path, *, recursive: bool) -> list[Path]:
    if source.is_dir():
        return list(iter_video_files(source, recursive=recursive))
    return [source]


def build_parser() -> argparse.ArgumentParser:
    config = build_config_from_env()
    parser = argparse.ArgumentParser(
        description="Sample scenes from short videos and export the scene catalog.",
    )
    parser.add_argument(
        "source",
        type=Path,
        help="Video file or directory containing video files.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=config.output_dir,
        help=f"Directory where reports and archives are written (default: {config.output_dir}).",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=config.interval_seconds,
        help=f"Desired seconds between scenes (default: {config.interval_seconds}).",
    )
    parser.add_argument(
        "--max-frames",
        type=int,
        default=config.max_frames,
        help=f"Maximum scenes per video; the interval stretches to fit (default: {config.max_frames}).",
    )
    parser.add_argument(
        "--quality",
        type=float,
        default=config.jpeg_quality,
        help=f"JPEG quality in (0, 1] (default: {config.jpeg_quality}).",
    )
    parser.add_argument(
        "--analyze",
        action="store_true",
        help="Describe and tag every scene with the Gemini analyzer.",
    )
    parser.add_argument(
        "--select-all",
        action="store_true",
        help="Select every scene before exporting.",
    )
    parser.add_argument(
        "--archive",
        action="store_true",
        help="Also write a ZIP archive of the selected scenes.",
    )
    parser.add_argument(
        "--recursive",
        action="store_true",
        help="Search for videos recursively when SOURCE is a directory.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose)
    config = build_config_from_env()
    try:
        options = SamplingOptions(
            interval_seconds=args.interval,
            max_frames=args.max_frames,
            quality=args.quality,
        )
    except ValueError as exc:
        parser.error(str(exc))

    sources = collect_sources(args.source, recursive=args.recursive)
    if not sources:
        LOGGER.warning("No video files found in %s", args.source)
        return 1

    failures = asyncio.run(
        run(
            sources,
            options=options,
            output_dir=args.output,
            analyze=args.analyze,
            select_all=args.select_all,
            archive=args.archive,
            analyzer=GeminiSceneAnalyzer() if args.analyze else None,
            analysis_concurrency=config.analysis_concurrency,
            analysis_timeout=config.analysis_timeout,
        )
    )
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
