"""Interval-based frame sampling against a single seekable decode stream."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from scenekit.catalog import Scene, new_scene_id
from scenekit.errors import ExtractionError

from .video_stream import MediaHandle, OpenCVStream, SeekableStream, encode_jpeg

LOGGER = logging.getLogger(__name__)

StreamOpener = Callable[[Path], SeekableStream]
ProgressCallback = Callable[["ExtractionProgress"], None]


def progress_percentage(current: int, total: int) -> int:
    """Whole percent of ``current`` over ``total``, halves rounded up."""
    if total <= 0:
        return 0
    return int(math.floor(100 * current / total + 0.5))


@dataclass(frozen=True, slots=True)
class SamplingOptions:
    """Sampling cadence, frame ceiling, and JPEG quality in ``(0, 1]``."""

    interval_seconds: float
    max_frames: int
    quality: float

    def __post_init__(self) -> None:
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")
        if self.max_frames < 1:
            raise ValueError("max_frames must be at least 1.")
        if not 0 < self.quality <= 1:
            raise ValueError("quality must be in (0, 1].")

    def as_dict(self) -> dict[str, object]:
        return {
            "interval_seconds": self.interval_seconds,
            "max_frames": self.max_frames,
            "quality": self.quality,
        }


@dataclass(frozen=True, slots=True)
class ExtractionProgress:
    current: int
    total: int
    percentage: int

    @classmethod
    def of(cls, current: int, total: int) -> ExtractionProgress:
        return cls(current=current, total=total, percentage=progress_percentage(current, total))

    def as_dict(self) -> dict[str, int]:
        return {"current": self.current, "total": self.total, "percentage": self.percentage}


@dataclass(frozen=True, slots=True)
class SamplingPlan:
    """How many frames to take and how far apart, for a given duration."""

    duration: float
    natural_count: int
    adjusted_interval: float
    total_frames: int

    def timestamps(self) -> List[float]:
        stamps: list[float] = []
        for index in range(self.total_frames):
            timestamp = index * self.adjusted_interval
            # float rounding can push the last stamp onto the boundary
            if timestamp >= self.duration:
                break
            stamps.append(timestamp)
        return stamps


def compute_sampling_plan(duration: float, interval_seconds: float, max_frames: int) -> SamplingPlan:
    """Stretch the interval when the natural cadence would exceed ``max_frames``.

    The whole duration stays covered instead of truncating the tail.
    """
    if duration <= 0:
        raise ValueError("duration must be positive.")
    if interval_seconds <= 0:
        raise ValueError("interval_seconds must be positive.")
    if max_frames < 1:
        raise ValueError("max_frames must be at least 1.")

    natural_count = math.ceil(duration / interval_seconds)
    if natural_count > max_frames:
        adjusted_interval = duration / max_frames
        total_frames = max_frames
    else:
        adjusted_interval = interval_seconds
        total_frames = natural_count
    return SamplingPlan(
        duration=duration,
        natural_count=natural_count,
        adjusted_interval=adjusted_interval,
        total_frames=total_frames,
    )


@dataclass(slots=True)
class SamplingResult:
    """Captured scenes plus the still-open media handle, now owned by the caller."""

    scenes: List[Scene]
    duration: float
    handle: MediaHandle
    plan: SamplingPlan


class FrameSampler:
    """Drive the seek-then-capture loop over one stream, strictly in order."""

    def __init__(self, opener: Optional[StreamOpener] = None) -> None:
        self._opener: StreamOpener = opener or OpenCVStream

    def _open(self, source_path: Path) -> SeekableStream:
        try:
            stream = self._opener(source_path)
        except ExtractionError:
            raise
        except Exception as exc:
            raise ExtractionError(f"Failed to open {source_path}: {exc}") from exc
        duration = getattr(stream, "duration", 0.0) or 0.0
        if duration <= 0 or not math.isfinite(duration):
            stream.release()
            raise ExtractionError(f"Video duration unavailable for {source_path}")
        return stream

    def sample(
        self,
        video_path: Path | str,
        options: SamplingOptions,
        *,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SamplingResult:
        source_path = Path(video_path)
        stream = self._open(source_path)
        handle = MediaHandle(stream)
        plan = compute_sampling_plan(stream.duration, options.interval_seconds, options.max_frames)

        LOGGER.info(
            "Starting scene sampling: video=%s, duration=%.2fs, interval=%.3fs (requested %.3fs), frames=%d",
            source_path,
            plan.duration,
            plan.adjusted_interval,
            options.interval_seconds,
            plan.total_frames,
        )

        scenes: list[Scene] = []
        try:
            for index, timestamp in enumerate(plan.timestamps()):
                scene_number = index + 1
                try:
                    if not stream.seek_to(timestamp):
                        raise ExtractionError(f"Seek to {timestamp:.3f}s was not confirmed")
                    thumbnail = encode_jpeg(stream.capture_frame(), options.quality)
                except Exception as exc:
                    LOGGER.error(
                        "Capture failed at scene %d (%.3fs) after %d frames: %s",
                        scene_number,
                        timestamp,
                        len(scenes),
                        exc,
                    )
                    raise ExtractionError(
                        f"Capture failed at scene {scene_number} ({timestamp:.3f}s): {exc}",
                        captured_frames=len(scenes),
                        scene_number=scene_number,
                        timestamp=timestamp,
                    ) from exc

                scenes.append(
                    Scene(
                        id=new_scene_id(index),
                        scene_number=scene_number,
                        timestamp=timestamp,
                        thumbnail=thumbnail,
                    )
                )
                LOGGER.debug("Captured scene %d at %.3fs (%d bytes)", scene_number, timestamp, len(thumbnail))
                if on_progress is not None:
                    on_progress(ExtractionProgress.of(scene_number, plan.total_frames))
        except BaseException:
            # no caller will ever own the handle once sampling aborts
            handle.release()
            raise

        LOGGER.info("Sampling complete: %d scenes from %s", len(scenes), source_path.name)
        return SamplingResult(scenes=scenes, duration=plan.duration, handle=handle, plan=plan)


__all__ = [
    "FrameSampler",
    "SamplingOptions",
    "SamplingPlan",
    "SamplingResult",
    "ExtractionProgress",
    "compute_sampling_plan",
    "progress_percentage",
]
