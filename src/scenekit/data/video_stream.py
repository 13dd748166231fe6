"""Seekable decode streams and the media handle that owns one."""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from typing import Protocol, runtime_checkable

import cv2
import numpy as np

from scenekit.errors import ExtractionError, MediaReleasedError

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class SeekableStream(Protocol):
    """A single decode stream exposing one playback position at a time.

    ``seek_to`` blocks until the position change is confirmed and returns the
    confirmation; ``capture_frame`` returns the raster at the current position
    in the source's native dimensions.
    """

    duration: float
    width: int
    height: int

    def seek_to(self, timestamp: float) -> bool:
        ...

    def capture_frame(self) -> np.ndarray:
        ...

    def release(self) -> None:
        ...


class OpenCVStream:
    """``cv2.VideoCapture`` wrapper with frame-index seeking."""

    def __init__(self, video_path: Path | str) -> None:
        self.path = Path(video_path).expanduser().resolve()
        if not self.path.exists():
            raise ExtractionError(f"Video file not found: {self.path}")

        capture = cv2.VideoCapture(str(self.path))
        if not capture.isOpened():
            capture.release()
            raise ExtractionError(f"CV2 failed to open video file: {self.path}")

        fps = capture.get(cv2.CAP_PROP_FPS) or 0.0
        frame_count = int(capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)
        height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)
        if fps <= 0 or frame_count <= 0 or width <= 0 or height <= 0:
            capture.release()
            raise ExtractionError(
                f"Video metadata unavailable for {self.path} "
                f"(fps={fps}, frames={frame_count}, size={width}x{height})"
            )

        self._capture = capture
        self.fps = float(fps)
        self.frame_count = frame_count
        self.width = width
        self.height = height
        self.duration = frame_count / self.fps

    def seek_to(self, timestamp: float) -> bool:
        frame_index = min(int(round(timestamp * self.fps)), self.frame_count - 1)
        return bool(self._capture.set(cv2.CAP_PROP_POS_FRAMES, max(frame_index, 0)))

    def capture_frame(self) -> np.ndarray:
        success, frame = self._capture.read()
        if not success or frame is None:
            raise ExtractionError(f"Failed to read frame from {self.path}")
        if frame.shape[1] != self.width or frame.shape[0] != self.height:
            frame = cv2.resize(frame, (self.width, self.height))
        return frame

    def release(self) -> None:
        self._capture.release()


def encode_jpeg(frame: np.ndarray, quality: float) -> bytes:
    """Compress a BGR raster to JPEG; ``quality`` is in ``(0, 1]``."""
    params = [int(cv2.IMWRITE_JPEG_QUALITY), int(round(quality * 100))]
    success, buffer = cv2.imencode(".jpg", frame, params)
    if not success:
        raise ExtractionError("JPEG encoding failed")
    return buffer.tobytes()


class MediaHandle:
    """Scoped owner of a decode stream.

    The underlying stream is released exactly once; later ``release`` calls are
    no-ops and any other access raises :class:`MediaReleasedError`.
    """

    def __init__(self, stream: SeekableStream) -> None:
        self._stream = stream
        self._released = False
        self._lock = Lock()

    @property
    def released(self) -> bool:
        return self._released

    @property
    def stream(self) -> SeekableStream:
        if self._released:
            raise MediaReleasedError("Media handle has already been released")
        return self._stream

    def capture_at(self, timestamp: float, quality: float) -> bytes:
        """Seek the owned stream and return a JPEG of the frame at ``timestamp``."""
        with self._lock:
            stream = self.stream
            if timestamp < 0 or timestamp >= stream.duration:
                raise ValueError(f"timestamp {timestamp} outside [0, {stream.duration})")
            if not stream.seek_to(timestamp):
                raise ExtractionError(f"Seek to {timestamp:.3f}s was not confirmed", timestamp=timestamp)
            return encode_jpeg(stream.capture_frame(), quality)

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
            self._stream.release()
        LOGGER.debug("Released media handle %s", self._stream)

    def __enter__(self) -> MediaHandle:
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()


__all__ = ["SeekableStream", "OpenCVStream", "MediaHandle", "encode_jpeg"]
