"""Exception hierarchy shared by the sampler, session controller, and exporters."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class SceneKitError(Exception):
    """Base class for every error raised by :mod:`scenekit`."""


class ExtractionError(SceneKitError):
    """The source could not be decoded or a capture step failed mid-loop."""

    def __init__(
        self,
        message: str,
        *,
        captured_frames: int = 0,
        scene_number: Optional[int] = None,
        timestamp: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.captured_frames = captured_frames
        self.scene_number = scene_number
        self.timestamp = timestamp

    def as_dict(self) -> dict[str, object]:
        return {
            "message": str(self),
            "captured_frames": self.captured_frames,
            "scene_number": self.scene_number,
            "timestamp": self.timestamp,
        }


class AnalyzerError(SceneKitError):
    """A single scene could not be analyzed."""

    def __init__(self, message: str, *, scene_number: Optional[int] = None) -> None:
        super().__init__(message)
        self.scene_number = scene_number


class SessionAnalysisError(SceneKitError):
    """The analysis batch failed as a whole, not because of one scene."""


class SessionStateError(SceneKitError):
    """An operation was requested in a lifecycle state that does not allow it."""


class MediaReleasedError(SceneKitError):
    """A media handle was used after it had been released."""


class ExportError(SceneKitError):
    """Writing a report, archive, or single scene image failed."""

    def __init__(self, message: str, *, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


__all__ = [
    "SceneKitError",
    "ExtractionError",
    "AnalyzerError",
    "SessionAnalysisError",
    "SessionStateError",
    "MediaReleasedError",
    "ExportError",
]
