"""Extraction session record: source metadata, scenes, and lifecycle status."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Sequence
from uuid import uuid4

from scenekit.catalog import Scene, count_completed
from scenekit.data import MediaHandle, SourceFile, progress_percentage


class ExtractionStatus(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    EXTRACTED = "extracted"
    ERROR = "error"


class AnalysisStatus(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class AnalysisProgress:
    current: int
    total: int
    percentage: int

    @classmethod
    def for_scenes(cls, scenes: Sequence[Scene]) -> AnalysisProgress:
        current = count_completed(scenes)
        total = len(scenes)
        return cls(current=current, total=total, percentage=progress_percentage(current, total))

    def as_dict(self) -> Dict[str, int]:
        return {"current": self.current, "total": self.total, "percentage": self.percentage}


@dataclass
class ExtractionSession:
    """One extraction attempt and everything derived from it.

    The session exclusively owns ``handle``; :meth:`dispose` releases it.
    """

    source: SourceFile
    duration: float
    handle: MediaHandle
    scenes: tuple[Scene, ...]
    id: str = field(default_factory=lambda: uuid4().hex)
    extraction_status: ExtractionStatus = ExtractionStatus.EXTRACTED
    analysis_status: AnalysisStatus = AnalysisStatus.IDLE
    analysis_progress: AnalysisProgress = field(init=False)
    total_scenes: int = field(init=False)
    created_at: datetime = field(default_factory=_utcnow)
    analysis_error: Optional[str] = None

    def __post_init__(self) -> None:
        self.scenes = tuple(self.scenes)
        self.total_scenes = len(self.scenes)
        self.analysis_progress = AnalysisProgress.for_scenes(self.scenes)

    def replace_scenes(self, scenes: Sequence[Scene]) -> None:
        """Install an updated scene tuple; order and count must not change."""
        updated = tuple(scenes)
        if [scene.id for scene in updated] != [scene.id for scene in self.scenes]:
            raise ValueError("Scene order and membership are fixed for a session.")
        self.scenes = updated
        self.analysis_progress = AnalysisProgress.for_scenes(updated)

    @property
    def selected_count(self) -> int:
        return sum(1 for scene in self.scenes if scene.is_selected)

    @property
    def disposed(self) -> bool:
        return self.handle.released

    def preview_frame(self, timestamp: float, quality: float) -> bytes:
        """Grab a JPEG at any timestamp through the session's own stream."""
        return self.handle.capture_at(timestamp, quality)

    def dispose(self) -> None:
        self.handle.release()

    def as_dict(self, *, include_thumbnails: bool = False) -> Dict[str, object]:
        return {
            "id": self.id,
            "source": self.source.as_dict(),
            "duration": self.duration,
            "total_scenes": self.total_scenes,
            "selected_count": self.selected_count,
            "extraction_status": self.extraction_status.value,
            "analysis_status": self.analysis_status.value,
            "analysis_progress": self.analysis_progress.as_dict(),
            "analysis_error": self.analysis_error,
            "created_at": self.created_at.isoformat(),
            "scenes": [scene.as_dict(include_thumbnail=include_thumbnails) for scene in self.scenes],
        }


__all__ = ["ExtractionSession", "ExtractionStatus", "AnalysisStatus", "AnalysisProgress"]
