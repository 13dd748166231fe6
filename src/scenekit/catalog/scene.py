"""Scene records produced by the frame sampler."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence
from uuid import uuid4


class SceneStatus(str, Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    ERROR = "error"


def format_timestamp(seconds: float) -> str:
    """Render ``seconds`` as zero-padded ``MM:SS``."""
    minutes = int(seconds // 60)
    remainder = int(seconds % 60)
    return f"{minutes:02d}:{remainder:02d}"


def new_scene_id(index: int) -> str:
    return f"scene_{index}_{uuid4().hex[:6]}"


@dataclass(frozen=True, slots=True)
class SceneAnalysis:
    """Description and tags returned by the analyzer for one frame."""

    description: str
    tags: tuple[str, ...] = ()

    @classmethod
    def create(cls, description: str, tags: Sequence[str]) -> SceneAnalysis:
        return cls(description=description, tags=tuple(str(tag) for tag in tags))

    def as_dict(self) -> dict[str, object]:
        return {"description": self.description, "tags": list(self.tags)}


@dataclass(frozen=True, slots=True)
class Scene:
    """One sampled frame plus its selection flag and analysis state."""

    id: str
    scene_number: int
    timestamp: float
    thumbnail: bytes
    is_selected: bool = False
    analysis: Optional[SceneAnalysis] = None
    analysis_status: SceneStatus = SceneStatus.PENDING

    @property
    def timestamp_formatted(self) -> str:
        return format_timestamp(self.timestamp)

    def as_dict(self, *, include_thumbnail: bool = False) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": self.id,
            "scene_number": self.scene_number,
            "timestamp": self.timestamp,
            "timestamp_formatted": self.timestamp_formatted,
            "is_selected": self.is_selected,
            "analysis": self.analysis.as_dict() if self.analysis else None,
            "analysis_status": self.analysis_status.value,
        }
        if include_thumbnail:
            payload["thumbnail"] = base64.b64encode(self.thumbnail).decode("ascii")
        return payload

    @classmethod
    def from_dict(cls, data: dict, *, thumbnail: bytes | None = None) -> Scene:
        analysis = data.get("analysis")
        if thumbnail is None:
            encoded = data.get("thumbnail")
            thumbnail = base64.b64decode(encoded) if encoded else b""
        return cls(
            id=data["id"],
            scene_number=int(data["scene_number"]),
            timestamp=float(data["timestamp"]),
            thumbnail=thumbnail,
            is_selected=bool(data.get("is_selected", False)),
            analysis=SceneAnalysis.create(analysis["description"], analysis.get("tags", [])) if analysis else None,
            analysis_status=SceneStatus(data.get("analysis_status", SceneStatus.PENDING.value)),
        )


__all__ = ["Scene", "SceneAnalysis", "SceneStatus", "format_timestamp", "new_scene_id"]
