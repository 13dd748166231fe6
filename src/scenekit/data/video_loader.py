"""Locate video assets and describe them as extraction sources."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

VIDEO_EXTENSIONS: tuple[str, ...] = (".mp4", ".mov", ".mkv", ".avi", ".webm")


@dataclass(frozen=True, slots=True)
class SourceFile:
    """Name, size, and MIME type of the uploaded media."""

    name: str
    size: int
    mime_type: str

    @classmethod
    def from_path(cls, path: Path | str) -> SourceFile:
        source = Path(path).expanduser().resolve()
        if not source.exists():
            raise FileNotFoundError(f"Video file not found: {source}")
        mime_type = mimetypes.guess_type(source.name)[0] or "application/octet-stream"
        return cls(name=source.name, size=source.stat().st_size, mime_type=mime_type)

    @property
    def stem(self) -> str:
        return Path(self.name).stem

    def as_dict(self) -> dict[str, object]:
        return {"name": self.name, "size": self.size, "mime_type": self.mime_type}


def iter_video_files(root: Path | str, *, recursive: bool = False) -> Iterator[Path]:
    """Yield video files from ``root`` filtering by known extensions."""
    root_path = Path(root).expanduser().resolve()
    if not root_path.exists():
        raise FileNotFoundError(f"Video directory not found: {root_path}")

    glob_pattern = "**/*" if recursive else "*"
    for candidate in sorted(root_path.glob(glob_pattern)):
        if candidate.is_file() and candidate.suffix.lower() in VIDEO_EXTENSIONS:
            yield candidate


def ensure_directory(path: Path | str) -> Path:
    """Create a directory if it does not exist."""
    target = Path(path)
    target.mkdir(parents=True, exist_ok=True)
    return target


__all__ = ["SourceFile", "iter_video_files", "ensure_directory", "VIDEO_EXTENSIONS"]
