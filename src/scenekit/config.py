"""Environment-driven defaults for the CLI and web surfaces."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from scenekit.data import SamplingOptions


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


@dataclass(slots=True)
class AppConfig:
    """Sampling and analysis defaults applied outside the core."""

    interval_seconds: float = 1.0
    max_frames: int = 60
    jpeg_quality: float = 0.8
    analysis_concurrency: int = 1
    analysis_timeout: float | None = 60.0
    output_dir: Path = Path("data") / "exports"

    def sampling_options(self) -> SamplingOptions:
        return SamplingOptions(
            interval_seconds=self.interval_seconds,
            max_frames=self.max_frames,
            quality=self.jpeg_quality,
        )


def build_config_from_env() -> AppConfig:
    """Populate :class:`AppConfig` from ``SCENEKIT_*`` environment variables."""
    timeout = _env_float("SCENEKIT_ANALYSIS_TIMEOUT", 60.0)
    return AppConfig(
        interval_seconds=_env_float("SCENEKIT_INTERVAL_SECONDS", 1.0),
        max_frames=_env_int("SCENEKIT_MAX_FRAMES", 60),
        jpeg_quality=_env_float("SCENEKIT_JPEG_QUALITY", 0.8),
        analysis_concurrency=_env_int("SCENEKIT_ANALYSIS_CONCURRENCY", 1),
        analysis_timeout=timeout if timeout > 0 else None,
        output_dir=Path(os.getenv("SCENEKIT_OUTPUT_DIR", str(Path("data") / "exports"))),
    )


__all__ = ["AppConfig", "build_config_from_env"]
