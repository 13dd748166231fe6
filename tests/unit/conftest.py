from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from scenekit.data import FrameSampler, SamplingOptions

from fakes import FakeStream


@pytest.fixture
def stream_factory() -> Callable[..., tuple[FrameSampler, list[FakeStream]]]:
    """Build a sampler whose opener hands out :class:`FakeStream` objects and records them."""

    def build(**kwargs) -> tuple[FrameSampler, list[FakeStream]]:
        streams: list[FakeStream] = []

        def opener(path: Path) -> FakeStream:
            stream = FakeStream(**kwargs)
            streams.append(stream)
            return stream

        return FrameSampler(opener=opener), streams

    return build


@pytest.fixture
def video_file(tmp_path: Path) -> Path:
    path = tmp_path / "videos" / "reel.mp4"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"not really a video")
    return path


@pytest.fixture
def sampling_options() -> SamplingOptions:
    return SamplingOptions(interval_seconds=1.0, max_frames=60, quality=0.8)
