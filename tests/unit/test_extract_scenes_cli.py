from __future__ import annotations

import asyncio
import zipfile
from pathlib import Path

from scenekit.data import SamplingOptions
from scenekit.service.export_service import read_tsv

from fakes import ScriptedAnalyzer
from scripts import extract_scenes


def test_parser_defaults(monkeypatch) -> None:
    monkeypatch.delenv("SCENEKIT_MAX_FRAMES", raising=False)
    args = extract_scenes.build_parser().parse_args(["clip.mp4", "--archive"])
    assert args.source == Path("clip.mp4")
    assert args.max_frames == 60
    assert args.archive is True
    assert args.analyze is False


def test_collect_sources(tmp_path: Path) -> None:
    (tmp_path / "b.mov").write_bytes(b"x")
    (tmp_path / "a.mp4").write_bytes(b"x")
    (tmp_path / "notes.txt").write_text("x")

    assert [path.name for path in extract_scenes.collect_sources(tmp_path, recursive=False)] == ["a.mp4", "b.mov"]
    assert extract_scenes.collect_sources(tmp_path / "a.mp4", recursive=False) == [tmp_path / "a.mp4"]


def test_run_writes_reports_and_archives(stream_factory, tmp_path: Path, video_file: Path) -> None:
    sampler, streams = stream_factory(duration=3.0)
    output_dir = tmp_path / "out"

    failures = asyncio.run(
        extract_scenes.run(
            [video_file, tmp_path / "missing.mp4"],
            options=SamplingOptions(interval_seconds=1.0, max_frames=10, quality=0.7),
            output_dir=output_dir,
            analyze=True,
            select_all=True,
            archive=True,
            analyzer=ScriptedAnalyzer(),
            sampler=sampler,
        )
    )

    assert failures == 1
    rows = read_tsv(output_dir / "reel" / "reel_scenes.tsv")
    assert [row["description"] for row in rows] == ["frame 1", "frame 2", "frame 3"]
    with zipfile.ZipFile(output_dir / "reel" / "reel_scenes.zip") as archive:
        assert len(archive.namelist()) == 3
    assert streams[0].release_count == 1
