from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from scenekit.catalog import Scene, SceneAnalysis, SceneStatus
from scenekit.errors import ExportError
from scenekit.service.export_service import (
    TSV_COLUMNS,
    export_archive,
    export_single,
    export_tsv,
    read_tsv,
    scene_filename,
)


def _scene(number: int, timestamp: float, *, selected: bool = False, analysis: SceneAnalysis | None = None) -> Scene:
    return Scene(
        id=f"scene_{number - 1}_abc{number:03d}",
        scene_number=number,
        timestamp=timestamp,
        thumbnail=b"\xff\xd8" + bytes([number]) * 8,
        is_selected=selected,
        analysis=analysis,
        analysis_status=SceneStatus.COMPLETED if analysis else SceneStatus.PENDING,
    )


@pytest.fixture
def scenes() -> tuple[Scene, ...]:
    return (
        _scene(1, 0.0, analysis=SceneAnalysis.create("Intro card with logo", ["logo", "title"])),
        _scene(2, 61.5, selected=True),
        _scene(3, 125.0, selected=True, analysis=SceneAnalysis.create("Crowd, cheering", ["crowd"])),
    )


def test_scene_filename_uses_number_and_time() -> None:
    assert scene_filename(_scene(4, 75.2)) == "scene_4_01-15.jpg"


def test_export_single_writes_thumbnail(tmp_path: Path, scenes) -> None:
    path = export_single(scenes[1], tmp_path / "out")

    assert path.name == "scene_2_01-01.jpg"
    assert path.read_bytes() == scenes[1].thumbnail
    assert not list(path.parent.glob(".*.partial"))


def test_export_tsv_layout(tmp_path: Path, scenes) -> None:
    path = export_tsv(scenes, "reel", tmp_path)

    assert path.name == "reel_scenes.tsv"
    raw = path.read_bytes()
    assert raw.startswith(b"\xef\xbb\xbf")
    lines = raw[3:].decode("utf-8").split("\n")
    assert lines[0] == "\t".join(TSV_COLUMNS)
    assert lines[1] == "1\t00:00\tIntro card with logo\tlogo, title"
    assert lines[2] == "2\t01:01\t\t"
    assert lines[3] == "3\t02:05\tCrowd, cheering\tcrowd"


def test_export_tsv_reads_back(tmp_path: Path, scenes) -> None:
    rows = read_tsv(export_tsv(scenes, "reel", tmp_path))

    assert [row["sceneNumber"] for row in rows] == [1, 2, 3]
    assert rows[0]["tags"] == ["logo", "title"]
    assert rows[1] == {"sceneNumber": 2, "timestampFormatted": "01:01", "description": "", "tags": []}
    assert rows[2]["description"] == "Crowd, cheering"


def test_read_tsv_rejects_foreign_file(tmp_path: Path) -> None:
    path = tmp_path / "other.tsv"
    path.write_text("a\tb\n1\t2\n", encoding="utf-8")
    with pytest.raises(ExportError, match="missing columns"):
        read_tsv(path)


def test_archive_contains_only_selected_in_order(tmp_path: Path, scenes) -> None:
    path = export_archive(scenes, tmp_path / "bundle" / "reel_scenes.zip")

    with zipfile.ZipFile(path) as archive:
        assert archive.namelist() == ["scene_2_01-01.jpg", "scene_3_02-05.jpg"]
        assert archive.read("scene_3_02-05.jpg") == scenes[2].thumbnail
    assert not list(path.parent.glob(".*.partial"))


def test_archive_without_selection_fails(tmp_path: Path) -> None:
    target = tmp_path / "empty.zip"
    with pytest.raises(ExportError, match="No scenes are selected"):
        export_archive((_scene(1, 0.0), _scene(2, 1.0)), target)
    assert not target.exists()


def test_failed_write_leaves_no_partial_file(tmp_path: Path, scenes) -> None:
    blocker = tmp_path / "reel_scenes.tsv"
    blocker.mkdir()

    with pytest.raises(ExportError):
        export_tsv(scenes, "reel", tmp_path)

    assert not (tmp_path / ".reel_scenes.tsv.partial").exists()
