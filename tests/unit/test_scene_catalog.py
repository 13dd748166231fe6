from __future__ import annotations

import pytest

from scenekit.catalog import (
    Scene,
    SceneAnalysis,
    SceneStatus,
    apply_analysis,
    deselect_all,
    find_scene,
    format_timestamp,
    mark_analyzing,
    mark_error,
    select_all,
    selected_scenes,
    toggle_selection,
)


def _scenes(count: int = 4) -> tuple[Scene, ...]:
    return tuple(
        Scene(id=f"scene_{idx}", scene_number=idx + 1, timestamp=idx * 1.5, thumbnail=b"jpeg")
        for idx in range(count)
    )


def test_toggle_selection_is_its_own_inverse() -> None:
    scenes = _scenes()
    once = toggle_selection(scenes, "scene_2")
    assert find_scene(once, "scene_2").is_selected
    assert [scene.is_selected for scene in once].count(True) == 1

    twice = toggle_selection(once, "scene_2")
    assert twice == scenes


def test_toggle_unknown_id_is_noop() -> None:
    scenes = _scenes()
    assert toggle_selection(scenes, "scene_from_old_session") == scenes


def test_select_and_deselect_all() -> None:
    scenes = select_all(_scenes())
    assert len(selected_scenes(scenes)) == 4
    assert not selected_scenes(deselect_all(scenes))


def test_apply_analysis_targets_one_scene() -> None:
    scenes = _scenes()
    result = SceneAnalysis.create("A person waves at the camera", ["person", "greeting"])

    updated = apply_analysis(scenes, "scene_1", result)

    target = find_scene(updated, "scene_1")
    assert target.analysis == result
    assert target.analysis_status == SceneStatus.COMPLETED
    assert all(scene.analysis is None for scene in updated if scene.id != "scene_1")
    assert apply_analysis(scenes, "missing", result) == scenes


def test_mark_analyzing_by_position() -> None:
    scenes = _scenes()
    updated = mark_analyzing(scenes, 2)
    assert updated[2].analysis_status == SceneStatus.ANALYZING
    assert mark_analyzing(scenes, 10) == scenes


def test_mark_error_and_inputs_untouched() -> None:
    scenes = _scenes()
    updated = mark_error(scenes, "scene_0")
    assert updated[0].analysis_status == SceneStatus.ERROR
    assert scenes[0].analysis_status == SceneStatus.PENDING
    assert [scene.id for scene in updated] == [scene.id for scene in scenes]


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0.0, "00:00"), (1.5, "00:01"), (59.9, "00:59"), (88.5, "01:28"), (754.0, "12:34")],
)
def test_format_timestamp(seconds: float, expected: str) -> None:
    assert format_timestamp(seconds) == expected


def test_scene_dict_roundtrip_keeps_analysis() -> None:
    scene = Scene(
        id="scene_0",
        scene_number=1,
        timestamp=0.0,
        thumbnail=b"\xff\xd8data",
        analysis=SceneAnalysis.create("desc", ["a", "b"]),
        analysis_status=SceneStatus.COMPLETED,
    )
    restored = Scene.from_dict(scene.as_dict(include_thumbnail=True))
    assert restored == scene
