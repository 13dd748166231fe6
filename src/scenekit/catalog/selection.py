"""Pure operations over an ordered scene sequence.

Every function returns a new tuple and leaves its input untouched. Unknown ids
are ignored rather than raised: callbacks from a superseded session may still
reference scenes that no longer exist.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional, Sequence

from .scene import Scene, SceneAnalysis, SceneStatus


def _update_by_id(scenes: Sequence[Scene], scene_id: str, change: Callable[[Scene], Scene]) -> tuple[Scene, ...]:
    return tuple(change(scene) if scene.id == scene_id else scene for scene in scenes)


def select_all(scenes: Sequence[Scene]) -> tuple[Scene, ...]:
    return tuple(replace(scene, is_selected=True) for scene in scenes)


def deselect_all(scenes: Sequence[Scene]) -> tuple[Scene, ...]:
    return tuple(replace(scene, is_selected=False) for scene in scenes)


def toggle_selection(scenes: Sequence[Scene], scene_id: str) -> tuple[Scene, ...]:
    return _update_by_id(scenes, scene_id, lambda scene: replace(scene, is_selected=not scene.is_selected))


def apply_analysis(scenes: Sequence[Scene], scene_id: str, result: SceneAnalysis) -> tuple[Scene, ...]:
    return _update_by_id(
        scenes,
        scene_id,
        lambda scene: replace(scene, analysis=result, analysis_status=SceneStatus.COMPLETED),
    )


def mark_analyzing(scenes: Sequence[Scene], index: int) -> tuple[Scene, ...]:
    if not 0 <= index < len(scenes):
        return tuple(scenes)
    updated = list(scenes)
    updated[index] = replace(updated[index], analysis_status=SceneStatus.ANALYZING)
    return tuple(updated)


def mark_error(scenes: Sequence[Scene], scene_id: str) -> tuple[Scene, ...]:
    return _update_by_id(scenes, scene_id, lambda scene: replace(scene, analysis_status=SceneStatus.ERROR))


def find_scene(scenes: Sequence[Scene], scene_id: str) -> Optional[Scene]:
    return next((scene for scene in scenes if scene.id == scene_id), None)


def selected_scenes(scenes: Sequence[Scene]) -> tuple[Scene, ...]:
    return tuple(scene for scene in scenes if scene.is_selected)


def count_completed(scenes: Sequence[Scene]) -> int:
    return sum(1 for scene in scenes if scene.analysis_status == SceneStatus.COMPLETED)


__all__ = [
    "select_all",
    "deselect_all",
    "toggle_selection",
    "apply_analysis",
    "mark_analyzing",
    "mark_error",
    "find_scene",
    "selected_scenes",
    "count_completed",
]
