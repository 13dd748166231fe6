"""Scene records and the selection/analysis operations applied to them."""

from .scene import Scene, SceneAnalysis, SceneStatus, format_timestamp, new_scene_id
from .selection import (
    apply_analysis,
    count_completed,
    deselect_all,
    find_scene,
    mark_analyzing,
    mark_error,
    select_all,
    selected_scenes,
    toggle_selection,
)

__all__ = [
    "Scene",
    "SceneAnalysis",
    "SceneStatus",
    "format_timestamp",
    "new_scene_id",
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
