"""Scene exports: single JPEGs, the TSV report, and the selected-scene archive."""

from __future__ import annotations

import csv
import logging
import os
import zipfile
from pathlib import Path
from typing import Iterator, List, Sequence

import pandas as pd

from scenekit.catalog import Scene, selected_scenes
from scenekit.data import ensure_directory
from scenekit.errors import ExportError

LOGGER = logging.getLogger(__name__)

TSV_COLUMNS: tuple[str, ...] = ("sceneNumber", "timestampFormatted", "description", "tags")
TAG_DELIMITER = ", "


def scene_filename(scene: Scene) -> str:
    return f"scene_{scene.scene_number}_{scene.timestamp_formatted.replace(':', '-')}.jpg"


def _temporary_sibling(target: Path) -> Path:
    return target.with_name(f".{target.name}.partial")


def _commit(temporary: Path, target: Path) -> Path:
    os.replace(temporary, target)
    return target


def _discard(temporary: Path) -> None:
    if temporary.exists():
        temporary.unlink()


def export_single(scene: Scene, output_dir: Path | str) -> Path:
    """Write one scene thumbnail as ``scene_<n>_<MM-SS>.jpg``."""
    target = ensure_directory(output_dir) / scene_filename(scene)
    temporary = _temporary_sibling(target)
    try:
        temporary.write_bytes(scene.thumbnail)
        return _commit(temporary, target)
    except OSError as exc:
        _discard(temporary)
        raise ExportError(f"Failed to write scene {scene.scene_number}: {exc}", path=target) from exc


def scenes_to_frame(scenes: Sequence[Scene]) -> pd.DataFrame:
    rows = [
        {
            "sceneNumber": scene.scene_number,
            "timestampFormatted": scene.timestamp_formatted,
            "description": scene.analysis.description if scene.analysis else "",
            "tags": TAG_DELIMITER.join(scene.analysis.tags) if scene.analysis else "",
        }
        for scene in scenes
    ]
    return pd.DataFrame(rows, columns=list(TSV_COLUMNS))


def export_tsv(scenes: Sequence[Scene], base_name: str, output_dir: Path | str) -> Path:
    """Write ``<base_name>_scenes.tsv``: BOM-prefixed UTF-8, one row per scene."""
    target = ensure_directory(output_dir) / f"{base_name}_scenes.tsv"
    temporary = _temporary_sibling(target)
    frame = scenes_to_frame(scenes)
    try:
        frame.to_csv(
            temporary,
            sep="\t",
            index=False,
            encoding="utf-8-sig",
            lineterminator="\n",
            quoting=csv.QUOTE_MINIMAL,
        )
        _commit(temporary, target)
    except (OSError, ValueError) as exc:
        _discard(temporary)
        raise ExportError(f"Failed to write TSV report: {exc}", path=target) from exc
    LOGGER.info("Wrote TSV report with %d scenes to %s", len(frame), target)
    return target


def read_tsv(path: Path | str) -> List[dict[str, object]]:
    """Parse a report written by :func:`export_tsv` back into row dicts."""
    frame = pd.read_csv(
        path,
        sep="\t",
        dtype=str,
        keep_default_na=False,
        encoding="utf-8-sig",
    )
    missing = [column for column in TSV_COLUMNS if column not in frame.columns]
    if missing:
        raise ExportError(f"TSV report is missing columns: {', '.join(missing)}", path=path)
    rows: list[dict[str, object]] = []
    for record in frame.to_dict(orient="records"):
        tags = record["tags"]
        rows.append(
            {
                "sceneNumber": int(record["sceneNumber"]),
                "timestampFormatted": record["timestampFormatted"],
                "description": record["description"],
                "tags": tags.split(TAG_DELIMITER) if tags else [],
            }
        )
    return rows


def _iter_archive_entries(scenes: Sequence[Scene]) -> Iterator[tuple[str, bytes]]:
    for scene in scenes:
        yield scene_filename(scene), scene.thumbnail


def export_archive(scenes: Sequence[Scene], output_path: Path | str) -> Path:
    """Bundle the selected scenes, in catalog order, into one ZIP file."""
    chosen = selected_scenes(scenes)
    target = Path(output_path)
    if not chosen:
        raise ExportError("No scenes are selected for the archive.", path=target)
    ensure_directory(target.parent)
    temporary = _temporary_sibling(target)
    try:
        with zipfile.ZipFile(temporary, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name, payload in _iter_archive_entries(chosen):
                archive.writestr(name, payload)
        _commit(temporary, target)
    except (OSError, zipfile.BadZipFile) as exc:
        _discard(temporary)
        raise ExportError(f"Failed to write scene archive: {exc}", path=target) from exc
    LOGGER.info("Archived %d selected scenes to %s", len(chosen), target)
    return target


__all__ = [
    "TSV_COLUMNS",
    "TAG_DELIMITER",
    "scene_filename",
    "scenes_to_frame",
    "export_single",
    "export_tsv",
    "read_tsv",
    "export_archive",
]
