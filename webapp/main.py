"""FastAPI application exposing the scene extraction session over JSON."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import BackgroundTasks, FastAPI, HTTPException, Query
from fastapi.responses import FileResponse, Response
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

from scenekit.cloud.gcs import CloudStorageManager, get_gcs_manager
from scenekit.config import build_config_from_env
from scenekit.data import SamplingOptions
from scenekit.errors import ExportError, SceneKitError
from scenekit.service.analyzer import GeminiSceneAnalyzer
from scenekit.service.export_service import export_archive, export_single, export_tsv
from scenekit.session import AnalysisStatus, ExtractionSession, SessionController

app = FastAPI(title="SceneKit Scene Extraction")

LOGGER = logging.getLogger(__name__)
CONFIG = build_config_from_env()

controller = SessionController(
    analyzer=GeminiSceneAnalyzer(),
    analysis_concurrency=CONFIG.analysis_concurrency,
    analysis_timeout=CONFIG.analysis_timeout,
)


class ExtractionRequest(BaseModel):
    video_path: str = Field(..., description="Server-side path of the uploaded video")
    interval_seconds: float = Field(CONFIG.interval_seconds, gt=0, description="Desired seconds between scenes")
    max_frames: int = Field(CONFIG.max_frames, ge=1, le=600, description="Hard ceiling on captured scenes")
    quality: float = Field(CONFIG.jpeg_quality, gt=0, le=1.0, description="JPEG quality in (0, 1]")


def _require_session() -> ExtractionSession:
    session = controller.session
    if session is None:
        raise HTTPException(status_code=404, detail="No active session")
    return session


def _export_dir(session: ExtractionSession) -> Path:
    return CONFIG.output_dir / session.id


async def _run_extraction(video_path: Path, options: SamplingOptions) -> None:
    try:
        await controller.start_extraction(video_path, options)
    except SceneKitError as exc:
        LOGGER.warning("Extraction of %s did not produce a session: %s", video_path, exc)


async def _run_analysis() -> None:
    try:
        await controller.start_analysis()
    except SceneKitError as exc:
        LOGGER.warning("Analysis did not complete: %s", exc)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/extractions", status_code=202)
async def create_extraction(payload: ExtractionRequest, background_tasks: BackgroundTasks) -> dict[str, object]:
    video_path = Path(payload.video_path).expanduser()
    if not video_path.is_file():
        raise HTTPException(status_code=404, detail=f"Video not found: {video_path}")
    options = SamplingOptions(
        interval_seconds=payload.interval_seconds,
        max_frames=payload.max_frames,
        quality=payload.quality,
    )
    background_tasks.add_task(_run_extraction, video_path, options)
    return {"status": "accepted", "video": video_path.name, "options": options.as_dict()}


@app.get("/api/session")
async def get_session() -> dict[str, object]:
    return controller.state()


@app.get("/api/session/progress")
async def get_progress() -> dict[str, object]:
    progress = controller.extraction_progress
    analysis = controller.analysis_progress
    return {
        "extraction_status": controller.extraction_status.value,
        "extraction": progress.as_dict() if progress else None,
        "analysis_status": controller.session.analysis_status.value if controller.session else None,
        "analysis": analysis.as_dict() if analysis else None,
    }


@app.delete("/api/session")
async def clear_session() -> dict[str, str]:
    controller.clear_session()
    return {"status": "cleared"}


@app.post("/api/session/select-all")
async def select_all() -> dict[str, object]:
    _require_session()
    controller.select_all()
    return controller.state()


@app.post("/api/session/deselect-all")
async def deselect_all() -> dict[str, object]:
    _require_session()
    controller.deselect_all()
    return controller.state()


@app.post("/api/session/scenes/{scene_id}/toggle")
async def toggle_scene(scene_id: str) -> dict[str, object]:
    controller.toggle_selection(scene_id)
    scene = controller.get_scene(scene_id)
    return {"scene": scene.as_dict() if scene else None}


@app.get("/api/session/scenes/{scene_id}/thumbnail")
async def scene_thumbnail(scene_id: str) -> Response:
    scene = controller.get_scene(scene_id)
    if scene is None:
        raise HTTPException(status_code=404, detail=f"Scene not found: {scene_id}")
    return Response(content=scene.thumbnail, media_type="image/jpeg")


@app.get("/api/session/scenes/{scene_id}/export")
async def export_scene(scene_id: str) -> FileResponse:
    session = _require_session()
    scene = controller.get_scene(scene_id)
    if scene is None:
        raise HTTPException(status_code=404, detail=f"Scene not found: {scene_id}")
    try:
        path = export_single(scene, _export_dir(session))
    except ExportError as exc:
        LOGGER.exception("Single scene export failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return FileResponse(path, media_type="image/jpeg", filename=path.name)


@app.get("/api/session/preview")
async def preview(timestamp: float = Query(..., ge=0), quality: Optional[float] = Query(None, gt=0, le=1.0)) -> Response:
    _require_session()
    try:
        image = await asyncio.to_thread(controller.preview_frame, timestamp, quality or CONFIG.jpeg_quality)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except SceneKitError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return Response(content=image, media_type="image/jpeg")


@app.post("/api/session/analyze", status_code=202)
async def analyze(background_tasks: BackgroundTasks) -> dict[str, object]:
    session = _require_session()
    if session.analysis_status == AnalysisStatus.ANALYZING:
        raise HTTPException(status_code=409, detail="Analysis already running")
    background_tasks.add_task(_run_analysis)
    return {"status": "accepted", "session_id": session.id}


@app.get("/api/session/export/tsv")
async def export_report() -> FileResponse:
    session = _require_session()
    try:
        path = export_tsv(session.scenes, session.source.stem, _export_dir(session))
    except ExportError as exc:
        LOGGER.exception("TSV export failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return FileResponse(path, media_type="text/tab-separated-values; charset=utf-8", filename=path.name)


@app.get("/api/session/export/archive")
async def export_selected() -> FileResponse:
    session = _require_session()
    if session.selected_count == 0:
        raise HTTPException(status_code=409, detail="No scenes selected")
    target = _export_dir(session) / f"{session.source.stem}_scenes.zip"
    try:
        path = export_archive(session.scenes, target)
    except ExportError as exc:
        LOGGER.exception("Archive export failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return FileResponse(path, media_type="application/zip", filename=path.name)


def _require_storage() -> CloudStorageManager:
    manager = get_gcs_manager()
    if manager is None:
        raise HTTPException(status_code=503, detail="Session storage is not configured (GCS_SESSION_BUCKET)")
    return manager


@app.post("/api/session/save")
async def save_session() -> dict[str, object]:
    session = _require_session()
    manager = _require_storage()
    try:
        stored_id = await asyncio.to_thread(manager.save_session, session)
    except Exception as exc:
        LOGGER.exception("Failed to save session %s", session.id)
        raise HTTPException(status_code=500, detail=f"Failed to save session: {exc}") from exc
    return {"status": "saved", "session_id": stored_id}


@app.get("/api/sessions")
async def list_saved_sessions(limit: int = Query(50, ge=1, le=500)) -> dict[str, object]:
    manager = _require_storage()
    try:
        sessions = await asyncio.to_thread(manager.list_sessions, limit)
    except Exception as exc:
        LOGGER.exception("Failed to list stored sessions")
        raise HTTPException(status_code=500, detail=f"Failed to list sessions: {exc}") from exc
    return {"sessions": sessions}


@app.get("/api/sessions/{session_id}/scenes")
async def get_saved_scenes(session_id: str) -> dict[str, object]:
    manager = _require_storage()
    try:
        scenes = await asyncio.to_thread(manager.fetch_scenes, session_id)
    except Exception as exc:
        LOGGER.exception("Failed to fetch scenes for session %s", session_id)
        raise HTTPException(status_code=500, detail=f"Failed to fetch scenes: {exc}") from exc
    if not scenes:
        raise HTTPException(status_code=404, detail=f"Stored session not found: {session_id}")
    return {
        "session_id": session_id,
        "scenes": [scene.as_dict(include_thumbnail=True) for scene in scenes],
    }


@app.delete("/api/sessions/{session_id}")
async def delete_saved_session(session_id: str) -> dict[str, object]:
    manager = _require_storage()
    try:
        deleted = await asyncio.to_thread(manager.delete_session, session_id)
    except Exception as exc:
        LOGGER.exception("Failed to delete session %s", session_id)
        raise HTTPException(status_code=500, detail=f"Failed to delete session: {exc}") from exc
    if deleted == 0:
        raise HTTPException(status_code=404, detail=f"Stored session not found: {session_id}")
    return {"status": "deleted", "session_id": session_id, "objects": deleted}
