"""Session lifecycle: extraction, per-scene analysis, selection, and teardown.

All mutation happens on the event loop that drives the controller. Blocking
work (sampling, synchronous analyzers) runs in worker threads and only hands
results back to the loop. Each extraction is tagged with a generation number
and each analysis task with its session id; results carrying a stale tag are
dropped instead of applied.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from scenekit.catalog import (
    Scene,
    SceneAnalysis,
    SceneStatus,
    apply_analysis,
    deselect_all,
    find_scene,
    mark_analyzing,
    mark_error,
    select_all,
    toggle_selection,
)
from scenekit.data import ExtractionProgress, FrameSampler, SamplingOptions, SourceFile
from scenekit.errors import ExtractionError, SessionAnalysisError, SessionStateError
from scenekit.service.analyzer import BaseSceneAnalyzer

from .session import AnalysisProgress, AnalysisStatus, ExtractionSession, ExtractionStatus

LOGGER = logging.getLogger(__name__)

Listener = Callable[[str, Dict[str, object]], None]


def _release_abandoned(work: asyncio.Future) -> None:
    if work.cancelled() or work.exception() is not None:
        return
    result = work.result()
    result.handle.release()
    LOGGER.info("Released media handle of cancelled extraction (%d scenes discarded)", len(result.scenes))


class SessionController:
    """Owns the single active :class:`ExtractionSession`."""

    def __init__(
        self,
        *,
        sampler: Optional[FrameSampler] = None,
        analyzer: Optional[BaseSceneAnalyzer] = None,
        analysis_concurrency: int = 1,
        analysis_timeout: Optional[float] = None,
    ) -> None:
        if analysis_concurrency < 1:
            raise ValueError("analysis_concurrency must be at least 1.")
        self.sampler = sampler or FrameSampler()
        self.analyzer = analyzer
        self.analysis_concurrency = analysis_concurrency
        self.analysis_timeout = analysis_timeout
        self._session: Optional[ExtractionSession] = None
        self._extraction_status = ExtractionStatus.IDLE
        self._extraction_progress: Optional[ExtractionProgress] = None
        self._extraction_error: Optional[ExtractionError] = None
        self._generation = 0
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------ #
    # State accessors
    # ------------------------------------------------------------------ #
    @property
    def session(self) -> Optional[ExtractionSession]:
        return self._session

    @property
    def extraction_status(self) -> ExtractionStatus:
        return self._extraction_status

    @property
    def extraction_progress(self) -> Optional[ExtractionProgress]:
        return self._extraction_progress

    @property
    def extraction_error(self) -> Optional[ExtractionError]:
        return self._extraction_error

    def state(self) -> Dict[str, object]:
        return {
            "extraction_status": self._extraction_status.value,
            "extraction_progress": self._extraction_progress.as_dict() if self._extraction_progress else None,
            "extraction_error": self._extraction_error.as_dict() if self._extraction_error else None,
            "session": self._session.as_dict() if self._session else None,
        }

    # ------------------------------------------------------------------ #
    # Observers
    # ------------------------------------------------------------------ #
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str, payload: Dict[str, object]) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception:
                LOGGER.exception("Listener failed while handling %s", event)

    # ------------------------------------------------------------------ #
    # Extraction
    # ------------------------------------------------------------------ #
    def _release_current(self) -> None:
        session = self._session
        self._session = None
        if session is not None:
            session.dispose()
            LOGGER.info("Released session %s (%s)", session.id, session.source.name)

    def _apply_extraction_progress(self, generation: int, progress: ExtractionProgress) -> None:
        if generation != self._generation:
            return
        self._extraction_progress = progress
        self._notify("extraction_progress", progress.as_dict())

    async def start_extraction(self, video_path: Path | str, options: SamplingOptions) -> ExtractionSession:
        """Sample ``video_path`` into a brand-new session, replacing any current one."""
        try:
            source = SourceFile.from_path(video_path)
        except FileNotFoundError as exc:
            raise ExtractionError(str(exc)) from exc

        self._release_current()
        self._generation += 1
        generation = self._generation
        self._extraction_status = ExtractionStatus.EXTRACTING
        self._extraction_progress = None
        self._extraction_error = None
        self._notify("session_changed", self.state())

        loop = asyncio.get_running_loop()

        def on_progress(progress: ExtractionProgress) -> None:
            loop.call_soon_threadsafe(self._apply_extraction_progress, generation, progress)

        work = asyncio.ensure_future(
            asyncio.to_thread(
                self.sampler.sample,
                Path(video_path),
                options,
                on_progress=on_progress,
            )
        )
        try:
            result = await asyncio.shield(work)
        except asyncio.CancelledError:
            # the worker thread cannot be interrupted; release its handle once it finishes
            work.add_done_callback(_release_abandoned)
            if generation == self._generation:
                self._generation += 1
                self._extraction_status = ExtractionStatus.IDLE
                self._extraction_progress = None
                self._notify("session_changed", self.state())
            LOGGER.info("Extraction of %s cancelled", source.name)
            raise
        except Exception as exc:
            error = exc if isinstance(exc, ExtractionError) else ExtractionError(f"Extraction failed: {exc}")
            if generation == self._generation:
                self._extraction_status = ExtractionStatus.ERROR
                self._extraction_error = error
                self._notify("session_changed", self.state())
            LOGGER.error("Extraction of %s failed: %s", source.name, error)
            if error is exc:
                raise
            raise error from exc

        if generation != self._generation:
            result.handle.release()
            LOGGER.info("Discarded superseded extraction of %s", source.name)
            raise SessionStateError(f"Extraction of {source.name} was superseded")

        session = ExtractionSession(
            source=source,
            duration=result.duration,
            handle=result.handle,
            scenes=tuple(result.scenes),
        )
        self._session = session
        self._extraction_status = ExtractionStatus.EXTRACTED
        LOGGER.info("Session %s ready: %d scenes from %s", session.id, session.total_scenes, source.name)
        self._notify("session_changed", self.state())
        return session

    def clear_session(self) -> None:
        """Release the active session; in-flight work for it is discarded."""
        self._generation += 1
        self._release_current()
        self._extraction_status = ExtractionStatus.IDLE
        self._extraction_progress = None
        self._extraction_error = None
        self._notify("session_cleared", {})

    # ------------------------------------------------------------------ #
    # Catalog operations
    # ------------------------------------------------------------------ #
    def _current(self, session_id: str) -> Optional[ExtractionSession]:
        session = self._session
        if session is None or session.id != session_id:
            return None
        return session

    def _update(self, change: Callable[[Tuple[Scene, ...]], Tuple[Scene, ...]]) -> Tuple[Scene, ...]:
        session = self._session
        if session is None:
            return ()
        session.replace_scenes(change(session.scenes))
        self._notify("session_changed", self.state())
        return session.scenes

    def select_all(self) -> Tuple[Scene, ...]:
        return self._update(select_all)

    def deselect_all(self) -> Tuple[Scene, ...]:
        return self._update(deselect_all)

    def toggle_selection(self, scene_id: str) -> Tuple[Scene, ...]:
        return self._update(lambda scenes: toggle_selection(scenes, scene_id))

    def get_scene(self, scene_id: str) -> Optional[Scene]:
        if self._session is None:
            return None
        return find_scene(self._session.scenes, scene_id)

    def preview_frame(self, timestamp: float, quality: float) -> bytes:
        session = self._require_session()
        return session.preview_frame(timestamp, quality)

    # ------------------------------------------------------------------ #
    # Analysis
    # ------------------------------------------------------------------ #
    def _require_session(self) -> ExtractionSession:
        session = self._session
        if session is None or self._extraction_status != ExtractionStatus.EXTRACTED:
            raise SessionStateError("No extracted session is active.")
        return session

    async def _call_analyzer(self, scene: Scene) -> SceneAnalysis:
        analyze = self.analyzer.analyze
        if inspect.iscoroutinefunction(analyze):
            call = analyze(scene.thumbnail)
        else:
            call = asyncio.to_thread(analyze, scene.thumbnail)
        if self.analysis_timeout:
            return await asyncio.wait_for(call, timeout=self.analysis_timeout)
        return await call

    def _publish_analysis_progress(self, session: ExtractionSession) -> None:
        payload: Dict[str, object] = {"session_id": session.id, **session.analysis_progress.as_dict()}
        self._notify("analysis_progress", payload)

    async def _analyze_scene(
        self,
        session_id: str,
        index: int,
        scene: Scene,
        semaphore: asyncio.Semaphore,
    ) -> None:
        async with semaphore:
            session = self._current(session_id)
            if session is None:
                return
            session.replace_scenes(mark_analyzing(session.scenes, index))
            self._notify("session_changed", self.state())

            try:
                result = await self._call_analyzer(scene)
            except Exception as exc:
                session = self._current(session_id)
                if session is None:
                    LOGGER.debug("Dropped failure for scene %d of superseded session %s", scene.scene_number, session_id)
                    return
                LOGGER.warning("Analysis failed for scene %d (%.2fs): %s", scene.scene_number, scene.timestamp, str(exc) or type(exc).__name__)
                session.replace_scenes(mark_error(session.scenes, scene.id))
                self._publish_analysis_progress(session)
                return

            session = self._current(session_id)
            if session is None:
                LOGGER.debug("Dropped result for scene %d of superseded session %s", scene.scene_number, session_id)
                return
            session.replace_scenes(apply_analysis(session.scenes, scene.id, result))
            self._publish_analysis_progress(session)

    async def start_analysis(self) -> ExtractionSession:
        """Analyze every scene not yet completed; per-scene failures stay isolated."""
        session = self._require_session()
        if session.analysis_status == AnalysisStatus.ANALYZING:
            raise SessionStateError(f"Session {session.id} is already being analyzed.")
        if self.analyzer is None:
            raise SessionStateError("No analyzer configured.")

        session_id = session.id
        session.analysis_status = AnalysisStatus.ANALYZING
        session.analysis_error = None
        self._publish_analysis_progress(session)
        LOGGER.info("Starting analysis of session %s (%d scenes)", session_id, session.total_scenes)

        tasks: list[asyncio.Task] = []
        try:
            semaphore = asyncio.Semaphore(self.analysis_concurrency)
            for index, scene in enumerate(session.scenes):
                if scene.analysis_status == SceneStatus.COMPLETED:
                    continue
                tasks.append(asyncio.create_task(self._analyze_scene(session_id, index, scene, semaphore)))
            await asyncio.gather(*tasks)
        except Exception as exc:
            for task in tasks:
                task.cancel()
            if self._current(session_id) is not None:
                session.analysis_status = AnalysisStatus.ERROR
                session.analysis_error = str(exc)
                self._notify("session_changed", self.state())
            LOGGER.exception("Analysis batch for session %s failed", session_id)
            raise SessionAnalysisError(f"Analysis of session {session_id} failed: {exc}") from exc

        if self._current(session_id) is not None:
            session.analysis_status = AnalysisStatus.COMPLETED
            progress = session.analysis_progress
            LOGGER.info(
                "Analysis of session %s finished: %d/%d scenes completed",
                session_id,
                progress.current,
                progress.total,
            )
            self._notify("session_changed", self.state())
        else:
            LOGGER.info("Analysis of superseded session %s finished; results discarded", session_id)
        return session

    @property
    def analysis_progress(self) -> Optional[AnalysisProgress]:
        return self._session.analysis_progress if self._session else None


__all__ = ["SessionController", "Listener"]
