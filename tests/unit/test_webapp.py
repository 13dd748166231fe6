from __future__ import annotations

import asyncio
import base64
import io
import zipfile

import pytest
from fastapi.testclient import TestClient

from scenekit.cloud.gcs import CloudStorageManager, GCSConfig
from scenekit.session import SessionController

from fakes import DummyClient, ScriptedAnalyzer
from webapp import main


@pytest.fixture
def sampler_and_streams(stream_factory):
    return stream_factory(duration=4.0)


@pytest.fixture
def client(monkeypatch, tmp_path, sampler_and_streams):
    sampler, _ = sampler_and_streams
    controller = SessionController(sampler=sampler, analyzer=ScriptedAnalyzer(fail_calls=(2,)))
    monkeypatch.setattr(main, "controller", controller)
    monkeypatch.setattr(main.CONFIG, "output_dir", tmp_path / "exports")
    with TestClient(main.app) as test_client:
        yield test_client


def _extract(client: TestClient, video_file) -> dict:
    response = client.post("/api/extractions", json={"video_path": str(video_file), "interval_seconds": 1.0})
    assert response.status_code == 202
    return client.get("/api/session").json()


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_extraction_publishes_session(client, video_file) -> None:
    state = _extract(client, video_file)

    assert state["extraction_status"] == "extracted"
    session = state["session"]
    assert session["total_scenes"] == 4
    assert [scene["timestamp_formatted"] for scene in session["scenes"]] == ["00:00", "00:01", "00:02", "00:03"]
    progress = client.get("/api/session/progress").json()
    assert progress["extraction"] == {"current": 4, "total": 4, "percentage": 100}
    assert progress["analysis"] == {"current": 0, "total": 4, "percentage": 0}


def test_extraction_rejects_missing_video_and_bad_options(client, tmp_path, video_file) -> None:
    missing = client.post("/api/extractions", json={"video_path": str(tmp_path / "nope.mp4")})
    assert missing.status_code == 404

    invalid = client.post("/api/extractions", json={"video_path": str(video_file), "max_frames": 0})
    assert invalid.status_code == 422


def test_session_routes_require_session(client) -> None:
    assert client.post("/api/session/select-all").status_code == 404
    assert client.get("/api/session/export/tsv").status_code == 404
    assert client.get("/api/session/scenes/scene_0_abcdef/thumbnail").status_code == 404


def test_selection_and_exports(client, video_file) -> None:
    scenes = _extract(client, video_file)["session"]["scenes"]
    second = scenes[1]["id"]

    assert client.get("/api/session/export/archive").status_code == 409

    toggled = client.post(f"/api/session/scenes/{second}/toggle").json()
    assert toggled["scene"]["is_selected"] is True

    thumbnail = client.get(f"/api/session/scenes/{second}/thumbnail")
    assert thumbnail.headers["content-type"] == "image/jpeg"
    assert thumbnail.content.startswith(b"\xff\xd8")

    single = client.get(f"/api/session/scenes/{second}/export")
    assert single.status_code == 200
    assert single.content == thumbnail.content

    archive = client.get("/api/session/export/archive")
    assert archive.status_code == 200
    with zipfile.ZipFile(io.BytesIO(archive.content)) as bundle:
        assert bundle.namelist() == ["scene_2_00-01.jpg"]

    state = client.post("/api/session/select-all").json()
    assert state["session"]["selected_count"] == 4
    state = client.post("/api/session/deselect-all").json()
    assert state["session"]["selected_count"] == 0

    report = client.get("/api/session/export/tsv")
    assert report.status_code == 200
    assert report.content.startswith(b"\xef\xbb\xbfsceneNumber\ttimestampFormatted")


def test_analysis_runs_in_background(client, video_file) -> None:
    _extract(client, video_file)

    response = client.post("/api/session/analyze")
    assert response.status_code == 202

    session = client.get("/api/session").json()["session"]
    assert session["analysis_status"] == "completed"
    assert [scene["analysis_status"] for scene in session["scenes"]] == ["completed", "error", "completed", "completed"]
    assert session["analysis_progress"] == {"current": 3, "total": 4, "percentage": 75}


def test_preview_bounds(client, video_file) -> None:
    _extract(client, video_file)

    ok = client.get("/api/session/preview", params={"timestamp": 2.5})
    assert ok.status_code == 200
    assert ok.content.startswith(b"\xff\xd8")
    assert client.get("/api/session/preview", params={"timestamp": 9.0}).status_code == 422


def test_clear_session_releases_stream(client, video_file, sampler_and_streams) -> None:
    _extract(client, video_file)

    assert client.delete("/api/session").json() == {"status": "cleared"}
    assert client.get("/api/session").json()["session"] is None
    assert sampler_and_streams[1][0].release_count == 1


def test_save_requires_storage(client, video_file, monkeypatch) -> None:
    _extract(client, video_file)
    monkeypatch.setattr(main, "get_gcs_manager", lambda: None)

    assert client.post("/api/session/save").status_code == 503


def test_preview_runs_off_the_event_loop(client, video_file, monkeypatch) -> None:
    _extract(client, video_file)
    contexts = []

    def fake_preview(timestamp: float, quality: float) -> bytes:
        try:
            asyncio.get_running_loop()
            contexts.append("event-loop")
        except RuntimeError:
            contexts.append("worker")
        return b"\xff\xd8preview"

    monkeypatch.setattr(main.controller, "preview_frame", fake_preview)

    response = client.get("/api/session/preview", params={"timestamp": 1.0})

    assert response.content == b"\xff\xd8preview"
    assert contexts == ["worker"]


def test_stored_session_routes(client, video_file, monkeypatch) -> None:
    storage = CloudStorageManager(GCSConfig(session_bucket="scene-sessions"), client=DummyClient())
    monkeypatch.setattr(main, "get_gcs_manager", lambda: storage)
    session = _extract(client, video_file)["session"]

    saved = client.post("/api/session/save").json()
    assert saved == {"status": "saved", "session_id": session["id"]}

    listed = client.get("/api/sessions").json()["sessions"]
    assert [item["id"] for item in listed] == [session["id"]]
    assert listed[0]["total_scenes"] == 4

    scenes = client.get(f"/api/sessions/{session['id']}/scenes").json()["scenes"]
    assert [scene["id"] for scene in scenes] == [scene["id"] for scene in session["scenes"]]
    thumbnail = client.get(f"/api/session/scenes/{scenes[0]['id']}/thumbnail").content
    assert base64.b64decode(scenes[0]["thumbnail"]) == thumbnail

    deleted = client.delete(f"/api/sessions/{session['id']}").json()
    assert deleted == {"status": "deleted", "session_id": session["id"], "objects": 5}
    assert client.get("/api/sessions").json() == {"sessions": []}
    assert client.get(f"/api/sessions/{session['id']}/scenes").status_code == 404
    assert client.delete(f"/api/sessions/{session['id']}").status_code == 404


def test_stored_session_routes_require_storage(client, monkeypatch) -> None:
    monkeypatch.setattr(main, "get_gcs_manager", lambda: None)

    assert client.get("/api/sessions").status_code == 503
    assert client.get("/api/sessions/abc/scenes").status_code == 503
    assert client.delete("/api/sessions/abc").status_code == 503
