"""Google Cloud Storage persistence for extraction sessions."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from google.cloud import storage

from scenekit.catalog import Scene
from scenekit.session import ExtractionSession

LOGGER = logging.getLogger(__name__)

SESSION_DOCUMENT = "session.json"


@dataclass(slots=True)
class GCSConfig:
    """Runtime configuration for Cloud Storage usage."""

    project: str | None = None
    credentials_path: str | None = None
    session_bucket: str | None = None
    session_prefix: str = "sessions"

    def any_bucket_configured(self) -> bool:
        return bool(self.session_bucket)


def build_config_from_env() -> GCSConfig:
    """Populate :class:`GCSConfig` from standard environment variables."""
    return GCSConfig(
        project=os.getenv("GCS_PROJECT")
        or os.getenv("GOOGLE_CLOUD_PROJECT")
        or os.getenv("GCLOUD_PROJECT"),
        credentials_path=os.getenv("GOOGLE_APPLICATION_CREDENTIALS"),
        session_bucket=os.getenv("GCS_SESSION_BUCKET"),
        session_prefix=os.getenv("GCS_SESSION_PREFIX", "sessions"),
    )


class CloudStorageManager:
    """Stores sessions as ``<prefix>/<session>/session.json`` plus one JPEG per scene."""

    def __init__(self, config: GCSConfig, *, client=None) -> None:
        if not config.session_bucket:
            raise ValueError("GCS_SESSION_BUCKET must be configured to store sessions.")
        self.config = config
        self._client = client

    # ------------------------------------------------------------------ #
    # Client helpers
    # ------------------------------------------------------------------ #
    def _ensure_client(self):
        if self._client is not None:
            return self._client
        if self.config.credentials_path:
            self._client = storage.Client.from_service_account_json(
                self.config.credentials_path,
                project=self.config.project,
            )
        else:
            self._client = storage.Client(project=self.config.project)
        return self._client

    def _bucket(self):
        return self._ensure_client().bucket(self.config.session_bucket)

    def _session_prefix(self, session_id: str) -> str:
        return f"{self.config.session_prefix.rstrip('/')}/{session_id}"

    def _thumbnail_object(self, session_id: str, scene_number: int) -> str:
        return f"{self._session_prefix(session_id)}/scene_{scene_number}.jpg"

    def _uri(self, object_name: str) -> str:
        return f"gs://{self.config.session_bucket}/{object_name}"

    # ------------------------------------------------------------------ #
    # Session persistence
    # ------------------------------------------------------------------ #
    def save_session(self, session: ExtractionSession) -> str:
        """Upload every thumbnail and the session document; return the session id."""
        bucket = self._bucket()
        document = session.as_dict()
        for scene, record in zip(session.scenes, document["scenes"]):
            object_name = self._thumbnail_object(session.id, scene.scene_number)
            bucket.blob(object_name).upload_from_string(scene.thumbnail, content_type="image/jpeg")
            record["thumbnail_uri"] = self._uri(object_name)
            LOGGER.debug("Uploaded scene %d -> %s", scene.scene_number, record["thumbnail_uri"])

        document_name = f"{self._session_prefix(session.id)}/{SESSION_DOCUMENT}"
        bucket.blob(document_name).upload_from_string(
            json.dumps(document, indent=2),
            content_type="application/json",
        )
        LOGGER.info("Saved session %s (%d scenes) to %s", session.id, session.total_scenes, self._uri(document_name))
        return session.id

    def _load_document(self, session_id: str) -> Optional[Dict[str, object]]:
        blob = self._bucket().blob(f"{self._session_prefix(session_id)}/{SESSION_DOCUMENT}")
        if not blob.exists():
            return None
        return json.loads(blob.download_as_bytes())

    def list_sessions(self, limit: int = 50) -> List[Dict[str, object]]:
        """Session summaries, newest first."""
        client = self._ensure_client()
        prefix = self.config.session_prefix.rstrip("/") + "/"
        summaries: list[dict[str, object]] = []
        for blob in client.list_blobs(self.config.session_bucket, prefix=prefix):
            if not blob.name.endswith(f"/{SESSION_DOCUMENT}"):
                continue
            document = json.loads(blob.download_as_bytes())
            document.pop("scenes", None)
            summaries.append(document)
        summaries.sort(key=lambda item: str(item.get("created_at", "")), reverse=True)
        return summaries[:limit]

    def fetch_scenes(self, session_id: str) -> List[Scene]:
        """Rebuild the stored scenes, thumbnails included, in scene order."""
        document = self._load_document(session_id)
        if document is None:
            return []
        bucket = self._bucket()
        scenes: list[Scene] = []
        for record in sorted(document.get("scenes", []), key=lambda item: item["scene_number"]):
            blob = bucket.blob(self._thumbnail_object(session_id, int(record["scene_number"])))
            thumbnail = blob.download_as_bytes() if blob.exists() else b""
            scenes.append(Scene.from_dict(record, thumbnail=thumbnail))
        return scenes

    def delete_session(self, session_id: str) -> int:
        """Delete every stored object of a session; return how many were removed."""
        client = self._ensure_client()
        deleted = 0
        for blob in client.list_blobs(self.config.session_bucket, prefix=self._session_prefix(session_id) + "/"):
            blob.delete()
            deleted += 1
        LOGGER.info("Deleted %d objects for session %s", deleted, session_id)
        return deleted


_CACHED_MANAGER: CloudStorageManager | None = None


def get_gcs_manager(force_refresh: bool = False) -> CloudStorageManager | None:
    """Return a cached :class:`CloudStorageManager` if a session bucket is configured."""
    global _CACHED_MANAGER  # pylint: disable=global-statement
    if not force_refresh and _CACHED_MANAGER is not None:
        return _CACHED_MANAGER
    config = build_config_from_env()
    if not config.any_bucket_configured():
        _CACHED_MANAGER = None
        return None
    _CACHED_MANAGER = CloudStorageManager(config)
    return _CACHED_MANAGER


__all__ = [
    "CloudStorageManager",
    "GCSConfig",
    "build_config_from_env",
    "get_gcs_manager",
]
