"""Cloud storage helpers for persisting extraction sessions."""

from .gcs import CloudStorageManager, GCSConfig, build_config_from_env, get_gcs_manager

__all__ = [
    "CloudStorageManager",
    "GCSConfig",
    "build_config_from_env",
    "get_gcs_manager",
]
