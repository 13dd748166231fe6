"""Service-layer collaborators: scene analyzers and exporters."""

from .analyzer import BaseSceneAnalyzer, GeminiSceneAnalyzer, parse_analysis_payload
from .export_service import export_archive, export_single, export_tsv, read_tsv, scene_filename

__all__ = [
    "BaseSceneAnalyzer",
    "GeminiSceneAnalyzer",
    "parse_analysis_payload",
    "export_archive",
    "export_single",
    "export_tsv",
    "read_tsv",
    "scene_filename",
]
