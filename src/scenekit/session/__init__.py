"""Extraction session state and the controller that drives it."""

from .controller import Listener, SessionController
from .session import AnalysisProgress, AnalysisStatus, ExtractionSession, ExtractionStatus

__all__ = [
    "SessionController",
    "Listener",
    "ExtractionSession",
    "ExtractionStatus",
    "AnalysisStatus",
    "AnalysisProgress",
]
