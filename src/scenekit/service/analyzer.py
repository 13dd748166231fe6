"""Scene analyzers: one JPEG frame in, description and tags out."""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import List

from google import genai
from google.genai import types
from pydantic import BaseModel, Field, ValidationError

from scenekit.catalog import SceneAnalysis
from scenekit.errors import AnalyzerError

LOGGER = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

SCENE_PROMPT = (
    "You are reviewing a single frame sampled from a short-form social video. "
    "Describe what is shown in one or two sentences (subject, framing, on-screen text, mood) "
    "and list up to eight short lowercase tags. "
    'Reply with JSON only: {"description": "...", "tags": ["...", "..."]}'
)


class AnalysisPayload(BaseModel):
    """Shape the analyzer response must satisfy."""

    description: str
    tags: List[str] = Field(default_factory=list)


def parse_analysis_payload(text: str) -> SceneAnalysis:
    """Validate a JSON reply into a :class:`SceneAnalysis`."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]
    try:
        payload = AnalysisPayload.model_validate(json.loads(cleaned))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise AnalyzerError(f"Analyzer returned an invalid payload: {exc}") from exc
    tags = [tag.strip() for tag in payload.tags if tag.strip()]
    return SceneAnalysis.create(payload.description.strip(), tags)


class BaseSceneAnalyzer(ABC):
    """Turns one compressed frame into a :class:`SceneAnalysis`.

    Implementations raise :class:`AnalyzerError` (or any exception) on failure;
    the session controller isolates failures per scene.
    """

    name: str = "analyzer"

    @abstractmethod
    def analyze(self, image: bytes) -> SceneAnalysis:
        ...


class GeminiSceneAnalyzer(BaseSceneAnalyzer):
    """Thin wrapper around the ``google-genai`` client with lazy client creation."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model_name: str | None = None,
        prompt: str = SCENE_PROMPT,
    ) -> None:
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        self.model_name = model_name or os.getenv("SCENEKIT_GEMINI_MODEL", DEFAULT_GEMINI_MODEL)
        self.name = self.model_name
        self.prompt = prompt
        self._client = None

    def _ensure_client(self):
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise AnalyzerError("Gemini API key not found. Set GEMINI_API_KEY environment variable.")
        self._client = genai.Client(api_key=self.api_key)
        LOGGER.info("Initialized Gemini analyzer: %s", self.model_name)
        return self._client

    def analyze(self, image: bytes) -> SceneAnalysis:
        client = self._ensure_client()
        try:
            response = client.models.generate_content(
                model=self.model_name,
                contents=[
                    types.Part.from_bytes(data=image, mime_type="image/jpeg"),
                    self.prompt,
                ],
                config=types.GenerateContentConfig(response_mime_type="application/json"),
            )
            text = response.text
        except Exception as exc:
            raise AnalyzerError(f"Gemini request failed: {exc}") from exc
        if not text:
            raise AnalyzerError("Gemini returned an empty response")
        return parse_analysis_payload(text)


__all__ = [
    "BaseSceneAnalyzer",
    "GeminiSceneAnalyzer",
    "AnalysisPayload",
    "parse_analysis_payload",
    "SCENE_PROMPT",
]
