"""Shared dependencies for API routes.

One engine per process, wired to Gemini when an API key is configured and
to the neutral fallbacks otherwise. Tests swap these out through
``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends

from config import settings
from services.batch import BatchScorer
from services.calibration import CalibrationService
from services.engine import FitEngine
from services.requirement_extractor import GeminiRequirementExtractor, RequirementService
from services.similarity import EmbeddingCache, GeminiEmbedder
from services.soft_scorer import GeminiSoftScorer, NeutralSoftScorer
from services.stores import InMemoryEventStore


@lru_cache
def get_calibration_service() -> CalibrationService:
    return CalibrationService(InMemoryEventStore())


@lru_cache
def get_engine() -> FitEngine:
    gemini = bool(settings.gemini_api_key)
    calibration = get_calibration_service()
    return FitEngine(
        requirements=RequirementService(GeminiRequirementExtractor() if gemini else None),
        embeddings=EmbeddingCache(GeminiEmbedder() if gemini else None),
        calibration=calibration,
        soft_scorer=GeminiSoftScorer() if gemini else NeutralSoftScorer(),
        events=calibration.events,
    )


def get_batch_scorer(engine: FitEngine = Depends(get_engine)) -> BatchScorer:
    return BatchScorer(engine)
