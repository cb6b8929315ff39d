"""Pluggable soft-factor scorer.

The deterministic scorers never depend on this module's output being
available: every implementation answers with a DimensionScore and the
neutral 50 stands in whenever the model cannot.
"""

import logging
from abc import ABC, abstractmethod

from models.schemas import DimensionScore
from services import gemini_client
from services.prompt_builder import build_soft_score_prompt

logger = logging.getLogger(__name__)

NEUTRAL = DimensionScore(score=50, details="Soft factors not assessed")


class SoftScorer(ABC):
    @abstractmethod
    async def score(
        self,
        job_title: str,
        job_description: str,
        candidate_title: str,
        resume_text: str,
        keyword: float | None = None,
    ) -> DimensionScore:
        ...


class NeutralSoftScorer(SoftScorer):
    async def score(self, job_title, job_description, candidate_title, resume_text, keyword=None):
        return NEUTRAL.model_copy()


class GeminiSoftScorer(SoftScorer):
    def __init__(self, max_resume_chars: int = 8000):
        self.max_resume_chars = max_resume_chars

    async def score(self, job_title, job_description, candidate_title, resume_text, keyword=None):
        if not resume_text.strip() or not job_description.strip():
            return NEUTRAL.model_copy()

        prompt = build_soft_score_prompt(
            job_title, job_description, candidate_title,
            resume_text[: self.max_resume_chars], keyword,
        )
        result = await gemini_client.generate_json(prompt, max_output_tokens=512)
        if result is None:
            return NEUTRAL.model_copy()

        try:
            raw = float(result.get("score"))
        except (TypeError, ValueError):
            logger.warning("Soft scorer returned a non-numeric score: %r", result.get("score"))
            return NEUTRAL.model_copy()

        details = str(result.get("details") or "").strip() or "Soft factors assessed"
        return DimensionScore(score=round(max(0.0, min(100.0, raw))), details=details)


def is_neutral(score: DimensionScore | None) -> bool:
    return score is None or score.details == NEUTRAL.details
