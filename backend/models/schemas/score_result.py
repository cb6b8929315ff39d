"""Per-dimension scores and the aggregated fit score for one candidate/job pair."""

from typing import Literal

from pydantic import BaseModel

Decision = Literal["ready", "optimize", "rewrite", "reject"]
ApplyTier = Literal["not_stored", "below_threshold", "moderate", "strong"]

DIMENSIONS = (
    "keyword", "experience", "title", "education",
    "location", "formatting", "behavioral", "soft",
)


class DimensionScore(BaseModel):
    score: int = 50  # 0-100
    details: str = ""
    matched: list[str] | None = None
    missing: list[str] | None = None


class DimensionScores(BaseModel):
    keyword: DimensionScore = DimensionScore()
    experience: DimensionScore = DimensionScore()
    title: DimensionScore = DimensionScore()
    education: DimensionScore = DimensionScore()
    location: DimensionScore = DimensionScore()
    formatting: DimensionScore = DimensionScore()
    behavioral: DimensionScore = DimensionScore()
    soft: DimensionScore = DimensionScore()

    def items(self) -> list[tuple[str, DimensionScore]]:
        return [(name, getattr(self, name)) for name in DIMENSIONS]


class ScoreResult(BaseModel):
    total_score: int = 0
    dimensions: DimensionScores = DimensionScores()
    decision: Decision = "reject"
    apply_tier: ApplyTier = "not_stored"
    matched_keywords: list[str] = []
    missing_keywords: list[str] = []
    explanation: str = ""
    weights: dict[str, float] = {}
    caps_applied: list[str] = []
