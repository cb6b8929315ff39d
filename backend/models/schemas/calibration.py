"""Calibration curves, lookups and the outcome events they are built from."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class CalibrationBin(BaseModel):
    bucket: int  # multiple of 5 in [0, 100]
    p: float  # 0-1 interview probability, non-decreasing across a curve
    n: int  # sample count
    outcomes: int  # interview/offer/hired count


class CalibrationCurve(BaseModel):
    """One published curve per (profile, job_family); job_family None is global."""
    profile: str
    job_family: str | None = None
    sample_count: int = 0
    outcome_count: int = 0
    bins: list[CalibrationBin] = []
    min_reliable_samples: int = 30
    built_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CalibrationResult(BaseModel):
    p_interview: float
    bucket: int
    sample_count: int
    ci_lower: float  # 95% Wilson interval
    ci_upper: float
    reliable: bool


class OutcomeEvent(BaseModel):
    """Append-only event. Scoring writes one per computed score (outcome None);
    recruiting outcomes arrive later as events with an outcome set."""
    event_type: str = "ats_score_computed"
    candidate_id: str
    job_id: str
    payload: dict[str, Any] = {}
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def score(self) -> float | None:
        raw = self.payload.get("score")
        try:
            return None if raw is None else float(raw)
        except (TypeError, ValueError):
            return None

    @property
    def outcome(self) -> str | None:
        raw = self.payload.get("outcome")
        return None if raw is None else str(raw)

    @property
    def profile(self) -> str:
        return str(self.payload.get("profile") or "A")

    @property
    def job_family(self) -> str | None:
        return self.payload.get("job_family")
