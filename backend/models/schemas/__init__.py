"""Pydantic contracts shared by the scoring engine, calibration and API."""

from models.schemas.job_requirement import JobRequirement
from models.schemas.candidate_profile import (
    CandidateProfile,
    Certification,
    EducationEntry,
    WorkExperience,
)
from models.schemas.experience_result import ExperienceResult, MonthInterval
from models.schemas.score_result import DimensionScore, DimensionScores, ScoreResult
from models.schemas.calibration import (
    CalibrationBin,
    CalibrationCurve,
    CalibrationResult,
    OutcomeEvent,
)

__all__ = [
    "JobRequirement",
    "CandidateProfile",
    "Certification",
    "EducationEntry",
    "WorkExperience",
    "ExperienceResult",
    "MonthInterval",
    "DimensionScore",
    "DimensionScores",
    "ScoreResult",
    "CalibrationBin",
    "CalibrationCurve",
    "CalibrationResult",
    "OutcomeEvent",
]
