from pydantic import BaseModel, ConfigDict, Field

from models.schemas import CandidateProfile
from services.batch import CandidateRecord
from services.requirement_extractor import JobPosting


class ScoreRequest(BaseModel):
    candidate_id: str = Field(..., min_length=1, description="Stable candidate identifier")
    candidate: CandidateProfile
    job: JobPosting
    profile: str | None = Field(None, description='Scoring profile, "A" or "C"')


class BatchScoreRequest(BaseModel):
    candidates: list[CandidateRecord] = Field(..., min_length=1)
    jobs: list[JobPosting] = Field(..., min_length=1)
    profile: str | None = None


class OutcomeRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    candidate_id: str = Field(..., min_length=1)
    job_id: str = Field(..., min_length=1)
    outcome: str = Field(..., min_length=1, max_length=40, description="e.g. interview, offer, hired, rejected")


class RebuildRequest(BaseModel):
    profiles: list[str] = ["A", "C"]
    job_families: list[str] = []
