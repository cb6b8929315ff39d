"""Structured job requirements produced once per posting by the extractor."""

import json
import re
from typing import Literal

from pydantic import BaseModel, field_validator

SeniorityLevel = Literal[
    "junior", "mid", "senior", "staff", "principal", "lead", "manager", "director", "c_level",
]
LocationType = Literal["remote", "hybrid", "onsite"]

_SENIORITY_VALUES = {
    "junior", "mid", "senior", "staff", "principal", "lead", "manager", "director", "c_level",
}
_LOCATION_VALUES = {"remote", "hybrid", "onsite"}


def _as_string_list(value) -> list[str]:
    """Accept a list, a JSON-encoded list, a comma separated string, or None."""
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return []
        if raw.startswith("["):
            try:
                value = json.loads(raw)
            except json.JSONDecodeError:
                value = raw.strip("[]").split(",")
        else:
            value = raw.split(",")
    if not isinstance(value, (list, tuple, set)):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


class JobRequirement(BaseModel):
    """Normalized requirements of one job posting.

    Skill lists are stored lowercase; canonicalization against the synonym
    table happens in the matcher so that the raw extractor output stays
    inspectable.
    """
    normalized_title: str = ""
    related_titles: list[str] = []
    seniority_level: SeniorityLevel | None = None
    must_have_skills: list[str] = []
    nice_to_have_skills: list[str] = []
    implicit_skills: list[str] = []
    min_years_experience: float | None = None
    preferred_years_experience: float | None = None
    required_education: str | None = None
    preferred_education_fields: list[str] = []
    certifications: list[str] = []
    location_type: LocationType | None = None
    location_city: str | None = None
    visa_sponsorship: bool | None = None
    industry_vertical: str | None = None
    behavioral_keywords: list[str] = []
    context_phrases: list[str] = []
    responsibilities: list[str] = []
    domain: str = "general"

    # Bookkeeping
    minimal: bool = False  # explicit empty record for too-short or failed JDs
    extraction_failed: bool = False

    @field_validator(
        "related_titles", "must_have_skills", "nice_to_have_skills", "implicit_skills",
        "preferred_education_fields", "certifications", "behavioral_keywords",
        "context_phrases", "responsibilities",
        mode="before",
    )
    @classmethod
    def _coerce_list(cls, value):
        return _as_string_list(value)

    @field_validator("must_have_skills", "nice_to_have_skills", "implicit_skills", mode="after")
    @classmethod
    def _lower_skills(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for skill in value:
            s = re.sub(r"\s+", " ", skill.lower())
            if s not in seen:
                seen.append(s)
        return seen

    @field_validator("seniority_level", mode="before")
    @classmethod
    def _coerce_seniority(cls, value):
        if value is None:
            return None
        s = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        if s in ("c_suite", "executive", "vp"):
            s = "c_level"
        return s if s in _SENIORITY_VALUES else None

    @field_validator("location_type", mode="before")
    @classmethod
    def _coerce_location_type(cls, value):
        if value is None:
            return None
        s = str(value).strip().lower().replace("-", "").replace(" ", "")
        if s in ("onsite", "inoffice", "office"):
            return "onsite"
        return s if s in _LOCATION_VALUES else None

    @field_validator("min_years_experience", "preferred_years_experience", mode="before")
    @classmethod
    def _coerce_years(cls, value):
        if value is None or value == "":
            return None
        try:
            years = float(value)
        except (TypeError, ValueError):
            return None
        return years if years >= 0 else None

    @field_validator("visa_sponsorship", mode="before")
    @classmethod
    def _coerce_tristate(cls, value):
        if value is None or isinstance(value, bool):
            return value
        s = str(value).strip().lower()
        if s in ("true", "yes", "1"):
            return True
        if s in ("false", "no", "0"):
            return False
        return None

    @classmethod
    def minimal_for(cls, title: str, *, extraction_failed: bool = False) -> "JobRequirement":
        """Empty, explicit requirement record for a job that cannot be extracted."""
        from services.domain import classify_domain

        return cls(
            normalized_title=title.strip().lower(),
            domain=classify_domain(title),
            minimal=True,
            extraction_failed=extraction_failed,
        )
