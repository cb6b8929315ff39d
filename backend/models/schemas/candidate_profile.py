"""Candidate profile as read by the engine.

Rows arrive from the application with experience/education/certifications as
JSON-encoded strings or already-parsed arrays, skills as comma separated
strings or lists, and camelCase keys from some résumé parsers. Everything is
normalized here so the scoring code only ever sees one typed shape.
"""

import json

from pydantic import BaseModel, Field, field_validator, model_validator

from models.schemas.job_requirement import _as_string_list


def _as_record_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return []
    if isinstance(value, dict):
        return [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [v for v in value if v is not None]


class WorkExperience(BaseModel):
    """A single role from the candidate's structured experience."""
    company: str = ""
    title: str = ""
    start_date: str | None = None
    end_date: str | None = None
    current: bool = False
    responsibilities: list[str] = []

    @model_validator(mode="before")
    @classmethod
    def _camel_case_aliases(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for camel, snake in (("startDate", "start_date"), ("endDate", "end_date"), ("isCurrent", "current")):
            if data.get(snake) is None and camel in data:
                data[snake] = data.pop(camel)
        if data.get("responsibilities") is None:
            data["responsibilities"] = data.get("bullets") or data.get("description") or []
        if data.get("current") is None:
            data["current"] = False
        for key in ("company", "title"):
            if data.get(key) is None:
                data[key] = ""
        return data

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _stringify_date(cls, value):
        if value is None:
            return None
        s = str(value).strip()
        return s or None

    @field_validator("responsibilities", mode="before")
    @classmethod
    def _coerce_bullets(cls, value):
        if isinstance(value, str):
            return [line.strip(" •-*\t") for line in value.splitlines() if line.strip(" •-*\t")]
        return _as_string_list(value)


class EducationEntry(BaseModel):
    institution: str = ""
    degree: str = ""
    field: str = ""
    graduation_date: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _fill_blanks(cls, data):
        if isinstance(data, dict):
            data = {k: ("" if v is None and k != "graduation_date" else v) for k, v in data.items()}
            if "field" not in data and "field_of_study" in data:
                data["field"] = data["field_of_study"]
        return data

    @field_validator("graduation_date", mode="before")
    @classmethod
    def _stringify(cls, value):
        return None if value is None else str(value)


class Certification(BaseModel):
    name: str
    issuer: str = ""

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data):
        if isinstance(data, str):
            return {"name": data}
        if isinstance(data, dict) and data.get("issuer") is None:
            data = {**data, "issuer": ""}
        return data


class CandidateProfile(BaseModel):
    """Candidate data consumed by the scorer. Read-only to the engine."""
    skills: list[str] = []
    tools: list[str] = []
    primary_title: str = ""
    secondary_titles: list[str] = []
    target_titles: list[str] = Field(default_factory=list)
    experience: list[WorkExperience] = []
    education: list[EducationEntry] = []
    certifications: list[Certification] = []
    location: str = ""
    visa_status: str = ""
    years_of_experience: float | None = None
    open_to_remote: bool = True
    open_to_relocation: bool = False
    target_locations: list[str] = []
    resume_text: str = ""

    @model_validator(mode="before")
    @classmethod
    def _aliases(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            if "target_job_titles" in data and not data.get("target_titles"):
                data["target_titles"] = data.pop("target_job_titles")
            if "parsed_resume_text" in data and not data.get("resume_text"):
                data["resume_text"] = data.pop("parsed_resume_text")
            for key in ("primary_title", "location", "visa_status", "resume_text"):
                if data.get(key) is None:
                    data[key] = ""
            for key in ("open_to_remote", "open_to_relocation"):
                if data.get(key) is None:
                    data.pop(key, None)
        return data

    @field_validator("skills", "tools", "secondary_titles", "target_titles", "target_locations", mode="before")
    @classmethod
    def _coerce_strings(cls, value):
        return _as_string_list(value)

    @field_validator("experience", "education", "certifications", mode="before")
    @classmethod
    def _coerce_records(cls, value):
        return _as_record_list(value)

    @field_validator("years_of_experience", mode="before")
    @classmethod
    def _coerce_years(cls, value):
        if value is None or value == "":
            return None
        try:
            return max(0.0, float(value))
        except (TypeError, ValueError):
            return None

    @property
    def all_titles(self) -> list[str]:
        titles = [self.primary_title, *self.secondary_titles, *self.target_titles]
        return [t for t in titles if t and t.strip()]
