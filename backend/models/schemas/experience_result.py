"""Month intervals and the true-experience aggregate derived from them."""

from pydantic import BaseModel


class MonthInterval(BaseModel):
    """Half-open interval [start, end) in absolute months (year * 12 + month - 1)."""
    start: int
    end: int
    title: str = ""
    parseable: bool = True

    @property
    def months(self) -> int:
        return max(0, self.end - self.start)


class ExperienceResult(BaseModel):
    total_months: int = 0  # internships excluded by default
    total_years: float = 0.0
    internship_months: int = 0
    merged_interval_count: int = 0
    confidence: float = 0.3  # 1.0 all parsed, 0.6 some, 0.3 none
    unparseable_count: int = 0
    raw_role_count: int = 0
