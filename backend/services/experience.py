"""True worked-time computation from structured experience entries.

Career span (today minus earliest start) over-credits gaps and overlapping
jobs. Instead each role becomes a half-open month interval, overlapping or
adjacent intervals are merged with a sweep line, and the merged lengths are
summed. Internships are merged in their own pool and excluded by default.
"""

import logging
import re
from datetime import date

from models.schemas import (
    DimensionScore,
    ExperienceResult,
    JobRequirement,
    MonthInterval,
    WorkExperience,
)

logger = logging.getLogger(__name__)

MAX_ROLE_MONTHS = 40 * 12
MAX_CAREER_MONTHS = 50 * 12
MIN_YEAR, MAX_YEAR = 1950, 2040

INTERN_RE = re.compile(r"\b(intern(ship)?|co[-\s]?op|cooperative\s+education)\b", re.IGNORECASE)
_NOW_RE = re.compile(r"^(present|current|now|ongoing|today)$")
_YMD_RE = re.compile(r"^(\d{4})[-/](\d{1,2})(?:[-/]\d{1,2})?$")
_YEAR_RE = re.compile(r"^(\d{4})$")
_MONTH_YEAR_RE = re.compile(r"^([a-z]+)[,.\s]+(\d{4})$")
_YEAR_MONTH_RE = re.compile(r"^(\d{4})[,.\s]+([a-z]+)$")

_MONTH_MAP = {
    "jan": 1, "january": 1, "feb": 2, "february": 2, "mar": 3, "march": 3,
    "apr": 4, "april": 4, "may": 5, "jun": 6, "june": 6,
    "jul": 7, "july": 7, "aug": 8, "august": 8, "sep": 9, "sept": 9,
    "september": 9, "oct": 10, "october": 10, "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

# Expected years range per seniority when the posting gives no explicit minimum
SENIORITY_YEARS: dict[str, tuple[float, float]] = {
    "junior": (0, 2),
    "mid": (2, 5),
    "senior": (5, 8),
    "staff": (8, 12),
    "principal": (12, 20),
    "lead": (5, 10),
    "manager": (6, 12),
    "director": (10, 20),
}


def month_index(year: int, month: int) -> int:
    return year * 12 + (month - 1)


def now_month_index(now: date | None = None) -> int:
    now = now or date.today()
    return month_index(now.year, now.month)


def parse_month_index(raw: str | None, is_start: bool, now: date | None = None) -> int | None:
    """Parse a date string into an absolute month index, or None.

    A bare year resolves to January for starts and December for ends so a
    role is never credited with months it may not cover.
    """
    if not raw:
        return None
    s = str(raw).strip().lower()

    if _NOW_RE.match(s):
        return now_month_index(now)

    m = _YMD_RE.match(s)
    if m:
        year, month = int(m.group(1)), int(m.group(2))
        if not (MIN_YEAR <= year <= MAX_YEAR) or not (1 <= month <= 12):
            return None
        return month_index(year, month)

    m = _YEAR_RE.match(s)
    if m:
        year = int(m.group(1))
        if not (MIN_YEAR <= year <= MAX_YEAR):
            return None
        return month_index(year, 1 if is_start else 12)

    m = _MONTH_YEAR_RE.match(s)
    if m:
        month_str, year_str = m.group(1), m.group(2)
    else:
        m = _YEAR_MONTH_RE.match(s)
        if not m:
            return None
        year_str, month_str = m.group(1), m.group(2)
    month = _MONTH_MAP.get(month_str)
    year = int(year_str)
    if month is None or not (MIN_YEAR <= year <= MAX_YEAR):
        return None
    return month_index(year, month)


def build_interval(role: WorkExperience, now: date | None = None) -> MonthInterval:
    """One role -> one interval. Unparseable roles become zero-length and flagged."""
    title = role.title.strip()
    start = parse_month_index(role.start_date, is_start=True, now=now)
    if start is None:
        return MonthInterval(start=0, end=0, title=title, parseable=False)

    if role.current or not role.end_date:
        end = now_month_index(now) + 1
    else:
        parsed = parse_month_index(role.end_date, is_start=False, now=now)
        if parsed is None:
            return MonthInterval(start=start, end=start, title=title, parseable=False)
        end = parsed + 1

    if end <= start:
        end = start + 1
    end = min(end, start + MAX_ROLE_MONTHS)
    return MonthInterval(start=start, end=end, title=title, parseable=True)


def merge_intervals(intervals: list[MonthInterval]) -> list[MonthInterval]:
    """Sweep-line union of overlapping or adjacent intervals."""
    if not intervals:
        return []
    ordered = sorted(intervals, key=lambda iv: iv.start)
    merged = [ordered[0].model_copy()]
    for curr in ordered[1:]:
        last = merged[-1]
        if curr.start <= last.end:
            last.end = max(last.end, curr.end)
        else:
            merged.append(curr.model_copy())
    return merged


def _sum_months(intervals: list[MonthInterval]) -> int:
    return sum(iv.months for iv in intervals)


def compute_experience(
    roles: list[WorkExperience],
    exclude_internships: bool = True,
    now: date | None = None,
) -> ExperienceResult:
    if not roles:
        return ExperienceResult()

    intervals = [build_interval(r, now=now) for r in roles]
    parseable = [iv for iv in intervals if iv.parseable]
    unparseable_count = len(intervals) - len(parseable)

    def is_internship(iv: MonthInterval) -> bool:
        return exclude_internships and bool(INTERN_RE.search(iv.title))

    substantive = merge_intervals([iv for iv in parseable if not is_internship(iv)])
    internships = merge_intervals([iv for iv in parseable if is_internship(iv)])

    total_months = min(_sum_months(substantive), MAX_CAREER_MONTHS)

    if not parseable:
        confidence = 0.3
    elif len(parseable) < len(roles):
        confidence = 0.6
    else:
        confidence = 1.0

    if unparseable_count:
        logger.debug("%d of %d roles had unparseable dates", unparseable_count, len(roles))

    return ExperienceResult(
        total_months=total_months,
        total_years=round(total_months / 12, 1),
        internship_months=_sum_months(internships),
        merged_interval_count=len(substantive),
        confidence=confidence,
        unparseable_count=unparseable_count,
        raw_role_count=len(roles),
    )


def effective_years(result: ExperienceResult, self_reported: float | None) -> float | None:
    """Computed years when the dates are trustworthy, otherwise the self-reported figure."""
    if result.raw_role_count and result.confidence >= 0.6:
        return result.total_years
    if self_reported is not None:
        return self_reported
    if result.raw_role_count:
        return result.total_years
    return None


def score_experience(requirement: JobRequirement, years: float | None) -> DimensionScore:
    """Years vs. the posting's minimum/preferred range (or the seniority default)."""
    yrs = years if years is not None else 0.0
    target_min = requirement.min_years_experience
    target_max = requirement.preferred_years_experience
    if target_min is None and requirement.seniority_level in SENIORITY_YEARS:
        target_min, target_max = SENIORITY_YEARS[requirement.seniority_level]

    if target_min is None:
        return DimensionScore(score=70, details=f"{yrs:g} years experience (no requirement specified)")

    target = target_max if target_max and target_max > target_min else target_min

    if yrs >= target:
        return DimensionScore(score=100, details=f"{yrs:g}yr meets {target:g}yr+ requirement")
    if yrs >= target_min:
        ratio = (yrs - target_min) / max(1.0, target - target_min)
        return DimensionScore(
            score=round(75 + ratio * 25),
            details=f"{yrs:g}yr within {target_min:g}-{target:g}yr range",
        )

    gap = target_min - yrs
    if gap <= 1:
        score = 60
    elif gap <= 2:
        score = 40
    else:
        score = max(10, round(40 - gap * 8))
    return DimensionScore(score=score, details=f"{yrs:g}yr, {gap:g}yr below {target_min:g}yr minimum")
