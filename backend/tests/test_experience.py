from datetime import date

from models.schemas import JobRequirement, MonthInterval, WorkExperience
from services.experience import (
    MAX_CAREER_MONTHS,
    build_interval,
    compute_experience,
    effective_years,
    merge_intervals,
    month_index,
    parse_month_index,
    score_experience,
)

NOW = date(2026, 10, 1)


def _iv(start: tuple[int, int], end: tuple[int, int], title: str = "") -> MonthInterval:
    return MonthInterval(start=month_index(*start), end=month_index(*end), title=title)


# ---------------------------------------------------------------------------
# Date parsing
# ---------------------------------------------------------------------------

def test_parse_year_month_forms():
    assert parse_month_index("2020-03", is_start=True) == month_index(2020, 3)
    assert parse_month_index("2020-03-15", is_start=True) == month_index(2020, 3)
    assert parse_month_index("2020/3", is_start=True) == month_index(2020, 3)
    assert parse_month_index("March 2020", is_start=True) == month_index(2020, 3)
    assert parse_month_index("Sep. 2018", is_start=True) == month_index(2018, 9)


def test_bare_year_is_conservative():
    assert parse_month_index("2019", is_start=True) == month_index(2019, 1)
    assert parse_month_index("2019", is_start=False) == month_index(2019, 12)


def test_now_tokens():
    for token in ("present", "Current", "now", "ongoing", "today"):
        assert parse_month_index(token, is_start=False, now=NOW) == month_index(2026, 10)


def test_unparseable_dates_return_none():
    assert parse_month_index("", is_start=True) is None
    assert parse_month_index("sometime", is_start=True) is None
    assert parse_month_index("2020-13", is_start=True) is None
    assert parse_month_index("Smarch 2020", is_start=True) is None


# ---------------------------------------------------------------------------
# Intervals
# ---------------------------------------------------------------------------

def test_overlapping_intervals_merge():
    merged = merge_intervals([_iv((2019, 1), (2020, 7)), _iv((2020, 1), (2021, 1))])
    assert len(merged) == 1
    assert merged[0].start == month_index(2019, 1)
    assert merged[0].end == month_index(2021, 1)
    assert merged[0].months == 24


def test_gap_keeps_intervals_apart():
    merged = merge_intervals([_iv((2020, 1), (2020, 6)), _iv((2019, 1), (2019, 6))])
    assert len(merged) == 2
    assert sum(iv.months for iv in merged) == 10


def test_adjacent_intervals_merge():
    merged = merge_intervals([_iv((2019, 1), (2019, 7)), _iv((2019, 7), (2020, 1))])
    assert len(merged) == 1
    assert merged[0].months == 12


def test_merge_is_idempotent():
    intervals = [
        _iv((2015, 1), (2016, 1)),
        _iv((2015, 6), (2017, 3)),
        _iv((2018, 1), (2018, 2)),
        _iv((2020, 5), (2022, 1)),
        _iv((2021, 1), (2021, 6)),
    ]
    once = merge_intervals(intervals)
    twice = merge_intervals(once)
    assert [(iv.start, iv.end) for iv in once] == [(iv.start, iv.end) for iv in twice]


def test_merge_does_not_mutate_input():
    first = _iv((2019, 1), (2020, 7))
    merge_intervals([first, _iv((2020, 1), (2021, 1))])
    assert first.end == month_index(2020, 7)


def test_current_role_runs_through_now():
    iv = build_interval(WorkExperience(title="Engineer", start_date="2026-01", current=True), now=NOW)
    assert iv.parseable
    assert iv.months == 10


def test_unparseable_end_without_current_is_zero_length():
    iv = build_interval(WorkExperience(title="Engineer", start_date="2020-01", end_date="a while"), now=NOW)
    assert not iv.parseable
    assert iv.months == 0


def test_end_before_start_becomes_one_month():
    iv = build_interval(WorkExperience(title="Engineer", start_date="2021-05", end_date="2020-01"), now=NOW)
    assert iv.parseable
    assert iv.months == 1


def test_single_role_capped_at_forty_years():
    iv = build_interval(WorkExperience(title="Clerk", start_date="1950-01", end_date="2010-01"), now=NOW)
    assert iv.months == 480


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------

def test_overlapping_roles_via_date_strings():
    roles = [
        WorkExperience(title="Engineer", start_date="2019-01", end_date="2020-06"),
        WorkExperience(title="Consultant", start_date="2020-01", end_date="2020-12"),
    ]
    result = compute_experience(roles, now=NOW)
    assert result.total_months == 24
    assert result.total_years == 2.0
    assert result.merged_interval_count == 1
    assert result.confidence == 1.0


def test_internships_excluded_by_default():
    roles = [
        WorkExperience(title="Software Engineering Intern", start_date="2018-06", end_date="2018-08"),
        WorkExperience(title="Co-op Developer", start_date="2019-01", end_date="2019-04"),
        WorkExperience(title="Software Engineer", start_date="2020-01", end_date="2020-12"),
    ]
    result = compute_experience(roles, now=NOW)
    assert result.total_months == 12
    assert result.internship_months == 7

    included = compute_experience(roles, exclude_internships=False, now=NOW)
    assert included.total_months == 19
    assert included.internship_months == 0


def test_confidence_levels():
    good = WorkExperience(title="Engineer", start_date="2020-01", end_date="2020-12")
    bad = WorkExperience(title="Engineer", start_date="unknown", end_date="unknown")
    assert compute_experience([good], now=NOW).confidence == 1.0
    partial = compute_experience([good, bad], now=NOW)
    assert partial.confidence == 0.6
    assert partial.unparseable_count == 1
    assert compute_experience([bad], now=NOW).confidence == 0.3
    assert compute_experience([], now=NOW).confidence == 0.3


def test_total_capped_at_fifty_years():
    roles = [
        WorkExperience(title="Engineer", start_date=f"{1950 + 40 * i}-01", end_date=f"{1989 + 40 * i}-12")
        for i in range(2)
    ]
    result = compute_experience(roles, now=NOW)
    assert result.total_months == MAX_CAREER_MONTHS


def test_adding_disjoint_role_never_decreases_total():
    roles = [WorkExperience(title="Engineer", start_date="2015-01", end_date="2016-12")]
    before = compute_experience(roles, now=NOW).total_months
    roles.append(WorkExperience(title="Engineer", start_date="2018-01", end_date="2018-06"))
    after = compute_experience(roles, now=NOW).total_months
    assert after >= before
    assert after == before + 6


def test_effective_years_prefers_trusted_dates():
    result = compute_experience(
        [WorkExperience(title="Engineer", start_date="2020-01", end_date="2021-12")], now=NOW,
    )
    assert effective_years(result, self_reported=10) == 2.0
    untrusted = compute_experience([WorkExperience(title="Engineer", start_date="n/a")], now=NOW)
    assert effective_years(untrusted, self_reported=7) == 7


# ---------------------------------------------------------------------------
# Dimension score
# ---------------------------------------------------------------------------

def test_score_experience_meets_minimum():
    req = JobRequirement(min_years_experience=3)
    assert score_experience(req, 4.0).score == 100
    assert score_experience(req, 3.0).score == 100


def test_score_experience_within_range():
    req = JobRequirement(min_years_experience=3, preferred_years_experience=7)
    assert score_experience(req, 5.0).score == 88


def test_score_experience_below_minimum():
    req = JobRequirement(min_years_experience=5)
    assert score_experience(req, 4.5).score == 60
    assert score_experience(req, 3.5).score == 40
    assert score_experience(req, 0.0).score == 10


def test_score_experience_falls_back_to_seniority():
    req = JobRequirement(seniority_level="senior")
    assert score_experience(req, 8.0).score == 100
    assert score_experience(JobRequirement(), 2.0).score == 70
