from models.schemas import CandidateProfile, JobRequirement
from services.dimensions import (
    extract_bullets,
    has_metric,
    score_behavioral,
    score_education,
    score_formatting,
    score_location,
    starts_with_action_verb,
)

GOOD_RESUME = """Jane Smith
jane.smith@example.com | (555) 123-4567 | linkedin.com/in/janesmith

Summary
Data engineer with six years building batch and streaming platforms.

Experience
Senior Data Engineer | Acme Corp | Jan 2021 - Present
• Built Spark pipelines processing 3TB/day, cutting costs by 35%
• Led migration of 40 Airflow DAGs to managed scheduling
• Partnered with analytics stakeholders on a shared metrics layer

Data Engineer | Beta Inc | 2018 - 2020
• Designed Kafka ingestion for 12 services
• Reduced warehouse query latency 4x

Education
B.S. Computer Science, State University

Skills
Python, SQL, Spark, Airflow, Kafka
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_extract_bullets_handles_markers_and_numbers():
    text = "Intro line\n• First thing\n- Second thing\n1. Third thing\n\n"
    assert extract_bullets(text) == ["First thing", "Second thing", "Third thing"]


def test_action_verbs_and_metrics():
    assert starts_with_action_verb("Led a team of four")
    assert not starts_with_action_verb("Responsible for reports")
    assert has_metric("cut costs by 35%")
    assert has_metric("served 2M requests")
    assert not has_metric("wrote documentation")


# ---------------------------------------------------------------------------
# Education
# ---------------------------------------------------------------------------

def test_education_no_requirements():
    assert score_education(JobRequirement(), CandidateProfile()).score == 75


def test_education_meets_degree():
    req = JobRequirement(required_education="Bachelor's")
    cand = CandidateProfile(education=[{"degree": "B.S.", "field": "Computer Science"}])
    assert score_education(req, cand).score == 89


def test_education_one_level_below_beats_none():
    req = JobRequirement(required_education="Master's")
    one_below = CandidateProfile(education=[{"degree": "Bachelor of Science"}])
    nothing = CandidateProfile()
    assert score_education(req, one_below).score > score_education(req, nothing).score
    assert "below" in score_education(req, nothing).details


def test_education_reads_resume_section_without_structured_entries():
    req = JobRequirement(required_education="bachelor")
    cand = CandidateProfile(resume_text=GOOD_RESUME)
    assert score_education(req, cand).score == 89


def test_education_certifications():
    req = JobRequirement(certifications=["AWS Certified Solutions Architect"])
    has_cert = CandidateProfile(certifications=["AWS Certified Solutions Architect - Associate"])
    assert score_education(req, has_cert).score == 81
    assert score_education(req, CandidateProfile()).score == 56


# ---------------------------------------------------------------------------
# Location
# ---------------------------------------------------------------------------

def test_remote_job():
    req = JobRequirement(location_type="remote")
    assert score_location(req, CandidateProfile()).score == 100
    assert score_location(req, CandidateProfile(open_to_remote=False)).score == 80


def test_city_match():
    req = JobRequirement(location_type="onsite", location_city="Austin")
    assert score_location(req, CandidateProfile(location="Austin, TX")).score == 100
    assert score_location(req, CandidateProfile(target_locations=["austin"])).score == 100


def test_city_mismatch():
    onsite = JobRequirement(location_type="onsite", location_city="Austin")
    hybrid = JobRequirement(location_type="hybrid", location_city="Austin")
    assert score_location(onsite, CandidateProfile(location="Denver", open_to_relocation=True)).score == 70
    assert score_location(hybrid, CandidateProfile(location="Denver")).score == 50
    assert score_location(onsite, CandidateProfile(location="Denver")).score == 30


def test_visa_penalty_without_city():
    req = JobRequirement(visa_sponsorship=False)
    assert score_location(req, CandidateProfile(visa_status="Needs H1B")).score == 35
    assert score_location(req, CandidateProfile(visa_status="Citizen")).score == 75


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def test_formatting_without_text_is_neutral():
    assert score_formatting(CandidateProfile()).score == 50


def test_structured_resume_beats_wall_of_text():
    good = score_formatting(CandidateProfile(resume_text=GOOD_RESUME))
    sparse = score_formatting(CandidateProfile(resume_text="I have done many jobs and I like computers."))
    assert good.score > sparse.score
    assert "missing: experience, skills, education" in sparse.details
    assert "missing" not in good.details


# ---------------------------------------------------------------------------
# Behavioral
# ---------------------------------------------------------------------------

def test_behavioral_without_text_is_neutral():
    assert score_behavioral(JobRequirement(), CandidateProfile()).score == 50


def test_behavioral_signals_and_keywords():
    req = JobRequirement(behavioral_keywords=["mentoring"])
    cand = CandidateProfile(experience=[
        {"title": "Lead Engineer", "responsibilities": ["Led a team of 5 engineers and mentoring juniors"]},
    ])
    result = score_behavioral(req, cand)
    # leadership + impact signals, every bullet opens with a verb, keyword covered
    assert result.score == 70
    assert result.matched == ["mentoring"]
    assert result.missing is None


def test_behavioral_reports_missing_keywords():
    req = JobRequirement(behavioral_keywords=["ownership", "mentoring"])
    result = score_behavioral(req, CandidateProfile(resume_text=GOOD_RESUME))
    assert result.missing == ["ownership", "mentoring"]
    assert "leadership" in result.details
    assert "collaboration" in result.details
