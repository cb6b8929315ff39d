import json

from models.schemas import CandidateProfile, JobRequirement, OutcomeEvent


def test_candidate_accepts_json_encoded_records():
    cand = CandidateProfile(
        experience=json.dumps([
            {"company": "Acme", "title": "Engineer", "startDate": "2020-01", "isCurrent": True,
             "bullets": ["Built things"]},
        ]),
        education='[{"institution": "State", "degree": "B.S.", "field_of_study": "CS"}]',
        certifications='["AWS SAA"]',
    )
    role = cand.experience[0]
    assert role.start_date == "2020-01"
    assert role.current
    assert role.responsibilities == ["Built things"]
    assert cand.education[0].field == "CS"
    assert cand.certifications[0].name == "AWS SAA"


def test_candidate_tolerates_bad_and_null_values():
    cand = CandidateProfile(
        experience="not json",
        education=None,
        skills=None,
        primary_title=None,
        years_of_experience="n/a",
        open_to_remote=None,
    )
    assert cand.experience == []
    assert cand.education == []
    assert cand.skills == []
    assert cand.primary_title == ""
    assert cand.years_of_experience is None
    assert cand.open_to_remote is True


def test_candidate_comma_separated_lists_and_aliases():
    cand = CandidateProfile.model_validate({
        "skills": "Python, SQL , ,Spark",
        "target_job_titles": ["Data Engineer"],
        "parsed_resume_text": "resume body",
        "years_of_experience": "4.5",
    })
    assert cand.skills == ["Python", "SQL", "Spark"]
    assert cand.target_titles == ["Data Engineer"]
    assert cand.resume_text == "resume body"
    assert cand.years_of_experience == 4.5
    assert cand.all_titles == ["Data Engineer"]


def test_responsibilities_from_description_string():
    cand = CandidateProfile(experience=[{"title": "Engineer", "description": "• Built APIs\n• Ran on-call\n"}])
    assert cand.experience[0].responsibilities == ["Built APIs", "Ran on-call"]


def test_requirement_coercion():
    req = JobRequirement.model_validate({
        "must_have_skills": '["Python", "Apache  Spark"]',
        "nice_to_have_skills": "Docker, Kubernetes",
        "seniority_level": "VP",
        "location_type": "In Office",
        "min_years_experience": "-2",
        "preferred_years_experience": "5",
        "visa_sponsorship": "maybe",
    })
    assert req.must_have_skills == ["python", "apache spark"]
    assert req.nice_to_have_skills == ["docker", "kubernetes"]
    assert req.seniority_level == "c_level"
    assert req.location_type == "onsite"
    assert req.min_years_experience is None
    assert req.preferred_years_experience == 5.0
    assert req.visa_sponsorship is None


def test_minimal_requirement():
    req = JobRequirement.minimal_for("  Senior Data Engineer ", extraction_failed=True)
    assert req.minimal
    assert req.extraction_failed
    assert req.normalized_title == "senior data engineer"
    assert req.domain == "data-engineering"
    assert req.must_have_skills == []


def test_outcome_event_payload_accessors():
    event = OutcomeEvent(candidate_id="c1", job_id="j1", payload={"score": "74", "outcome": "interview"})
    assert event.score == 74.0
    assert event.outcome == "interview"
    assert event.profile == "A"
    assert event.job_family is None

    bare = OutcomeEvent(candidate_id="c1", job_id="j1", payload={"score": "high"})
    assert bare.score is None
    assert bare.outcome is None


def test_outcome_event_json_round_trip():
    event = OutcomeEvent(candidate_id="c1", job_id="j1", payload={"score": 74, "profile": "C"})
    restored = OutcomeEvent.model_validate_json(event.model_dump_json())
    assert restored == event
