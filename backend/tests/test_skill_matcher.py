from datetime import date

from models.schemas import CandidateProfile, JobRequirement, WorkExperience
from services.skill_matcher import (
    build_candidate_skills,
    expand_implications,
    match_skill,
    mentions,
    recency_factor,
    score_keywords,
)
from services.synonyms import canonicalize, normalize_skill_set

NOW = date(2026, 10, 1)

RESUME = """Jane Smith
jane@example.com

Summary
Backend engineer focused on Python services.

Experience
Software Engineer | Acme | 2021 - Present
• Built REST APIs on FastAPI serving 2M requests/day
• Containerized services and deployed to K8s

Education
B.S. Computer Science, minor in Statistics (R)

Skills
Python, PostgreSQL, Redis
"""


def test_synonyms_fold_aliases():
    assert canonicalize("K8s") == "kubernetes"
    assert canonicalize("ReactJS") == "react"
    assert canonicalize("Postgres") == "postgresql"
    assert canonicalize("Rust") == "rust"
    assert normalize_skill_set(["JS", "javascript", "ES6"]) == {"javascript"}


def test_mentions_respects_word_boundaries():
    assert mentions("java and spring boot", "java")
    assert not mentions("javascript only", "java")
    assert mentions("we use node.js daily", "nodejs")
    assert mentions("c# and .net", "c#")


def test_declared_skills_get_full_credit():
    cand = CandidateProfile(skills=["Python", "k8s"])
    evidence = build_candidate_skills(cand)
    assert match_skill("python", evidence) == 1.0
    assert match_skill("kubernetes", evidence) == 1.0


def test_section_weighting():
    evidence = build_candidate_skills(CandidateProfile(resume_text=RESUME))
    assert evidence["postgresql"].weight == 1.5  # skills section
    assert "section:skills" in evidence["postgresql"].sources
    assert evidence["fastapi"].weight == 1.0  # experience section


def test_context_phrases_imply_skills():
    evidence = build_candidate_skills(CandidateProfile(resume_text=RESUME))
    assert "api design" in evidence
    assert evidence["api design"].implied
    assert match_skill("api design", evidence) == 0.5


def test_implication_graph_expands_parents():
    evidence = expand_implications(build_candidate_skills(CandidateProfile(skills=["distributed systems"])))
    for implied in ("microservices", "kafka", "redis", "scalability"):
        assert match_skill(implied, evidence) == 0.5
    # microservices -> docker, transitively
    assert match_skill("docker", evidence) == 0.5


def test_direct_evidence_beats_implication():
    evidence = expand_implications(build_candidate_skills(CandidateProfile(skills=["django", "python"])))
    assert match_skill("python", evidence) == 1.0


def test_substring_fallback_is_whole_word():
    evidence = build_candidate_skills(CandidateProfile(skills=["aws lambda", "javascript"]))
    assert match_skill("aws", evidence) == 1.0
    assert match_skill("java", evidence) == 0.0


def test_recency_penalizes_stale_skills():
    roles = [
        WorkExperience(title="Engineer", start_date="2012-01", end_date="2015-06",
                       responsibilities=["Wrote Perl scripts"]),
        WorkExperience(title="Engineer", start_date="2016-01", current=True,
                       responsibilities=["Python services"]),
    ]
    assert recency_factor("perl", roles, NOW) == 0.7
    assert recency_factor("python", roles, NOW) == 1.0
    assert recency_factor("haskell", roles, NOW) == 1.0


def test_partial_must_have_match_with_penalty():
    req = JobRequirement(must_have_skills=["python", "sql", "spark"])
    cand = CandidateProfile(skills=["python", "sql", "aws"])
    result = score_keywords(req, cand, now=NOW)
    assert result.score == 62
    assert result.matched == ["python", "sql"]
    assert result.missing == ["spark"]


def test_zero_must_have_matches_caps_at_15():
    req = JobRequirement(
        must_have_skills=["rust"],
        nice_to_have_skills=["python", "sql", "docker"],
    )
    cand = CandidateProfile(skills=["python", "sql", "docker"])
    assert score_keywords(req, cand, now=NOW).score <= 15


def test_low_must_have_ratio_caps_at_30():
    req = JobRequirement(
        must_have_skills=["rust", "haskell", "elixir", "python"],
        nice_to_have_skills=["sql", "docker"],
        implicit_skills=["git"],
    )
    cand = CandidateProfile(skills=["python", "sql", "docker", "git"])
    assert score_keywords(req, cand, now=NOW).score <= 30


def test_tiers_blend_when_all_match():
    req = JobRequirement(
        must_have_skills=["python"],
        nice_to_have_skills=["docker"],
        implicit_skills=["git"],
    )
    cand = CandidateProfile(skills=["python", "docker", "git"])
    assert score_keywords(req, cand, now=NOW).score == 100


def test_no_requirements_is_neutral():
    assert score_keywords(JobRequirement(), CandidateProfile(skills=["python"]), now=NOW).score == 50


def test_requirement_aliases_are_canonicalized():
    req = JobRequirement(must_have_skills=["K8s", "Postgres"])
    cand = CandidateProfile(skills=["kubernetes", "postgresql"])
    result = score_keywords(req, cand, now=NOW)
    assert result.score == 100
    assert result.missing == []
