import pytest

from conftest import JD_TEXT, FakeEmbedder, FakeExtractor
from models.schemas import CandidateProfile, DimensionScore, JobRequirement, OutcomeEvent
from services.engine import apply_tier, combine_soft, decide, score_candidate
from services.requirement_extractor import JobPosting
from services.similarity import EmbeddingCache, InMemoryEmbeddingStore
from services.soft_scorer import NEUTRAL, SoftScorer

JOB = JobPosting(job_id="j1", title="Data Engineer", description=JD_TEXT)


class BrokenSoftScorer(SoftScorer):
    async def score(self, job_title, job_description, candidate_title, resume_text, keyword=None):
        raise RuntimeError("model overloaded")


class FixedSoftScorer(SoftScorer):
    def __init__(self, value):
        self.value = value

    async def score(self, job_title, job_description, candidate_title, resume_text, keyword=None):
        return DimensionScore(score=self.value, details="culture and trajectory")


# ---------------------------------------------------------------------------
# Pure aggregation
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("total,decision", [
    (100, "ready"), (85, "ready"), (84, "optimize"), (70, "optimize"),
    (69, "rewrite"), (40, "rewrite"), (39, "reject"), (0, "reject"),
])
def test_decide(total, decision):
    assert decide(total) == decision


@pytest.mark.parametrize("total,tier", [
    (49, "not_stored"), (50, "below_threshold"), (74, "below_threshold"),
    (75, "moderate"), (81, "moderate"), (82, "strong"),
])
def test_apply_tier(total, tier):
    assert apply_tier(total) == tier


def test_combine_soft():
    assert combine_soft(80.0, DimensionScore(score=60, details="x")).score == 70
    assert combine_soft(70.0, None).score == 70
    assert combine_soft(70.0, NEUTRAL).score == 70
    assert combine_soft(None, NEUTRAL).score == 50


def test_partial_fit_scenario(data_engineer_requirement, data_engineer_candidate, now):
    result = score_candidate("Data Engineer", data_engineer_requirement, data_engineer_candidate, now=now)
    dims = result.dimensions
    assert dims.keyword.score == 62
    assert dims.experience.score == 100
    assert dims.title.score == 100
    assert dims.soft.score == 50
    assert result.total_score == 74
    assert result.decision == "optimize"
    assert result.apply_tier == "below_threshold"
    assert result.missing_keywords == ["spark"]
    assert result.matched_keywords == ["python", "sql"]
    assert result.caps_applied == []
    assert "spark" in result.explanation


def test_domain_mismatch_caps_total(now):
    req = JobRequirement(must_have_skills=["java", "sql"], min_years_experience=3)
    cand = CandidateProfile(primary_title="Java Developer", skills=["java", "sql"], years_of_experience=5)
    result = score_candidate("Business Analyst", req, cand, now=now)
    assert result.dimensions.keyword.score == 100
    assert result.dimensions.title.score <= 25
    assert result.total_score <= 30
    assert result.caps_applied
    assert "mismatch" in result.explanation


def test_score_is_deterministic(data_engineer_requirement, data_engineer_candidate, now):
    first = score_candidate("Data Engineer", data_engineer_requirement, data_engineer_candidate, now=now)
    second = score_candidate("Data Engineer", data_engineer_requirement, data_engineer_candidate, now=now)
    assert first == second


# ---------------------------------------------------------------------------
# Engine orchestration
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_score_pair_publishes_and_logs_event(
    make_engine, event_store, data_engineer_requirement, data_engineer_candidate,
):
    engine = make_engine(requirement=data_engineer_requirement)
    published = await engine.score_pair("c1", data_engineer_candidate, JOB)

    assert published.score.total_score == 74
    assert published.job_family == "data-engineering"
    assert published.calibration is None
    assert published.gate.passes
    assert not published.requirement_minimal
    assert await engine.results.get("c1", "j1") == published

    events = await event_store.all()
    assert len(events) == 1
    assert events[0].event_type == "ats_score_computed"
    assert events[0].score == 74
    assert events[0].outcome is None
    assert events[0].job_family == "data-engineering"


@pytest.mark.asyncio
async def test_low_scores_are_logged_but_not_stored(make_engine, event_store, data_engineer_requirement):
    engine = make_engine(requirement=data_engineer_requirement)
    published = await engine.score_pair("c2", CandidateProfile(primary_title="Barista"), JOB)

    assert published.score.total_score < 50
    assert published.apply_tier == "not_stored"
    assert await engine.results.get("c2", "j1") is None
    assert len(await event_store.all()) == 1


@pytest.mark.asyncio
async def test_rescoring_upserts_single_result(make_engine, data_engineer_requirement, data_engineer_candidate):
    engine = make_engine(requirement=data_engineer_requirement)
    await engine.score_pair("c1", data_engineer_candidate, JOB)
    await engine.score_pair("c1", data_engineer_candidate, JOB)
    assert len(engine.results) == 1
    assert len(await engine.events.all()) == 2


@pytest.mark.asyncio
async def test_failed_extraction_uses_minimal_requirement(make_engine, data_engineer_candidate):
    engine = make_engine(extractor=FakeExtractor(fail=True))
    published = await engine.score_pair("c1", data_engineer_candidate, JOB)

    assert published.requirement_minimal
    # experience confidence 1.0 halved for a minimal requirement
    assert published.gate.threshold_used == 48


@pytest.mark.asyncio
async def test_semantic_similarity_feeds_soft_dimension(make_engine, data_engineer_requirement):
    engine = make_engine(requirement=data_engineer_requirement, embedder=FakeEmbedder())
    cand = CandidateProfile(
        primary_title="Data Engineer",
        skills=["python", "sql", "spark"],
        resume_text="Data Engineer building Spark and SQL pipelines in Python with 3+ years of experience.",
    )
    published = await engine.score_pair("c1", cand, JOB)
    assert published.semantic is not None
    assert "semantic similarity" in published.score.dimensions.soft.details


@pytest.mark.asyncio
async def test_soft_scorer_failure_falls_back(make_engine, data_engineer_requirement, data_engineer_candidate):
    engine = make_engine(requirement=data_engineer_requirement, soft_scorer=BrokenSoftScorer())
    published = await engine.score_pair("c1", data_engineer_candidate, JOB)
    assert published.score.dimensions.soft.score == 50
    assert published.score.total_score == 74


@pytest.mark.asyncio
async def test_soft_scorer_result_is_used(make_engine, data_engineer_requirement, data_engineer_candidate):
    engine = make_engine(requirement=data_engineer_requirement, soft_scorer=FixedSoftScorer(90))
    published = await engine.score_pair("c1", data_engineer_candidate, JOB)
    assert published.score.dimensions.soft.score == 90


@pytest.mark.asyncio
async def test_calibration_attached_once_curve_is_reliable(
    make_engine, event_store, data_engineer_requirement, data_engineer_candidate,
):
    for i in range(30):
        await event_store.append(OutcomeEvent(
            event_type="ats_outcome_recorded",
            candidate_id=f"hist{i}",
            job_id="old",
            payload={"score": 75, "outcome": "interview" if i % 3 else "rejected", "profile": "A"},
        ))
    engine = make_engine(requirement=data_engineer_requirement)
    await engine.calibration.rebuild(["A"])

    published = await engine.score_pair("c1", data_engineer_candidate, JOB)
    assert published.calibration is not None
    assert published.calibration.bucket == 75
    assert published.calibration.p_interview == pytest.approx(20 / 30)
    assert published.calibration.reliable


@pytest.mark.asyncio
async def test_profile_c_weights_and_review_gate(make_engine, data_engineer_requirement):
    engine = make_engine(requirement=data_engineer_requirement, profile="C")
    published = await engine.score_pair("c2", CandidateProfile(primary_title="Barista", visa_status="OPT"), JOB)
    assert published.profile == "C"
    assert published.score.weights["experience"] == pytest.approx(0.22)
    assert published.gate.passes
    assert published.gate.recommend_review


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_record_outcome_carries_score_context(
    make_engine, event_store, data_engineer_requirement, data_engineer_candidate,
):
    engine = make_engine(requirement=data_engineer_requirement)
    await engine.score_pair("c1", data_engineer_candidate, JOB)
    event = await engine.record_outcome("c1", "j1", "Interview")

    assert event.event_type == "ats_outcome_recorded"
    assert event.outcome == "interview"
    assert event.score == 74
    assert event.profile == "A"
    assert event.job_family == "data-engineering"
    assert len(await event_store.with_outcomes()) == 1


@pytest.mark.asyncio
async def test_record_outcome_requires_scored_pair(make_engine):
    engine = make_engine()
    with pytest.raises(ValueError):
        await engine.record_outcome("nobody", "j1", "hired")


@pytest.mark.asyncio
async def test_record_outcome_rejects_blank(make_engine, data_engineer_requirement, data_engineer_candidate):
    engine = make_engine(requirement=data_engineer_requirement)
    await engine.score_pair("c1", data_engineer_candidate, JOB)
    with pytest.raises(ValueError):
        await engine.record_outcome("c1", "j1", "  ")


class BrokenEmbeddingCache(EmbeddingCache):
    async def get_or_embed(self, entity_type, entity_id, text):
        raise ConnectionError("vector store down")


@pytest.mark.asyncio
async def test_semantic_failure_falls_back(make_engine, data_engineer_requirement, data_engineer_candidate):
    engine = make_engine(requirement=data_engineer_requirement)
    engine.embeddings = BrokenEmbeddingCache(FakeEmbedder(), InMemoryEmbeddingStore())
    cand = data_engineer_candidate.model_copy(update={"resume_text": "Data Engineer building Spark pipelines in Python."})
    published = await engine.score_pair("c1", cand, JOB)
    assert published.semantic is None
    assert published.score.dimensions.soft.score == 50
