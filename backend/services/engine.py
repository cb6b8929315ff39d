"""Candidate/job fit engine.

``score_candidate`` is the synchronous, deterministic aggregation over the
eight dimensions. ``FitEngine`` wraps it with everything that touches the
outside world: cached requirement extraction, embeddings, the soft scorer,
calibration lookup, the outcome event log and result persistence. Every
external step has a fallback, so one pair never fails because a non-core
dependency is down.
"""

import asyncio
import logging
from datetime import date

from pydantic import BaseModel

from config import settings
from models.schemas import (
    CalibrationResult,
    CandidateProfile,
    DimensionScore,
    DimensionScores,
    ExperienceResult,
    JobRequirement,
    OutcomeEvent,
    ScoreResult,
)
from models.schemas.score_result import ApplyTier, Decision
from services.calibration import CalibrationService
from services.dimensions import (
    candidate_bullets,
    score_behavioral,
    score_education,
    score_formatting,
    score_location,
)
from services.domain import classify_domain, score_title
from services.experience import compute_experience, effective_years, score_experience
from services.policy import (
    DEFAULT_WEIGHTS,
    GateDecision,
    apply_fairness_exclusions,
    compute_confidence_bucket,
    evaluate_gate,
    float_confidence_to_int,
    get_policy,
    resolve_weights,
)
from services.requirement_extractor import JobPosting, RequirementService
from services.similarity import EmbeddingCache, SemanticSimilarityResult, compute_semantic_similarity
from services.skill_matcher import score_keywords
from services.soft_scorer import NeutralSoftScorer, SoftScorer, is_neutral
from services.stores import EventStore, InMemoryResultStore, ResultStore

logger = logging.getLogger(__name__)

SCORE_MIN_STORED = 50

# Total-score caps keyed by the highest title score they apply to
TITLE_CAPS = ((25, 30), (45, 55))

_DECISION_TEXT = {
    "ready": "Ready to apply",
    "optimize": "Good fit, optimize before applying",
    "rewrite": "Partial fit, résumé needs a rewrite for this role",
    "reject": "Poor fit",
}


def decide(total: int) -> Decision:
    if total >= 85:
        return "ready"
    if total >= 70:
        return "optimize"
    if total >= 40:
        return "rewrite"
    return "reject"


def apply_tier(total: int) -> ApplyTier:
    if total < SCORE_MIN_STORED:
        return "not_stored"
    if total < 75:
        return "below_threshold"
    if total < 82:
        return "moderate"
    return "strong"


def combine_soft(semantic_score: float | None, soft: DimensionScore | None) -> DimensionScore:
    """Mean of the semantic similarity and the soft scorer, whichever are available."""
    values: list[float] = []
    parts: list[str] = []
    if semantic_score is not None:
        values.append(semantic_score)
        parts.append(f"semantic similarity {semantic_score:.0f}")
    if soft is not None and not is_neutral(soft):
        values.append(soft.score)
        parts.append(f"soft factors {soft.score}: {soft.details}")
    if not values:
        return DimensionScore(score=50, details="Semantic and soft signals unavailable")
    score = round(sum(values) / len(values))
    return DimensionScore(score=max(0, min(100, score)), details="; ".join(parts))


def aggregate(dimensions: DimensionScores, weights: dict[str, float]) -> tuple[int, list[str]]:
    """Weighted total, rounded and clamped, with the title caps applied after weighting."""
    raw = sum(dim.score * weights.get(name, 0.0) for name, dim in dimensions.items())
    total = max(0, min(100, round(raw)))

    caps: list[str] = []
    title = dimensions.title.score
    for title_max, cap in TITLE_CAPS:
        if title <= title_max:
            if total > cap:
                caps.append(f"title score {title} <= {title_max}: total capped at {cap}")
                total = cap
            break
    return total, caps


def build_explanation(total: int, decision: Decision, dimensions: DimensionScores,
                      missing: list[str], caps: list[str]) -> str:
    ranked = sorted(dimensions.items(), key=lambda kv: kv[1].score, reverse=True)
    strongest = ", ".join(f"{name} {dim.score}" for name, dim in ranked[:2])
    weakest = ", ".join(f"{name} {dim.score}" for name, dim in ranked[-2:])
    lines = [f"{_DECISION_TEXT[decision]} ({total}/100).", f"Strongest: {strongest}.", f"Weakest: {weakest}."]
    if missing:
        lines.append(f"Missing must-have skills: {', '.join(missing)}.")
    if caps:
        lines.append(f"Title/domain mismatch: {'; '.join(caps)}.")
    return " ".join(lines)


def score_candidate(
    job_title: str,
    requirement: JobRequirement,
    candidate: CandidateProfile,
    *,
    semantic_score: float | None = None,
    soft: DimensionScore | None = None,
    weights: dict[str, float] | None = None,
    now: date | None = None,
    exclude_internships: bool | None = None,
    experience: ExperienceResult | None = None,
    keyword: DimensionScore | None = None,
) -> ScoreResult:
    """Score one candidate against one job. Pure apart from reading ``now``."""
    weights = weights or DEFAULT_WEIGHTS
    if experience is None:
        if exclude_internships is None:
            exclude_internships = settings.exclude_internships
        experience = compute_experience(candidate.experience, exclude_internships=exclude_internships, now=now)

    years = effective_years(experience, candidate.years_of_experience)
    dimensions = DimensionScores(
        keyword=keyword or score_keywords(requirement, candidate, now=now),
        experience=score_experience(requirement, years),
        title=score_title(job_title, requirement, candidate),
        education=score_education(requirement, candidate),
        location=score_location(requirement, candidate),
        formatting=score_formatting(candidate),
        behavioral=score_behavioral(requirement, candidate),
        soft=combine_soft(semantic_score, soft),
    )

    total, caps = aggregate(dimensions, weights)
    decision = decide(total)
    matched = list(dimensions.keyword.matched or [])
    missing = list(dimensions.keyword.missing or [])

    return ScoreResult(
        total_score=total,
        dimensions=dimensions,
        decision=decision,
        apply_tier=apply_tier(total),
        matched_keywords=matched,
        missing_keywords=missing,
        explanation=build_explanation(total, decision, dimensions, missing, caps),
        weights=dict(weights),
        caps_applied=caps,
    )


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

class PublishedResult(BaseModel):
    candidate_id: str
    job_id: str
    profile: str
    job_family: str | None = None
    score: ScoreResult
    experience: ExperienceResult
    calibration: CalibrationResult | None = None
    apply_tier: ApplyTier
    gate: GateDecision
    semantic: SemanticSimilarityResult | None = None
    requirement_minimal: bool = False


class FitEngine:
    def __init__(
        self,
        requirements: RequirementService,
        embeddings: EmbeddingCache,
        calibration: CalibrationService,
        soft_scorer: SoftScorer | None = None,
        events: EventStore | None = None,
        results: ResultStore | None = None,
        profile: str | None = None,
        clock=None,
        timeout_s: float | None = None,
    ):
        self.requirements = requirements
        self.embeddings = embeddings
        self.calibration = calibration
        self.soft_scorer = soft_scorer or NeutralSoftScorer()
        self.events = events if events is not None else calibration.events
        self.results = results if results is not None else InMemoryResultStore()
        self.profile = profile or settings.scoring_profile
        self.clock = clock or date.today
        self.timeout_s = settings.external_call_timeout_s if timeout_s is None else timeout_s

    async def _soft(self, job: JobPosting, candidate: CandidateProfile, keyword: DimensionScore) -> DimensionScore | None:
        try:
            return await asyncio.wait_for(
                self.soft_scorer.score(
                    job.title, job.description, candidate.primary_title,
                    candidate.resume_text[: settings.max_resume_text_len], keyword.score,
                ),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("Soft scorer timed out for job %s", job.job_id)
        except Exception as e:
            logger.warning("Soft scorer failed for job %s: %s", job.job_id, e)
        return None

    async def _semantic(
        self, candidate_id: str, candidate: CandidateProfile, job: JobPosting, requirement: JobRequirement,
    ) -> SemanticSimilarityResult | None:
        try:
            return await compute_semantic_similarity(
                self.embeddings,
                candidate_id,
                candidate.resume_text[: settings.max_resume_text_len],
                job.job_id,
                job.description,
                bullets=candidate_bullets(candidate),
                responsibilities=requirement.responsibilities,
            )
        except Exception as e:
            logger.warning("Semantic similarity failed for job %s: %s", job.job_id, e)
            return None

    async def _calibrate(self, profile: str, total: int, job_family: str | None) -> CalibrationResult | None:
        try:
            return await self.calibration.lookup(profile, total, job_family)
        except Exception as e:
            logger.warning("Calibration lookup failed for profile=%s family=%s: %s", profile, job_family, e)
            return None

    async def score_pair(
        self,
        candidate_id: str,
        candidate: CandidateProfile,
        job: JobPosting,
        profile: str | None = None,
    ) -> PublishedResult:
        policy = get_policy(profile or self.profile)
        weights = resolve_weights(DEFAULT_WEIGHTS, policy.weight_overrides)
        candidate = apply_fairness_exclusions(candidate, policy)
        now = self.clock()

        requirement = await self.requirements.get_or_extract(job.job_id, job.title, job.description, job.location)
        experience = compute_experience(
            candidate.experience, exclude_internships=settings.exclude_internships, now=now,
        )
        keyword = score_keywords(requirement, candidate, now=now)

        semantic, soft = await asyncio.gather(
            self._semantic(candidate_id, candidate, job, requirement),
            self._soft(job, candidate, keyword),
        )

        result = score_candidate(
            job.title, requirement, candidate,
            semantic_score=semantic.score if semantic else None,
            soft=soft,
            weights=weights,
            now=now,
            experience=experience,
            keyword=keyword,
        )

        job_family = job.job_family or classify_domain(job.title)
        calibration = await self._calibrate(policy.profile, result.total_score, job_family)

        confidence = experience.confidence * (0.5 if requirement.minimal else 1.0)
        bucket = compute_confidence_bucket(float_confidence_to_int(confidence))
        gate = evaluate_gate(result.total_score, bucket, policy)

        published = PublishedResult(
            candidate_id=candidate_id,
            job_id=job.job_id,
            profile=policy.profile,
            job_family=job_family,
            score=result,
            experience=experience,
            calibration=calibration,
            apply_tier=result.apply_tier,
            gate=gate,
            semantic=semantic,
            requirement_minimal=requirement.minimal,
        )

        await self.events.append(OutcomeEvent(
            candidate_id=candidate_id,
            job_id=job.job_id,
            payload={
                "score": result.total_score,
                "profile": policy.profile,
                "job_family": job_family,
                "outcome": None,
                "decision": result.decision,
                "confidence_bucket": bucket,
            },
        ))
        if result.apply_tier != "not_stored":
            await self.results.upsert(candidate_id, job.job_id, published)
        return published

    async def record_outcome(self, candidate_id: str, job_id: str, outcome: str) -> OutcomeEvent:
        """Append an outcome carrying the pair's last computed score, profile and family.

        Raises ValueError when the pair was never scored or the outcome is blank.
        """
        outcome = (outcome or "").strip().lower()
        if not outcome:
            raise ValueError("Outcome must not be empty")
        last = await self.events.latest_for(candidate_id, job_id)
        if last is None or last.score is None:
            raise ValueError(f"No scored event for candidate={candidate_id} job={job_id}")

        event = OutcomeEvent(
            event_type="ats_outcome_recorded",
            candidate_id=candidate_id,
            job_id=job_id,
            payload={
                "score": last.score,
                "profile": last.profile,
                "job_family": last.job_family,
                "outcome": outcome,
            },
        )
        await self.events.append(event)
        logger.info("Recorded outcome %s for candidate=%s job=%s", outcome, candidate_id, job_id)
        return event
