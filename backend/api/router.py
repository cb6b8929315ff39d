import time

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.dependencies import get_batch_scorer, get_calibration_service, get_engine
from config import settings
from models.requests import BatchScoreRequest, OutcomeRequest, RebuildRequest, ScoreRequest
from models.responses import HealthResponse, RebuildResponse
from models.schemas import CalibrationResult, OutcomeEvent
from services.batch import BatchRunSummary, BatchScorer
from services.calibration import CalibrationService
from services.engine import FitEngine, PublishedResult
from services.policy import PROFILES

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


def _check_profile(profile: str | None) -> str | None:
    if profile is not None and profile.upper() not in PROFILES:
        raise HTTPException(status_code=400, detail=f"Unknown scoring profile: {profile}")
    return profile.upper() if profile else None


@router.get("/health", response_model=HealthResponse)
async def health(engine: FitEngine = Depends(get_engine)):
    return HealthResponse(
        status="ok",
        gemini_configured=bool(settings.gemini_api_key),
        requirement_extractor=engine.requirements.extractor is not None,
        embedder=engine.embeddings.available,
        soft_scorer=type(engine.soft_scorer).__name__ != "NeutralSoftScorer",
    )


@router.post("/score", response_model=PublishedResult)
@limiter.limit(settings.score_rate_limit)
async def score(request: Request, body: ScoreRequest, engine: FitEngine = Depends(get_engine)):
    profile = _check_profile(body.profile)
    if len(body.candidate.resume_text) > settings.max_resume_text_len:
        raise HTTPException(
            status_code=400,
            detail=f"Resume text too long (max {settings.max_resume_text_len} chars)",
        )
    return await engine.score_pair(body.candidate_id, body.candidate, body.job, profile)


@router.post("/score/batch", response_model=BatchRunSummary)
@limiter.limit(settings.score_rate_limit)
async def score_batch(
    request: Request,
    body: BatchScoreRequest,
    scorer: BatchScorer = Depends(get_batch_scorer),
):
    profile = _check_profile(body.profile)
    pairs = len(body.candidates) * len(body.jobs)
    if pairs > settings.max_batch_pairs:
        raise HTTPException(
            status_code=400,
            detail=f"Too many pairs ({pairs}); max {settings.max_batch_pairs} per request",
        )
    return await scorer.run(body.candidates, body.jobs, profile=profile)


@router.post("/outcomes", response_model=OutcomeEvent)
async def record_outcome(body: OutcomeRequest, engine: FitEngine = Depends(get_engine)):
    try:
        return await engine.record_outcome(body.candidate_id, body.job_id, body.outcome)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/calibration/rebuild", response_model=RebuildResponse)
async def rebuild_calibration(
    body: RebuildRequest | None = None,
    calibration: CalibrationService = Depends(get_calibration_service),
):
    body = body or RebuildRequest()
    profiles = [_check_profile(p) for p in body.profiles] or None
    started = time.monotonic()
    report = await calibration.rebuild(profiles, body.job_families)
    duration_ms = round((time.monotonic() - started) * 1000)

    if report.errors:
        message = f"Rebuilt {report.rebuilt} curve(s) with {len(report.errors)} error(s)"
    else:
        message = f"Rebuilt {report.rebuilt} calibration curve(s) in {duration_ms}ms"
    return RebuildResponse(
        ok=not report.errors,
        rebuilt=report.rebuilt,
        errors=report.errors,
        duration_ms=duration_ms,
        message=message,
    )


@router.get("/calibration/{profile}", response_model=CalibrationResult | None)
async def lookup_calibration(
    profile: str,
    score: float = Query(..., ge=0, le=100),
    job_family: str | None = None,
    calibration: CalibrationService = Depends(get_calibration_service),
):
    return await calibration.lookup(_check_profile(profile), score, job_family)
