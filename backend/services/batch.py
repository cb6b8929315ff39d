"""Batch scoring of many candidates against many jobs.

Pairs run concurrently up to ``batch_concurrency``, pair starts are throttled
to ``requests_per_second`` and chunks are separated by a short pause, so the
external LLM/embedding APIs are never hit unboundedly. Each pair is
independently upserted, so a cancelled run leaves only complete results.
"""

import asyncio
import logging
import time

from pydantic import BaseModel

from config import settings
from models.schemas import CandidateProfile
from services.engine import FitEngine, PublishedResult
from services.requirement_extractor import JobPosting

logger = logging.getLogger(__name__)


class CandidateRecord(BaseModel):
    candidate_id: str
    profile: CandidateProfile


class PairError(BaseModel):
    candidate_id: str
    job_id: str
    message: str


class BatchRunSummary(BaseModel):
    total: int = 0
    scored: int = 0
    failed: int = 0
    cancelled: int = 0
    errors: list[PairError] = []
    results: list[PublishedResult] = []


class AsyncRateLimiter:
    """Spaces acquisitions at least 1/rate seconds apart."""

    def __init__(self, rate_per_second: float, clock=time.monotonic):
        self.interval = 1.0 / rate_per_second if rate_per_second > 0 else 0.0
        self._clock = clock
        self._lock = asyncio.Lock()
        self._next_at = 0.0

    async def acquire(self) -> None:
        if self.interval <= 0:
            return
        async with self._lock:
            now = self._clock()
            wait = self._next_at - now
            if wait > 0:
                await asyncio.sleep(wait)
                now = self._clock()
            self._next_at = max(now, self._next_at) + self.interval


class BatchScorer:
    def __init__(
        self,
        engine: FitEngine,
        concurrency: int | None = None,
        requests_per_second: float | None = None,
        inter_batch_delay_ms: int | None = None,
    ):
        self.engine = engine
        self.concurrency = concurrency or settings.batch_concurrency
        self.limiter = AsyncRateLimiter(
            settings.requests_per_second if requests_per_second is None else requests_per_second
        )
        delay_ms = settings.inter_batch_delay_ms if inter_batch_delay_ms is None else inter_batch_delay_ms
        self.inter_batch_delay = delay_ms / 1000

    async def run(
        self,
        candidates: list[CandidateRecord],
        jobs: list[JobPosting],
        cancel_event: asyncio.Event | None = None,
        profile: str | None = None,
    ) -> BatchRunSummary:
        pairs = [(c, j) for c in candidates for j in jobs]
        summary = BatchRunSummary(total=len(pairs))
        semaphore = asyncio.Semaphore(self.concurrency)

        async def one(candidate: CandidateRecord, job: JobPosting) -> None:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    summary.cancelled += 1
                    return
                await self.limiter.acquire()
                try:
                    result = await self.engine.score_pair(candidate.candidate_id, candidate.profile, job, profile)
                except Exception as e:
                    logger.error(
                        "Scoring failed for candidate=%s job=%s: %s",
                        candidate.candidate_id, job.job_id, e, exc_info=True,
                    )
                    summary.failed += 1
                    summary.errors.append(PairError(
                        candidate_id=candidate.candidate_id, job_id=job.job_id, message=str(e),
                    ))
                    return
                summary.scored += 1
                summary.results.append(result)

        for start in range(0, len(pairs), self.concurrency):
            if cancel_event is not None and cancel_event.is_set():
                summary.cancelled += len(pairs) - start
                break
            chunk = pairs[start:start + self.concurrency]
            await asyncio.gather(*(one(c, j) for c, j in chunk))
            if start + self.concurrency < len(pairs) and self.inter_batch_delay > 0:
                await asyncio.sleep(self.inter_batch_delay)

        logger.info(
            "Batch run finished: %d pairs, %d scored, %d failed, %d cancelled",
            summary.total, summary.scored, summary.failed, summary.cancelled,
        )
        return summary
