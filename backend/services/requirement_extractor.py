"""Job requirement extraction, cached by content hash.

The extractor itself is pluggable (Gemini in production). This module
guarantees it is invoked at most once per unchanged posting, and that a
posting which cannot be extracted still gets an explicit minimal record.
"""

import asyncio
import hashlib
import logging
import re
from abc import ABC, abstractmethod

from pydantic import BaseModel, ValidationError

from config import settings
from models.schemas import JobRequirement
from services import gemini_client
from services.domain import classify_domain
from services.prompt_builder import build_requirement_prompt

logger = logging.getLogger(__name__)

PRECOMPUTE_CONCURRENCY = 5
MAX_JD_CHARS = 12000

# "5+ years of experience", "3 yrs exp"
_EXP_YEARS_RE = re.compile(
    r"(\d+)\+?\s*(?:years?|yrs?)\s*(?:of\s+)?(?:[\w-]+\s+){0,3}?(?:experience|exp\b)",
    re.IGNORECASE,
)


def content_hash(title: str, description: str, location: str = "") -> str:
    normalized = "\n".join(
        re.sub(r"\s+", " ", part or "").strip().lower()
        for part in (title, description, location)
    )
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def extract_required_years(text: str) -> float | None:
    """Largest "N years of experience" figure in a posting, if any."""
    years = [float(m.group(1)) for m in _EXP_YEARS_RE.finditer(text or "")]
    years = [y for y in years if y <= 30]
    return max(years) if years else None


class JobPosting(BaseModel):
    job_id: str
    title: str
    description: str = ""
    location: str = ""
    job_family: str | None = None


# ---------------------------------------------------------------------------
# Extractor and cache contracts
# ---------------------------------------------------------------------------

class RequirementExtractor(ABC):
    """(title, description, location) -> JobRequirement | None. Must not raise."""

    @abstractmethod
    async def extract(self, title: str, description: str, location: str = "") -> JobRequirement | None:
        ...


class GeminiRequirementExtractor(RequirementExtractor):
    async def extract(self, title: str, description: str, location: str = "") -> JobRequirement | None:
        prompt = build_requirement_prompt(title, description[:MAX_JD_CHARS], location)
        raw = await gemini_client.generate_json(prompt, max_output_tokens=2048)
        if raw is None:
            return None

        try:
            requirement = JobRequirement.model_validate(raw)
        except ValidationError as e:
            logger.warning("Extractor output for %r failed validation: %s", title, e.error_count())
            return None

        update = {}
        if not requirement.normalized_title:
            update["normalized_title"] = title.strip().lower()
        if requirement.min_years_experience is None:
            years = extract_required_years(description)
            if years is not None:
                update["min_years_experience"] = years
        if requirement.domain == "general":
            update["domain"] = classify_domain(requirement.normalized_title or title)
        return requirement.model_copy(update=update) if update else requirement


class RequirementCache(ABC):
    @abstractmethod
    async def get(self, key: str) -> JobRequirement | None:
        ...

    @abstractmethod
    async def put(self, key: str, requirement: JobRequirement) -> None:
        ...


class InMemoryRequirementCache(RequirementCache):
    def __init__(self):
        self._items: dict[str, JobRequirement] = {}

    async def get(self, key: str) -> JobRequirement | None:
        return self._items.get(key)

    async def put(self, key: str, requirement: JobRequirement) -> None:
        self._items[key] = requirement

    def __len__(self) -> int:
        return len(self._items)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class RequirementService:
    def __init__(
        self,
        extractor: RequirementExtractor | None,
        cache: RequirementCache | None = None,
        min_jd_length: int | None = None,
        timeout_s: float | None = None,
    ):
        self.extractor = extractor
        self.cache = cache if cache is not None else InMemoryRequirementCache()
        self.min_jd_length = settings.min_jd_length if min_jd_length is None else min_jd_length
        self.timeout_s = settings.external_call_timeout_s if timeout_s is None else timeout_s
        self._locks: dict[str, asyncio.Lock] = {}

    async def get_or_extract(
        self, job_id: str, title: str, description: str, location: str = "",
    ) -> JobRequirement:
        key = content_hash(title, description, location)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            cached = await self.cache.get(key)
            if cached is not None:
                return cached

            if len((description or "").strip()) < self.min_jd_length:
                logger.info("Job %s description too short to extract, storing minimal record", job_id)
                requirement = JobRequirement.minimal_for(title)
            else:
                requirement = await self._extract(job_id, title, description, location)

            await self.cache.put(key, requirement)
            self._locks.pop(key, None)
            return requirement

    async def _extract(self, job_id: str, title: str, description: str, location: str) -> JobRequirement:
        if self.extractor is None:
            return JobRequirement.minimal_for(title, extraction_failed=True)
        try:
            requirement = await asyncio.wait_for(
                self.extractor.extract(title, description, location), timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("Requirement extraction for job %s timed out after %ss", job_id, self.timeout_s)
            requirement = None
        except Exception as e:
            logger.warning("Requirement extraction for job %s failed: %s", job_id, e)
            requirement = None

        if requirement is None:
            return JobRequirement.minimal_for(title, extraction_failed=True)
        return requirement

    async def precompute(self, jobs: list[JobPosting], concurrency: int = PRECOMPUTE_CONCURRENCY) -> dict[str, JobRequirement]:
        """Extract requirements for many postings with bounded concurrency."""
        semaphore = asyncio.Semaphore(concurrency)

        async def one(job: JobPosting) -> tuple[str, JobRequirement]:
            async with semaphore:
                req = await self.get_or_extract(job.job_id, job.title, job.description, job.location)
                return job.job_id, req

        results = await asyncio.gather(*(one(j) for j in jobs))
        failed = sum(1 for _, r in results if r.extraction_failed)
        logger.info("Precomputed requirements for %d jobs (%d failed)", len(results), failed)
        return dict(results)
