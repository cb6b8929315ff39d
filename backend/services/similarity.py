"""Embedding similarity for résumé/job matching with a two-tier vector cache.

This module never embeds text itself: vectors come from an injected
``Embedder`` (Gemini in production, fakes in tests). Missing, mismatched or
zero vectors always map to the neutral score 50 instead of raising.
"""

import asyncio
import hashlib
import logging
import time
from abc import ABC, abstractmethod

import numpy as np
from pydantic import BaseModel
from sklearn.metrics.pairwise import cosine_similarity as sklearn_cosine

from config import settings
from services import gemini_client

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50.0
MAX_BULLETS = 20
MAX_RESPONSIBILITIES = 15
RESUME_WEIGHT = 0.7
BULLET_WEIGHT = 0.3
PRECOMPUTE_BATCH_SIZE = 10


def cosine_similarity(a: list[float] | None, b: list[float] | None) -> float | None:
    """Cosine of two equal-length vectors, or None when it is undefined."""
    if a is None or b is None or len(a) == 0 or len(a) != len(b):
        return None
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if not np.any(va) or not np.any(vb):
        return None
    score = sklearn_cosine(va.reshape(1, -1), vb.reshape(1, -1))[0][0]
    return float(max(-1.0, min(1.0, score)))


def cosine_to_score(similarity: float | None) -> float:
    """Map [-1, 1] onto [0, 100]; undefined similarity is neutral."""
    if similarity is None:
        return NEUTRAL_SCORE
    return (similarity + 1.0) * 50.0


def vector_score(a: list[float] | None, b: list[float] | None) -> float:
    return cosine_to_score(cosine_similarity(a, b))


def mean_pooling(vectors: list[list[float] | None]) -> list[float] | None:
    """Element-wise mean of the vectors that share the first vector's dimensionality."""
    usable = [v for v in vectors if v]
    if not usable:
        return None
    dim = len(usable[0])
    usable = [v for v in usable if len(v) == dim]
    return np.mean(np.asarray(usable, dtype=float), axis=0).tolist()


def text_key(text: str) -> str:
    return hashlib.sha256(text.strip().lower().encode("utf-8")).hexdigest()[:32]


# ---------------------------------------------------------------------------
# Pluggable embedder and persistent store
# ---------------------------------------------------------------------------

class Embedder(ABC):
    """Pure function of text -> vector. Returns None when unavailable."""

    model: str = ""

    @abstractmethod
    async def embed(self, text: str) -> list[float] | None:
        ...


class GeminiEmbedder(Embedder):
    def __init__(self, model: str | None = None):
        self.model = model or settings.embedding_model

    async def embed(self, text: str) -> list[float] | None:
        return await gemini_client.embed_text(text)


class EmbeddingStore(ABC):
    """Persistent vectors keyed by (entity_id, embedding model)."""

    @abstractmethod
    async def get(self, entity_id: str, model: str) -> list[float] | None:
        ...

    @abstractmethod
    async def put(self, entity_id: str, model: str, vector: list[float]) -> None:
        ...

    async def delete(self, entity_id: str, model: str) -> None:
        return None


class InMemoryEmbeddingStore(EmbeddingStore):
    def __init__(self):
        self._vectors: dict[tuple[str, str], list[float]] = {}

    async def get(self, entity_id: str, model: str) -> list[float] | None:
        return self._vectors.get((entity_id, model))

    async def put(self, entity_id: str, model: str, vector: list[float]) -> None:
        self._vectors[(entity_id, model)] = list(vector)

    async def delete(self, entity_id: str, model: str) -> None:
        self._vectors.pop((entity_id, model), None)

    def __len__(self) -> int:
        return len(self._vectors)


class EmbeddingCache:
    """In-process tier keyed by (entity_type, entity_id), backed by an EmbeddingStore.

    A miss in both tiers triggers exactly one embedder call per key, even when
    several coroutines ask for the same key concurrently.
    """

    def __init__(
        self,
        embedder: Embedder | None,
        store: EmbeddingStore | None = None,
        model: str | None = None,
        ttl_s: float | None = None,
        timeout_s: float | None = None,
        max_text_len: int | None = None,
        clock=time.monotonic,
    ):
        self.embedder = embedder
        self.store = store if store is not None else InMemoryEmbeddingStore()
        self.model = model or (embedder.model if embedder and embedder.model else settings.embedding_model)
        self.ttl_s = settings.embedding_cache_ttl_s if ttl_s is None else ttl_s
        self.timeout_s = settings.external_call_timeout_s if timeout_s is None else timeout_s
        self.max_text_len = max_text_len or settings.max_embed_text_len
        self._clock = clock
        self._memory: dict[tuple[str, str], tuple[list[float], float]] = {}
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self.embed_calls = 0

    @property
    def available(self) -> bool:
        return self.embedder is not None

    def _persistent_id(self, entity_type: str, entity_id: str) -> str:
        return f"{entity_type}:{entity_id}"

    def _fresh(self, key: tuple[str, str]) -> list[float] | None:
        hit = self._memory.get(key)
        if hit is None:
            return None
        vector, stored_at = hit
        if self._expired(stored_at):
            del self._memory[key]
            return None
        return vector

    def _expired(self, stored_at: float) -> bool:
        return bool(self.ttl_s) and self._clock() - stored_at > self.ttl_s

    def _remember(self, key: tuple[str, str], vector: list[float]) -> None:
        if self.ttl_s:
            stale = [k for k, (_, stored_at) in self._memory.items() if self._expired(stored_at)]
            for k in stale:
                del self._memory[k]
        self._memory[key] = (vector, self._clock())
        self._locks.pop(key, None)

    async def _store_get(self, pid: str) -> list[float] | None:
        try:
            return await asyncio.wait_for(self.store.get(pid, self.model), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            logger.warning("Embedding store read timed out for %s", pid)
        except Exception as e:
            logger.warning("Embedding store read failed for %s: %s", pid, e)
        return None

    async def _store_put(self, pid: str, vector: list[float]) -> None:
        try:
            await asyncio.wait_for(self.store.put(pid, self.model, vector), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            logger.warning("Embedding store write timed out for %s", pid)
        except Exception as e:
            logger.warning("Embedding store write failed for %s: %s", pid, e)

    async def get_or_embed(self, entity_type: str, entity_id: str, text: str) -> tuple[list[float] | None, bool]:
        """Return (vector, from_cache). Vector is None when embedding is unavailable.

        A failing persistent store counts as a miss on read and is skipped on write.
        """
        key = (entity_type, entity_id)
        vector = self._fresh(key)
        if vector is not None:
            return vector, True

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            vector = self._fresh(key)
            if vector is not None:
                return vector, True

            pid = self._persistent_id(entity_type, entity_id)
            vector = await self._store_get(pid)
            if vector:
                self._remember(key, vector)
                return vector, True

            vector = await self._embed(text)
            if vector is None:
                return None, False
            await self._store_put(pid, vector)
            self._remember(key, vector)
            return vector, False

    async def _embed(self, text: str) -> list[float] | None:
        if self.embedder is None or not text or not text.strip():
            return None
        self.embed_calls += 1
        try:
            vector = await asyncio.wait_for(
                self.embedder.embed(text[: self.max_text_len]), timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("Embedding call timed out after %ss", self.timeout_s)
            return None
        except Exception as e:
            logger.warning("Embedding call failed: %s", e)
            return None
        return list(vector) if vector else None

    async def invalidate(self, entity_type: str, entity_id: str) -> None:
        """Drop a vector from both tiers (e.g. after the résumé or posting changed)."""
        self._memory.pop((entity_type, entity_id), None)
        await self.store.delete(self._persistent_id(entity_type, entity_id), self.model)


# ---------------------------------------------------------------------------
# Résumé / job similarity
# ---------------------------------------------------------------------------

class SemanticSimilarityResult(BaseModel):
    score: float  # 0-100, blended
    resume_jd_score: float
    bullet_score: float | None = None
    from_cache: bool = False


async def _pooled(
    cache: EmbeddingCache,
    entity_type: str,
    texts: list[str],
) -> tuple[list[float] | None, bool]:
    results = await asyncio.gather(
        *(cache.get_or_embed(entity_type, text_key(t), t) for t in texts)
    )
    vectors = [v for v, _ in results]
    return mean_pooling(vectors), all(hit for _, hit in results)


async def compute_semantic_similarity(
    cache: EmbeddingCache,
    candidate_id: str,
    resume_text: str,
    job_id: str,
    job_text: str,
    bullets: list[str] | None = None,
    responsibilities: list[str] | None = None,
) -> SemanticSimilarityResult | None:
    """Résumé vs job description similarity, blended 70/30 with bullet vs
    responsibility similarity when both sides have bullets.

    Returns None when no embedder is configured or either main vector is missing.
    """
    if not cache.available or not resume_text.strip() or not job_text.strip():
        return None

    (resume_vec, resume_hit), (job_vec, job_hit) = await asyncio.gather(
        cache.get_or_embed("resume", candidate_id, resume_text),
        cache.get_or_embed("job", job_id, job_text),
    )
    if resume_vec is None or job_vec is None:
        return None

    main = vector_score(resume_vec, job_vec)
    from_cache = resume_hit and job_hit

    bullet_texts = [b for b in (bullets or []) if b.strip()][:MAX_BULLETS]
    resp_texts = [r for r in (responsibilities or []) if r.strip()][:MAX_RESPONSIBILITIES]
    bullet_score = None
    if bullet_texts and resp_texts:
        (bullet_vec, b_hit), (resp_vec, r_hit) = await asyncio.gather(
            _pooled(cache, "resume_bullet", bullet_texts),
            _pooled(cache, "job_responsibility", resp_texts),
        )
        if bullet_vec is not None and resp_vec is not None:
            bullet_score = vector_score(bullet_vec, resp_vec)
            from_cache = from_cache and b_hit and r_hit

    score = main if bullet_score is None else RESUME_WEIGHT * main + BULLET_WEIGHT * bullet_score
    return SemanticSimilarityResult(
        score=round(score, 2),
        resume_jd_score=round(main, 2),
        bullet_score=None if bullet_score is None else round(bullet_score, 2),
        from_cache=from_cache,
    )


async def precompute_job_embeddings(
    cache: EmbeddingCache,
    items: list[tuple[str, str]],
    batch_size: int = PRECOMPUTE_BATCH_SIZE,
    delay_ms: int | None = None,
) -> int:
    """Warm the cache for (job_id, text) pairs in batches with a polite pause
    between batches. Returns how many vectors are now available."""
    if not cache.available:
        return 0
    delay = (settings.inter_batch_delay_ms if delay_ms is None else delay_ms) / 1000
    ready = 0
    for start in range(0, len(items), batch_size):
        batch = items[start:start + batch_size]
        results = await asyncio.gather(
            *(cache.get_or_embed("job", job_id, text) for job_id, text in batch)
        )
        ready += sum(1 for vector, _ in results if vector is not None)
        if start + batch_size < len(items) and delay > 0:
            await asyncio.sleep(delay)
    logger.info("Precomputed job embeddings: %d/%d available", ready, len(items))
    return ready
