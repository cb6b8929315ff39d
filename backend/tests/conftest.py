"""Shared test configuration, pytest markers and fakes for the external collaborators."""

import hashlib
import re
from datetime import date

import pytest

from models.schemas import CandidateProfile, JobRequirement
from services.calibration import CalibrationService
from services.engine import FitEngine
from services.requirement_extractor import RequirementExtractor, RequirementService
from services.similarity import EmbeddingCache, Embedder, InMemoryEmbeddingStore
from services.stores import InMemoryEventStore, InMemoryResultStore

NOW = date(2026, 10, 1)

JD_TEXT = (
    "We are hiring a Data Engineer to build and operate batch and streaming "
    "pipelines. Must have Python, SQL and Spark. 3+ years of experience required."
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: talks to the real Gemini API (needs GEMINI_API_KEY)"
    )


class FakeEmbedder(Embedder):
    """Deterministic bag-of-words vectors; counts calls."""

    model = "fake-embedding"

    def __init__(self, dim: int = 64, fail: bool = False):
        self.dim = dim
        self.fail = fail
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float] | None:
        self.calls.append(text)
        if self.fail:
            raise RuntimeError("embedding backend down")
        vec = [0.0] * self.dim
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            idx = int(hashlib.md5(word.encode()).hexdigest(), 16) % self.dim
            vec[idx] += 1.0
        return vec


class FakeExtractor(RequirementExtractor):
    def __init__(self, requirement: JobRequirement | None = None, fail: bool = False):
        self.requirement = requirement
        self.fail = fail
        self.calls = 0

    async def extract(self, title, description, location=""):
        self.calls += 1
        if self.fail:
            raise RuntimeError("extractor unavailable")
        return self.requirement


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def data_engineer_requirement():
    return JobRequirement(
        normalized_title="data engineer",
        seniority_level="mid",
        must_have_skills=["python", "sql", "spark"],
        min_years_experience=3,
        domain="data-engineering",
    )


@pytest.fixture
def data_engineer_candidate():
    return CandidateProfile(
        skills=["python", "sql", "aws"],
        primary_title="Data Engineer",
        experience=[
            {"company": "Acme", "title": "Data Engineer", "start_date": "2022-11", "current": True},
        ],
    )


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def event_store():
    return InMemoryEventStore()


@pytest.fixture
def make_engine(event_store):
    """Build a FitEngine around fakes; keyword arguments override the defaults."""

    def _make(requirement=None, embedder=None, soft_scorer=None, profile="A", extractor=None):
        extractor = extractor or FakeExtractor(requirement)
        calibration = CalibrationService(event_store)
        return FitEngine(
            requirements=RequirementService(extractor),
            embeddings=EmbeddingCache(embedder, InMemoryEmbeddingStore()),
            calibration=calibration,
            soft_scorer=soft_scorer,
            events=event_store,
            results=InMemoryResultStore(),
            profile=profile,
            clock=lambda: NOW,
        )

    return _make
