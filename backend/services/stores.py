"""Persistence contracts for outcome events, published results and calibration curves.

Production deployments back these with a database; the in-memory versions
serve the API process and the tests.
"""

from abc import ABC, abstractmethod
from typing import Any

from models.schemas import CalibrationCurve, OutcomeEvent


class EventStore(ABC):
    """Append-only outcome event log."""

    @abstractmethod
    async def append(self, event: OutcomeEvent) -> None:
        ...

    @abstractmethod
    async def all(self) -> list[OutcomeEvent]:
        ...

    async def with_outcomes(self) -> list[OutcomeEvent]:
        return [e for e in await self.all() if e.outcome is not None and e.score is not None]

    async def latest_for(self, candidate_id: str, job_id: str) -> OutcomeEvent | None:
        """Most recent event for a pair, used to attach score context to outcomes."""
        events = [e for e in await self.all() if e.candidate_id == candidate_id and e.job_id == job_id]
        return events[-1] if events else None


class InMemoryEventStore(EventStore):
    def __init__(self, events: list[OutcomeEvent] | None = None):
        self._events: list[OutcomeEvent] = list(events or [])

    async def append(self, event: OutcomeEvent) -> None:
        self._events.append(event)

    async def all(self) -> list[OutcomeEvent]:
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)


class ResultStore(ABC):
    """Published results, idempotent on (candidate_id, job_id)."""

    @abstractmethod
    async def upsert(self, candidate_id: str, job_id: str, result: Any) -> None:
        ...

    @abstractmethod
    async def get(self, candidate_id: str, job_id: str) -> Any | None:
        ...


class InMemoryResultStore(ResultStore):
    def __init__(self):
        self._results: dict[tuple[str, str], Any] = {}

    async def upsert(self, candidate_id: str, job_id: str, result: Any) -> None:
        self._results[(candidate_id, job_id)] = result

    async def get(self, candidate_id: str, job_id: str) -> Any | None:
        return self._results.get((candidate_id, job_id))

    def __len__(self) -> int:
        return len(self._results)


class CurveStore(ABC):
    """Calibration curves keyed by (profile, job_family); job_family None is global."""

    @abstractmethod
    async def publish(self, curve: CalibrationCurve) -> None:
        """Replace the whole curve for its key."""

    @abstractmethod
    async def get(self, profile: str, job_family: str | None) -> CalibrationCurve | None:
        ...

    @abstractmethod
    async def all(self) -> list[CalibrationCurve]:
        ...


class InMemoryCurveStore(CurveStore):
    def __init__(self):
        self._curves: dict[tuple[str, str | None], CalibrationCurve] = {}

    async def publish(self, curve: CalibrationCurve) -> None:
        # Single assignment: readers see the old curve or the new one, never a mix.
        self._curves[(curve.profile, curve.job_family)] = curve.model_copy(deep=True)

    async def get(self, profile: str, job_family: str | None) -> CalibrationCurve | None:
        return self._curves.get((profile, job_family))

    async def all(self) -> list[CalibrationCurve]:
        return list(self._curves.values())
