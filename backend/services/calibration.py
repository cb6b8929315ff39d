"""Score -> P(interview) calibration via isotonic regression.

Offline, historical (score, outcome) events are binned into 5-point buckets
and Pool Adjacent Violators makes the curve non-decreasing. Online, a fresh
score is snapped to its bucket and read off the published curve together
with a 95% Wilson interval. Below the minimum sample count there is no
calibration and callers fall back to the raw score.
"""

import logging
import math
import time

from pydantic import BaseModel

from config import settings
from models.schemas import CalibrationBin, CalibrationCurve, CalibrationResult, OutcomeEvent
from services.stores import CurveStore, EventStore, InMemoryCurveStore

logger = logging.getLogger(__name__)

POSITIVE_OUTCOMES = frozenset({"interview", "offer", "hired"})
Z_95 = 1.96


def snap_to_bucket(score: float, step: int | None = None) -> int:
    """Nearest multiple of ``step`` in [0, 100]; halves round up."""
    step = step or settings.calibration_bucket_step
    clamped = max(0.0, min(100.0, float(score)))
    return int(math.floor(clamped / step + 0.5)) * step


def is_positive(outcome: str | None) -> bool:
    return outcome is not None and outcome.strip().lower() in POSITIVE_OUTCOMES


def pool_adjacent_violators(bins: list[CalibrationBin]) -> list[CalibrationBin]:
    """Merge adjacent violating bins until p is non-decreasing.

    A merged bin keeps the lower bucket label and the pooled proportion.
    Total n and outcomes are preserved.
    """
    result = [b.model_copy() for b in bins]
    changed = True
    while changed:
        changed = False
        for i in range(len(result) - 1):
            left, right = result[i], result[i + 1]
            if left.p > right.p:
                n = left.n + right.n
                outcomes = left.outcomes + right.outcomes
                result[i] = CalibrationBin(
                    bucket=left.bucket,
                    p=outcomes / n if n else 0.0,
                    n=n,
                    outcomes=outcomes,
                )
                del result[i + 1]
                changed = True
                break
    return result


def wilson_ci(k: int, n: int, z: float = Z_95) -> tuple[float, float]:
    """Wilson score interval for k successes in n trials."""
    if n <= 0:
        return 0.0, 1.0
    p = k / n
    denom = 1 + z * z / n
    center = (p + z * z / (2 * n)) / denom
    margin = z * math.sqrt(p * (1 - p) / n + z * z / (4 * n * n)) / denom
    return max(0.0, center - margin), min(1.0, center + margin)


def build_bins(events: list[OutcomeEvent], step: int | None = None) -> list[CalibrationBin]:
    """Raw (pre-PAV) bins for the non-empty buckets, ordered by bucket."""
    counts: dict[int, list[int]] = {}
    for event in events:
        if event.score is None or event.outcome is None:
            continue
        entry = counts.setdefault(snap_to_bucket(event.score, step), [0, 0])
        entry[0] += 1
        if is_positive(event.outcome):
            entry[1] += 1
    return [
        CalibrationBin(bucket=bucket, p=outcomes / n, n=n, outcomes=outcomes)
        for bucket, (n, outcomes) in sorted(counts.items())
    ]


def fit_curve(
    events: list[OutcomeEvent],
    profile: str,
    job_family: str | None = None,
    min_reliable_samples: int | None = None,
) -> CalibrationCurve:
    labelled = [e for e in events if e.score is not None and e.outcome is not None]
    return CalibrationCurve(
        profile=profile,
        job_family=job_family,
        sample_count=len(labelled),
        outcome_count=sum(1 for e in labelled if is_positive(e.outcome)),
        bins=pool_adjacent_violators(build_bins(labelled)),
        min_reliable_samples=min_reliable_samples or settings.min_reliable_samples,
    )


def latest_outcomes(events: list[OutcomeEvent]) -> list[OutcomeEvent]:
    """Keep only the most recent labelled event per (candidate, job), so a pair
    that moves interview -> offer -> hired counts once."""
    latest: dict[tuple[str, str], OutcomeEvent] = {}
    for e in events:
        key = (e.candidate_id, e.job_id)
        prev = latest.get(key)
        if prev is None or e.created_at >= prev.created_at:
            latest[key] = e
    return list(latest.values())


def select_events(events: list[OutcomeEvent], profile: str, job_family: str | None) -> list[OutcomeEvent]:
    return [
        e for e in events
        if e.outcome is not None
        and e.score is not None
        and e.profile == profile
        and (job_family is None or e.job_family == job_family)
    ]


def find_bin(curve: CalibrationCurve, score: float) -> CalibrationBin | None:
    """Bin for ``score``'s bucket, else the nearest bucket by distance."""
    if not curve.bins:
        return None
    bucket = snap_to_bucket(score)
    exact = next((b for b in curve.bins if b.bucket == bucket), None)
    if exact is not None:
        return exact
    return min(curve.bins, key=lambda b: abs(b.bucket - bucket))


def predict(curve: CalibrationCurve, score: float) -> float | None:
    bin_ = find_bin(curve, score)
    return None if bin_ is None else bin_.p


# ---------------------------------------------------------------------------
# Curve cache
# ---------------------------------------------------------------------------

class CurveCache:
    """Explicit TTL cache in front of a CurveStore."""

    def __init__(self, ttl_s: float | None = None, clock=time.monotonic):
        self.ttl_s = settings.calibration_cache_ttl_s if ttl_s is None else ttl_s
        self._clock = clock
        self._entries: dict[tuple[str, str | None], tuple[CalibrationCurve | None, float]] = {}

    def get(self, key: tuple[str, str | None]) -> tuple[bool, CalibrationCurve | None]:
        """(hit, curve). A hit may carry None, meaning "known absent"."""
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        curve, stored_at = entry
        if self._clock() - stored_at > self.ttl_s:
            del self._entries[key]
            return False, None
        return True, curve

    def put(self, key: tuple[str, str | None], curve: CalibrationCurve | None) -> None:
        self._entries[key] = (curve, self._clock())

    def invalidate(self, profile: str | None = None) -> None:
        if profile is None:
            self._entries.clear()
            return
        for key in [k for k in self._entries if k[0] == profile]:
            del self._entries[key]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class RebuildReport(BaseModel):
    rebuilt: int = 0
    errors: list[str] = []
    curves: list[CalibrationCurve] = []


class CalibrationService:
    def __init__(
        self,
        events: EventStore,
        curves: CurveStore | None = None,
        cache: CurveCache | None = None,
        min_reliable_samples: int | None = None,
    ):
        self.events = events
        self.curves = curves if curves is not None else InMemoryCurveStore()
        self.cache = cache if cache is not None else CurveCache()
        self.min_reliable_samples = min_reliable_samples or settings.min_reliable_samples

    async def rebuild(
        self,
        profiles: list[str] | None = None,
        job_families: list[str] | None = None,
    ) -> RebuildReport:
        """Rebuild the global curve and each family curve for every profile.

        Keys with no labelled events are skipped, so the previous curve (if
        any) stays published.
        """
        profiles = profiles or ["A", "C"]
        families: list[str | None] = [None, *(job_families or [])]
        report = RebuildReport()

        all_events = latest_outcomes(await self.events.with_outcomes())
        for profile in profiles:
            for family in families:
                try:
                    selected = select_events(all_events, profile, family)
                    if not selected:
                        logger.info("No labelled events for profile=%s family=%s, skipping", profile, family)
                        continue
                    curve = fit_curve(selected, profile, family, self.min_reliable_samples)
                    await self.curves.publish(curve)
                    report.rebuilt += 1
                    report.curves.append(curve)
                    logger.info(
                        "Published calibration curve profile=%s family=%s samples=%d bins=%d",
                        profile, family, curve.sample_count, len(curve.bins),
                    )
                except Exception as e:
                    msg = f"Calibration rebuild failed: profile={profile} family={family}: {e}"
                    logger.error(msg)
                    report.errors.append(msg)

        for profile in profiles:
            self.cache.invalidate(profile)
        return report

    async def _curve(self, profile: str, job_family: str | None) -> CalibrationCurve | None:
        key = (profile, job_family)
        hit, curve = self.cache.get(key)
        if hit:
            return curve
        curve = await self.curves.get(profile, job_family)
        self.cache.put(key, curve)
        return curve

    async def lookup(self, profile: str, score: float, job_family: str | None = None) -> CalibrationResult | None:
        """Calibrated interview probability, or None when there is no reliable curve."""
        curve = None
        if job_family:
            curve = await self._curve(profile, job_family)
        if curve is None:
            curve = await self._curve(profile, None)

        if curve is None or curve.sample_count < curve.min_reliable_samples or not curve.bins:
            return None

        bin_ = find_bin(curve, score)
        ci_lower, ci_upper = wilson_ci(bin_.outcomes, bin_.n)
        return CalibrationResult(
            p_interview=bin_.p,
            bucket=bin_.bucket,
            sample_count=bin_.n,
            ci_lower=ci_lower,
            ci_upper=ci_upper,
            reliable=bin_.n >= self.min_reliable_samples,
        )


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def brier_score(curve: CalibrationCurve, events: list[OutcomeEvent]) -> float | None:
    """Mean squared error of the curve's probabilities against observed outcomes."""
    errors = []
    for event in events:
        if event.score is None or event.outcome is None:
            continue
        p = predict(curve, event.score)
        if p is None:
            continue
        errors.append((p - (1.0 if is_positive(event.outcome) else 0.0)) ** 2)
    return sum(errors) / len(errors) if errors else None


def expected_calibration_error(curve: CalibrationCurve, events: list[OutcomeEvent]) -> float | None:
    """Sample-weighted gap between predicted and observed rates per bucket."""
    per_bucket: dict[int, list[float]] = {}
    for event in events:
        if event.score is None or event.outcome is None:
            continue
        p = predict(curve, event.score)
        if p is None:
            continue
        entry = per_bucket.setdefault(snap_to_bucket(event.score), [0.0, 0.0, 0.0])
        entry[0] += 1
        entry[1] += p
        entry[2] += 1.0 if is_positive(event.outcome) else 0.0
    total = sum(e[0] for e in per_bucket.values())
    if not total:
        return None
    return sum(abs(e[1] / e[0] - e[2] / e[0]) * e[0] for e in per_bucket.values()) / total
