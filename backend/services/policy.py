"""Scoring profiles: dimension weights, apply-gate thresholds and governance.

Profile logic lives here so the scorer itself stays profile-agnostic.
  A  agency placement (default). Engine weights, lenient gate when evidence
     is sparse, hard blocks allowed.
  C  enterprise internal mobility. Experience/education up-weighted, soft
     score down-weighted, the gate never hard-blocks (flags for review).
"""

import logging
import re
from typing import Literal

from pydantic import BaseModel

from models.schemas import CandidateProfile

logger = logging.getLogger(__name__)

ConfidenceBucket = Literal["insufficient", "moderate", "good", "high"]

# Canonical engine weights (keyword 0.30 profile)
DEFAULT_WEIGHTS: dict[str, float] = {
    "keyword": 0.30,
    "experience": 0.18,
    "title": 0.14,
    "education": 0.08,
    "location": 0.08,
    "formatting": 0.07,
    "behavioral": 0.07,
    "soft": 0.08,
}


class GateDecision(BaseModel):
    passes: bool
    threshold_used: float
    reason: str
    recommend_review: bool = False


class PolicyConfig(BaseModel):
    profile: str
    display_name: str
    weight_overrides: dict[str, float] | None = None
    gate_thresholds: dict[str, float]
    hard_block_allowed: bool = True
    fairness_exclusion_enabled: bool = False


PROFILE_A = PolicyConfig(
    profile="A",
    display_name="Agency Placement",
    gate_thresholds={"insufficient": 38, "moderate": 48, "good": 52, "high": 57},
    hard_block_allowed=True,
)

PROFILE_C = PolicyConfig(
    profile="C",
    display_name="Enterprise Internal Mobility",
    weight_overrides={
        "keyword": 0.28,
        "experience": 0.22,
        "title": 0.14,
        "education": 0.12,
        "location": 0.08,
        "formatting": 0.06,
        "behavioral": 0.07,
        "soft": 0.03,
    },
    gate_thresholds={"insufficient": 45, "moderate": 55, "good": 60, "high": 65},
    hard_block_allowed=False,
    fairness_exclusion_enabled=True,
)

PROFILES: dict[str, PolicyConfig] = {"A": PROFILE_A, "C": PROFILE_C}


def get_policy(profile: str | None) -> PolicyConfig:
    """Policy for ``profile``; anything unrecognized falls back to A."""
    if profile and profile.upper() in PROFILES:
        return PROFILES[profile.upper()]
    if profile:
        logger.warning("Unknown scoring profile %r, using A", profile)
    return PROFILE_A


def resolve_weights(
    defaults: dict[str, float],
    overrides: dict[str, float] | None,
) -> dict[str, float]:
    """Merge overrides into defaults and renormalise to sum 1.0."""
    if not overrides:
        return dict(defaults)
    merged = {**defaults, **overrides}
    total = sum(merged.values())
    if total <= 0:
        raise ValueError("Dimension weights must sum to a positive value")
    if abs(total - 1.0) < 0.001:
        return merged
    return {k: v / total for k, v in merged.items()}


def float_confidence_to_int(confidence: float) -> int:
    return round(max(0.0, min(1.0, confidence)) * 100)


def compute_confidence_bucket(confidence: int | None) -> ConfidenceBucket:
    if confidence is None or confidence < 35:
        return "insufficient"
    if confidence < 65:
        return "moderate"
    if confidence < 85:
        return "good"
    return "high"


def evaluate_gate(
    score: int,
    bucket: ConfidenceBucket,
    policy: PolicyConfig,
    override_threshold: float | None = None,
) -> GateDecision:
    threshold = override_threshold if override_threshold is not None else policy.gate_thresholds[bucket]

    if not policy.hard_block_allowed:
        below = score < threshold
        reason = (
            f"Score {score} below threshold {threshold:g}, flagged for human review"
            if below
            else f"Score {score} meets threshold {threshold:g} ({bucket} confidence), recommended for shortlist"
        )
        return GateDecision(passes=True, threshold_used=threshold, reason=reason, recommend_review=below)

    passes = score >= threshold
    reason = (
        f"Score {score} >= {threshold:g} ({bucket} confidence), gate passed"
        if passes
        else f"Score {score} < {threshold:g} ({bucket} confidence), gate blocked"
    )
    return GateDecision(passes=passes, threshold_used=threshold, reason=reason)


_SPONSORSHIP_RE = re.compile(r"h-?1b|\bopt\b|\btn\b|visa|sponsorship", re.IGNORECASE)


def apply_fairness_exclusions(candidate: CandidateProfile, policy: PolicyConfig) -> CandidateProfile:
    """Replace the free-text visa status with a sponsorship flag under governance profiles.

    The location scorer still sees whether sponsorship is needed, not the raw string.
    """
    if not policy.fairness_exclusion_enabled or not candidate.visa_status:
        return candidate
    needs = bool(_SPONSORSHIP_RE.search(candidate.visa_status))
    return candidate.model_copy(
        update={"visa_status": "needs_visa_sponsorship" if needs else "work_authorized"}
    )
