"""Deterministic education, location, formatting and behavioral dimension scorers."""

import re

from models.schemas import CandidateProfile, DimensionScore, JobRequirement
from services.section_parser import (
    DATE_RANGE_RE,
    DEGREE_RANK,
    compute_section_completeness,
    degree_level,
    extract_contact_info,
    normalize_degree_requirement,
    parse_sections,
)

BULLET_MARKERS = frozenset("•-–—►▪✓*○◆⚫→▸▹◇■□●")

# Strong action verbs for bullet quality scoring
ACTION_VERBS = frozenset({
    "achieved", "administered", "analyzed", "architected", "automated",
    "built", "collaborated", "conducted", "configured", "consolidated",
    "coordinated", "created", "decreased", "delivered", "deployed",
    "designed", "developed", "directed", "drove", "eliminated", "enabled",
    "engineered", "enhanced", "established", "evaluated", "executed",
    "expanded", "facilitated", "founded", "generated", "grew", "identified",
    "implemented", "improved", "increased", "influenced", "initiated",
    "integrated", "introduced", "launched", "led", "leveraged", "maintained",
    "managed", "mentored", "migrated", "modernized", "negotiated",
    "optimized", "orchestrated", "organized", "overhauled", "owned",
    "partnered", "pioneered", "planned", "presented", "produced",
    "reduced", "refactored", "resolved", "restructured", "scaled",
    "secured", "shipped", "simplified", "spearheaded", "standardized",
    "streamlined", "supervised", "tested", "trained", "transformed", "upgraded",
})

_METRICS_RE = re.compile(
    r"\d+(?:\.\d+)?\s*[%x]|\$\s?\d+|\d+(?:\.\d+)?\s*[kmb]\b"
    r"|\d+\+?\s*(?:users|clients|requests|customers|endpoints|services|teams?|members?|engineers|people)",
    re.IGNORECASE,
)

BEHAVIOR_SIGNALS: dict[str, re.Pattern] = {
    "leadership": re.compile(r"\b(led|lead|managed|mentored|coached|supervised|headed|directed)\b", re.IGNORECASE),
    "ownership": re.compile(r"\b(owned|ownership|drove|spearheaded|initiated|founded|end-to-end|accountable)\b", re.IGNORECASE),
    "collaboration": re.compile(
        r"\b(collaborated|partnered|cross[- ]functional|stakeholders?|coordinated|facilitated)\b", re.IGNORECASE),
    "impact": _METRICS_RE,
}

_VISA_NEEDS_SPONSORSHIP = ("h1b", "h-1b", "opt", "visa", "sponsorship")


def extract_bullets(text: str) -> list[str]:
    """Bullet-point lines (marker or "1." numbered) from résumé text."""
    bullets = []
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        if stripped[0] in BULLET_MARKERS:
            cleaned = stripped.lstrip("".join(BULLET_MARKERS) + " ").strip()
            if cleaned:
                bullets.append(cleaned)
        elif re.match(r"^\d{1,2}[.)]\s", stripped):
            cleaned = re.sub(r"^\d{1,2}[.)]\s*", "", stripped).strip()
            if cleaned:
                bullets.append(cleaned)
    return bullets


def candidate_bullets(candidate: CandidateProfile) -> list[str]:
    bullets = extract_bullets(candidate.resume_text or "")
    if bullets:
        return bullets
    return [b for role in candidate.experience for b in role.responsibilities if b.strip()]


def starts_with_action_verb(bullet: str) -> bool:
    words = bullet.split()
    if not words:
        return False
    first = re.sub(r"[^a-z-]", "", words[0].lower())
    return first in ACTION_VERBS


def has_metric(text: str) -> bool:
    return bool(_METRICS_RE.search(text))


# ---------------------------------------------------------------------------
# Education
# ---------------------------------------------------------------------------

def score_education(requirement: JobRequirement, candidate: CandidateProfile) -> DimensionScore:
    req_degree = normalize_degree_requirement(requirement.required_education)
    req_fields = [f.lower() for f in requirement.preferred_education_fields if f.strip()]
    req_certs = [c.lower() for c in requirement.certifications if c.strip()]

    if not req_degree and not req_fields and not req_certs:
        return DimensionScore(score=75, details="No education requirements specified")

    if req_degree:
        req_rank = DEGREE_RANK.get(req_degree, 0)
        best_rank = 0
        for edu in candidate.education:
            best_rank = max(best_rank, DEGREE_RANK.get(degree_level(edu.degree), 0))
        if best_rank == 0 and not candidate.education:
            section = parse_sections(candidate.resume_text or "").get("education", "")
            best_rank = DEGREE_RANK.get(degree_level(section), 0)
        if best_rank >= req_rank:
            degree_score = 100
        elif best_rank == req_rank - 1:
            degree_score = 65
        elif best_rank > 0:
            degree_score = 35
        else:
            degree_score = 15
    else:
        degree_score = 75

    if req_fields and candidate.education:
        cand_fields = [(e.field or e.degree).lower() for e in candidate.education if (e.field or e.degree)]
        field_match = any(rf in cf or cf in rf for rf in req_fields for cf in cand_fields)
        field_score = 100 if field_match else 40
    else:
        field_score = 75

    if req_certs:
        cand_certs = [c.name.lower() for c in candidate.certifications if c.name.strip()]
        cert_hits = sum(1 for rc in req_certs if any(rc in cc or cc in rc for cc in cand_certs))
        cert_score = round(cert_hits / len(req_certs) * 100)
    else:
        cert_score = 75

    w_degree = 0.5 if req_degree else 0.3
    w_field = 0.3
    w_cert = 0.2 if req_certs else 0.1
    score = round(
        (degree_score * w_degree + field_score * w_field + cert_score * w_cert)
        / (w_degree + w_field + w_cert)
    )

    parts = []
    if req_degree:
        parts.append(f"Degree: {'meets' if degree_score >= 65 else 'below'} {req_degree}")
    if req_fields:
        parts.append(f"Field: {'relevant' if field_score >= 65 else 'different'}")
    if req_certs:
        parts.append(f"Certs: {cert_hits}/{len(req_certs)}")
    return DimensionScore(score=score, details=", ".join(parts))


# ---------------------------------------------------------------------------
# Location & visa
# ---------------------------------------------------------------------------

def _loose_match(a: str, b: str) -> bool:
    return bool(a) and bool(b) and (a in b or b in a)


def score_location(requirement: JobRequirement, candidate: CandidateProfile) -> DimensionScore:
    loc_type = requirement.location_type
    job_city = (requirement.location_city or "").strip().lower()
    cand_loc = candidate.location.strip().lower()
    targets = [t.strip().lower() for t in candidate.target_locations if t.strip()]

    if loc_type == "remote":
        if candidate.open_to_remote:
            return DimensionScore(score=100, details="Remote job, candidate open to remote")
        return DimensionScore(score=80, details="Remote job available")

    if job_city:
        if _loose_match(cand_loc, job_city) or any(_loose_match(t, job_city) for t in targets):
            return DimensionScore(score=100, details=f"Location match: {job_city}")
        if candidate.open_to_relocation:
            return DimensionScore(score=70, details="Different city but open to relocation")
        where = candidate.location or "unknown"
        if loc_type == "hybrid":
            return DimensionScore(score=50, details=f"Hybrid in {job_city}, candidate in {where}")
        return DimensionScore(
            score=30, details=f"Onsite in {job_city}, candidate in {where}, not open to relocation",
        )

    visa = candidate.visa_status.lower()
    penalty = 0
    if requirement.visa_sponsorship is False and any(k in visa for k in _VISA_NEEDS_SPONSORSHIP):
        penalty = 40
    return DimensionScore(
        score=max(20, 75 - penalty),
        details="Visa sponsorship not offered" if penalty else "Location compatible",
    )


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def score_formatting(candidate: CandidateProfile) -> DimensionScore:
    """Structure and clarity of the résumé text: sections, contact details,
    bullet quality, dated roles and overall length."""
    text = candidate.resume_text or ""
    if not text.strip():
        return DimensionScore(score=50, details="No résumé text to evaluate")

    sections = parse_sections(text)
    completeness = compute_section_completeness(sections)
    contact = extract_contact_info(text)
    bullets = candidate_bullets(candidate)

    section_pts = 30 * completeness
    contact_pts = (10 if contact["email"] else 0) + (5 if contact["phone"] or contact["linkedin"] else 0)

    if bullets:
        strong = sum(1 for b in bullets if starts_with_action_verb(b) or has_metric(b))
        quantified = sum(1 for b in bullets if has_metric(b))
        bullet_pts = 25 * strong / len(bullets)
        metric_pts = 15 * min(1.0, quantified / max(1, len(bullets)) * 2)
    else:
        bullet_pts = metric_pts = 0.0

    dated = bool(DATE_RANGE_RE.search(text)) or any(r.start_date for r in candidate.experience)
    date_pts = 10 if dated else 0

    words = len(text.split())
    if 200 <= words <= 1200:
        length_pts = 5
    elif 100 <= words <= 1800:
        length_pts = 3
    else:
        length_pts = 0

    score = round(section_pts + contact_pts + bullet_pts + metric_pts + date_pts + length_pts)
    missing = [s for s in ("experience", "skills", "education") if s not in sections]
    details = f"{len(sections)} sections, {len(bullets)} bullets"
    if missing:
        details += f", missing: {', '.join(missing)}"
    return DimensionScore(score=max(0, min(100, score)), details=details)


# ---------------------------------------------------------------------------
# Behavioral
# ---------------------------------------------------------------------------

def score_behavioral(requirement: JobRequirement, candidate: CandidateProfile) -> DimensionScore:
    """Leadership, ownership, collaboration and impact signals, action-verb usage,
    and coverage of the posting's behavioral keywords."""
    bullets = candidate_bullets(candidate)
    text = "\n".join([candidate.resume_text or "", *bullets])
    if not text.strip():
        return DimensionScore(score=50, details="No résumé text to evaluate")

    found = [name for name, pattern in BEHAVIOR_SIGNALS.items() if pattern.search(text)]
    signal_pts = 15 * len(found)

    verb_ratio = sum(1 for b in bullets if starts_with_action_verb(b)) / len(bullets) if bullets else 0.0
    verb_pts = 25 * verb_ratio

    keywords = [k.lower() for k in requirement.behavioral_keywords if k.strip()]
    lowered = text.lower()
    matched = [k for k in keywords if k in lowered]
    keyword_pts = 15 * len(matched) / len(keywords) if keywords else 7.5

    score = round(signal_pts + verb_pts + keyword_pts)
    details = f"Signals: {', '.join(found) or 'none'}; {round(verb_ratio * 100)}% action-verb bullets"
    if keywords:
        details += f"; {len(matched)}/{len(keywords)} behavioral keywords"
    return DimensionScore(
        score=max(0, min(100, score)),
        details=details,
        matched=matched or None,
        missing=[k for k in keywords if k not in matched] or None,
    )
