"""Title domain classification and title/domain alignment scoring.

Titles are mapped to a closed set of domains by an ordered list of regex
rules. Specific rules (data engineering, analytics, BI) are checked before
the generic software rule so that "engineer" or "developer" cannot swallow a
title that belongs to a narrower domain.
"""

import re

from models.schemas import CandidateProfile, DimensionScore, JobRequirement
from services.synonyms import canonical_term

DOMAINS = (
    "software-engineering", "frontend", "backend", "fullstack",
    "data-engineering", "data-science", "data-analytics", "bi",
    "devops", "mobile", "qa", "security", "management", "design",
    "product", "finance-analyst", "general",
)

# Ordered: first match wins
DOMAIN_RULES: list[tuple[str, re.Pattern]] = [
    ("data-engineering", re.compile(
        r"data\s*(engineer|architect|platform|infrastructure|pipeline|warehouse)|etl\s*(dev|eng)|big\s*data")),
    ("data-science", re.compile(
        r"data\s*scien|machine\s*learn|\bml\s*(eng|dev|scientist)|\bai\s*(eng|dev)|deep\s*learn|\bnlp\b"
        r"|computer\s*vision|research\s*scien")),
    ("bi", re.compile(
        r"\bpow(er)?\s*bi\b|\btableau\b|\blooker\b|\bbi\s*(dev|analyst|engineer|spec)|business\s*intel")),
    ("data-analytics", re.compile(
        r"data\s*anal|business\s*anal|operations?\s*anal|marketing\s*anal|product\s*anal"
        r"|financial\s*anal(?!yst\s*(dev|eng))|analyst")),
    ("finance-analyst", re.compile(
        r"financ(ial)?\s*anal|investment\s*anal|credit\s*anal|equity\s*anal|risk\s*anal")),
    ("management", re.compile(
        r"product\s*manag|program\s*manag|project\s*manag|engineering\s*manag|\bscrum\b|\bpmo\b")),
    ("product", re.compile(r"\bproduct\s*(owner|lead|strategist)\b")),
    ("devops", re.compile(r"devops|\bsre\b|site\s*reliab|cloud\s*(eng|arch)|platform\s*eng")),
    ("fullstack", re.compile(r"full[\s-]*stack")),
    ("mobile", re.compile(r"\bios\s*(dev|eng)|android\s*(dev|eng)|mobile\s*(dev|eng)|react\s*native|flutter")),
    ("frontend", re.compile(r"front[\s-]*end|\bui\s*(dev|eng)|react\s*(dev|eng)|angular\s*(dev|eng)|vue\s*(dev|eng)")),
    ("qa", re.compile(r"\bqa\b|quality\s*assur|test\s*(auto|eng)|\bsdet\b")),
    ("security", re.compile(r"secur|cyber|infosec|penetration")),
    ("design", re.compile(r"\bux\b|\bui\s*design|product\s*design")),
    ("backend", re.compile(r"back[\s-]*end|\bapi\s*(dev|eng)")),
    ("software-engineering", re.compile(
        r"software|developer|programmer|\bengineer|java(?!script)|python|\.net|c#|ruby|php|\bnode\b"
        r"|spring|golang|\bgo\b")),
]

# Candidate domain -> job domains it may satisfy. Not symmetric.
DOMAIN_COMPATIBILITY: dict[str, list[str]] = {
    "software-engineering": ["software-engineering", "fullstack", "frontend", "backend"],
    "frontend": ["frontend", "fullstack", "software-engineering", "mobile"],
    "backend": ["backend", "fullstack", "software-engineering"],
    "fullstack": ["fullstack", "frontend", "backend", "software-engineering", "mobile"],
    "data-engineering": ["data-engineering", "data-science"],
    "data-science": ["data-science", "data-engineering", "data-analytics"],
    "data-analytics": ["data-analytics", "data-science", "bi"],
    "bi": ["bi", "data-analytics"],
    "devops": ["devops", "software-engineering", "backend"],
    "mobile": ["mobile", "frontend", "fullstack", "software-engineering"],
    "qa": ["qa", "software-engineering"],
    "security": ["security", "devops"],
    "management": ["management"],
    "design": ["design", "frontend"],
    "product": ["product"],
    "finance-analyst": ["finance-analyst"],
    "general": ["general"],
}

# Short tokens that still carry meaning in a title
KEEP_SHORT = frozenset({"qa", "ai", "ml", "bi", "ux", "pm", "vp", "cto", "ceo", "cfo", "sre"})

# Words shared by unrelated roles; never enough on their own to align two titles.
# "analyst", "data", "product" and "business" are here on purpose: a Java
# developer must not match an analyst role through them.
TRIVIAL_TOKENS = frozenset({
    "senior", "junior", "lead", "staff", "principal", "associate", "head",
    "director", "manager", "specialist", "consultant", "advisor",
    "engineer", "developer", "programmer",
    "analyst", "data", "product", "business",
    "technical", "solutions", "digital", "operations", "platform", "cloud",
    "application", "systems", "information", "technology",
})

_SENIORITY_RULES: list[tuple[str, re.Pattern]] = [
    ("intern", re.compile(r"\b(intern|trainee)\b")),
    ("junior", re.compile(r"\bjunior\b|\bjr\b|\bentry\b|\bassociate\b")),
    ("senior", re.compile(r"\bsenior\b|\bsr\b")),
    ("staff", re.compile(r"\bstaff\b")),
    ("principal", re.compile(r"\bprincipal\b")),
    ("lead", re.compile(r"\blead\b|\btech lead\b")),
    ("manager", re.compile(r"\bmanager\b|\bdirector\b|\bvp\b|\bhead of\b")),
]


def classify_domain(title: str) -> str:
    """Map a free-text title to one of DOMAINS."""
    t = (title or "").lower().strip()
    if not t:
        return "general"
    for domain, pattern in DOMAIN_RULES:
        if pattern.search(t):
            return domain
    return "general"


def is_domain_compatible(candidate_domain: str, job_domain: str) -> bool:
    if candidate_domain == job_domain:
        return True
    return job_domain in DOMAIN_COMPATIBILITY.get(candidate_domain, [])


def title_tokens(title: str) -> list[str]:
    seen: list[str] = []
    for tok in canonical_term(title).split():
        if (len(tok) >= 3 or tok in KEEP_SHORT) and tok not in seen:
            seen.append(tok)
    return seen


def meaningful_tokens(title: str) -> set[str]:
    return {t for t in title_tokens(title) if t not in TRIVIAL_TOKENS}


def extract_seniority(title: str) -> str:
    t = (title or "").lower()
    for level, pattern in _SENIORITY_RULES:
        if pattern.search(t):
            return level
    return "mid"


def is_title_match(candidate: CandidateProfile, job_title: str) -> bool:
    """Cheap pre-filter: a compatible domain plus either the same specific
    domain or one shared meaningful title token."""
    job_domain = classify_domain(job_title)
    job_tokens = meaningful_tokens(job_title)
    for title in candidate.all_titles:
        cd = classify_domain(title)
        if not is_domain_compatible(cd, job_domain):
            continue
        if cd == job_domain and cd != "general":
            return True
        if meaningful_tokens(title) & job_tokens:
            return True
    return False


def _job_domain(job_title: str, requirement: JobRequirement | None) -> str:
    domain = classify_domain(job_title)
    if domain == "general" and requirement is not None and requirement.domain in DOMAINS:
        return requirement.domain
    return domain


def _score_one_title(
    cand_title: str,
    job_title: str,
    job_domain: str,
    related: list[str],
) -> tuple[int, str]:
    cand = canonical_term(cand_title)
    job = canonical_term(job_title)

    if cand and job and (cand == job or cand in job or job in cand):
        return 100, f'Direct title match: "{cand_title}"'

    cand_domain = classify_domain(cand_title)
    if cand_domain == job_domain and cand_domain != "general":
        return 85, f"Same domain: {job_domain}"

    for rel in related:
        if cand and canonical_term(rel) == cand:
            return 70, f'Related title match: "{rel}"'

    shared = meaningful_tokens(cand_title) & meaningful_tokens(job_title)
    seniority_bonus = 10 if extract_seniority(cand_title) == extract_seniority(job_title) else 0

    if "general" in (cand_domain, job_domain):
        return 35 + seniority_bonus, f"Generic title, candidate={cand_domain}, job={job_domain}"

    if is_domain_compatible(cand_domain, job_domain):
        if len(shared) >= 2:
            overlap = len(shared) / max(1, len(meaningful_tokens(job_title)))
            score = 40 + round(25 * min(1.0, overlap))
            return score, f"Adjacent domain with shared title terms: {', '.join(sorted(shared))}"
        score = 30 + (5 if shared else 0) + seniority_bonus
        return score, f"Adjacent domain: candidate={cand_domain}, job={job_domain}"

    return 15 + seniority_bonus, f"Domain mismatch: candidate={cand_domain}, job={job_domain}"


def score_title(
    job_title: str,
    requirement: JobRequirement | None,
    candidate: CandidateProfile,
) -> DimensionScore:
    """Best alignment across the candidate's primary and secondary titles."""
    titles = [t for t in [candidate.primary_title, *candidate.secondary_titles] if t and t.strip()]
    if not titles:
        return DimensionScore(score=35, details="Candidate has no title")

    job_domain = _job_domain(job_title, requirement)
    related = requirement.related_titles if requirement is not None else []

    best_score, best_details = -1, ""
    for title in titles:
        score, details = _score_one_title(title, job_title, job_domain, related)
        if score > best_score:
            best_score, best_details = score, details
    return DimensionScore(score=max(0, min(100, best_score)), details=best_details)
