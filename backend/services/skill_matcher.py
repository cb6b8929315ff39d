"""Section-aware, recency-weighted skill coverage for the keyword dimension.

Candidate evidence comes from three sources:
1. Declared skills/tools on the profile (weight 1.5)
2. Vocabulary scan of the résumé text, weighted by the section it appears in
3. Contextual phrases ("built REST APIs") that imply a skill without naming it

Direct evidence is then expanded through SKILL_IMPLICATIONS; implied skills
earn half credit. Every token is canonicalized through the synonym table
before comparison.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from functools import lru_cache

from models.schemas import CandidateProfile, DimensionScore, JobRequirement, WorkExperience
from services.experience import now_month_index, parse_month_index
from services.section_parser import parse_sections
from services.synonyms import aliases_of, canonicalize

logger = logging.getLogger(__name__)

DECLARED_WEIGHT = 1.5
IMPLIED_CREDIT = 0.5

SECTION_MULTIPLIERS: dict[str, float] = {
    "skills": 1.5,
    "summary": 1.2,
    "experience": 1.0,
    "projects": 1.0,
    "education": 0.5,
}
DEFAULT_SECTION_MULTIPLIER = 1.0

TIER_WEIGHTS: dict[str, float] = {"must": 0.65, "nice": 0.20, "implicit": 0.15}
MISSING_MUST_PENALTY = 5
RECENT_MONTHS = 24
STALE_RECENCY = 0.7

# Aliases shorter than three characters are too ambiguous to scan free text for
_SHORT_ALIASES_OK = frozenset({"ml", "ai", "js", "c#"})

# Known technical vocabulary scanned in résumé text
SKILL_VOCABULARY: frozenset[str] = frozenset({
    # Languages
    "python", "javascript", "typescript", "java", "c++", "c#",
    "golang", "rust", "ruby", "php", "swift", "kotlin", "scala",
    "matlab", "sql", "perl", "haskell", "lua", "dart", "elixir",
    "clojure", "groovy", "objective-c", "bash", "powershell",
    # Frontend
    "react", "react native", "angular", "vue", "svelte", "next.js", "nuxt",
    "html", "css", "tailwind", "bootstrap", "webpack", "vite", "jquery", "redux",
    # Backend
    "node.js", "express", "fastapi", "django", "flask", "spring",
    "graphql", "restful", "grpc", "soap", "laravel",
    # Cloud & DevOps
    "aws", "azure", "gcp", "heroku", "docker", "kubernetes", "terraform",
    "ansible", "puppet", "jenkins", "github actions", "gitlab ci",
    "circleci", "ci/cd", "linux", "nginx", "cloudformation", "helm",
    "istio", "prometheus", "grafana", "datadog", "splunk", "serverless",
    # Databases & streaming
    "postgresql", "mysql", "mongodb", "redis", "elasticsearch", "kafka",
    "rabbitmq", "sqlite", "oracle", "sql server", "dynamodb", "cassandra",
    "neo4j", "snowflake", "bigquery", "redshift", "firebase",
    # Data & ML
    "pandas", "numpy", "scipy", "scikit-learn", "tensorflow", "pytorch",
    "keras", "spark", "hadoop", "airflow", "dbt", "databricks", "tableau",
    "power bi", "looker", "excel", "machine learning", "deep learning", "nlp",
    "computer vision", "llm", "generative ai", "langchain",
    # Practices and tools
    "git", "jira", "confluence", "figma", "agile", "tdd", "microservices",
    "distributed systems", "data modeling", "etl", "a/b testing",
    # Mobile
    "android", "ios", "flutter",
    # Testing
    "jest", "cypress", "selenium", "playwright", "pytest", "junit",
    # Security
    "oauth", "jwt", "owasp", "penetration testing",
})

# Phrase patterns that imply a skill without naming it
CONTEXT_PHRASES: list[tuple[re.Pattern, list[str]]] = [
    (re.compile(r"\b(built|designed|developed|implemented)\b.{0,40}\b(rest|restful)?\s*apis?\b"), ["rest", "api design"]),
    (re.compile(r"\b(etl|data)\s+pipelines?\b"), ["etl", "data pipelines"]),
    (re.compile(r"\bcontaineri[sz]ed\b"), ["docker"]),
    (re.compile(r"\b(orchestrat\w+)\b.{0,30}\bcontainers?\b"), ["kubernetes"]),
    (re.compile(r"\b(deployment|release)\s+pipelines?\b"), ["ci/cd"]),
    (re.compile(r"\binfrastructure\s+as\s+code\b"), ["terraform"]),
    (re.compile(r"\b(led|managed|mentored)\b.{0,30}\b(team|engineers|developers)\b"), ["leadership", "mentoring"]),
    (re.compile(r"\b(a/b|ab)\s+test"), ["a/b testing", "experimentation"]),
    (re.compile(r"\b(dashboards?|reporting)\b.{0,30}\b(stakeholders|executives|leadership)\b"), ["data visualization"]),
    (re.compile(r"\b(scaled|scaling)\b.{0,40}\b(users|requests|traffic|throughput)\b"), ["scalability", "distributed systems"]),
    (re.compile(r"\b(trained|fine-tuned|deployed)\b.{0,30}\bmodels?\b"), ["machine learning"]),
    (re.compile(r"\b(unit|integration|end-to-end)\s+tests?\b"), ["testing"]),
    (re.compile(r"\bevent[- ]driven\b"), ["event-driven architecture"]),
    (re.compile(r"\bdata\s+warehous\w*\b"), ["data warehousing"]),
    (re.compile(r"\bon[- ]call\b|\bincident\s+response\b"), ["incident management"]),
]

# Child skill implies parent skills
SKILL_IMPLICATIONS: dict[str, list[str]] = {
    "react": ["javascript"],
    "next.js": ["react", "javascript"],
    "angular": ["javascript", "typescript"],
    "vue": ["javascript"],
    "svelte": ["javascript"],
    "redux": ["react", "javascript"],
    "django": ["python"],
    "flask": ["python"],
    "fastapi": ["python", "rest"],
    "pytorch": ["python", "machine learning"],
    "tensorflow": ["python", "machine learning"],
    "keras": ["python", "tensorflow"],
    "scikit-learn": ["python", "machine learning"],
    "pandas": ["python"],
    "numpy": ["python"],
    "kubernetes": ["docker"],
    "helm": ["kubernetes"],
    "spring": ["java"],
    "flutter": ["dart"],
    "react native": ["react", "javascript"],
    "express": ["node.js", "javascript"],
    "nuxt": ["vue", "javascript"],
    "spark": ["distributed systems", "etl"],
    "airflow": ["etl", "python"],
    "dbt": ["sql", "etl"],
    "snowflake": ["sql"],
    "bigquery": ["sql", "gcp"],
    "redshift": ["sql", "aws"],
    "postgresql": ["sql"],
    "mysql": ["sql"],
    "sql server": ["sql"],
    "distributed systems": ["microservices", "kafka", "redis", "scalability"],
    "microservices": ["rest", "docker"],
    "terraform": ["infrastructure as code"],
}


@dataclass
class SkillEvidence:
    weight: float = 0.0
    implied: bool = True
    sources: set[str] = field(default_factory=set)

    def add(self, weight: float, source: str, implied: bool = False) -> None:
        self.sources.add(source)
        if implied:
            self.weight = max(self.weight, IMPLIED_CREDIT)
            return
        if self.implied:
            self.implied = False
            self.weight = weight
        else:
            self.weight = max(self.weight, weight)

    @property
    def credit(self) -> float:
        return IMPLIED_CREDIT if self.implied else min(1.0, self.weight)


@lru_cache(maxsize=4096)
def _term_pattern(canonical: str) -> re.Pattern:
    forms = [
        f for f in aliases_of(canonical)
        if len(f) >= 3 or f in _SHORT_ALIASES_OK or f == canonical
    ]
    alternation = "|".join(re.escape(f) for f in sorted(forms, key=len, reverse=True))
    # Word boundaries that tolerate tech punctuation ("node.js", "c#")
    return re.compile(rf"(?<![a-z0-9.#+])(?:{alternation})(?![a-z0-9+#])")


def mentions(text_lower: str, skill: str) -> bool:
    """Whether ``skill`` (or any of its aliases) appears in already-lowercased text."""
    canonical = canonicalize(skill)
    if not canonical:
        return False
    return bool(_term_pattern(canonical).search(text_lower))


def build_candidate_skills(
    candidate: CandidateProfile,
    extra_terms: list[str] | None = None,
) -> dict[str, SkillEvidence]:
    """Canonical skill -> evidence, before implication expansion."""
    evidence: dict[str, SkillEvidence] = {}

    def add(skill: str, weight: float, source: str, implied: bool = False) -> None:
        key = canonicalize(skill)
        if not key:
            return
        evidence.setdefault(key, SkillEvidence()).add(weight, source, implied)

    for skill in [*candidate.skills, *candidate.tools]:
        add(skill, DECLARED_WEIGHT, "declared")

    text = candidate.resume_text or ""
    if text.strip():
        vocabulary = {
            c for c in (canonicalize(t) for t in SKILL_VOCABULARY)
            if len(c) >= 3 or c in _SHORT_ALIASES_OK
        }
        vocabulary.update(canonicalize(t) for t in (extra_terms or []) if t)
        sections = parse_sections(text)
        for section_name, section_text in sections.items():
            lowered = section_text.lower()
            multiplier = SECTION_MULTIPLIERS.get(section_name, DEFAULT_SECTION_MULTIPLIER)
            for term in vocabulary:
                if term and _term_pattern(term).search(lowered):
                    add(term, multiplier, f"section:{section_name}")

        lowered_all = text.lower()
        for pattern, implied in CONTEXT_PHRASES:
            if pattern.search(lowered_all):
                for skill in implied:
                    add(skill, IMPLIED_CREDIT, "context", implied=True)

    return evidence


def expand_implications(evidence: dict[str, SkillEvidence]) -> dict[str, SkillEvidence]:
    """Add implied parent skills (half credit) for every directly evidenced skill."""
    expanded = {k: SkillEvidence(v.weight, v.implied, set(v.sources)) for k, v in evidence.items()}
    frontier = [k for k, v in evidence.items() if not v.implied]
    seen = set(frontier)
    while frontier:
        skill = frontier.pop()
        for parent in SKILL_IMPLICATIONS.get(skill, []):
            key = canonicalize(parent)
            expanded.setdefault(key, SkillEvidence()).add(IMPLIED_CREDIT, f"implied:{skill}", implied=True)
            if key not in seen:
                seen.add(key)
                frontier.append(key)
    return expanded


def _contains_term(haystack: str, needle: str) -> bool:
    return bool(re.search(rf"(?<![a-z0-9]){re.escape(needle)}(?![a-z0-9])", haystack))


def _substring_match(skill: str, evidence: dict[str, SkillEvidence]) -> SkillEvidence | None:
    """Whole-word containment either way ("aws" vs "aws lambda"), never "java" in "javascript"."""
    if len(skill) < 3:
        return None
    best = None
    for key, ev in evidence.items():
        if len(key) >= 3 and (_contains_term(key, skill) or _contains_term(skill, key)):
            if best is None or ev.credit > best.credit:
                best = ev
    return best


def match_skill(skill: str, evidence: dict[str, SkillEvidence]) -> float:
    """Credit in [0, 1] for one required skill: direct membership, then substring fallback."""
    ev = evidence.get(skill)
    if ev is not None:
        return ev.credit
    ev = _substring_match(skill, evidence)
    return ev.credit if ev is not None else 0.0


def _role_end_index(role: WorkExperience, now: date | None) -> int | None:
    if role.current or not role.end_date:
        return now_month_index(now) if role.start_date else None
    return parse_month_index(role.end_date, is_start=False, now=now)


def recency_factor(skill: str, roles: list[WorkExperience], now: date | None = None) -> float:
    """1.0 when the most recent role mentioning ``skill`` ended within two years, 0.7 if
    older. Skills no structured role mentions are not penalized."""
    latest = None
    for role in roles:
        blob = " ".join([role.title, *role.responsibilities]).lower()
        if not mentions(blob, skill):
            continue
        end = _role_end_index(role, now)
        if end is not None and (latest is None or end > latest):
            latest = end
    if latest is None:
        return 1.0
    return 1.0 if now_month_index(now) - latest <= RECENT_MONTHS else STALE_RECENCY


def _dedupe_canonical(skills: list[str], exclude: set[str] | None = None) -> list[str]:
    out: list[str] = []
    for s in skills:
        c = canonicalize(s)
        if c and c not in out and (exclude is None or c not in exclude):
            out.append(c)
    return out


def score_keywords(
    requirement: JobRequirement,
    candidate: CandidateProfile,
    now: date | None = None,
) -> DimensionScore:
    must = _dedupe_canonical(requirement.must_have_skills)
    nice = _dedupe_canonical(requirement.nice_to_have_skills, exclude=set(must))
    implicit = _dedupe_canonical(requirement.implicit_skills, exclude=set(must) | set(nice))

    if not (must or nice or implicit):
        return DimensionScore(score=50, details="No explicit skill requirements", matched=[], missing=[])

    evidence = expand_implications(
        build_candidate_skills(candidate, extra_terms=[*must, *nice, *implicit])
    )

    matched: list[str] = []
    missing: list[str] = []

    must_credit = 0.0
    must_matched = 0
    for skill in must:
        credit = match_skill(skill, evidence)
        if credit > 0:
            must_matched += 1
            must_credit += credit * recency_factor(skill, candidate.experience, now)
            matched.append(skill)
        else:
            missing.append(skill)

    def tier_credit(skills: list[str]) -> tuple[float, int]:
        total, hits = 0.0, 0
        for skill in skills:
            credit = match_skill(skill, evidence)
            if credit > 0:
                hits += 1
                total += credit
                matched.append(skill)
        return total, hits

    nice_credit, nice_matched = tier_credit(nice)
    implicit_credit, implicit_matched = tier_credit(implicit)

    ratios: dict[str, float] = {}
    if must:
        ratios["must"] = must_credit / len(must)
    if nice:
        ratios["nice"] = nice_credit / len(nice)
    if implicit:
        ratios["implicit"] = implicit_credit / len(implicit)
    weight_sum = sum(TIER_WEIGHTS[t] for t in ratios)
    blended = sum(ratios[t] * TIER_WEIGHTS[t] for t in ratios) / weight_sum

    score = round(blended * 100 - MISSING_MUST_PENALTY * len(missing))
    score = max(0, min(100, score))

    if must and must_matched == 0:
        score = min(score, 15)
    elif len(must) >= 3 and must_matched / len(must) < 1 / 3:
        score = min(score, 30)

    parts = [f"{must_matched}/{len(must)} must-have" if must else "No must-have requirements"]
    if nice:
        parts.append(f"{nice_matched}/{len(nice)} nice-to-have")
    if implicit:
        parts.append(f"{implicit_matched}/{len(implicit)} implicit")

    return DimensionScore(score=score, details=", ".join(parts), matched=matched, missing=missing)
