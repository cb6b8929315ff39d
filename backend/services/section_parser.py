"""Résumé section segmentation, contact detection and degree-level parsing.

Operates only on already-extracted plain text; binary formats are parsed
upstream.
"""

import re

# Section header patterns and their canonical names
SECTION_PATTERNS: dict[str, list[str]] = {
    "experience": [
        r"(?:work|professional|employment)\s*(?:experience|history)",
        r"experience",
        r"career\s*(?:history|path)",
        r"(?:positions?\s*held|roles)",
    ],
    "education": [
        r"education(?:al)?\s*(?:background|qualifications|history)?",
        r"academic\s*(?:background|qualifications)",
    ],
    "skills": [
        r"(?:technical|core|key|professional)?\s*skills",
        r"(?:technical|core)?\s*(?:competencies|proficiencies|expertise)",
        r"technologies",
        r"(?:technical\s+)?(?:stack|toolkit|tooling)",
    ],
    "summary": [
        r"(?:professional|executive|career)?\s*summary",
        r"(?:career|professional)?\s*objective",
        r"profile",
        r"about\s*me",
    ],
    "projects": [
        r"(?:key|notable|selected|personal)?\s*projects",
        r"portfolio",
    ],
    "certifications": [
        r"certific(?:ations?|ates?)",
        r"licen[sc]es?\s*(?:&|and)?\s*certific(?:ations?|ates?)",
    ],
    "achievements": [
        r"(?:key\s+)?achievements?",
        r"(?:awards?|honors?|accomplishments)",
    ],
}

_COMPILED: dict[str, re.Pattern] = {
    section: re.compile(rf"^\s*(?:{'|'.join(patterns)})\s*:?\s*$", re.IGNORECASE)
    for section, patterns in SECTION_PATTERNS.items()
}

EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")
PHONE_RE = re.compile(r"\+?[\d\s\-().]{7,15}\d")
LINKEDIN_RE = re.compile(r"linkedin\.com/in/[\w-]+", re.IGNORECASE)

# Weighted section importance for completeness scoring
SECTION_WEIGHTS: dict[str, float] = {
    "experience": 20,
    "skills": 15,
    "education": 12,
    "projects": 12,
    "summary": 10,
    "certifications": 8,
    "achievements": 5,
}
_TOTAL_WEIGHT = sum(SECTION_WEIGHTS.values())

_MONTHS = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|Jun(?:e)?|"
    r"Jul(?:y)?|Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
)
# "Jan 2019 - Present", "2020 - 2023", "03/2018 – 11/2022"
DATE_RANGE_RE = re.compile(
    rf"({_MONTHS}\.?\s*\d{{4}}|\d{{1,2}}/\d{{4}}|\d{{4}})"
    r"\s*(?:-|–|—|to)\s*"
    rf"({_MONTHS}\.?\s*\d{{4}}|\d{{1,2}}/\d{{4}}|\d{{4}}|present|current)",
    re.IGNORECASE,
)


def parse_sections(text: str) -> dict[str, str]:
    """Split résumé text into named sections.

    Returns a dict mapping section name -> section text content.
    Unmatched text at the top goes into 'header'.
    """
    sections: dict[str, str] = {}
    current_section = "header"
    current_lines: list[str] = []

    for line in text.split("\n"):
        stripped = line.strip()
        matched = None
        if stripped:
            for name, pattern in _COMPILED.items():
                if pattern.match(stripped):
                    matched = name
                    break

        if matched:
            if current_lines:
                body = "\n".join(current_lines).strip()
                if body:
                    previous = sections.get(current_section)
                    sections[current_section] = f"{previous}\n{body}" if previous else body
            current_section = matched
            current_lines = []
        else:
            current_lines.append(line)

    if current_lines:
        body = "\n".join(current_lines).strip()
        if body:
            previous = sections.get(current_section)
            sections[current_section] = f"{previous}\n{body}" if previous else body

    return sections


def extract_contact_info(text: str) -> dict[str, str | None]:
    email = EMAIL_RE.search(text)
    phone = PHONE_RE.search(text)
    linkedin = LINKEDIN_RE.search(text)
    return {
        "email": email.group() if email else None,
        "phone": phone.group().strip() if phone else None,
        "linkedin": linkedin.group() if linkedin else None,
    }


def compute_section_completeness(sections: dict[str, str]) -> float:
    """Score 0.0-1.0 based on weighted importance of present sections."""
    found = sum(SECTION_WEIGHTS[s] for s in SECTION_WEIGHTS if s in sections)
    return round(found / _TOTAL_WEIGHT, 3)


# ---------------------------------------------------------------------------
# Degree level detection
# ---------------------------------------------------------------------------

DEGREE_RANK: dict[str, int] = {
    "phd": 5,
    "master": 4,
    "bachelor": 3,
    "associate": 2,
    "high_school": 1,
}

DEGREE_PATTERNS: dict[str, list[str]] = {
    "phd": [r"ph\.?d", r"doctorate", r"doctoral", r"doctor of philosophy"],
    "master": [
        r"m\.?s\.?", r"m\.?sc\.?", r"m\.?eng", r"m\.?tech", r"mba",
        r"m\.?a\.?(?=\s|$)", r"master(?:'?s)?",
    ],
    "bachelor": [
        r"b\.?s\.?", r"b\.?sc\.?", r"b\.?e\.?", r"b\.?tech", r"b\.?a\.?(?=\s|$)",
        r"bachelor(?:'?s)?", r"b\.?eng", r"undergraduate",
    ],
    "associate": [r"a\.?s\.?", r"a\.?a\.?(?=\s|$)", r"associate(?:'?s)?"],
    "high_school": [r"high\s*school", r"diploma", r"ged", r"secondary\s*school"],
}

_DEGREE_COMPILED: dict[str, re.Pattern] = {
    level: re.compile(rf"\b(?:{'|'.join(patterns)})\b", re.IGNORECASE)
    for level, patterns in DEGREE_PATTERNS.items()
}

# Highest first
_DEGREE_PRIORITY = ["phd", "master", "bachelor", "associate", "high_school"]


def degree_level(text: str) -> str:
    """Highest degree level mentioned in ``text``, or '' when none is recognized."""
    if not text:
        return ""
    for level in _DEGREE_PRIORITY:
        if _DEGREE_COMPILED[level].search(text):
            return level
    return ""


def normalize_degree_requirement(value: str | None) -> str:
    """Map an extractor's education label ("Master's", "bachelors", "PhD") onto DEGREE_RANK."""
    if not value:
        return ""
    key = value.strip().lower().replace(" ", "_").replace("'", "")
    if key in DEGREE_RANK:
        return key
    if key.rstrip("s") in DEGREE_RANK:
        return key.rstrip("s")
    return degree_level(value)
