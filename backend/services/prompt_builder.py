"""All prompt templates for Gemini API calls."""


def build_requirement_prompt(job_title: str, job_description: str, location: str = "") -> str:
    """Structured requirement extraction for one job posting."""
    location_line = f"LOCATION: {location}\n" if location else ""

    return f"""You are an expert technical recruiter who reads job postings precisely.

Extract the hiring requirements from this job posting. Only list what the
posting states or clearly implies; do not invent requirements.

SKILL TIERS:
- must_have_skills: skills the posting marks as required / must have / essential
- nice_to_have_skills: preferred / bonus / a plus
- implicit_skills: not named as requirements but obviously needed by the described work

Use short canonical skill names in lowercase ("python", "kubernetes", "postgresql").

JOB TITLE: {job_title}
{location_line}JOB DESCRIPTION:
---
{job_description}
---

Respond with ONLY valid JSON (no markdown, no code fences) in this exact structure:
{{
  "normalized_title": "<title without level prefixes or team names>",
  "related_titles": [<other titles that do the same job>],
  "seniority_level": "<one of junior|mid|senior|staff|principal|lead|manager|director|c_level>",
  "must_have_skills": [<strings>],
  "nice_to_have_skills": [<strings>],
  "implicit_skills": [<strings>],
  "min_years_experience": <integer or null>,
  "preferred_years_experience": <integer or null>,
  "required_education": "<high_school|associate|bachelor|master|phd or null>",
  "preferred_education_fields": [<strings>],
  "certifications": [<strings>],
  "location_type": "<remote|hybrid|onsite>",
  "location_city": "<city or null>",
  "visa_sponsorship": <true, false or null when not mentioned>,
  "industry_vertical": "<industry or null>",
  "behavioral_keywords": [<soft-skill words such as "ownership", "mentoring">],
  "context_phrases": [<phrases describing the work that imply capabilities>],
  "responsibilities": [<up to 15 short responsibility statements>]
}}"""


def build_soft_score_prompt(
    job_title: str,
    job_description: str,
    candidate_title: str,
    resume_text: str,
    keyword_score: float | None = None,
) -> str:
    """Holistic soft-factor score. The deterministic keyword score is passed
    as context so the model judges what keywords cannot see."""
    context_section = ""
    if keyword_score is not None:
        context_section = f"""
DETERMINISTIC PRE-ANALYSIS (reference only, do not repeat it):
- Keyword coverage score: {keyword_score:.0f}/100
---
"""

    return f"""You are an experienced hiring manager.

Judge the soft factors of this candidate for the role: trajectory, scope of
past work, communication quality of the résumé, and evidence of ownership.
Ignore keyword overlap; it is scored separately.

SCORING RUBRIC (follow strictly):
- 0-20:  Trajectory unrelated to the role.
- 20-40: Weak fit, scope well below the role.
- 40-60: Plausible fit with clear gaps.
- 60-80: Good fit, comparable scope and progression.
- 80-100: Exceptional fit, clearly operating at or above the role's level.
{context_section}
TARGET ROLE: {job_title}
JOB DESCRIPTION:
---
{job_description}
---

CANDIDATE CURRENT TITLE: {candidate_title or "unknown"}
RESUME:
---
{resume_text}
---

Respond with ONLY valid JSON (no markdown, no code fences) in this exact structure:
{{
  "score": <integer 0-100>,
  "details": "<one or two sentences explaining the score>"
}}"""
