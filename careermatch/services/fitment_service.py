"""
Fitment Scoring Service

PURPOSE:
Rate how well one student fits one job posting, 0-100, with a short
human-readable reasoning.

HOW IT WORKS:
1. If an LLM is configured, ask it for {"score", "reasoning"}
   - unparseable reply -> neutral 50
   - provider error -> deterministic scoring below
   - score clamped to [30, 95]
2. Otherwise score deterministically (additive points on a base of 40):
   - education vs job category          up to 25
   - key skills found in the profile    4 each, up to 20
   - work-preference sliders vs job     up to 20
   - core values found in job text      5 each, up to 15
   - tech company for a tech student    10
   clamped to [35, 95]

Neither path ever returns 0 or 100: a match is never fully rejected
nor fully certified.
"""

import json
import logging
import math
from typing import Dict, List, Optional

from careermatch.core.catalog import WORK_PREFERENCE_DEFAULT
from careermatch.services import career_taxonomy as taxonomy
from careermatch.services.llm_client import LLMClient, LLMError, get_llm_client

logger = logging.getLogger(__name__)

BASE_SCORE = 40
AI_SCORE_RANGE = (30, 95)
FALLBACK_SCORE_RANGE = (35, 95)
NEUTRAL_SCORE = 50
DEFAULT_REASONING = "Basic compatibility assessment based on profile analysis."

# (student domain, job category) -> (points, reason)
EDUCATION_MATCH = {
    ("technology", taxonomy.SOFTWARE): (25, "Strong education-role alignment"),
    ("technology", taxonomy.DATA): (20, "Good technical background match"),
    ("technology", taxonomy.PRODUCT): (15, "Relevant technical knowledge"),
    ("technology", taxonomy.PROJECT_MANAGEMENT): (15, "Relevant technical knowledge"),
    ("data", taxonomy.DATA): (25, "Strong education-role alignment"),
    ("data", taxonomy.SOFTWARE): (20, "Good technical background match"),
    ("data", taxonomy.BUSINESS): (15, "Relevant analytical knowledge"),
    ("business", taxonomy.BUSINESS): (25, "Perfect business background match"),
    ("business", taxonomy.MARKETING): (25, "Perfect business background match"),
    ("business", taxonomy.PRODUCT): (20, "Strong management skills alignment"),
    ("business", taxonomy.PROJECT_MANAGEMENT): (20, "Strong management skills alignment"),
    ("design", taxonomy.DESIGN): (25, "Excellent design background fit"),
    ("design", taxonomy.MARKETING): (15, "Creative background fits the role"),
}

# Core value -> words in the job text that count as the value
VALUE_SYNONYMS = {
    "innovation": ["innovative", "creative"],
    "growth": ["development", "learning"],
    "impact": ["mission", "social"],
    "collaboration": ["team", "collaborative"],
    "leadership": ["lead", "ownership"],
    "excellence": ["quality", "best-in-class"],
    "flexibility": ["flexible", "remote", "hybrid"],
    "balance": ["work-life", "wellbeing"],
    "security": ["stable", "stability"],
    "service": ["customer", "community"],
}


def _clamp(value: float, bounds) -> int:
    low, high = bounds
    return int(max(low, min(high, round(value))))


def _slider(work_preferences: Optional[Dict], key: str) -> int:
    value = (work_preferences or {}).get(key)
    if value is None:
        return WORK_PREFERENCE_DEFAULT
    try:
        return int(value)
    except (TypeError, ValueError):
        return WORK_PREFERENCE_DEFAULT


def _education_points(student: Dict, job: Dict) -> tuple:
    domain = taxonomy.domain_of_specialization(student.get("specialization") or "")
    category = job.get("category") or taxonomy.classify_title(job.get("job_title") or "")
    return EDUCATION_MATCH.get((domain, category), (0, None))


def _skill_matches(student: Dict, job: Dict, recommendations: Optional[List[Dict]]) -> List[str]:
    haystack = " ".join([
        (student.get("specialization") or ""),
        " ".join(student.get("core_values") or []),
        (job.get("job_description") or ""),
        " ".join((r.get("explanation") or "") for r in (recommendations or [])),
    ]).lower()
    matched = []
    for skill in job.get("key_skills") or []:
        skill_lower = str(skill).strip().lower()
        if skill_lower and skill_lower in haystack and skill not in matched:
            matched.append(skill)
    return matched


def _work_preference_points(student: Dict, job: Dict) -> float:
    prefs = student.get("work_preferences") or {}
    title = (job.get("job_title") or "").lower()
    description = (job.get("job_description") or "").lower()

    points = 0.0
    if any(word in title for word in ("developer", "design", "creative")):
        points += min(_slider(prefs, "innovation") / 10, 8)
    if any(word in title for word in ("lead", "senior")):
        points += min((100 - _slider(prefs, "independence")) / 10, 6)
    if "startup" in title or "fast-paced" in description or "fast paced" in description:
        points += min(_slider(prefs, "pace") / 10, 6)
    return min(points, 20)


def _value_matches(student: Dict, job: Dict) -> List[str]:
    context = f"{job.get('job_description') or ''} {job.get('company_name') or ''}".lower()
    matched = []
    for value in student.get("core_values") or []:
        value_lower = value.lower()
        words = [value_lower] + VALUE_SYNONYMS.get(value_lower, [])
        if any(word in context for word in words):
            matched.append(value)
    return matched


def calculate_fallback_fitment(student: Dict, job: Dict,
                               recommendations: Optional[List[Dict]] = None) -> Dict:
    """Deterministic fitment score. Missing fields contribute nothing."""
    score = float(BASE_SCORE)
    reasons = []

    education, reason = _education_points(student, job)
    score += education
    if reason:
        reasons.append(reason)

    skills = _skill_matches(student, job, recommendations)
    score += min(len(skills) * 4, 20)
    if skills:
        reasons.append(f"{len(skills)} relevant skills identified")

    work = _work_preference_points(student, job)
    score += work
    if work > 0:
        reasons.append("Work style preferences align well")

    values = _value_matches(student, job)
    score += min(len(values) * 5, 15)
    if values:
        reasons.append(f"Core values like {' and '.join(values[:2])} align with role")

    company = (job.get("company_name") or "").lower()
    if any(word in company for word in ("tech", "software", "digital")) \
            and taxonomy.is_technical(student.get("specialization") or ""):
        score += 10
        reasons.append("Tech company matches your background")

    reasoning = ". ".join(reasons) + "." if reasons else DEFAULT_REASONING
    return {
        "score": _clamp(score, FALLBACK_SCORE_RANGE),
        "reasoning": reasoning,
        "source": "fallback",
    }


class FitmentService:
    """
    Scores a student against a job, AI first, deterministic otherwise.
    """

    SYSTEM_PROMPT = (
        "You are a career matching AI. Calculate a fitment score (0-100) between a "
        "student and a job based on their profile match. Also provide a brief "
        "explanation. Respond only with valid JSON."
    )

    def __init__(self, ai_client: Optional[LLMClient] = None):
        self.ai_client = ai_client or get_llm_client()

    def _build_prompt(self, student: Dict, job: Dict) -> str:
        return f"""Calculate fitment score between:

STUDENT:
Core Values: {", ".join(student.get("core_values") or []) or "Not specified"}
Work Preferences: {json.dumps(student.get("work_preferences") or {})}
Education: {student.get("education_degree") or "Unknown"} in {student.get("specialization") or "Unknown"}
Personality Scores: {json.dumps(student.get("personality_scores") or {})}

JOB:
Title: {job.get("job_title") or ""}
Company: {job.get("company_name") or ""}
Description: {job.get("job_description") or ""}
Key Skills: {", ".join(job.get("key_skills") or []) or "Not specified"}
Job Type: {job.get("job_type") or ""}

Respond with JSON format: {{"score": number, "reasoning": "brief explanation"}}"""

    def score(self, student: Dict, job: Dict, recommendations: Optional[List[Dict]] = None) -> Dict:
        if not self.ai_client.is_configured:
            return calculate_fallback_fitment(student, job, recommendations)

        try:
            response = self.ai_client._call_api(
                self.SYSTEM_PROMPT, self._build_prompt(student, job),
                max_tokens=150, temperature=0.3
            )
        except LLMError as e:
            logger.warning("AI fitment failed, using fallback scoring: %s", e)
            return calculate_fallback_fitment(student, job, recommendations)

        try:
            parsed = self.ai_client._extract_json_object(response)
            score = float(parsed["score"])
            if not math.isfinite(score):
                raise ValueError(f"non-finite score {score}")
        except (LLMError, KeyError, TypeError, ValueError):
            logger.warning("Unparseable AI fitment response: %r", response[:200])
            return {"score": NEUTRAL_SCORE, "reasoning": "Unable to parse AI response", "source": "ai"}

        reasoning = str(parsed.get("reasoning") or "").strip() or DEFAULT_REASONING
        return {"score": _clamp(score, AI_SCORE_RANGE), "reasoning": reasoning, "source": "ai"}


def get_fitment_service() -> FitmentService:
    return FitmentService()
