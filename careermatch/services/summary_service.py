"""
Student Summary Service

Short professional summary of a student for the admin view and the
student's own results page. AI-written when an LLM is configured,
template-written otherwise; cached in MongoDB per profile version.
"""

import json
import logging
from typing import Dict, Optional, Tuple

from careermatch.services.llm_client import LLMClient, LLMError, get_llm_client
from careermatch.services.mongo_service import (
    StudentSummaryCacheService, get_summary_cache_service, profile_hash
)

logger = logging.getLogger(__name__)

WORK_STYLE_LABELS = {
    "independence": "prefers independent work",
    "structure": "thrives in structured environments",
    "pace": "excels in fast-paced settings",
    "innovation": "seeks innovative approaches",
    "interaction": "enjoys high social interaction",
}

TRAIT_LABELS = {
    "analytical": "strong analytical and problem-solving abilities",
    "leadership": "a natural tendency to lead discussions",
    "pressure": "composure under tight deadlines",
    "creativity": "exceptional creative thinking skills",
    "conscientiousness": "a highly organized, detail-oriented approach",
    "mentoring": "a collaborative, team-focused attitude",
    "competitiveness": "a strong competitive drive",
}

PROFILE_FIELDS = ("name", "email", "phone", "education_degree", "specialization")


def build_fallback_summary(student: Dict) -> str:
    name = student.get("name") or "This student"
    degree = student.get("education_degree") or "degree"
    specialization = student.get("specialization") or "their field"
    values = ", ".join((student.get("core_values") or [])[:3]) or "their core values"

    high_prefs = [WORK_STYLE_LABELS.get(k, k)
                  for k, v in (student.get("work_preferences") or {}).items() if (v or 0) > 70]
    strengths = [TRAIT_LABELS.get(k, k)
                 for k, v in (student.get("personality_scores") or {}).items() if (v or 0) >= 4]

    work_style = f" They {' and '.join(high_prefs[:2])}." if high_prefs else ""
    personality = f" Their key strengths include {' and '.join(strengths[:2])}." if strengths else ""
    return (
        f"{name} is a motivated {degree} graduate specializing in {specialization}, "
        f"with core values centered on {values}.{work_style}{personality} "
        f"This combination of educational foundation, value-driven approach, and natural "
        f"abilities positions them well for impactful roles in their chosen field."
    )


def profile_completion(student: Dict) -> int:
    """Percentage of the basic profile fields that are filled in."""
    filled = sum(1 for field in PROFILE_FIELDS if str(student.get(field) or "").strip())
    return round(filled / len(PROFILE_FIELDS) * 100)


class StudentSummaryService:

    SYSTEM_PROMPT = (
        "You are a professional career counselor. Generate a comprehensive yet concise "
        "professional summary that specifically references the student's assessment "
        "choices: education, values, work preferences and personality traits. "
        "Write 120-150 words in third person, professional tone."
    )

    def __init__(self, ai_client: Optional[LLMClient] = None,
                 cache: Optional[StudentSummaryCacheService] = None):
        self.ai_client = ai_client or get_llm_client()
        self.cache = cache

    def _build_prompt(self, student: Dict) -> str:
        return f"""Generate a professional summary for this student:

Name: {student.get("name")}
Education: {student.get("education_degree")} in {student.get("specialization")}
Core Values: {", ".join(student.get("core_values") or [])}
Work Preferences (0-100): {json.dumps(student.get("work_preferences") or {})}
Personality (1-5): {json.dumps(student.get("personality_scores") or {})}"""

    def summarize(self, student: Dict) -> Tuple[str, str]:
        """Returns (summary, source); source is "cache", "ai" or "fallback"."""
        student_id = student.get("student_id")
        digest = profile_hash(student)
        if self.cache is not None and student_id is not None:
            cached = self.cache.get(student_id, digest)
            if cached and cached.get("summary"):
                return cached["summary"], "cache"

        summary, source = None, "fallback"
        if self.ai_client.is_configured:
            try:
                summary = self.ai_client.complete_text(
                    self.SYSTEM_PROMPT, self._build_prompt(student), max_tokens=250, temperature=0.7
                )
                source = "ai"
            except LLMError as e:
                logger.warning("AI summary failed, using template: %s", e)
        if not summary:
            summary = build_fallback_summary(student)

        if self.cache is not None and student_id is not None:
            self.cache.store(student_id, digest, summary, source)
        return summary, source


def get_summary_service() -> StudentSummaryService:
    return StudentSummaryService(cache=get_summary_cache_service())
