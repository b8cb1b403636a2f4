"""
Career Recommendation Service

PURPOSE:
Turn a completed assessment (education, 5 core values, 5 work-preference
sliders, 7 personality answers) into 4-6 ranked career roles, each with a
match %, an explanation and an estimated number of openings.

HOW IT WORKS:
1. If an LLM is configured, ask for a JSON array of
   {role, match, explanation, openings}
2. On any provider/parse error, or fewer than 4 usable roles, use the
   deterministic rule table:
   - each role family has a gate (specialization keywords, degree tokens,
     core values, personality/slider thresholds)
   - match = base + 25*education + 25*values + 25*work + 25*personality
     + jitter(+-5), clamped to [45, 95]
   - filler roles are appended until there are 4
3. Sort by match descending, keep the top 6

Every role carries a career_taxonomy category so jobs can be filtered by
the recommended career.
"""

import json
import logging
import math
import random
import re
from typing import Callable, Dict, List, Optional

from careermatch.core.catalog import PERSONALITY_DEFAULT, WORK_PREFERENCE_DEFAULT
from careermatch.services.career_taxonomy import classify_title
from careermatch.services.llm_client import LLMClient, LLMError, get_llm_client

logger = logging.getLogger(__name__)

MIN_RECOMMENDATIONS = 4
MAX_RECOMMENDATIONS = 6
MATCH_RANGE = (45, 95)


class StudentSignals:
    """Read-only view over a (possibly partial) student profile with defaults applied."""

    def __init__(self, student: Dict):
        self.degree = student.get("education_degree") or ""
        self.specialization = student.get("specialization") or ""
        self.field_of_study = self.specialization.lower()
        self.values = list(student.get("core_values") or [])
        self._prefs = student.get("work_preferences") or {}
        self._traits = student.get("personality_scores") or {}

    def pref(self, key: str) -> int:
        value = self._prefs.get(key)
        return WORK_PREFERENCE_DEFAULT if value is None else int(value)

    def raw_pref(self, key: str) -> int:
        """Slider value for gates; a missing slider counts as 0."""
        return int(self._prefs.get(key) or 0)

    def trait(self, key: str) -> int:
        value = self._traits.get(key)
        if not value and key == "extraversion":
            # No dedicated question; leading discussions stands in for it
            value = self._traits.get("leadership")
        return int(value or PERSONALITY_DEFAULT)

    def has_value(self, *values: str) -> bool:
        return any(v in self.values for v in values)

    def degree_has(self, *tokens: str) -> bool:
        """Whole-token match, so "B.E" does not match "B.Ed"."""
        degree = self.degree.lower()
        return any(re.search(rf"(?<![a-z0-9.]){re.escape(token.lower())}(?![a-z0-9])", degree)
                   for token in tokens)

    def spec_has(self, *words: str) -> bool:
        return any(word in self.field_of_study for word in words)

    @property
    def is_technical(self) -> bool:
        return self.spec_has("computer", "software", "information", "technology")

    @property
    def has_business_degree(self) -> bool:
        return self.degree_has("MBA", "B.Com", "BBA")


def _match_score(rng: random.Random, education: float, values: float, work: float,
                 personality: float, base: float) -> int:
    score = base + education * 25 + values * 25 + work * 25 + personality * 25
    score += rng.uniform(-5, 5)
    low, high = MATCH_RANGE
    return int(min(max(round(score), low), high))


def _explanation(s: StudentSignals, education_text: str, value_pool: List[str],
                 work_text: str, personality_text: str) -> str:
    matched = [v for v in s.values if v in value_pool]
    values_text = " and ".join(matched) if matched else "your core values"
    degree = s.degree or "education"
    specialization = s.specialization or "your field"
    return (
        f"Your {degree} in {specialization} {education_text}. "
        f"Your emphasis on {values_text} aligns perfectly with this role. "
        f"{work_text} {personality_text}"
    )


def _role(s: StudentSignals, rng: random.Random, role: str, weights: tuple, base: float,
          openings: int, education_text: str, value_pool: List[str], work_text: str,
          personality_text: str) -> Dict:
    return {
        "role": role,
        "category": classify_title(role),
        "match": _match_score(rng, *weights, base),
        "explanation": _explanation(s, education_text, value_pool, work_text, personality_text),
        "openings": openings,
    }


# ============================================================
# ROLE FAMILIES
# Each returns a list (possibly empty) of recommendations.
# ============================================================

def _software_roles(s: StudentSignals, rng: random.Random) -> List[Dict]:
    if not s.is_technical:
        return []
    values_fit = 0.8 if s.has_value("Innovation", "Excellence", "Growth") else 0.6
    work_fit = (s.pref("innovation") + s.pref("independence")) / 200
    personality_fit = s.trait("analytical") / 5

    roles = [_role(
        s, rng, "Software Developer", (0.9, values_fit, work_fit, personality_fit), 60, 4500,
        "provides the technical foundation essential for software development",
        ["Innovation", "Excellence", "Growth"],
        f"With your work preferences showing {s.pref('innovation')}/100 for innovation and "
        f"{s.pref('independence')}/100 for independent work, you'll thrive in development environments.",
        f"Your analytical thinking score of {s.trait('analytical')}/5 indicates strong "
        f"problem-solving abilities crucial for coding.",
    )]
    if s.raw_pref("interaction") > 60:
        roles.append(_role(
            s, rng, "Full Stack Developer", (0.9, values_fit, 0.8, personality_fit), 58, 3200,
            "covers both frontend and backend technologies perfectly suited to your technical background",
            ["Innovation", "Excellence", "Collaboration"],
            f"Your interaction preference of {s.pref('interaction')}/100 shows you enjoy "
            f"collaborative work, ideal for full-stack teams.",
            f"Combined with conscientiousness score of {s.trait('conscientiousness')}/5, "
            f"you'll excel at managing complex projects.",
        ))
    return roles


def _data_roles(s: StudentSignals, rng: random.Random) -> List[Dict]:
    if not (s.spec_has("data", "statistics") or s.degree_has("M.Tech")
            or s.has_value("Innovation") or s.trait("analytical") >= 4):
        return []
    education_fit = 0.95 if s.spec_has("data") else 0.7
    values_fit = 0.85 if s.has_value("Innovation", "Excellence", "Growth") else 0.6
    work_fit = (s.pref("structure") + s.pref("innovation")) / 200
    personality_fit = (s.trait("analytical") + s.trait("conscientiousness")) / 10
    return [_role(
        s, rng, "Data Analyst", (education_fit, values_fit, work_fit, personality_fit), 55, 2800,
        "provides strong analytical foundation essential for data interpretation",
        ["Innovation", "Excellence", "Growth"],
        f"Your structured work preference ({s.pref('structure')}/100) aligns with data analysis methodologies.",
        f"High analytical thinking ({s.trait('analytical')}/5) and conscientiousness "
        f"({s.trait('conscientiousness')}/5) are perfect for data-driven roles.",
    )]


def _business_roles(s: StudentSignals, rng: random.Random) -> List[Dict]:
    if not (s.has_business_degree or s.spec_has("marketing", "business")
            or (s.raw_pref("interaction") > 70 and s.trait("extraversion") >= 4)):
        return []
    education_fit = 0.9 if s.has_business_degree else 0.6
    values_fit = 0.8 if s.has_value("Creativity", "Impact", "Growth", "Leadership") else 0.6
    work_fit = (s.pref("interaction") + s.pref("pace")) / 200
    personality_fit = (s.trait("extraversion") + s.trait("leadership")) / 10

    roles = [_role(
        s, rng, "Digital Marketing Specialist", (education_fit, values_fit, work_fit, personality_fit),
        52, 2500,
        "provides business acumen essential for marketing strategy",
        ["Creativity", "Impact", "Growth"],
        f"Your high interaction preference ({s.pref('interaction')}/100) and pace preference "
        f"({s.pref('pace')}/100) suit the dynamic marketing environment.",
        f"Extraversion score of {s.trait('extraversion')}/5 indicates natural communication "
        f"skills vital for marketing.",
    )]
    if s.has_value("Leadership") or s.trait("conscientiousness") >= 4:
        roles.append(_role(
            s, rng, "Product Manager", (education_fit, 0.85, work_fit, personality_fit), 55, 1800,
            "provides strategic thinking foundation essential for product leadership",
            ["Leadership", "Innovation", "Impact"],
            f"Your balanced work preferences (innovation: {s.pref('innovation')}/100, structure: "
            f"{s.pref('structure')}/100) are ideal for product management.",
            f"High conscientiousness ({s.trait('conscientiousness')}/5) and leadership values "
            f"show strong management potential.",
        ))
    if s.raw_pref("interaction") > 80 and s.trait("extraversion") >= 4:
        roles.append(_role(
            s, rng, "Business Consultant",
            (0.85 if s.has_business_degree else 0.6,
             0.8 if s.has_value("Impact", "Excellence", "Growth") else 0.6,
             work_fit, (s.trait("extraversion") + s.trait("mentoring")) / 10),
            50, 1200,
            "provides analytical and communication foundation essential for advising clients",
            ["Impact", "Excellence", "Growth"],
            f"Your very high interaction preference ({s.pref('interaction')}/100) and pace "
            f"preference ({s.pref('pace')}/100) are ideal for consulting.",
            f"Strong extraversion ({s.trait('extraversion')}/5) and mentoring "
            f"({s.trait('mentoring')}/5) enable effective client relationships.",
        ))
    return roles


def _design_roles(s: StudentSignals, rng: random.Random) -> List[Dict]:
    if not (s.spec_has("design", "art") or s.has_value("Creativity") or s.trait("creativity") >= 4):
        return []
    education_fit = 0.95 if s.spec_has("design") else 0.6
    values_fit = 0.9 if s.has_value("Creativity", "Innovation", "Excellence") else 0.7
    work_fit = (s.pref("innovation") + s.pref("independence")) / 200
    return [_role(
        s, rng, "UI/UX Designer", (education_fit, values_fit, work_fit, s.trait("creativity") / 5),
        58, 2200,
        "aligns perfectly with design thinking and user experience principles",
        ["Creativity", "Innovation", "Excellence"],
        f"Your innovation preference ({s.pref('innovation')}/100) and flexibility preference "
        f"show ideal design mindset.",
        f"High creativity score ({s.trait('creativity')}/5) is essential for design innovation "
        f"and user-centered solutions.",
    )]


def _engineering_roles(s: StudentSignals, rng: random.Random) -> List[Dict]:
    roles = []
    is_engineer = s.degree_has("B.Tech", "B.E")
    if is_engineer and not s.spec_has("computer", "software"):
        values_fit = 0.75 if s.has_value("Excellence", "Innovation", "Growth") else 0.6
        work_fit = (s.pref("structure") + s.pref("innovation")) / 200
        personality_fit = (s.trait("analytical") + s.trait("conscientiousness")) / 10
        roles.append(_role(
            s, rng, "Technical Project Manager", (0.8, values_fit, work_fit, personality_fit), 50, 1500,
            "provides strong technical foundation essential for managing engineering projects",
            ["Excellence", "Leadership", "Collaboration"],
            "Your engineering background combined with balanced work preferences makes you "
            "ideal for technical project leadership.",
            f"High analytical thinking ({s.trait('analytical')}/5) and conscientiousness "
            f"({s.trait('conscientiousness')}/5) ensure excellent project execution.",
        ))
    if (is_engineer and s.is_technical) or (s.trait("analytical") >= 4 and s.raw_pref("structure") > 60):
        values_fit = 0.75 if s.has_value("Excellence", "Innovation", "Growth") else 0.6
        work_fit = (s.pref("structure") + s.pref("independence")) / 200
        roles.append(_role(
            s, rng, "DevOps Engineer",
            (0.8 if s.is_technical else 0.6, values_fit, work_fit, s.trait("analytical") / 5), 52, 1500,
            "provides technical expertise essential for infrastructure management",
            ["Excellence", "Innovation", "Growth"],
            f"Your structure preference ({s.pref('structure')}/100) and independent work style "
            f"({s.pref('independence')}/100) suit DevOps environments.",
            f"Strong analytical skills ({s.trait('analytical')}/5) are crucial for system "
            f"optimization and troubleshooting.",
        ))
    return roles


ROLE_FAMILIES: List[Callable[[StudentSignals, random.Random], List[Dict]]] = [
    _software_roles,
    _data_roles,
    _business_roles,
    _design_roles,
    _engineering_roles,
]

# (role, education text, value pool, work text, personality trait, openings)
FILLER_ROLES = [
    ("Business Analyst", "provides analytical foundation essential for business process optimization",
     ["Excellence", "Growth", "Impact"],
     "Your balanced work preferences show adaptability crucial for analyzing diverse business requirements.",
     "analytical", 1800),
    ("Project Coordinator", "provides organizational skills essential for project management",
     ["Collaboration", "Excellence", "Growth"],
     "Your balanced work preferences show adaptability crucial for coordinating diverse teams and tasks.",
     "conscientiousness", 1800),
    ("Operations Associate", "provides a practical foundation for running day-to-day business processes",
     ["Integrity", "Security", "Excellence"],
     "Your work preferences suit structured operational environments.",
     "conscientiousness", 1600),
    ("Customer Success Associate", "provides the communication foundation for helping clients succeed",
     ["Service", "Collaboration", "Impact"],
     "Your work preferences suit collaborative, client-facing teams.",
     "mentoring", 1400),
]


def _filler(s: StudentSignals, rng: random.Random, filler: tuple) -> Dict:
    role, education_text, value_pool, work_text, trait, openings = filler
    return _role(
        s, rng, role, (0.6, 0.7, 0.6, 0.7), 45, openings,
        education_text, value_pool, work_text,
        f"Your {trait} score of {s.trait(trait)}/5 makes you effective in this role.",
    )


def generate_fallback_recommendations(student: Dict, rng: Optional[random.Random] = None) -> List[Dict]:
    """Deterministic rule-table recommendations (jitter aside). Always 4-6 roles."""
    rng = rng or random.Random()
    s = StudentSignals(student)

    recommendations: List[Dict] = []
    for family in ROLE_FAMILIES:
        recommendations.extend(family(s, rng))

    taken = {r["role"] for r in recommendations}
    for filler in FILLER_ROLES:
        if len(recommendations) >= MIN_RECOMMENDATIONS:
            break
        if filler[0] not in taken:
            recommendations.append(_filler(s, rng, filler))

    recommendations.sort(key=lambda r: r["match"], reverse=True)
    return recommendations[:MAX_RECOMMENDATIONS]


def validate_ai_recommendations(data) -> List[Dict]:
    """
    Validate and sanitize recommendations returned by the LLM.
    Drops malformed entries; the caller decides whether enough remain.
    """
    if isinstance(data, dict):
        data = data.get("recommendations", [])
    if not isinstance(data, list):
        return []

    validated = []
    for item in data:
        if not isinstance(item, dict):
            continue
        role = str(item.get("role") or "").strip()
        if not role:
            continue
        try:
            match = float(item.get("match", 0))
        except (TypeError, ValueError):
            continue
        if not math.isfinite(match):
            continue
        try:
            openings = max(0, int(item.get("openings") or 0))
        except (TypeError, ValueError, OverflowError):
            openings = 0
        validated.append({
            "role": role,
            "category": classify_title(role),
            "match": max(0, min(100, int(round(match)))),
            "explanation": str(item.get("explanation") or "").strip(),
            "openings": openings,
        })

    validated.sort(key=lambda r: r["match"], reverse=True)
    return validated[:MAX_RECOMMENDATIONS]


class CareerRecommendationService:
    """
    Produces ranked career recommendations, AI first, rule table otherwise.
    """

    SYSTEM_PROMPT = (
        "You are an expert career counselor AI with deep knowledge of job markets and "
        "personality-career fit. Analyze the student's complete assessment profile and "
        "provide highly personalized career recommendations. Consider educational "
        "background, core values, work preference scores (0-100) and personality traits "
        "(1-5). Respond only with a valid JSON array."
    )

    def __init__(self, ai_client: Optional[LLMClient] = None, rng: Optional[random.Random] = None):
        self.ai_client = ai_client or get_llm_client()
        self.rng = rng or random.Random()

    def _build_prompt(self, student: Dict) -> str:
        values = "\n".join(f"   {i + 1}. {v}" for i, v in enumerate(student.get("core_values") or []))
        return f"""Analyze this student assessment profile and recommend 4-6 career roles:

Name: {student.get("name") or "Student"}
Education: {student.get("education_degree") or ""} in {student.get("specialization") or ""}
Core Values (top 5 priorities):
{values}
Work Preferences (0-100): {json.dumps(student.get("work_preferences") or {})}
Personality (1-5): {json.dumps(student.get("personality_scores") or {})}

For each role explain how their education, values, work preferences and
personality fit, and estimate realistic job openings.

JSON Response Format:
[{{"role": "Specific Job Title", "match": 85, "explanation": "2-3 sentences", "openings": 1200}}]"""

    def recommend(self, student: Dict) -> List[Dict]:
        if not self.ai_client.is_configured:
            return generate_fallback_recommendations(student, self.rng)

        try:
            raw = self.ai_client.complete_json(
                self.SYSTEM_PROMPT, self._build_prompt(student), max_tokens=1000, temperature=0.7
            )
        except LLMError as e:
            logger.warning("AI recommendations failed, using rule table: %s", e)
            return generate_fallback_recommendations(student, self.rng)

        recommendations = validate_ai_recommendations(raw)
        if len(recommendations) < MIN_RECOMMENDATIONS:
            logger.warning("AI returned %d usable recommendations, using rule table", len(recommendations))
            return generate_fallback_recommendations(student, self.rng)
        return recommendations


def get_recommendation_service() -> CareerRecommendationService:
    return CareerRecommendationService()
