"""
Assessment vocabulary shared by the API schemas, the flow controller and
the heuristics: the 15 core values, the 5 work-preference sliders and the
7 personality questions.
"""

import re
from typing import Dict, Optional

CORE_VALUES = [
    "Innovation", "Collaboration", "Leadership", "Integrity", "Excellence",
    "Creativity", "Flexibility", "Growth", "Impact", "Balance",
    "Autonomy", "Recognition", "Security", "Adventure", "Service",
]

REQUIRED_CORE_VALUES = 5

# Slider key -> (label at 0, label at 100)
WORK_PREFERENCES = {
    "independence": ("Collaborative teamwork", "Independent work"),
    "structure": ("Flexible environment", "Structured environment"),
    "pace": ("Steady pace", "Fast-paced"),
    "innovation": ("Proven methods", "Innovation and experimentation"),
    "interaction": ("Focused solo work", "High social interaction"),
}
WORK_PREFERENCE_KEYS = list(WORK_PREFERENCES)
WORK_PREFERENCE_DEFAULT = 50

# Trait key -> question, in the order the questionnaire asks them
PERSONALITY_QUESTIONS = {
    "analytical": "I prefer working on detailed, methodical tasks",
    "leadership": "I enjoy leading team discussions and meetings",
    "pressure": "I work best under tight deadlines and pressure",
    "creativity": "I like to explore new ideas and creative solutions",
    "conscientiousness": "I prefer clear instructions and defined processes",
    "mentoring": "I enjoy mentoring and helping colleagues grow",
    "competitiveness": "I thrive in competitive environments",
}
PERSONALITY_TRAITS = list(PERSONALITY_QUESTIONS)
PERSONALITY_DEFAULT = 3

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[6-9]\d{9}$")
PHONE_FORMAT_MESSAGE = "Please enter a valid 10-digit phone number starting with 6, 7, 8, or 9"


def normalize_phone(phone: Optional[str]) -> str:
    """Drop spaces, dashes and brackets; keep a leading +91 off the number."""
    cleaned = re.sub(r"[\s\-()]", "", phone or "")
    if cleaned.startswith("+91") and len(cleaned) == 13:
        cleaned = cleaned[3:]
    return cleaned


def is_valid_email(email: Optional[str]) -> bool:
    return bool(EMAIL_PATTERN.match((email or "").strip()))


def is_valid_phone(phone: Optional[str]) -> bool:
    return bool(PHONE_PATTERN.match(normalize_phone(phone)))


def canonical_core_value(value: str) -> Optional[str]:
    """Case-insensitive lookup in the catalog; None if not a catalog value."""
    lookup = {v.lower(): v for v in CORE_VALUES}
    return lookup.get((value or "").strip().lower())


def normalize_personality(scores: Optional[Dict]) -> Dict[str, int]:
    """
    Personality answers arrive keyed either by trait name or by question
    index ("0".."6"). Returns trait-keyed ints, dropping anything unknown.
    """
    result = {}
    for key, value in (scores or {}).items():
        trait = str(key)
        if trait.isdigit() and int(trait) < len(PERSONALITY_TRAITS):
            trait = PERSONALITY_TRAITS[int(trait)]
        if trait not in PERSONALITY_QUESTIONS:
            continue
        try:
            result[trait] = int(value)
        except (TypeError, ValueError):
            continue
    return result
