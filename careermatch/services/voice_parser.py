"""
Voice Transcript Parsing Service

PURPOSE:
Recruiters dictate a job posting; the browser turns speech into text and
we turn the text into job-posting fields the form is pre-filled with.

HOW IT WORKS:
1. If an LLM is configured, ask it for one JSON object with the job fields
   (the first {...} in the reply is used, surrounding prose is ignored)
2. If that is not possible (no key, provider error, bad JSON) run the
   regex extractor: an ordered list of patterns per field, first match
   wins, a filled field is never overwritten
3. Store the transcript and the result in MongoDB (best-effort)

Every parsed value is a suggestion the recruiter confirms in the form.
Parsing never raises; an empty transcript gives an all-empty result.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from careermatch.services.llm_client import LLMClient, LLMError, get_llm_client

logger = logging.getLogger(__name__)

FIELDS = [
    "contact_name", "contact_number", "contact_email", "company_name", "job_title",
    "job_type", "location", "salary_stipend", "key_skills", "job_description",
]

MAX_SKILLS = 8
SKILL_STOP_WORDS = {"the", "and", "or", "with", "a", "an", "are", "is", "in", "of",
                    "skills", "required", "like", "etc"}

_I = re.IGNORECASE

NAME_PATTERNS = [
    re.compile(r"(?:my name is|i am|this is|i'm|call me)\s+([a-z\s]{2,30})", _I),
    re.compile(r"(?:contact person|person is|contact is)\s+([a-z\s]{2,30})", _I),
]
NAME_TRAILER = re.compile(r"\b(and|from|at|phone|number|company)\b.*", _I)

PHONE_PATTERNS = [
    re.compile(r"(?:phone|number|mobile|contact).*?([+]?[0-9\s\-()]{8,15})", _I),
    re.compile(r"\b([0-9]{10})\b"),
    re.compile(r"(?<![\w+])([+][0-9\s\-()]{8,15})\b"),
]

EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")

COMPANY_PATTERNS = [
    re.compile(r"(?:company|from|work at|represent)\s+([a-z\s&.]{2,30})", _I),
    re.compile(r"(?:we are|i'm with)\s+([a-z\s&.]{2,30})", _I),
]
COMPANY_TRAILER = re.compile(r"\b(and|hiring|looking|need)\b.*", _I)

TITLE_PATTERNS = [
    re.compile(r"(?:job title|position|role|hiring for|looking for)\s+(?:is\s+)?([a-z\s]{3,30})", _I),
    re.compile(r"(?:need|want|seeking)\s+(?:a|an)?\s*([a-z\s]{3,30})\s+"
               r"(?:position|role|developer|engineer|manager|analyst)", _I),
]
TITLE_NOISE = re.compile(r"\b(position|role|job|person)\b", _I)

# Checked in order; first keyword present decides the job type
JOB_TYPE_KEYWORDS: List[Tuple[Tuple[str, ...], str]] = [
    (("internship", "intern"), "Internship"),
    (("full time", "full-time", "fulltime", "permanent"), "Full-Time"),
    (("contract",), "Contract"),
    (("freelance", "part time", "part-time"), "Freelance"),
]

LOCATION_PATTERNS = [
    re.compile(r"(?:location|based in|located in|office in|work from)\s+(?:is\s+)?([a-z\s,]{2,30})", _I),
    re.compile(r"(?:in|at)\s+(bangalore|bengaluru|mumbai|delhi|chennai|hyderabad|pune|kolkata|ahmedabad)", _I),
]
LOCATION_TRAILER = re.compile(r"\b(salary|stipend|pay|package|and|skills|job)\b.*", _I)

SALARY_PATTERNS = [
    re.compile(r"(?:salary|stipend|pay|package).*?([0-9,]+\s*(?:per month|monthly|per annum|"
               r"thousand|lakh|lpa|k|rupees|rs)\b)", _I),
    re.compile(r"([0-9,]+\s*(?:per month|monthly|per annum|thousand|lakh|lpa|rupees|rs)\b)", _I),
]

SKILLS_PATTERN = re.compile(
    r"(?:skills|technologies|tech stack|experience in|familiar with)\s+"
    r"(?:(?:are|is|required|needed|like|include)\s+)*"
    r"([a-z0-9\s,&.+#/-]+?)"
    r"(?=\s*,?\s*(?:job description|description|salary|stipend|location|$))",
    _I,
)
SKILL_SPLIT = re.compile(r"\s*(?:,|&|/|\band\b|\bor\b)\s*", _I)

DESCRIPTION_PATTERN = re.compile(r"(?:job description|description)\s+(?:is\s+)?(.+?)\s*$", _I | re.S)
INTRO_PATTERN = re.compile(r"my name is.*?(?=job description|description|$)", _I | re.S)


def empty_result() -> Dict:
    result = {field: "" for field in FIELDS}
    result["key_skills"] = []
    return result


def _first_match(patterns, text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def _extract_name(text: str) -> str:
    for pattern in NAME_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        name = NAME_TRAILER.sub("", match.group(1)).strip()
        if len(name) > 1 and len(name.split()) <= 4:
            return name.title()
    return ""


def _extract_phone(text: str) -> str:
    for pattern in PHONE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        phone = re.sub(r"[^\d+\-\s()]", "", match.group(1)).strip()
        if len(re.sub(r"\D", "", phone)) >= 8:
            return phone
    return ""


def _extract_company(text: str) -> str:
    for pattern in COMPANY_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        company = COMPANY_TRAILER.sub("", match.group(1)).strip(" .")
        if company:
            return company
    return ""


def _extract_title(text: str) -> str:
    for pattern in TITLE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        title = re.sub(r"\s+", " ", TITLE_NOISE.sub("", match.group(1))).strip()
        title = re.sub(r"^(?:a|an|the)\s+", "", title, flags=_I)
        if len(title) > 2:
            return title.title()
    return ""


def normalize_job_type(value: str) -> str:
    """Keyword map onto Internship / Full-Time / Contract / Freelance; '' if none."""
    lowered = (value or "").lower()
    for keywords, job_type in JOB_TYPE_KEYWORDS:
        if any(re.search(rf"\b{re.escape(keyword)}\b", lowered) for keyword in keywords):
            return job_type
    return ""


def _extract_location(text: str) -> str:
    for pattern in LOCATION_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        location = LOCATION_TRAILER.sub("", match.group(1))
        location = location.split(",")[0].strip()
        if location:
            return location.title()
    return ""


def split_skills(raw: str) -> List[str]:
    skills = []
    seen = set()
    for token in SKILL_SPLIT.split(raw or ""):
        words = token.strip(" .").split()
        # Leading filler like "are" / "the" is not part of the skill
        while words and words[0].lower() in SKILL_STOP_WORDS:
            words.pop(0)
        skill = " ".join(words)
        if len(skill) <= 1 or skill.lower() in SKILL_STOP_WORDS or skill.lower() in seen:
            continue
        seen.add(skill.lower())
        skills.append(skill)
    return skills[:MAX_SKILLS]


def _extract_description(text: str) -> str:
    match = DESCRIPTION_PATTERN.search(text)
    if match:
        return match.group(1).strip()
    return INTRO_PATTERN.sub("", text, count=1).strip()


def parse_transcript_fallback(transcript: str) -> Dict:
    """
    Regex/keyword extraction. Each field takes the first pattern that
    matches; nothing is overwritten afterwards.
    """
    result = empty_result()
    text = (transcript or "").strip()
    if not text:
        return result

    result["contact_name"] = _extract_name(text)
    result["contact_number"] = _extract_phone(text)
    email = EMAIL_PATTERN.search(text)
    result["contact_email"] = email.group(0).rstrip(".") if email else ""
    result["company_name"] = _extract_company(text)
    result["job_title"] = _extract_title(text)
    result["job_type"] = normalize_job_type(text)
    result["location"] = _extract_location(text)
    result["salary_stipend"] = (_first_match(SALARY_PATTERNS, text) or "").strip()
    skills = SKILLS_PATTERN.search(text)
    result["key_skills"] = split_skills(skills.group(1)) if skills else []
    result["job_description"] = _extract_description(text)
    return result


def validate_parsed_fields(data: Dict) -> Dict:
    """
    Validate and sanitize fields returned by the LLM.
    """
    validated = empty_result()
    for field in FIELDS:
        value = data.get(field)
        if field == "key_skills":
            if isinstance(value, list):
                validated[field] = [str(s).strip() for s in value if str(s).strip()][:MAX_SKILLS]
            elif isinstance(value, str) and value.strip():
                validated[field] = split_skills(value)
        elif value is not None:
            validated[field] = str(value).strip()
    validated["job_type"] = normalize_job_type(validated["job_type"]) or validated["job_type"]
    return validated


class VoiceParsingService:
    """
    Parses recruiter voice transcripts into job fields.
    """

    SYSTEM_PROMPT = """You are a professional job posting parser. Extract information from the voice transcript and return ONLY valid JSON.
Output format:
{
  "contact_name": "string",
  "contact_number": "string",
  "contact_email": "string (empty string if not mentioned)",
  "company_name": "string",
  "job_title": "string",
  "job_type": "Internship, Full-Time, Freelance or Contract",
  "location": "string",
  "salary_stipend": "string with currency and period, empty string if not mentioned",
  "key_skills": ["skill1", "skill2"],
  "job_description": "string"
}
Extract information exactly as spoken. If something is not mentioned, use an empty string or empty array.
Return ONLY the JSON, no explanation."""

    def __init__(self, ai_client: Optional[LLMClient] = None, transcript_store=None):
        self.ai_client = ai_client or get_llm_client()
        self.transcript_store = transcript_store

    def parse(self, transcript: str) -> Tuple[Dict, str]:
        """Returns (fields, source) where source is "ai", "fallback" or "empty"."""
        text = (transcript or "").strip()
        if not text:
            return empty_result(), "empty"

        data, source = None, "fallback"
        if self.ai_client.is_configured:
            try:
                response = self.ai_client._call_api(
                    self.SYSTEM_PROMPT, f'Voice Transcript: "{text}"', max_tokens=600, temperature=0.3
                )
                data = validate_parsed_fields(self.ai_client._extract_json_object(response))
                source = "ai"
            except LLMError as e:
                logger.warning("AI voice parsing failed, using pattern extraction: %s", e)

        if data is None:
            data = parse_transcript_fallback(text)

        if self.transcript_store is not None:
            self.transcript_store.insert(text, data, source)
        return data, source


def get_voice_parser() -> VoiceParsingService:
    from careermatch.services.mongo_service import get_voice_transcript_service
    return VoiceParsingService(transcript_store=get_voice_transcript_service())
