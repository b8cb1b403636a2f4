"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum

from careermatch.core.catalog import (
    REQUIRED_CORE_VALUES, WORK_PREFERENCE_KEYS, PERSONALITY_TRAITS, PHONE_FORMAT_MESSAGE,
    canonical_core_value, is_valid_phone, normalize_phone, normalize_personality
)


# ============================================================
# ENUMS
# ============================================================

class JobType(str, Enum):
    internship = "Internship"
    full_time = "Full-Time"
    freelance = "Freelance"
    contract = "Contract"


class AssessmentStepName(str, Enum):
    basic_info = "basic_info"
    core_values = "core_values"
    work_preferences = "work_preferences"
    personality = "personality"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: str

class UserResponse(BaseModel):
    user_id: int
    email: str
    role: str


# ============================================================
# STUDENT / ASSESSMENT SCHEMAS
# ============================================================

def _clean_core_values(values: List[str]) -> List[str]:
    cleaned = []
    for value in values:
        canonical = canonical_core_value(value)
        if canonical is None:
            raise ValueError(f"'{value}' is not a recognised core value")
        if canonical in cleaned:
            raise ValueError(f"'{canonical}' is selected more than once")
        cleaned.append(canonical)
    return cleaned


class StudentProfile(BaseModel):
    """
    Loose profile for scoring endpoints. Every field may be missing;
    heuristics treat missing values as neutral.
    """
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    education_degree: Optional[str] = None
    specialization: Optional[str] = None
    core_values: List[str] = []
    work_preferences: Dict[str, int] = {}
    personality_scores: Dict[str, int] = {}

    @field_validator("personality_scores", mode="before")
    @classmethod
    def name_personality_keys(cls, v):
        return normalize_personality(v) if isinstance(v, dict) else v


class StudentAssessment(BaseModel):
    """A completed assessment as submitted at the end of the questionnaire."""
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: str
    education_degree: str = Field(..., min_length=1, max_length=100)
    specialization: str = Field(..., min_length=1, max_length=200)
    core_values: List[str]
    work_preferences: Dict[str, int]
    personality_scores: Dict[str, int]
    replace_previous_recommendations: bool = False

    @field_validator("name", "education_degree", "specialization")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("This field is required")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def valid_phone(cls, v: str) -> str:
        if not is_valid_phone(v):
            raise ValueError(PHONE_FORMAT_MESSAGE)
        return normalize_phone(v)

    @field_validator("core_values")
    @classmethod
    def five_core_values(cls, v: List[str]) -> List[str]:
        cleaned = _clean_core_values(v)
        if len(cleaned) != REQUIRED_CORE_VALUES:
            raise ValueError(f"Select exactly {REQUIRED_CORE_VALUES} core values (got {len(cleaned)})")
        return cleaned

    @field_validator("work_preferences")
    @classmethod
    def all_sliders(cls, v: Dict[str, int]) -> Dict[str, int]:
        missing = [k for k in WORK_PREFERENCE_KEYS if k not in v]
        if missing:
            raise ValueError(f"Answer every work preference (missing: {', '.join(missing)})")
        for key in WORK_PREFERENCE_KEYS:
            if not 0 <= v[key] <= 100:
                raise ValueError(f"{key} must be between 0 and 100")
        return {k: v[k] for k in WORK_PREFERENCE_KEYS}

    @field_validator("personality_scores", mode="before")
    @classmethod
    def name_personality_keys(cls, v):
        return normalize_personality(v) if isinstance(v, dict) else v

    @field_validator("personality_scores")
    @classmethod
    def all_questions(cls, v: Dict[str, int]) -> Dict[str, int]:
        missing = [k for k in PERSONALITY_TRAITS if k not in v]
        if missing:
            raise ValueError(f"Answer every personality question (missing: {', '.join(missing)})")
        for key in PERSONALITY_TRAITS:
            if not 1 <= v[key] <= 5:
                raise ValueError(f"{key} must be between 1 and 5")
        return {k: v[k] for k in PERSONALITY_TRAITS}


class StudentResponse(BaseModel):
    student_id: int
    name: str
    email: str
    phone: str
    education_degree: str
    specialization: str
    core_values: List[str]
    work_preferences: Dict[str, int]
    personality_scores: Dict[str, int]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StepValidationRequest(BaseModel):
    step: AssessmentStepName
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    education_degree: Optional[str] = None
    specialization: Optional[str] = None
    core_values: List[str] = []
    work_preferences: Dict[str, int] = {}
    touched_preferences: List[str] = []
    personality_scores: Dict[str, int] = {}

    @field_validator("personality_scores", mode="before")
    @classmethod
    def name_personality_keys(cls, v):
        return normalize_personality(v) if isinstance(v, dict) else v


class StepValidationResponse(BaseModel):
    step: AssessmentStepName
    complete: bool
    errors: List[str]


class CheckPhoneRequest(BaseModel):
    phone: str

    @field_validator("phone")
    @classmethod
    def ten_digits(cls, v: str) -> str:
        cleaned = normalize_phone(v)
        if not (len(cleaned) == 10 and cleaned.isdigit()):
            raise ValueError("Invalid phone number. Must be 10 digits.")
        return cleaned


class CheckPhoneResponse(BaseModel):
    exists: bool
    student_id: Optional[int] = None
    student_name: Optional[str] = None
    has_completed_assessment: bool = False
    student_data: Optional[StudentResponse] = None


class FieldValidationRequest(BaseModel):
    field: Optional[str] = ""
    value: Optional[str] = ""


class FieldValidationResponse(BaseModel):
    valid: bool
    message: str
    error: Optional[str] = None


class StudentSummaryRequest(BaseModel):
    student_id: int


class StudentStats(BaseModel):
    recommendations_count: int
    job_interests_count: int
    profile_completion: int


class StudentSummaryResponse(BaseModel):
    student: StudentResponse
    summary: str
    source: str
    stats: StudentStats


# ============================================================
# RECOMMENDATION SCHEMAS
# ============================================================

class Recommendation(BaseModel):
    role: str
    category: str
    match: int = Field(..., ge=0, le=100)
    explanation: str
    openings: int


class StoredRecommendation(BaseModel):
    recommendation_id: int
    student_id: int
    role: str
    category: str
    match_score: int
    explanation: str
    job_openings: int
    created_at: Optional[datetime] = None


class RecommendationListResponse(BaseModel):
    success: bool = True
    recommendations: List[Recommendation]


class AssessmentResponse(BaseModel):
    success: bool = True
    created: bool
    student: StudentResponse
    recommendations: List[Recommendation]


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobCreate(BaseModel):
    contact_name: str = Field(..., min_length=1, max_length=200)
    contact_number: str = Field(..., min_length=1, max_length=30)
    contact_email: Optional[EmailStr] = None
    company_name: str = Field(..., min_length=1, max_length=200)
    job_title: str = Field(..., min_length=1, max_length=200)
    job_type: JobType
    job_description: str = Field(..., min_length=1)
    location: Optional[str] = None
    salary_stipend: Optional[str] = None
    key_skills: List[str] = []
    category: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def required_fields_present(cls, data: Any) -> Any:
        if isinstance(data, dict):
            required = ["contact_name", "contact_number", "company_name", "job_title",
                        "job_type", "job_description"]
            missing = [f for f in required if not str(data.get(f) or "").strip()]
            if missing:
                raise ValueError(f"Missing required fields: {', '.join(missing)}")
            if data.get("contact_email") == "":
                data = {**data, "contact_email": None}
        return data

    @field_validator("key_skills", mode="before")
    @classmethod
    def split_skill_string(cls, v):
        # The form sends a comma-separated string
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v


class JobResponse(BaseModel):
    id: int
    job_id: str
    contact_name: str
    contact_number: str
    contact_email: Optional[str] = None
    company_name: str
    job_title: str
    job_type: str
    job_description: str
    location: str
    salary_stipend: Optional[str] = None
    key_skills: List[str]
    category: str
    qr_code_url: Optional[str] = None
    created_at: Optional[datetime] = None


class JobCreatedResponse(BaseModel):
    success: bool = True
    job: JobResponse
    job_link: str


class JobListResponse(BaseModel):
    jobs: List[JobResponse]
    total: int


class CareerJobsResponse(BaseModel):
    career_type: str
    category: str
    jobs: List[JobResponse]
    total: int


class VoiceInputRequest(BaseModel):
    transcript: Optional[str] = ""


class ParsedJobFields(BaseModel):
    contact_name: str = ""
    contact_number: str = ""
    contact_email: str = ""
    company_name: str = ""
    job_title: str = ""
    job_type: str = ""
    location: str = ""
    salary_stipend: str = ""
    key_skills: List[str] = []
    job_description: str = ""


class VoiceInputResponse(BaseModel):
    success: bool = True
    data: ParsedJobFields
    source: str
    original_transcript: str


# ============================================================
# MATCHING SCHEMAS
# ============================================================

class FitmentRequest(BaseModel):
    student_id: int
    job_id: str

    @field_validator("job_id", mode="before")
    @classmethod
    def stringify(cls, v):
        return str(v)


class FitmentResponse(BaseModel):
    score: int
    reasoning: str
    source: str


class InterestRequest(BaseModel):
    student_id: int
    job_id: str
    is_interested: bool = True
    fitment_score: Optional[int] = Field(None, ge=0, le=100)

    @field_validator("job_id", mode="before")
    @classmethod
    def stringify(cls, v):
        return str(v)


class ApplyRequest(BaseModel):
    student_id: int
    job_id: str
    fitment_score: Optional[int] = Field(None, ge=0, le=100)

    @field_validator("job_id", mode="before")
    @classmethod
    def stringify(cls, v):
        return str(v)


class InterestResponse(BaseModel):
    interest_id: int
    student_id: int
    job_id: int
    fitment_score: Optional[int] = None
    is_interested: bool
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    job_token: Optional[str] = None
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    student_phone: Optional[str] = None


class InterestResult(BaseModel):
    success: bool = True
    data: InterestResponse


# ============================================================
# ADMIN SCHEMAS
# ============================================================

class StatsResponse(BaseModel):
    total_jobs: int
    total_students: int
    total_interests: int
    total_applications: int
    jobs_by_type: Dict[str, int]
    jobs_by_category: Dict[str, int]


class StudentListResponse(BaseModel):
    students: List[StudentResponse]
    total: int


class DashboardResponse(BaseModel):
    jobs: List[JobResponse]
    students: List[StudentResponse]
    stats: StatsResponse


class AdminStudentLookup(BaseModel):
    student: StudentResponse
    summary: str
    recommendations: List[StoredRecommendation]
    interests: List[InterestResponse]


class VoiceTranscriptRecord(BaseModel):
    id: str = Field(..., alias="_id")
    transcript: str
    parsed_data: Dict[str, Any] = {}
    source: str
    created_at: Optional[datetime] = None


class VoiceTranscriptListResponse(BaseModel):
    transcripts: List[VoiceTranscriptRecord]
    total: int


class QRFixResult(BaseModel):
    job_id: str
    old_url: Optional[str] = None
    new_url: str


class QRFixResponse(BaseModel):
    fixed: int
    jobs: List[QRFixResult]


# ============================================================
# GENERIC RESPONSES
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
