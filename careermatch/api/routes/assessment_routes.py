"""
Assessment Routes

POST /submit-assessment - Save a completed assessment and generate recommendations
POST /career-recommendations - Recommendations for a profile, nothing saved
POST /assessment/validate-step - Server-side check of one questionnaire step
POST /check-phone - Look up a returning student by phone
POST /validate-field - Live email/phone availability check (never fails the caller)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from careermatch.core.catalog import is_valid_email, is_valid_phone, PHONE_FORMAT_MESSAGE
from careermatch.services.assessment_flow import (
    basic_info_errors, core_values_errors, personality_errors, work_preferences_errors
)
from careermatch.services.data_service import (
    DuplicateStudentError, StudentDataService, RecommendationDataService,
    get_student_data, get_recommendation_data
)
from careermatch.services.recommendation_service import (
    CareerRecommendationService, get_recommendation_service
)
from careermatch.schemas.schemas import (
    StudentAssessment, StudentProfile, AssessmentResponse, RecommendationListResponse,
    StepValidationRequest, StepValidationResponse, AssessmentStepName,
    CheckPhoneRequest, CheckPhoneResponse, FieldValidationRequest, FieldValidationResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Assessment"])


@router.post("/submit-assessment", response_model=AssessmentResponse)
async def submit_assessment(
    assessment: StudentAssessment,
    students: StudentDataService = Depends(get_student_data),
    saved_recommendations: RecommendationDataService = Depends(get_recommendation_data),
    recommender: CareerRecommendationService = Depends(get_recommendation_service),
):
    """
    Save the student (a repeated email or phone updates the existing
    record) and persist a fresh batch of career recommendations.
    """
    data = assessment.model_dump()
    try:
        student, created = students.upsert_from_assessment(data)
    except DuplicateStudentError as e:
        raise HTTPException(status_code=400, detail=str(e))

    recommendations = recommender.recommend(student)
    saved_recommendations.save_batch(
        student["student_id"], recommendations, replace=assessment.replace_previous_recommendations
    )
    logger.info("Assessment %s for student %s, %d recommendations",
                "created" if created else "updated", student["student_id"], len(recommendations))

    return AssessmentResponse(created=created, student=student, recommendations=recommendations)


@router.post("/career-recommendations", response_model=RecommendationListResponse)
async def career_recommendations(
    profile: StudentProfile,
    recommender: CareerRecommendationService = Depends(get_recommendation_service),
):
    """Recommendations for an assessment profile without saving anything."""
    return RecommendationListResponse(recommendations=recommender.recommend(profile.model_dump()))


@router.post("/assessment/validate-step", response_model=StepValidationResponse)
async def validate_step(request: StepValidationRequest):
    """Run the same completeness check the questionnaire runs before moving forward."""
    if request.step == AssessmentStepName.basic_info:
        errors = basic_info_errors(request.model_dump())
    elif request.step == AssessmentStepName.core_values:
        errors = core_values_errors(request.core_values)
    elif request.step == AssessmentStepName.work_preferences:
        errors = work_preferences_errors(request.work_preferences, request.touched_preferences)
    else:
        errors = personality_errors(request.personality_scores)
    return StepValidationResponse(step=request.step, complete=not errors, errors=errors)


@router.post("/check-phone", response_model=CheckPhoneResponse)
async def check_phone(
    request: CheckPhoneRequest,
    students: StudentDataService = Depends(get_student_data),
    saved_recommendations: RecommendationDataService = Depends(get_recommendation_data),
):
    """
    Returning students identify themselves by phone. A student counts as
    assessed once at least one recommendation batch is stored.
    """
    student = students.get_by_phone(request.phone)
    if not student:
        return CheckPhoneResponse(exists=False)

    return CheckPhoneResponse(
        exists=True,
        student_id=student["student_id"],
        student_name=student["name"],
        has_completed_assessment=saved_recommendations.count_for_student(student["student_id"]) > 0,
        student_data=student,
    )


@router.post("/validate-field", response_model=FieldValidationResponse)
async def validate_field(
    request: FieldValidationRequest,
    students: StudentDataService = Depends(get_student_data),
):
    """
    Availability check used while typing. Always answers 200; if the
    lookup itself fails the value is reported as valid.
    """
    field, value = (request.field or "").strip().lower(), (request.value or "").strip()
    if not field or not value:
        return FieldValidationResponse(valid=False, message="Field and value are required",
                                       error="Field and value are required")
    if field not in ("email", "phone"):
        return FieldValidationResponse(
            valid=False, message="Only email and phone can be validated",
            error="Invalid field type. Only email and phone are supported."
        )
    if field == "email" and not is_valid_email(value):
        return FieldValidationResponse(valid=False, message="Please enter a valid email address",
                                       error="Invalid email format")
    if field == "phone" and not is_valid_phone(value):
        return FieldValidationResponse(valid=False, message=PHONE_FORMAT_MESSAGE,
                                       error="Invalid phone format")

    try:
        exists = students.email_exists(value) if field == "email" else students.phone_exists(value)
    except SQLAlchemyError as e:
        logger.warning("Field validation lookup failed, allowing %s: %s", field, e)
        return FieldValidationResponse(
            valid=True,
            message="Unable to verify availability. Please continue.",
            error="Validation service temporarily unavailable",
        )

    if exists:
        return FieldValidationResponse(
            valid=False,
            message=f"This {field} is already registered. Please use a different {field}.",
            error="Email already exists" if field == "email" else "Phone number already exists",
        )
    return FieldValidationResponse(valid=True, message=f"{field} is available")
