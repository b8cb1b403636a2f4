"""
Student Routes

GET /students/{student_id} - Re-read a student the client has in its session
GET /students/{student_id}/recommendations - Stored career recommendations
GET /students/{student_id}/interests - Jobs the student interacted with
POST /student-summary - Professional summary + profile stats
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from careermatch.services.data_service import (
    InterestDataService, RecommendationDataService, StudentDataService,
    get_interest_data, get_recommendation_data, get_student_data
)
from careermatch.services.summary_service import (
    StudentSummaryService, get_summary_service, profile_completion
)
from careermatch.schemas.schemas import (
    StudentResponse, StoredRecommendation, InterestResponse,
    StudentSummaryRequest, StudentSummaryResponse, StudentStats
)

router = APIRouter(tags=["Students"])


def _require_student(student_id: int, students: StudentDataService) -> dict:
    student = students.get_by_id(student_id)
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


@router.get("/students/{student_id}", response_model=StudentResponse)
async def get_student(student_id: int, students: StudentDataService = Depends(get_student_data)):
    """404 tells the client to drop its remembered student."""
    return _require_student(student_id, students)


@router.get("/students/{student_id}/recommendations", response_model=List[StoredRecommendation])
async def get_student_recommendations(
    student_id: int,
    students: StudentDataService = Depends(get_student_data),
    saved_recommendations: RecommendationDataService = Depends(get_recommendation_data),
):
    _require_student(student_id, students)
    return saved_recommendations.list_for_student(student_id)


@router.get("/students/{student_id}/interests", response_model=List[InterestResponse])
async def get_student_interests(
    student_id: int,
    students: StudentDataService = Depends(get_student_data),
    interests: InterestDataService = Depends(get_interest_data),
):
    _require_student(student_id, students)
    return interests.list_for_student(student_id)


@router.post("/student-summary", response_model=StudentSummaryResponse)
async def student_summary(
    request: StudentSummaryRequest,
    students: StudentDataService = Depends(get_student_data),
    saved_recommendations: RecommendationDataService = Depends(get_recommendation_data),
    interests: InterestDataService = Depends(get_interest_data),
    summaries: StudentSummaryService = Depends(get_summary_service),
):
    """
    Summary of the student's profile with counts for the profile card.
    AI-written when available, template otherwise.
    """
    student = _require_student(request.student_id, students)
    summary, source = summaries.summarize(student)
    stats = StudentStats(
        recommendations_count=saved_recommendations.count_for_student(request.student_id),
        job_interests_count=interests.count_for_student(request.student_id),
        profile_completion=profile_completion(student),
    )
    return StudentSummaryResponse(student=student, summary=summary, source=source, stats=stats)
