"""
Matching Routes

POST /calculate-fitment - Score a student against a job
POST /express-interest - Record (or withdraw) interest in a job
POST /apply - Apply for a job (once per student and job)

The student and job are always re-read from the database; ids the client
remembers from an earlier session may no longer exist.
"""

import logging
from typing import Tuple

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from careermatch.services.data_service import (
    AlreadyAppliedError, InterestDataService, JobDataService, RecommendationDataService,
    StudentDataService, get_interest_data, get_job_data, get_recommendation_data, get_student_data
)
from careermatch.services.fitment_service import FitmentService, get_fitment_service
from careermatch.schemas.schemas import (
    FitmentRequest, FitmentResponse, InterestRequest, ApplyRequest, InterestResult
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Matching"])


def _load_pair(student_id: int, job_id: str, students: StudentDataService,
               jobs: JobDataService) -> Tuple[dict, dict]:
    student = students.get_by_id(student_id)
    if not student:
        raise HTTPException(status_code=404, detail=f"Student not found for ID: {student_id}")
    job = jobs.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job not found for ID: {job_id}")
    return student, job


@router.post("/calculate-fitment", response_model=FitmentResponse)
async def calculate_fitment(
    request: FitmentRequest,
    students: StudentDataService = Depends(get_student_data),
    jobs: JobDataService = Depends(get_job_data),
    saved_recommendations: RecommendationDataService = Depends(get_recommendation_data),
    interests: InterestDataService = Depends(get_interest_data),
    fitment: FitmentService = Depends(get_fitment_service),
):
    """
    Fitment score (0-100) with a short reasoning. The score is also stored
    on the student/job pair so the job's interest list can be ranked;
    a failed write is logged and the score is still returned.
    """
    student, job = _load_pair(request.student_id, request.job_id, students, jobs)
    recommendations = saved_recommendations.list_for_student(student["student_id"])

    result = fitment.score(student, job, recommendations)
    try:
        interests.record_fitment(student["student_id"], job["id"], result["score"])
    except SQLAlchemyError as e:
        logger.warning("Could not store fitment score for student %s, job %s: %s",
                       student["student_id"], job["job_id"], e)
    return FitmentResponse(**result)


@router.post("/express-interest", response_model=InterestResult)
async def express_interest(
    request: InterestRequest,
    students: StudentDataService = Depends(get_student_data),
    jobs: JobDataService = Depends(get_job_data),
    interests: InterestDataService = Depends(get_interest_data),
):
    """Idempotent: repeating the call updates the same record."""
    student, job = _load_pair(request.student_id, request.job_id, students, jobs)
    interest = interests.upsert_interest(
        student["student_id"], job["id"], request.is_interested, request.fitment_score
    )
    return InterestResult(data=interest)


@router.post("/apply", response_model=InterestResult, status_code=201)
async def apply(
    request: ApplyRequest,
    students: StudentDataService = Depends(get_student_data),
    jobs: JobDataService = Depends(get_job_data),
    interests: InterestDataService = Depends(get_interest_data),
):
    student, job = _load_pair(request.student_id, request.job_id, students, jobs)
    try:
        interest = interests.apply(student["student_id"], job["id"], request.fitment_score)
    except AlreadyAppliedError:
        raise HTTPException(
            status_code=409,
            detail="You have already applied for this job. Your application is already on record."
        )
    logger.info("Student %s applied for %s", student["student_id"], job["job_id"])
    return InterestResult(data=interest)
