"""
Admin Routes (operator only, JWT with role admin)

GET /admin/dashboard - Jobs, students and stats in one call
GET /admin/jobs - List/search jobs
GET /admin/students - List/search students
GET /admin/stats - Totals and per-type counts
DELETE /admin/jobs/{job_id} - Delete a job and its interest records
DELETE /admin/students/{student_id} - Delete a student and everything attached
GET /admin/students/by-phone/{phone} - Student profile, summary and activity
GET /admin/jobs/{job_id}/interests - Students interested in a job, best fit first
GET /admin/jobs/{job_id}/qr-print - Printable QR page
POST /admin/fix-qr-codes - Rewrite QR codes that point at localhost
GET /admin/voice-transcripts - Recent dictated postings and what was parsed from them
"""

import asyncio
import logging
from html import escape
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse

from careermatch.core.auth import get_current_admin
from careermatch.services.career_taxonomy import normalize_category
from careermatch.services.data_service import (
    InterestDataService, JobDataService, RecommendationDataService, StudentDataService,
    get_interest_data, get_job_data, get_recommendation_data, get_student_data
)
from careermatch.services.mongo_service import VoiceTranscriptService, get_voice_transcript_service
from careermatch.services.qr_service import job_link, qr_code_url
from careermatch.services.summary_service import StudentSummaryService, get_summary_service
from careermatch.schemas.schemas import (
    DashboardResponse, JobListResponse, StudentListResponse, StatsResponse, AdminStudentLookup,
    InterestResponse, QRFixResponse, MessageResponse, VoiceTranscriptListResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(get_current_admin)])


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    jobs: JobDataService = Depends(get_job_data),
    students: StudentDataService = Depends(get_student_data),
):
    """Everything the admin page shows on load, fetched concurrently."""
    job_rows, student_rows, stats = await asyncio.gather(
        run_in_threadpool(jobs.list),
        run_in_threadpool(students.list),
        run_in_threadpool(jobs.stats),
    )
    return DashboardResponse(jobs=job_rows, students=student_rows, stats=stats)


@router.get("/jobs", response_model=JobListResponse)
async def admin_list_jobs(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    job_type: Optional[str] = Query(None),
    limit: int = Query(200, ge=1, le=1000),
    jobs: JobDataService = Depends(get_job_data),
):
    rows = jobs.list(
        category=normalize_category(category) if category else None,
        job_type=job_type, search=search, limit=limit,
    )
    return JobListResponse(jobs=rows, total=len(rows))


@router.get("/students", response_model=StudentListResponse)
async def admin_list_students(
    search: Optional[str] = Query(None, description="Name, email, phone or specialization"),
    limit: int = Query(200, ge=1, le=1000),
    students: StudentDataService = Depends(get_student_data),
):
    rows = students.list(search=search, limit=limit)
    return StudentListResponse(students=rows, total=len(rows))


@router.get("/stats", response_model=StatsResponse)
async def admin_stats(jobs: JobDataService = Depends(get_job_data)):
    return jobs.stats()


@router.delete("/jobs/{job_id}", response_model=MessageResponse)
async def admin_delete_job(job_id: str, jobs: JobDataService = Depends(get_job_data)):
    if not jobs.delete(job_id):
        raise HTTPException(status_code=404, detail=f"Job not found for ID: {job_id}")
    logger.info("Admin deleted job %s", job_id)
    return MessageResponse(message=f"Job {job_id} deleted")


@router.delete("/students/{student_id}", response_model=MessageResponse)
async def admin_delete_student(
    student_id: int,
    students: StudentDataService = Depends(get_student_data),
    summaries: StudentSummaryService = Depends(get_summary_service),
):
    if not students.delete(student_id):
        raise HTTPException(status_code=404, detail="Student not found")
    if summaries.cache is not None:
        summaries.cache.delete_for_student(student_id)
    logger.info("Admin deleted student %s", student_id)
    return MessageResponse(message=f"Student {student_id} deleted")


@router.get("/students/by-phone/{phone}", response_model=AdminStudentLookup)
async def admin_student_by_phone(
    phone: str,
    students: StudentDataService = Depends(get_student_data),
    saved_recommendations: RecommendationDataService = Depends(get_recommendation_data),
    interests: InterestDataService = Depends(get_interest_data),
    summaries: StudentSummaryService = Depends(get_summary_service),
):
    student = students.get_by_phone(phone)
    if not student:
        raise HTTPException(status_code=404, detail=f"No student registered with phone {phone}")
    summary, _ = summaries.summarize(student)
    return AdminStudentLookup(
        student=student,
        summary=summary,
        recommendations=saved_recommendations.list_for_student(student["student_id"]),
        interests=interests.list_for_student(student["student_id"]),
    )


@router.get("/jobs/{job_id}/interests", response_model=List[InterestResponse])
async def admin_job_interests(
    job_id: str,
    jobs: JobDataService = Depends(get_job_data),
    interests: InterestDataService = Depends(get_interest_data),
):
    job = jobs.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job not found for ID: {job_id}")
    return interests.list_for_job(job["id"])


QR_PRINT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>QR Code - {title}</title>
  <style>
    body {{ font-family: Arial, sans-serif; text-align: center; padding: 40px; }}
    .qr {{ width: 300px; height: 300px; margin: 24px auto; }}
    .job-id {{ font-family: monospace; font-size: 18px; }}
    @media print {{ .no-print {{ display: none; }} }}
  </style>
</head>
<body>
  <h1>{title}</h1>
  <h2>{company}</h2>
  <p>{job_type} &middot; {location}</p>
  <img class="qr" src="{qr_url}" alt="QR code for {job_id}">
  <p class="job-id">Job ID: {job_id}</p>
  <p>Scan to view and apply: {link}</p>
  <button class="no-print" onclick="window.print()">Print</button>
</body>
</html>
"""


@router.get("/jobs/{job_id}/qr-print", response_class=HTMLResponse)
async def admin_qr_print(job_id: str, jobs: JobDataService = Depends(get_job_data)):
    """Stand-alone page with the job's QR code, ready to print."""
    job = jobs.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job not found for ID: {job_id}")
    html = QR_PRINT_TEMPLATE.format(
        title=escape(job["job_title"]),
        company=escape(job["company_name"]),
        job_type=escape(job["job_type"]),
        location=escape(job["location"]),
        qr_url=escape(job.get("qr_code_url") or qr_code_url(job["job_id"])),
        job_id=escape(job["job_id"]),
        link=escape(job_link(job["job_id"])),
    )
    return HTMLResponse(content=html)


@router.post("/fix-qr-codes", response_model=QRFixResponse)
async def admin_fix_qr_codes(jobs: JobDataService = Depends(get_job_data)):
    """Regenerate QR codes created while running locally."""
    fixed = jobs.fix_stale_qr_codes()
    logger.info("Rewrote %d stale QR codes", len(fixed))
    return QRFixResponse(fixed=len(fixed), jobs=fixed)


@router.get("/voice-transcripts", response_model=VoiceTranscriptListResponse)
async def admin_voice_transcripts(
    limit: int = Query(20, ge=1, le=200),
    transcripts: Optional[VoiceTranscriptService] = Depends(get_voice_transcript_service),
):
    """Stored transcripts for reviewing the parser. Empty when MongoDB is off."""
    rows = transcripts.get_recent(limit=limit) if transcripts is not None else []
    return VoiceTranscriptListResponse(transcripts=rows, total=len(rows))
