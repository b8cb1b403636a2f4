"""
Job Routes

POST /post-job - Create a job posting (no login; the poster leaves contact details)
POST /parse-voice-input - Turn a dictated posting into form fields
GET /jobs - List jobs, newest first
GET /jobs/{job_id} - Job details (row id or JOB_NNNN)
GET /jobs-by-career - Jobs in the category of a recommended career
GET /jobs/{job_id}/qr-image - QR code PNG for a job
GET /qr - Redirect a scanned QR code to the job page
"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse, Response

from careermatch.services.career_taxonomy import normalize_category
from careermatch.services.data_service import JobDataService, JobIdExhaustedError, get_job_data
from careermatch.services.qr_service import fetch_qr_image, job_link, qr_code_url
from careermatch.services.voice_parser import VoiceParsingService, get_voice_parser
from careermatch.schemas.schemas import (
    JobCreate, JobResponse, JobCreatedResponse, JobListResponse, CareerJobsResponse,
    VoiceInputRequest, VoiceInputResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Jobs"])


@router.post("/post-job", response_model=JobCreatedResponse, status_code=201)
async def post_job(job: JobCreate, jobs: JobDataService = Depends(get_job_data)):
    """
    Create a job posting. The job gets a JOB_NNNN id, a career category
    (from the title unless one is sent) and a QR code linking to its page.
    """
    data = job.model_dump()
    data["job_type"] = job.job_type.value
    try:
        created = jobs.create(data)
    except JobIdExhaustedError as e:
        logger.error("Job id allocation failed: %s", e)
        raise HTTPException(status_code=503, detail="Could not allocate a job ID, please try again")

    logger.info("Job %s posted by %s (%s)", created["job_id"], created["company_name"], created["category"])
    return JobCreatedResponse(job=created, job_link=job_link(created["job_id"]))


@router.post("/parse-voice-input", response_model=VoiceInputResponse)
async def parse_voice_input(
    request: VoiceInputRequest,
    parser: VoiceParsingService = Depends(get_voice_parser),
):
    """
    Extract job fields from a speech-to-text transcript. Every value is a
    suggestion for the form; an empty transcript gives empty fields.
    """
    transcript = request.transcript or ""
    fields, source = parser.parse(transcript)
    return VoiceInputResponse(data=fields, source=source, original_transcript=transcript)


@router.get("/jobs", response_model=JobListResponse)
async def list_jobs(
    category: Optional[str] = Query(None, description="Career category code or title"),
    job_type: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Search title, company, location or job ID"),
    limit: int = Query(100, ge=1, le=500),
    jobs: JobDataService = Depends(get_job_data),
):
    """List job postings with optional filters."""
    rows = jobs.list(
        category=normalize_category(category) if category else None,
        job_type=job_type,
        search=search,
        limit=limit,
    )
    return JobListResponse(jobs=rows, total=len(rows))


@router.get("/jobs-by-career", response_model=CareerJobsResponse)
async def jobs_by_career(
    career_type: Optional[str] = Query(None, alias="careerType"),
    jobs: JobDataService = Depends(get_job_data),
):
    """
    careerType is a category code ("software") or a recommended role title
    ("Software Developer"); both resolve to the same category filter.
    """
    if not career_type or not career_type.strip():
        raise HTTPException(status_code=400, detail="Career type is required")

    category = normalize_category(career_type)
    rows = jobs.list(category=category)
    logger.info("Found %d jobs for career type %r (%s)", len(rows), career_type, category)
    return CareerJobsResponse(career_type=career_type, category=category, jobs=rows, total=len(rows))


@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, jobs: JobDataService = Depends(get_job_data)):
    """Get job details by row id or JOB_NNNN."""
    job = jobs.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job not found for ID: {job_id}")
    return job


@router.get("/jobs/{job_id}/qr-image")
async def get_job_qr_image(job_id: str, jobs: JobDataService = Depends(get_job_data)):
    """
    Proxy the QR image for download. If the QR service cannot be reached
    the client is redirected to the image URL itself.
    """
    job = jobs.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job not found for ID: {job_id}")

    url = job.get("qr_code_url") or qr_code_url(job["job_id"])
    try:
        content, media_type = await fetch_qr_image(url)
    except httpx.HTTPError as e:
        logger.warning("QR image download failed for %s, redirecting: %s", job["job_id"], e)
        return RedirectResponse(url, status_code=302)

    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{job["job_id"]}-qr.png"'},
    )


@router.get("/qr")
async def qr_redirect(id: Optional[str] = Query(None)):
    """Target of printed QR codes: 302 to the job detail page."""
    if not id or not id.strip():
        raise HTTPException(status_code=400, detail="Job ID is required")
    return RedirectResponse(job_link(id.strip()), status_code=302)
