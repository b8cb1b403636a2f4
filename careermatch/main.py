"""
CareerMatch - Main Application

FastAPI backend with:
- PostgreSQL for students, jobs, recommendations and job interests
- MongoDB for AI documents (voice transcripts, cached summaries)
- OpenAI-compatible LLM for scoring, recommendations and parsing,
  with deterministic fallbacks for all of them
- JWT authentication for the admin area
- Static frontend served from /frontend/public when present

Run: uvicorn careermatch.main:app --reload
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError

from careermatch import __version__
from careermatch.api.routes import api_router
from careermatch.core.auth import ensure_admin_user
from careermatch.core.config import get_settings
from careermatch.core.error_handlers import attach_error_handlers
from careermatch.core.logging import configure_logging
from careermatch.db.mongodb import init_mongo_indexes, test_mongo_connection
from careermatch.db.postgres import init_db, test_postgres_connection

settings = get_settings()
logger = logging.getLogger(__name__)

# Get the project root directory
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
FRONTEND_DIR = os.path.join(PROJECT_ROOT, "frontend", "public")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    ensure_admin_user()
    if settings.mongodb_enabled:
        try:
            init_mongo_indexes()
        except PyMongoError as e:
            logger.warning("MongoDB index initialization failed: %s", e)
    logger.info(
        "CareerMatch started (LLM %s, MongoDB %s, base URL %s)",
        "configured" if settings.llm_configured else "not configured, using fallbacks",
        "enabled" if settings.mongodb_enabled else "disabled",
        settings.app_base_url,
    )
    yield


# Create FastAPI app
app = FastAPI(
    title="CareerMatch",
    description="""
    Connects job-posting companies with students.

    ## Features
    - **Jobs**: Post jobs (typed or dictated), QR codes linking to each job
    - **Assessment**: Five-step student self assessment
    - **Recommendations**: 4-6 ranked career roles per student
    - **Matching**: Per-job fitment score, interest and applications
    - **Admin**: Job/student management, stats, printable QR codes
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

attach_error_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api")

# Serve static files (for any additional assets)
if os.path.exists(FRONTEND_DIR):
    app.mount("/static", StaticFiles(directory=FRONTEND_DIR), name="static")


def _frontend_index():
    index_path = os.path.join(FRONTEND_DIR, "index.html")
    return index_path if os.path.exists(index_path) else None


@app.get("/", tags=["Frontend"])
async def serve_frontend():
    """Serve the frontend."""
    index_path = _frontend_index()
    if index_path:
        return FileResponse(index_path)
    return {"status": "healthy", "app": "CareerMatch", "message": "Frontend not found. API is running."}


@app.get("/job/{job_id}", tags=["Frontend"])
async def serve_job_page(job_id: str):
    """Landing page of a scanned QR code. Without a frontend, the job JSON."""
    index_path = _frontend_index()
    if index_path:
        return FileResponse(index_path)
    return RedirectResponse(f"/api/jobs/{job_id}", status_code=302)


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected" if test_postgres_connection() else "disconnected",
        "mongodb": "connected" if test_mongo_connection() else (
            "disabled" if not settings.mongodb_enabled else "disconnected"
        ),
        "llm": "configured" if settings.llm_configured else "fallback",
        "environment": settings.environment,
        "base_url": settings.app_base_url,
    }
