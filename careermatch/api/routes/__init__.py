"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from careermatch.api.routes.auth_routes import router as auth_router
from careermatch.api.routes.assessment_routes import router as assessment_router
from careermatch.api.routes.student_routes import router as student_router
from careermatch.api.routes.job_routes import router as job_router
from careermatch.api.routes.matching_routes import router as matching_router
from careermatch.api.routes.admin_routes import router as admin_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(assessment_router)
api_router.include_router(student_router)
api_router.include_router(job_router)
api_router.include_router(matching_router)
api_router.include_router(admin_router)
