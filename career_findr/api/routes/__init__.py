"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from career_findr.api.routes.auth_routes import router as auth_router
from career_findr.api.routes.user_routes import router as user_router
from career_findr.api.routes.announcement_routes import router as announcement_router
from career_findr.api.routes.notification_routes import router as notification_router
from career_findr.api.routes.message_routes import router as message_router
from career_findr.api.routes.event_routes import router as event_router
from career_findr.api.routes.job_routes import router as job_router
from career_findr.api.routes.course_routes import router as course_router
from career_findr.api.routes.impersonation_routes import router as impersonation_router
from career_findr.api.routes.realtime_routes import router as realtime_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(announcement_router)
api_router.include_router(notification_router)
api_router.include_router(message_router)
api_router.include_router(event_router)
api_router.include_router(job_router)
api_router.include_router(course_router)
api_router.include_router(impersonation_router)
api_router.include_router(realtime_router)
