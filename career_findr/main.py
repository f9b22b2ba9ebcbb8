"""
Career Findr - Main Application

FastAPI backend with:
- MongoDB for every document (users, jobs, announcements, chats, events)
- Change-stream backed live feeds over WebSockets
- JWT authentication and admin "view as" impersonation

Run: uvicorn career_findr.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from career_findr.api.routes import api_router
from career_findr.core.config import get_settings
from career_findr.core.logging_config import setup_logging
from career_findr.db.mongodb import init_mongo_indexes, test_mongo_connection
from career_findr.services.realtime import get_subscription_manager

settings = get_settings()

setup_logging()
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Career Findr",
    description="""
    A multi-role career portal for students, institutes, companies and admins.

    ## Features
    - **Authentication**: JWT sign-in, password reset, role-gated dashboards
    - **Jobs**: Postings, applications, applicants ranked by match score
    - **Announcements**: Admin broadcasts fanned out as notifications
    - **Messaging**: One chat per pair of users
    - **Calendar**: Interview scheduling with Google Calendar export
    - **Live feeds**: Notifications, chats, messages and events over WebSockets
    - **Impersonation**: Admins can view the portal as another user
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    debug=settings.debug,
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    """Document store failures surface as 503; nothing retries."""
    logger.error("Document store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "The service is temporarily unavailable. Please try again."},
    )


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes on startup."""
    try:
        init_mongo_indexes()
    except PyMongoError as e:
        logger.error("MongoDB index initialization failed: %s", e)


@app.on_event("shutdown")
async def shutdown_event():
    closed = get_subscription_manager().unsubscribe_all()
    logger.info("Closed %d live subscriptions", closed)


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "Career Findr", "version": "1.0.0"}


@app.get("/health", tags=["Health"])
def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "mongodb": "connected" if test_mongo_connection() else "disconnected"
    }
