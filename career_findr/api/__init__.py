"""
API module - FastAPI routers and endpoint definitions.

Contains:
- Main API router that combines all sub-routers
- Route handlers for each area (auth, users, announcements, chats, jobs, ...)
- WebSocket live feeds

Usage:
    from career_findr.api.routes import api_router
    app.include_router(api_router, prefix="/api")
"""
