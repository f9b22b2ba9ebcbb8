"""
Announcement Routes

POST /announcements - Create announcement and notify its audience (admin)
GET /announcements - All announcements (admin)
GET /announcements/active - Active announcements for the viewer's role
PUT /announcements/{id} - Edit announcement (admin)
PUT /announcements/{id}/status - Activate/deactivate (admin)
DELETE /announcements/{id} - Delete announcement (admin)
"""

from fastapi import APIRouter, HTTPException, Depends
from typing import List

from career_findr.core.auth import get_view_context, require_roles
from career_findr.core.impersonation import ViewContext
from career_findr.db.mongodb import get_document_store
from career_findr.schemas.schemas import (
    Announcement, AnnouncementCreate, AnnouncementCreateResponse, AnnouncementStatusUpdate,
    AnnouncementUpdate, MessageResponse, UserAccount
)
from career_findr.services.announcement_service import AnnouncementService

router = APIRouter(prefix="/announcements", tags=["Announcements"])

admin_only = require_roles("admin")


def get_announcement_service(store=Depends(get_document_store)) -> AnnouncementService:
    return AnnouncementService(store)


@router.post("", response_model=AnnouncementCreateResponse, status_code=201)
def create_announcement(
    data: AnnouncementCreate,
    admin: UserAccount = Depends(admin_only),
    service: AnnouncementService = Depends(get_announcement_service),
):
    """
    Create an announcement.

    Active announcements notify every account in the target audience once,
    at creation. Notification failures do not fail the request.
    """
    announcement, created = service.create(data)
    return AnnouncementCreateResponse(announcement=announcement, notifications_created=created)


@router.get("", response_model=List[Announcement])
def list_announcements(
    admin: UserAccount = Depends(admin_only),
    service: AnnouncementService = Depends(get_announcement_service),
):
    return service.list_all()


@router.get("/active", response_model=List[Announcement])
def active_announcements(
    ctx: ViewContext = Depends(get_view_context),
    service: AnnouncementService = Depends(get_announcement_service),
):
    """Banners for whoever the portal is rendering as."""
    return service.list_active_for_role(ctx.active_user.role)


@router.put("/{announcement_id}", response_model=Announcement)
def update_announcement(
    announcement_id: str,
    data: AnnouncementUpdate,
    admin: UserAccount = Depends(admin_only),
    service: AnnouncementService = Depends(get_announcement_service),
):
    """Edits never re-send or retract notifications."""
    announcement = service.update(announcement_id, data)
    if not announcement:
        raise HTTPException(status_code=404, detail="Announcement not found")
    return announcement


@router.put("/{announcement_id}/status", response_model=MessageResponse)
def toggle_announcement(
    announcement_id: str,
    data: AnnouncementStatusUpdate,
    admin: UserAccount = Depends(admin_only),
    service: AnnouncementService = Depends(get_announcement_service),
):
    if not service.toggle_status(announcement_id, data.is_active):
        raise HTTPException(status_code=404, detail="Announcement not found")
    state = "activated" if data.is_active else "deactivated"
    return MessageResponse(message=f"Announcement {state}")


@router.delete("/{announcement_id}", response_model=MessageResponse)
def delete_announcement(
    announcement_id: str,
    admin: UserAccount = Depends(admin_only),
    service: AnnouncementService = Depends(get_announcement_service),
):
    if not service.delete(announcement_id):
        raise HTTPException(status_code=404, detail="Announcement not found")
    return MessageResponse(message="Announcement deleted")
