"""
Calendar Routes

GET /events - Events I take part in
POST /events - Schedule an event (companies and institutes)
"""

from fastapi import APIRouter, Depends
from typing import List

from career_findr.core.auth import get_view_context, require_roles
from career_findr.core.impersonation import ViewContext
from career_findr.db.mongodb import get_document_store
from career_findr.schemas.schemas import CalendarEvent, EventCreate, EventResponse, UserAccount
from career_findr.services.event_service import CalendarService, google_calendar_url

router = APIRouter(prefix="/events", tags=["Calendar"])


def get_calendar_service(store=Depends(get_document_store)) -> CalendarService:
    return CalendarService(store)


@router.get("", response_model=List[CalendarEvent])
def list_events(
    ctx: ViewContext = Depends(get_view_context),
    service: CalendarService = Depends(get_calendar_service),
):
    return service.list_for_user(ctx.active_user.id)


@router.post("", response_model=EventResponse, status_code=201)
def schedule_event(
    data: EventCreate,
    organizer: UserAccount = Depends(require_roles("company", "institute", "admin")),
    service: CalendarService = Depends(get_calendar_service),
):
    """Schedule an interview; the attendee gets a notification."""
    event = service.schedule_event(organizer, data)
    return EventResponse(event=event, google_calendar_url=google_calendar_url(event))
