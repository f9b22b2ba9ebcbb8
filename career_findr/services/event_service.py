"""
Calendar Service - interviews and other scheduled events.

An event lists every participant in `participant_ids`, which is what the
live calendar feed filters on. Scheduling an event with an attendee also
notifies the attendee.
"""

import logging
from datetime import datetime, timezone
from typing import List
from urllib.parse import quote

from pymongo.errors import PyMongoError

from career_findr.db.mongodb import COLLECTIONS, get_document_store
from career_findr.schemas.schemas import CalendarEvent, EventCreate, UserAccount
from career_findr.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/render"


class CalendarService:

    def __init__(self, store=None):
        self.store = store if store is not None else get_document_store()
        self.collection = COLLECTIONS["events"]
        self.notifications = NotificationService(self.store)

    def schedule_event(self, organizer: UserAccount, form: EventCreate) -> CalendarEvent:
        doc = {
            "title": form.title,
            "description": form.description,
            "type": form.type,
            "location": form.location,
            "meeting_link": form.meeting_link,
            "start_time": form.start_time,
            "end_time": form.end_time,
            "participant_ids": [uid for uid in (organizer.id, form.attendee_id) if uid],
            "participant_names": [name for name in (organizer.email, form.attendee_name) if name],
            "job_id": form.job_id,
            "job_title": form.job_title,
            "created_by": organizer.id,
            "created_at": datetime.now(timezone.utc),
            "status": "scheduled",
        }
        doc["id"] = self.store.insert(self.collection, doc)
        event = CalendarEvent.model_validate(doc)

        if form.attendee_id:
            self._notify_attendee(form.attendee_id, event)
        return event

    def _notify_attendee(self, attendee_id: str, event: CalendarEvent) -> None:
        when = event.start_time.strftime("%B %d %Y, %I:%M %p")
        try:
            self.notifications.create(
                user_id=attendee_id,
                type="interview",
                title="Interview Scheduled",
                message=f"You have an interview scheduled for {when}",
                link="/messages",
            )
        except PyMongoError as exc:
            # the event itself is already stored
            logger.error("Error notifying attendee: %s", exc, extra={"user_id": attendee_id})

    def list_for_user(self, user_id: str) -> List[CalendarEvent]:
        docs = self.store.find(
            self.collection,
            {"participant_ids": user_id},
            order_by=(("start_time", 1),)
        )
        return [CalendarEvent.model_validate(doc) for doc in docs]


def google_calendar_url(event: CalendarEvent) -> str:
    """'Add to Google Calendar' link for an event."""
    def fmt(moment: datetime) -> str:
        return moment.strftime("%Y%m%dT%H%M%S")

    return (
        f"{GOOGLE_CALENDAR_URL}?action=TEMPLATE"
        f"&text={quote(event.title, safe='')}"
        f"&dates={fmt(event.start_time)}/{fmt(event.end_time)}"
        f"&details={quote(event.description, safe='')}"
        f"&location={quote(event.location, safe='')}"
    )
