"""
Tests for event_service.py - interview scheduling.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError
from pymongo.errors import NetworkTimeout

from career_findr.schemas.schemas import EventCreate
from career_findr.services.event_service import CalendarService, google_calendar_url


START = datetime(2025, 3, 14, 10, 0, tzinfo=timezone.utc)
END = datetime(2025, 3, 14, 11, 0, tzinfo=timezone.utc)


@pytest.fixture
def service(store):
    return CalendarService(store)


def interview(attendee=None, **fields):
    data = {
        "title": "Technical interview",
        "description": "Round 1",
        "location": "Room 4",
        "start_time": START,
        "end_time": END,
    }
    if attendee is not None:
        data["attendee_id"] = attendee.id
        data["attendee_name"] = attendee.name
    data.update(fields)
    return EventCreate(**data)


class TestScheduleEvent:

    def test_event_lists_both_participants(self, service, company, student):
        event = service.schedule_event(company, interview(student))

        assert event.participant_ids == [company.id, student.id]
        assert event.created_by == company.id
        assert event.status == "scheduled"

    def test_attendee_is_notified(self, service, store, company, student):
        service.schedule_event(company, interview(student))

        notifications = store.find("notifications", {"user_id": student.id})
        assert len(notifications) == 1
        assert notifications[0]["type"] == "interview"
        assert notifications[0]["title"] == "Interview Scheduled"
        assert notifications[0]["link"] == "/messages"

    def test_no_attendee_no_notification(self, service, store, company):
        event = service.schedule_event(company, interview())

        assert event.participant_ids == [company.id]
        assert store.count("notifications") == 0

    def test_failed_notification_keeps_event(self, service, store, company, student):
        def hook(collection, data):
            if collection == "notifications":
                raise NetworkTimeout("timed out")

        store.insert_hook = hook
        event = service.schedule_event(company, interview(student))

        assert event.id
        assert store.count("events") == 1

    def test_list_for_user(self, service, company, student, make_user):
        other = make_user("student")
        service.schedule_event(company, interview(student))
        service.schedule_event(company, interview(other))

        assert len(service.list_for_user(student.id)) == 1
        assert len(service.list_for_user(company.id)) == 2

    def test_end_must_follow_start(self):
        with pytest.raises(ValidationError):
            EventCreate(title="Backwards", start_time=END, end_time=START)


class TestGoogleCalendarUrl:

    def test_url(self, service, company):
        event = service.schedule_event(company, interview())

        url = google_calendar_url(event)

        assert url.startswith("https://calendar.google.com/calendar/render?action=TEMPLATE")
        assert "text=Technical%20interview" in url
        assert "dates=20250314T100000/20250314T110000" in url
        assert "location=Room%204" in url

    def test_slashes_are_encoded(self, service, company):
        event = service.schedule_event(company, interview(
            title="Frontend/Backend interview", location="Building A/2", description="CV & portfolio"
        ))

        url = google_calendar_url(event)

        assert "text=Frontend%2FBackend%20interview" in url
        assert "location=Building%20A%2F2" in url
        assert "details=CV%20%26%20portfolio" in url
