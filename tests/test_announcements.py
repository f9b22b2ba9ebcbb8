"""
Tests for announcement_service.py - announcements and when they fan out.
"""

import pytest
from pymongo.errors import NetworkTimeout

from career_findr.schemas.schemas import AnnouncementCreate, AnnouncementUpdate
from career_findr.services.announcement_service import AnnouncementService


@pytest.fixture
def service(store):
    return AnnouncementService(store)


@pytest.fixture
def audience(make_user):
    return [make_user("student"), make_user("student"), make_user("company")]


class TestCreate:

    def test_active_announcement_fans_out(self, service, store, audience):
        announcement, created = service.create(
            AnnouncementCreate(title="Placement drive", message="Register now", target_audience="student")
        )

        assert created == 2
        assert announcement.id
        assert all(doc["announcement_id"] == announcement.id for doc in store.find("notifications"))

    def test_inactive_announcement_does_not_fan_out(self, service, store, audience):
        _, created = service.create(
            AnnouncementCreate(title="Draft notice", message="Not yet", is_active=False)
        )
        assert created == 0
        assert store.count("notifications") == 0

    def test_create_survives_fanout_failure(self, service, store, audience):
        def failing_hook(collection, data):
            if collection == "notifications":
                raise NetworkTimeout("timed out")

        store.insert_hook = failing_hook
        announcement, created = service.create(
            AnnouncementCreate(title="Placement drive", message="Register now")
        )

        assert created == 0
        assert service.get(announcement.id) is not None


class TestEdits:
    """Edits and toggles never touch notifications already sent."""

    @pytest.fixture
    def announcement(self, service, audience):
        announcement, _ = service.create(
            AnnouncementCreate(title="Placement drive", message="Register now", target_audience="student")
        )
        return announcement

    def test_audience_change_does_not_refan(self, service, store, announcement):
        updated = service.update(announcement.id, AnnouncementUpdate(target_audience="all"))

        assert updated.target_audience == "all"
        assert store.count("notifications") == 2

    def test_edit_does_not_rewrite_notifications(self, service, store, announcement):
        service.update(announcement.id, AnnouncementUpdate(title="Placement drive (moved)"))
        assert {doc["title"] for doc in store.find("notifications")} == {"Placement drive"}

    def test_reactivation_does_not_refan(self, service, store, announcement):
        service.toggle_status(announcement.id, False)
        service.toggle_status(announcement.id, True)
        assert store.count("notifications") == 2

    def test_delete_keeps_notifications(self, service, store, announcement):
        assert service.delete(announcement.id) is True
        assert service.get(announcement.id) is None
        assert store.count("notifications") == 2

    def test_update_missing(self, service):
        assert service.update("missing", AnnouncementUpdate(title="Nothing here")) is None


class TestListing:

    def test_active_for_role(self, service):
        service.create(AnnouncementCreate(title="For all", message="m"))
        service.create(AnnouncementCreate(title="For students", message="m", target_audience="student"))
        service.create(AnnouncementCreate(title="For companies", message="m", target_audience="company"))
        service.create(AnnouncementCreate(title="Inactive", message="m", is_active=False))

        titles = {a.title for a in service.list_active_for_role("student")}

        assert titles == {"For all", "For students"}

    def test_list_all_includes_inactive(self, service):
        service.create(AnnouncementCreate(title="Active", message="m"))
        service.create(AnnouncementCreate(title="Inactive", message="m", is_active=False))
        assert len(service.list_all()) == 2
