"""
Tests for notification_service.py - notifications and announcement fan-out.
"""

from datetime import datetime, timezone

import pytest
from pymongo.errors import AutoReconnect

from career_findr.schemas.schemas import Announcement
from career_findr.services.notification_service import NotificationFanout, NotificationService


def make_announcement(audience="all", **fields):
    data = {
        "id": "ann-1",
        "title": "Career fair",
        "message": "Friday in the main hall",
        "type": "info",
        "target_audience": audience,
        "is_active": True,
    }
    data.update(fields)
    return Announcement.model_validate(data)


class TestNotificationService:
    """Test per-user notification CRUD."""

    @pytest.fixture
    def service(self, store):
        return NotificationService(store)

    def test_create_defaults_to_unread(self, service):
        notification = service.create("u1", "general", "Hello", "World")
        assert notification.id
        assert notification.read is False
        assert notification.created_at is not None

    def test_list_newest_first(self, service, store):
        first = service.create("u1", "general", "First", "")
        second = service.create("u1", "general", "Second", "")
        service.create("u2", "general", "Other user", "")
        store.update("notifications", first.id, {"created_at": datetime(2024, 1, 1, tzinfo=timezone.utc)})
        store.update("notifications", second.id, {"created_at": datetime(2024, 1, 2, tzinfo=timezone.utc)})

        listed = service.list_for_user("u1")

        assert [n.id for n in listed] == [second.id, first.id]

    def test_list_is_capped(self, service):
        for i in range(55):
            service.create("u1", "general", f"n{i}", "")
        assert len(service.list_for_user("u1")) == 50

    def test_mark_as_read_by_recipient(self, service):
        notification = service.create("u1", "general", "Hi", "")
        assert service.mark_as_read(notification.id, "u1") is True
        assert service.unread_count("u1") == 0

    def test_mark_as_read_by_someone_else(self, service):
        notification = service.create("u1", "general", "Hi", "")
        assert service.mark_as_read(notification.id, "u2") is False
        assert service.unread_count("u1") == 1

    def test_mark_all_as_read(self, service):
        service.create("u1", "general", "a", "")
        service.create("u1", "general", "b", "")
        service.create("u2", "general", "c", "")

        assert service.mark_all_as_read("u1") == 2
        assert service.unread_count("u1") == 0
        assert service.unread_count("u2") == 1

    def test_summarize_counts_unread(self):
        feed = NotificationService.summarize([
            {"id": "1", "user_id": "u1", "read": True},
            {"id": "2", "user_id": "u1", "read": False},
        ])
        assert feed.unread_count == 1
        assert len(feed.notifications) == 2


class TestFanout:
    """Test announcement fan-out."""

    @pytest.fixture
    def population(self, make_user):
        return {
            "students": [make_user("student") for _ in range(3)],
            "companies": [make_user("company") for _ in range(2)],
            "institutes": [make_user("institute")],
        }

    def recipients(self, store):
        return sorted(doc["user_id"] for doc in store.find("notifications"))

    def test_all_reaches_every_account(self, store, population):
        created = NotificationFanout(store).fan_out(make_announcement("all"))
        assert created == 6
        assert store.count("notifications") == 6

    def test_role_audience(self, store, population):
        created = NotificationFanout(store).fan_out(make_announcement("student"))

        assert created == 3
        expected = sorted(user.id for user in population["students"])
        assert self.recipients(store) == expected

    def test_notification_fields(self, store, population):
        NotificationFanout(store).fan_out(make_announcement("company", type="warning"))

        for doc in store.find("notifications"):
            assert doc["type"] == "announcement"
            assert doc["title"] == "Career fair"
            assert doc["message"] == "Friday in the main hall"
            assert doc["announcement_id"] == "ann-1"
            assert doc["announcement_type"] == "warning"
            assert doc["read"] is False

    def test_role_with_no_accounts(self, store, make_user):
        make_user("student")
        assert NotificationFanout(store).fan_out(make_announcement("institute")) == 0

    def test_failed_writes_are_skipped(self, store, population):
        failing = population["students"][0].id

        def hook(collection, data):
            if collection == "notifications" and data["user_id"] == failing:
                raise AutoReconnect("connection reset")

        store.insert_hook = hook
        created = NotificationFanout(store).fan_out(make_announcement("student"))

        assert created == 2
        assert failing not in self.recipients(store)

    def test_failed_recipient_lookup(self, store, population, monkeypatch):
        def broken_find(*args, **kwargs):
            raise AutoReconnect("connection reset")

        monkeypatch.setattr(store, "find", broken_find)
        assert NotificationFanout(store).fan_out(make_announcement("all")) == 0
