"""
Notification Service - per-user notifications and announcement fan-out.

Notifications are created by several flows (announcements, interview
scheduling, application status changes). Each one belongs to a single
recipient, and only that recipient may flip its `read` flag.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from pymongo.errors import PyMongoError

from career_findr.core.config import get_settings
from career_findr.db.mongodb import COLLECTIONS, get_document_store
from career_findr.schemas.schemas import (
    Announcement,
    AnnouncementType,
    Notification,
    NotificationFeed,
    TargetAudience,
)

logger = logging.getLogger(__name__)

settings = get_settings()


class NotificationService:
    """CRUD for the notifications collection."""

    def __init__(self, store=None):
        self.store = store if store is not None else get_document_store()
        self.collection = COLLECTIONS["notifications"]

    def create(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        link: Optional[str] = None,
        **extra
    ) -> Notification:
        doc = {
            "user_id": user_id,
            "type": type,
            "title": title,
            "message": message,
            "link": link,
            "read": False,
            "created_at": datetime.now(timezone.utc),
            **extra
        }
        doc["id"] = self.store.insert(self.collection, doc)
        return Notification.model_validate(doc)

    def list_for_user(self, user_id: str, limit: Optional[int] = None) -> List[Notification]:
        """Newest first, capped like the live feed."""
        docs = self.store.find(
            self.collection,
            {"user_id": user_id},
            order_by=(("created_at", -1),),
            limit=limit or settings.notification_feed_limit
        )
        return [Notification.model_validate(doc) for doc in docs]

    def mark_as_read(self, notification_id: str, user_id: str) -> bool:
        """Mark one notification read. False if missing or owned by someone else."""
        doc = self.store.get(self.collection, notification_id)
        if not doc or doc.get("user_id") != user_id:
            return False
        return self.store.update(self.collection, notification_id, {"read": True})

    def mark_all_as_read(self, user_id: str) -> int:
        unread = self.store.find(self.collection, {"user_id": user_id, "read": False})
        updated = 0
        for doc in unread:
            if self.store.update(self.collection, doc["id"], {"read": True}):
                updated += 1
        return updated

    def unread_count(self, user_id: str) -> int:
        return len(self.store.find(self.collection, {"user_id": user_id, "read": False}))

    @staticmethod
    def summarize(docs: List[dict]) -> NotificationFeed:
        """Shape a live-feed snapshot the way the notification bell shows it."""
        notifications = [Notification.model_validate(doc) for doc in docs]
        return NotificationFeed(
            notifications=notifications,
            unread_count=sum(1 for n in notifications if not n.read)
        )


class NotificationFanout:
    """
    Materializes one notification per recipient of an announcement.

    Best effort and at most once: it runs when an active announcement is
    created, never again for edits or status toggles, and its failures are
    logged instead of failing the announcement.
    """

    def __init__(self, store=None):
        self.store = store if store is not None else get_document_store()
        self.notifications = NotificationService(self.store)

    def resolve_recipients(self, target_audience: str) -> List[str]:
        """User ids for "all" or for a single role."""
        audience = TargetAudience(target_audience).value
        filters = {} if audience == "all" else {"role": audience}
        users = self.store.find(COLLECTIONS["users"], filters)
        return [user["id"] for user in users]

    def fan_out(self, announcement: Announcement) -> int:
        """Create the announcement's notifications. Returns how many were written."""
        try:
            recipients = self.resolve_recipients(announcement.target_audience)
        except PyMongoError as exc:
            logger.error(
                "Error resolving announcement recipients: %s", exc,
                extra={"announcement_id": announcement.id}
            )
            return 0

        created = 0
        for user_id in recipients:
            try:
                self.notifications.create(
                    user_id=user_id,
                    type="announcement",
                    title=announcement.title,
                    message=announcement.message,
                    announcement_id=announcement.id,
                    announcement_type=AnnouncementType(announcement.type).value,
                )
                created += 1
            except PyMongoError as exc:
                logger.error(
                    "Error creating announcement notification: %s", exc,
                    extra={"announcement_id": announcement.id, "user_id": user_id}
                )

        logger.info(
            "Created %d notifications for announcement", created,
            extra={"announcement_id": announcement.id, "recipients": len(recipients)}
        )
        return created
