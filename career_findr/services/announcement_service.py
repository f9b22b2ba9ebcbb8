"""
Announcement Service - admin announcements shown across the portal.

Creating an active announcement fans out one notification per targeted
account. Later edits, audience changes and status toggles only touch the
announcement itself; notifications already delivered stay as they are.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from career_findr.db.mongodb import COLLECTIONS, get_document_store
from career_findr.schemas.schemas import (
    Announcement,
    AnnouncementCreate,
    AnnouncementUpdate,
    TargetAudience,
)
from career_findr.services.notification_service import NotificationFanout

logger = logging.getLogger(__name__)


class AnnouncementService:

    def __init__(self, store=None):
        self.store = store if store is not None else get_document_store()
        self.collection = COLLECTIONS["announcements"]
        self.fanout = NotificationFanout(self.store)

    def create(self, data: AnnouncementCreate) -> Tuple[Announcement, int]:
        """
        Insert the announcement, then fan out if it is active.

        Returns the stored announcement and the number of notifications
        written. Fan-out problems never fail the create.
        """
        now = datetime.now(timezone.utc)
        doc = {
            "title": data.title,
            "message": data.message,
            "type": data.type.value,
            "target_audience": data.target_audience.value,
            "is_active": data.is_active,
            "created_at": now,
            "updated_at": now,
        }
        doc["id"] = self.store.insert(self.collection, doc)
        announcement = Announcement.model_validate(doc)
        logger.info("Announcement created", extra={"announcement_id": announcement.id})

        created = 0
        if announcement.is_active:
            created = self.fanout.fan_out(announcement)
        return announcement, created

    def get(self, announcement_id: str) -> Optional[Announcement]:
        doc = self.store.get(self.collection, announcement_id)
        return Announcement.model_validate(doc) if doc else None

    def list_all(self) -> List[Announcement]:
        docs = self.store.find(self.collection, order_by=(("created_at", -1),))
        return [Announcement.model_validate(doc) for doc in docs]

    def list_active_for_role(self, role: Optional[str]) -> List[Announcement]:
        """Active announcements addressed to everyone or to `role`."""
        docs = self.store.find(
            self.collection,
            {"is_active": True},
            order_by=(("created_at", -1),)
        )
        audiences = {TargetAudience.all.value, role}
        return [
            Announcement.model_validate(doc) for doc in docs
            if doc.get("target_audience") in audiences
        ]

    def update(self, announcement_id: str, data: AnnouncementUpdate) -> Optional[Announcement]:
        """Partial update. Never touches notifications already fanned out."""
        fields = data.model_dump(exclude_none=True, mode="json")
        fields["updated_at"] = datetime.now(timezone.utc)
        if not self.store.update(self.collection, announcement_id, fields):
            return None
        return self.get(announcement_id)

    def toggle_status(self, announcement_id: str, is_active: bool) -> bool:
        return self.store.update(
            self.collection,
            announcement_id,
            {"is_active": is_active, "updated_at": datetime.now(timezone.utc)}
        )

    def delete(self, announcement_id: str) -> bool:
        return self.store.delete(self.collection, announcement_id)
