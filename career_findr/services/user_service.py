"""
User Service - accounts in the users collection.

One document per account holds both the sign-in credentials (bcrypt hash)
and the profile fields the rest of the portal reads: role, status, skills
and experience level.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from career_findr.db.mongodb import COLLECTIONS, get_document_store
from career_findr.schemas.schemas import (
    JobStatus,
    PlatformStatsResponse,
    ProfileUpdate,
    UserAccount,
    UserRole,
    UserStatus,
)

logger = logging.getLogger(__name__)


class EmailAlreadyRegistered(Exception):
    pass


class UserService:

    def __init__(self, store=None):
        self.store = store if store is not None else get_document_store()
        self.collection = COLLECTIONS["users"]

    def create_account(
        self,
        email: str,
        password_hash: str,
        role: str,
        name: str = "",
        phone: str = "",
    ) -> UserAccount:
        """
        Insert a new account.

        Students are approved straight away; institutes and companies wait
        for an admin.
        """
        email = email.lower()
        if self.get_by_email(email):
            raise EmailAlreadyRegistered(email)

        now = datetime.now(timezone.utc)
        status = UserStatus.approved if role == UserRole.student.value else UserStatus.pending
        doc = {
            "email": email,
            "password_hash": password_hash,
            "name": name,
            "phone": phone,
            "role": role,
            "status": status.value,
            "skills": [],
            "experience_level": None,
            "avatar": "",
            "created_at": now,
            "updated_at": now,
        }
        doc["id"] = self.store.insert(self.collection, doc)
        logger.info("Account created", extra={"user_id": doc["id"]})
        return UserAccount.model_validate(doc)

    def get(self, user_id: str) -> Optional[UserAccount]:
        doc = self.store.get(self.collection, user_id)
        return UserAccount.model_validate(doc) if doc else None

    def get_by_email(self, email: str) -> Optional[dict]:
        """Raw document including `password_hash`, for sign-in only."""
        docs = self.store.find(self.collection, {"email": email.lower()}, limit=1)
        return docs[0] if docs else None

    def list_users(self, role: Optional[str] = None, status: Optional[str] = None) -> List[UserAccount]:
        filters = {}
        if role:
            filters["role"] = role
        if status:
            filters["status"] = status
        docs = self.store.find(self.collection, filters, order_by=(("created_at", -1),))
        return [UserAccount.model_validate(doc) for doc in docs]

    def update_profile(self, user_id: str, data: ProfileUpdate) -> Optional[UserAccount]:
        """Only provided fields are updated."""
        fields = data.model_dump(exclude_none=True, mode="json")
        fields["updated_at"] = datetime.now(timezone.utc)
        if not self.store.update(self.collection, user_id, fields):
            return None
        return self.get(user_id)

    def update_status(self, user_id: str, status: UserStatus) -> bool:
        return self.store.update(self.collection, user_id, {
            "status": UserStatus(status).value,
            "updated_at": datetime.now(timezone.utc),
        })

    def approve(self, user_id: str) -> bool:
        return self.update_status(user_id, UserStatus.approved)

    def reject(self, user_id: str) -> bool:
        return self.update_status(user_id, UserStatus.rejected)

    def set_password(self, user_id: str, password_hash: str) -> bool:
        return self.store.update(self.collection, user_id, {
            "password_hash": password_hash,
            "updated_at": datetime.now(timezone.utc),
        })

    def delete(self, user_id: str) -> bool:
        return self.store.delete(self.collection, user_id)

    def platform_stats(self) -> PlatformStatsResponse:
        users = self.list_users()
        by_role = {role.value: 0 for role in UserRole}
        for user in users:
            if user.role:
                by_role[user.role] += 1

        jobs = self.store.find(COLLECTIONS["jobs"])
        return PlatformStatsResponse(
            total_users=len(users),
            users_by_role=by_role,
            pending_approvals=sum(1 for u in users if u.status == UserStatus.pending.value),
            total_jobs=len(jobs),
            open_jobs=sum(1 for job in jobs if job.get("status") == JobStatus.open.value),
            total_applications=len(self.store.find(COLLECTIONS["applications"])),
        )
