"""
Message Service - one-to-one chats between portal users.

Chats are created lazily on first contact. There is no uniqueness
constraint in the store: `get_or_create_chat` looks up an existing chat for
the unordered pair before creating one. Messages are append-only and keep a
`chat_id` back-reference.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from career_findr.db.mongodb import COLLECTIONS, get_document_store
from career_findr.schemas.schemas import Chat, ChatMessage, ParticipantInfo, UserAccount

logger = logging.getLogger(__name__)


def _participant_info(user: UserAccount) -> dict:
    return ParticipantInfo(
        name=user.display_name,
        email=user.email,
        avatar=user.avatar or "",
        role=user.role,
    ).model_dump()


class MessageService:

    def __init__(self, store=None):
        self.store = store if store is not None else get_document_store()
        self.chats = COLLECTIONS["chats"]
        self.messages = COLLECTIONS["messages"]

    def find_chat(self, user_id: str, other_user_id: str) -> Optional[Chat]:
        """Existing chat for the unordered pair, if any."""
        for doc in self.store.find(self.chats, {"participants": user_id}):
            if other_user_id in doc.get("participants", []):
                return Chat.model_validate(doc)
        return None

    def get_or_create_chat(self, current_user: UserAccount, other_user: UserAccount) -> Chat:
        if current_user.id == other_user.id:
            raise ValueError("A chat needs two different participants")

        existing = self.find_chat(current_user.id, other_user.id)
        if existing:
            return existing

        now = datetime.now(timezone.utc)
        doc = {
            "participants": [current_user.id, other_user.id],
            "participants_data": {
                current_user.id: _participant_info(current_user),
                other_user.id: _participant_info(other_user),
            },
            "last_message": "",
            "last_message_time": now,
            "created_at": now,
            "unread_count": 0,
        }
        doc["id"] = self.store.insert(self.chats, doc)
        logger.info("Chat created", extra={"chat_id": doc["id"]})
        return Chat.model_validate(doc)

    def get_chat_for_user(self, chat_id: str, user_id: str) -> Optional[Chat]:
        """The chat, or None when it does not exist or `user_id` is not in it."""
        doc = self.store.get(self.chats, chat_id)
        if not doc or user_id not in doc.get("participants", []):
            return None
        return Chat.model_validate(doc)

    def send_message(self, chat_id: str, sender_id: str, sender_name: str, text: str) -> ChatMessage:
        """Append a message and bump the chat's last-message preview."""
        now = datetime.now(timezone.utc)
        doc = {
            "chat_id": chat_id,
            "text": text,
            "sender_id": sender_id,
            "sender_name": sender_name,
            "timestamp": now,
            "read": False,
        }
        doc["id"] = self.store.insert(self.messages, doc)

        self.store.update(self.chats, chat_id, {
            "last_message": text,
            "last_message_time": now,
        })
        return ChatMessage.model_validate(doc)

    def get_user_chats(self, user_id: str) -> List[Chat]:
        docs = self.store.find(
            self.chats,
            {"participants": user_id},
            order_by=(("last_message_time", -1),)
        )
        return [Chat.model_validate(doc) for doc in docs]

    def get_messages(self, chat_id: str) -> List[ChatMessage]:
        docs = self.store.find(
            self.messages,
            {"chat_id": chat_id},
            order_by=(("timestamp", 1),)
        )
        return [ChatMessage.model_validate(doc) for doc in docs]

    def start_conversation(
        self,
        current_user: UserAccount,
        other_user: UserAccount,
        initial_message: str = ""
    ) -> Tuple[Chat, Optional[ChatMessage]]:
        chat = self.get_or_create_chat(current_user, other_user)

        message = None
        if initial_message:
            message = self.send_message(
                chat.id, current_user.id, current_user.display_name, initial_message
            )
        return chat, message
