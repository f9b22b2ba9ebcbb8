"""
Messaging Routes

GET /chats - My chats, most recent first
POST /chats - Start (or reopen) a conversation, optionally with a first message
GET /chats/{chat_id}/messages - Messages in a chat, oldest first
POST /chats/{chat_id}/messages - Send a message
"""

from fastapi import APIRouter, HTTPException, Depends
from typing import List

from career_findr.core.auth import get_current_user, get_user_service, get_view_context
from career_findr.core.impersonation import ViewContext
from career_findr.db.mongodb import get_document_store
from career_findr.schemas.schemas import (
    Chat, ChatMessage, ConversationResponse, ConversationStart, MessageCreate, UserAccount
)
from career_findr.services.message_service import MessageService
from career_findr.services.user_service import UserService

router = APIRouter(prefix="/chats", tags=["Messages"])


def get_message_service(store=Depends(get_document_store)) -> MessageService:
    return MessageService(store)


@router.get("", response_model=List[Chat])
def list_chats(
    ctx: ViewContext = Depends(get_view_context),
    service: MessageService = Depends(get_message_service),
):
    return service.get_user_chats(ctx.active_user.id)


@router.post("", response_model=ConversationResponse, status_code=201)
def start_conversation(
    data: ConversationStart,
    user: UserAccount = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
    service: MessageService = Depends(get_message_service),
):
    """Reuses the existing chat with that user if there is one."""
    other = users.get(data.other_user_id)
    if not other:
        raise HTTPException(status_code=404, detail="User not found")

    try:
        chat, message = service.start_conversation(user, other, data.initial_message)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return ConversationResponse(chat=chat, message=message)


@router.get("/{chat_id}/messages", response_model=List[ChatMessage])
def list_messages(
    chat_id: str,
    ctx: ViewContext = Depends(get_view_context),
    service: MessageService = Depends(get_message_service),
):
    if not service.get_chat_for_user(chat_id, ctx.active_user.id):
        raise HTTPException(status_code=404, detail="Chat not found")
    return service.get_messages(chat_id)


@router.post("/{chat_id}/messages", response_model=ChatMessage, status_code=201)
def send_message(
    chat_id: str,
    data: MessageCreate,
    user: UserAccount = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    if not service.get_chat_for_user(chat_id, user.id):
        raise HTTPException(status_code=404, detail="Chat not found")
    return service.send_message(chat_id, user.id, user.display_name, data.text)
