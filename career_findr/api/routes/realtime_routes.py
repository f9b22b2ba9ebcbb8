"""
Live Feed Routes (WebSockets)

WS /ws/notifications?token=... - Notifications + unread count
WS /ws/chats?token=... - Chat list
WS /ws/chats/{chat_id}/messages?token=... - Messages in one chat
WS /ws/events?token=... - Calendar events

Every frame is the full current result set. The feed closes its
subscription when the socket disconnects.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder
from starlette.concurrency import run_in_threadpool

from career_findr.core.auth import authenticate_token
from career_findr.core.impersonation import ImpersonationSession, load_session
from career_findr.db.mongodb import LiveQuery, get_document_store
from career_findr.schemas.schemas import UserAccount
from career_findr.services.message_service import MessageService
from career_findr.services.notification_service import NotificationService
from career_findr.services.realtime import (
    RealtimeSubscriptionManager,
    chats_query,
    events_query,
    get_subscription_manager,
    messages_query,
    notifications_query,
)
from career_findr.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["Live Feeds"])


async def _viewer(websocket: WebSocket, token: str, store) -> Optional[UserAccount]:
    """
    Account the feed renders for, honouring impersonation. Closes the socket if unauthenticated.

    Store lookups run in the threadpool so a slow query never stalls other feeds.
    """
    users = UserService(store)
    user = await run_in_threadpool(authenticate_token, token, users)
    if not user:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None

    session = ImpersonationSession(user, load_session(websocket))
    if session.is_impersonating:
        return await run_in_threadpool(users.get, session.impersonated_user.id) or user
    return user


async def _stream(
    websocket: WebSocket,
    manager: RealtimeSubscriptionManager,
    query: LiveQuery,
    owner: str,
    shape: Callable[[List[dict]], object] = list,
) -> None:
    """Pump snapshots from a subscription into the socket until it closes."""
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def on_snapshot(documents: List[dict]) -> None:
        # store listeners run on their own thread
        loop.call_soon_threadsafe(queue.put_nowait, documents)

    def on_error(exc: Exception) -> None:
        logger.warning("Closing live feed after a store error", extra={"collection": query.collection})
        loop.call_soon_threadsafe(queue.put_nowait, None)

    async def pump() -> None:
        while True:
            documents = await queue.get()
            if documents is None:
                await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
                return
            await websocket.send_json(jsonable_encoder(shape(documents)))

    subscription = manager.subscribe(query, on_snapshot, on_error, owner=owner)
    sender = asyncio.create_task(pump())
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        subscription.unsubscribe()
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)


@router.websocket("/notifications")
async def notifications_feed(
    websocket: WebSocket,
    token: str = Query(...),
    store=Depends(get_document_store),
    manager: RealtimeSubscriptionManager = Depends(get_subscription_manager),
):
    user = await _viewer(websocket, token, store)
    if user:
        await _stream(websocket, manager, notifications_query(user.id), user.id,
                      shape=NotificationService.summarize)


@router.websocket("/chats")
async def chats_feed(
    websocket: WebSocket,
    token: str = Query(...),
    store=Depends(get_document_store),
    manager: RealtimeSubscriptionManager = Depends(get_subscription_manager),
):
    user = await _viewer(websocket, token, store)
    if user:
        await _stream(websocket, manager, chats_query(user.id), user.id)


@router.websocket("/chats/{chat_id}/messages")
async def messages_feed(
    websocket: WebSocket,
    chat_id: str,
    token: str = Query(...),
    store=Depends(get_document_store),
    manager: RealtimeSubscriptionManager = Depends(get_subscription_manager),
):
    user = await _viewer(websocket, token, store)
    if not user:
        return
    chat = await run_in_threadpool(MessageService(store).get_chat_for_user, chat_id, user.id)
    if not chat:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await _stream(websocket, manager, messages_query(chat_id), user.id)


@router.websocket("/events")
async def events_feed(
    websocket: WebSocket,
    token: str = Query(...),
    store=Depends(get_document_store),
    manager: RealtimeSubscriptionManager = Depends(get_subscription_manager),
):
    user = await _viewer(websocket, token, store)
    if user:
        await _stream(websocket, manager, events_query(user.id), user.id)
