from __future__ import annotations

import asyncio
import contextlib

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from meetcmu.api.errors import http_error_from_service
from meetcmu.api.schemas.chat import MessageIn, MessageListOut, MessageOut
from meetcmu.auth.deps import CurrentUser, DBSession, profile_from_token
from meetcmu.models import Event, Profile
from meetcmu.realtime.chat_relay import Subscription, chat_relay
from meetcmu.services import chat_service, events_service
from meetcmu.services.exceptions import ServiceError
from meetcmu.services.memberships import is_participant

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/events", tags=["chat"])


@router.get("/{event_id}/messages", response_model=MessageListOut)
def list_messages(event_id: str, user: CurrentUser, db: DBSession):
    try:
        messages = chat_service.list_messages(db, user, events_service.parse_event_id(event_id))
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return {"messages": messages}


@router.post("/{event_id}/messages", response_model=MessageOut, status_code=201)
def post_message(event_id: str, payload: MessageIn, user: CurrentUser, db: DBSession):
    try:
        return chat_service.post_message(
            db, user, events_service.parse_event_id(event_id), payload.message
        )
    except ServiceError as err:
        raise http_error_from_service(err) from err


async def _watch_disconnect(websocket: WebSocket, sub: Subscription) -> None:
    # Inbound frames are ignored; messages are sent through the REST route.
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        sub.close()


def _admit(db: Session, event_id: str, token: str | None) -> tuple[Profile, Event] | None:
    user = profile_from_token(db, token)
    try:
        event = db.get(Event, events_service.parse_event_id(event_id))
    except ServiceError:
        event = None

    if user is None or event is None or not is_participant(db, event, user.id):
        return None
    return user, event


def _load_history(db: Session, event: Event) -> dict:
    frame = chat_service.history_frame(chat_service.history(db, event))
    # Release the connection; the socket may stay open for a long time.
    db.close()
    return frame


@router.websocket("/{event_id}/chat")
async def chat_socket(websocket: WebSocket, event_id: str, db: DBSession):
    # Session work is blocking, so it runs off the event loop.
    admitted = await run_in_threadpool(_admit, db, event_id, websocket.query_params.get("token"))
    if admitted is None:
        logger.info("chat_socket_rejected", event_id=event_id)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    user, event = admitted

    await websocket.accept()
    sub = chat_relay.subscribe(event.id)
    history = await run_in_threadpool(_load_history, db, event)

    watcher = asyncio.create_task(_watch_disconnect(websocket, sub))
    logger.info("chat_socket_opened", event_id=str(event.id), user_id=user.id)
    try:
        await websocket.send_json(history)
        while True:
            frame = await sub.get()
            if frame is None:
                break
            await websocket.send_json(frame)
    except WebSocketDisconnect:
        pass
    finally:
        chat_relay.unsubscribe(sub)
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher
        logger.info("chat_socket_closed", event_id=str(event.id), user_id=user.id)
