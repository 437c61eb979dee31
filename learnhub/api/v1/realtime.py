# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Live channel WebSocket endpoint.

- WebSocket /ws - room-based live events

A session authenticates with a JWT (``?token=`` or a first
``{"type": "auth", "token": "..."}`` message), is placed in its user room
(and the admin room for admins), and may then join course and classroom
rooms. Server events arrive as ``{"event": <tag>, "data": {...}}``; control
replies carry a ``type`` instead.

Client messages:
    {"type": "join", "room": "course:<id>"}
    {"type": "leave", "room": "classroom:<id>"}
    {"type": "ping"}
    {"type": "classMessage", "classroom_id": "<id>", "message": "..."}

Example:
    const ws = new WebSocket(`wss://api.example.com/api/v1/realtime/ws?token=${jwt}`);
    ws.send(JSON.stringify({type: "join", room: `course:${courseId}`}));
"""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from learnhub.api.dependencies import get_app_settings, get_hub
from learnhub.api.middleware.auth import CurrentUser
from learnhub.core.config import Settings
from learnhub.core.errors import InvalidIdentifierError
from learnhub.domains.auth.jwt import JWTError, JWTManager
from learnhub.infrastructure.realtime import (
    BroadcastHub,
    ClassMessage,
    InvalidRoomError,
    LiveSession,
    MessageAuthor,
    classroom_room,
    parse_room,
)
from learnhub.utils.datetime import utc_now
from learnhub.utils.identifiers import parse_id

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_CHAT_MESSAGE_LENGTH = 4000


def _authenticate(settings: Settings, token: str | None) -> CurrentUser | None:
    """Validate a live-channel token.

    Returns:
        CurrentUser if the token is valid, None otherwise.
    """
    if not token:
        return None

    try:
        payload = JWTManager(settings.jwt).decode_token(token)
        return CurrentUser(payload)
    except JWTError as e:
        logger.debug("WebSocket auth failed: %s", str(e))
        return None


def _error(code: str, message: str) -> dict[str, Any]:
    return {"type": "error", "code": code, "message": message}


def _canonical_room(room: Any) -> str:
    """Normalize a client-supplied room key.

    Raises:
        InvalidRoomError: If the key is malformed.
        InvalidIdentifierError: If the room id is not a UUID.
    """
    if not isinstance(room, str):
        raise InvalidRoomError("Room must be a string")
    kind, room_id = parse_room(room)
    return f"{kind}:{parse_id(room_id, 'room id')}"


@router.websocket("/ws")
async def realtime_websocket(
    websocket: WebSocket,
    hub: BroadcastHub = Depends(get_hub),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """WebSocket endpoint for live course, classroom and user events.

    Args:
        websocket: WebSocket connection.
        hub: Room registry the session is attached to.
        settings: Application settings.
    """
    await websocket.accept()

    session: LiveSession | None = None

    try:
        user = _authenticate(settings, websocket.query_params.get("token"))

        if not user:
            await websocket.send_json({
                "type": "auth_required",
                "message": "Send auth message with token: {\"type\": \"auth\", \"token\": \"...\"}",
            })

            try:
                auth_data = await asyncio.wait_for(
                    websocket.receive_json(),
                    timeout=settings.realtime.auth_timeout_seconds,
                )
                if auth_data.get("type") == "auth":
                    user = _authenticate(settings, auth_data.get("token"))
            except asyncio.TimeoutError:
                await websocket.send_json(_error("AUTH_TIMEOUT", "Authentication timeout"))
                return

        if not user:
            await websocket.send_json(_error("AUTH_FAILED", "Invalid or expired token"))
            return

        session = LiveSession(
            user_id=user.id,
            is_admin=user.is_admin,
            queue_size=settings.realtime.queue_size,
        )
        await hub.connect(session)

        await websocket.send_json({
            "type": "connected",
            "session_id": session.id,
            "user_id": user.id,
            "rooms": sorted(session.rooms),
        })

        sender_task = asyncio.create_task(_message_sender(websocket, session))

        try:
            while True:
                data = await websocket.receive_json()
                reply = await _handle_client_message(hub, session, user, data)
                if reply is not None:
                    await websocket.send_json(reply)

        except WebSocketDisconnect:
            logger.debug("WebSocket disconnected: session=%s", session.id)
        finally:
            sender_task.cancel()
            try:
                await sender_task
            except asyncio.CancelledError:
                pass

    except WebSocketDisconnect:
        logger.debug("WebSocket disconnected before authentication")

    except Exception as e:
        logger.error("Live channel error: %s", str(e), exc_info=True)
        try:
            await websocket.send_json(_error("INTERNAL_ERROR", "Internal server error"))
        except Exception:
            pass

    finally:
        if session is not None:
            await hub.disconnect(session)
        try:
            await websocket.close()
        except Exception:
            pass


async def _handle_client_message(
    hub: BroadcastHub,
    session: LiveSession,
    user: CurrentUser,
    data: Any,
) -> dict[str, Any] | None:
    """Apply one client message and build the direct reply."""
    if not isinstance(data, dict):
        return _error("INVALID_MESSAGE", "Messages must be JSON objects")

    msg_type = data.get("type")

    if msg_type == "ping":
        return {"type": "pong", "timestamp": utc_now().isoformat()}

    if msg_type in ("join", "leave"):
        try:
            room = _canonical_room(data.get("room"))
            if msg_type == "join":
                await hub.join(session, room)
                return {"type": "joined", "room": room}
            was_member = await hub.leave(session, room)
            return {"type": "left", "room": room, "was_member": was_member}
        except (InvalidRoomError, InvalidIdentifierError) as e:
            return _error("INVALID_ROOM", str(e))

    if msg_type == "classMessage":
        return await _relay_class_message(hub, session, user, data)

    return _error("UNKNOWN_MESSAGE_TYPE", f"Unknown message type: {msg_type}")


async def _relay_class_message(
    hub: BroadcastHub,
    session: LiveSession,
    user: CurrentUser,
    data: dict[str, Any],
) -> dict[str, Any] | None:
    """Relay a chat message to a classroom the session has joined."""
    try:
        classroom_id = parse_id(data.get("classroom_id"), "classroom id")
    except InvalidIdentifierError as e:
        return _error("INVALID_ROOM", str(e))

    text = data.get("message")
    if not isinstance(text, str) or not text.strip():
        return _error("INVALID_MESSAGE", "Message text is required")
    if len(text) > MAX_CHAT_MESSAGE_LENGTH:
        return _error("INVALID_MESSAGE", "Message is too long")

    room = classroom_room(classroom_id)
    if room not in session.rooms:
        return _error("NOT_IN_ROOM", "Join the classroom before posting")

    await hub.emit(
        room,
        ClassMessage(
            classroom_id=classroom_id,
            message=text.strip(),
            user=MessageAuthor(id=user.id, name=user.name or "Anonymous"),
        ),
    )
    return None


async def _message_sender(websocket: WebSocket, session: LiveSession) -> None:
    """Background task to send queued messages to WebSocket.

    Args:
        websocket: WebSocket connection.
        session: Live session with the outbound queue.
    """
    try:
        while True:
            message = await session.queue.get()
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.debug("Failed to send message: %s", str(e))
                break
    except asyncio.CancelledError:
        pass
