# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Room registry and broadcaster for live sessions.

Rooms are string keys (``course:{id}``, ``classroom:{id}``, ``user:{id}``
and the ``admin`` room). A session is placed in its own user room (and the
admin room for administrators) on connect; course and classroom rooms are
joined explicitly. Disconnect removes the session from every room.

Delivery is at-most-once. Emitting to a room without sessions drops the
event, and a session whose outbound queue is full misses the message. The
durable notification inbox covers what live delivery loses.

Example:
    hub = BroadcastHub()
    session = LiveSession(user_id=user.id)
    await hub.connect(session)
    await hub.join(session, course_room(course_id))

    delivered = await hub.emit(course_room(course_id), event)
"""

import asyncio
import logging
from typing import Any, Iterable, Protocol

from learnhub.infrastructure.realtime.payloads import LiveEvent
from learnhub.utils.identifiers import new_id

logger = logging.getLogger(__name__)

ADMIN_ROOM = "admin"
JOINABLE_ROOM_KINDS = frozenset({"course", "classroom"})
DEFAULT_QUEUE_SIZE = 256


class InvalidRoomError(ValueError):
    """Raised when a room key is malformed or not joinable."""

    pass


def course_room(course_id: str) -> str:
    """Room key for everyone viewing a course."""
    return f"course:{course_id}"


def classroom_room(classroom_id: str) -> str:
    """Room key for a classroom."""
    return f"classroom:{classroom_id}"


def user_room(user_id: str) -> str:
    """Room key for all sessions of one user."""
    return f"user:{user_id}"


def parse_room(room: str) -> tuple[str, str]:
    """Split a room key into kind and id.

    Raises:
        InvalidRoomError: If the key has no kind or no id.
    """
    kind, sep, room_id = room.partition(":")
    if not sep or not kind or not room_id.strip():
        raise InvalidRoomError(f"Invalid room: {room!r}")
    return kind, room_id


class LiveSession:
    """One connected client.

    Messages are queued and drained by the transport (a WebSocket sender
    task). The queue is bounded; overflow is dropped, never awaited.

    Attributes:
        id: Session identifier.
        user_id: Authenticated user.
        is_admin: Whether the session receives admin-channel events.
        rooms: Rooms this session currently belongs to.
        queue: Outbound messages.
        dropped: Messages lost to a full queue.
    """

    def __init__(
        self,
        user_id: str,
        is_admin: bool = False,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        session_id: str | None = None,
    ) -> None:
        self.id = session_id or new_id()
        self.user_id = user_id
        self.is_admin = is_admin
        self.rooms: set[str] = set()
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=queue_size)
        self.dropped = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether the session stopped accepting messages."""
        return self._closed

    def deliver(self, message: dict[str, Any]) -> bool:
        """Queue a message without waiting.

        Returns:
            True if the message was queued.
        """
        if self._closed:
            return False
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Live session %s queue full, dropped %s",
                self.id,
                message.get("event") or message.get("type"),
            )
            return False
        return True

    def close(self) -> None:
        """Stop accepting messages."""
        self._closed = True

    def __repr__(self) -> str:
        return f"<LiveSession {self.id} user={self.user_id}>"


class Broadcaster(Protocol):
    """What services and bridges need to push live events."""

    async def emit(self, room: str, event: LiveEvent) -> int:
        """Send an event to one room. Returns the number of sessions reached."""
        ...

    async def emit_to_rooms(self, rooms: Iterable[str], event: LiveEvent) -> int:
        """Send an event once to every session in any of the rooms."""
        ...


class BroadcastHub:
    """In-memory room registry implementing Broadcaster.

    All registry mutations and subscriber snapshots happen under one
    asyncio.Lock. Delivery itself runs outside the lock and never awaits.

    Attributes:
        _rooms: Room key to member sessions.
        _sessions: Session id to session.
    """

    def __init__(self) -> None:
        """Initialize an empty hub."""
        self._rooms: dict[str, set[LiveSession]] = {}
        self._sessions: dict[str, LiveSession] = {}
        self._lock = asyncio.Lock()
        self._events_emitted = 0
        self._events_dropped = 0
        self._messages_delivered = 0

    async def connect(self, session: LiveSession) -> None:
        """Register a session and place it in its implicit rooms."""
        async with self._lock:
            self._sessions[session.id] = session
            self._add(session, user_room(session.user_id))
            if session.is_admin:
                self._add(session, ADMIN_ROOM)

        logger.info("Live session connected: session=%s, user=%s", session.id, session.user_id)

    async def disconnect(self, session: LiveSession) -> None:
        """Remove a session from every room and close it."""
        session.close()
        async with self._lock:
            for room in list(session.rooms):
                self._discard(session, room)
            self._sessions.pop(session.id, None)

        logger.info("Live session disconnected: session=%s, user=%s", session.id, session.user_id)

    async def join(self, session: LiveSession, room: str) -> None:
        """Join a course or classroom room.

        Raises:
            InvalidRoomError: If the room is malformed or implicit-only.
        """
        kind, _ = parse_room(room)
        if kind not in JOINABLE_ROOM_KINDS:
            raise InvalidRoomError(f"Room {room!r} cannot be joined explicitly")

        async with self._lock:
            if session.id not in self._sessions:
                raise InvalidRoomError("Session is not connected")
            self._add(session, room)

        logger.debug("Session %s joined %s", session.id, room)

    async def leave(self, session: LiveSession, room: str) -> bool:
        """Leave a course or classroom room.

        Returns:
            True if the session was in the room.
        """
        kind, _ = parse_room(room)
        if kind not in JOINABLE_ROOM_KINDS:
            raise InvalidRoomError(f"Room {room!r} cannot be left explicitly")

        async with self._lock:
            if room not in session.rooms:
                return False
            self._discard(session, room)

        logger.debug("Session %s left %s", session.id, room)
        return True

    async def emit(self, room: str, event: LiveEvent) -> int:
        """Send an event to one room."""
        return await self.emit_to_rooms([room], event)

    async def emit_to_rooms(self, rooms: Iterable[str], event: LiveEvent) -> int:
        """Send an event once to every session in any of the rooms.

        A session present in several target rooms receives one copy.

        Returns:
            Number of sessions the message was queued for.
        """
        rooms = list(rooms)
        async with self._lock:
            targets: set[LiveSession] = set()
            for room in rooms:
                targets.update(self._rooms.get(room, ()))

        self._events_emitted += 1

        if not targets:
            self._events_dropped += 1
            logger.debug("No live sessions for %s in %s, dropped", event.event, rooms)
            return 0

        message = event.to_message()
        delivered = sum(1 for session in targets if session.deliver(message))
        self._messages_delivered += delivered

        logger.debug(
            "Emitted %s to %d/%d sessions in %s",
            event.event,
            delivered,
            len(targets),
            rooms,
        )
        return delivered

    def get_stats(self) -> dict[str, Any]:
        """Get hub statistics."""
        return {
            "sessions": len(self._sessions),
            "rooms": len(self._rooms),
            "events_emitted": self._events_emitted,
            "events_dropped": self._events_dropped,
            "messages_delivered": self._messages_delivered,
        }

    def _add(self, session: LiveSession, room: str) -> None:
        self._rooms.setdefault(room, set()).add(session)
        session.rooms.add(room)

    def _discard(self, session: LiveSession, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(session)
            if not members:
                del self._rooms[room]
        session.rooms.discard(room)


# Singleton instance
_hub: BroadcastHub | None = None


def get_broadcast_hub() -> BroadcastHub:
    """Get the process-wide hub used by the API layer."""
    global _hub
    if _hub is None:
        _hub = BroadcastHub()
    return _hub


def reset_broadcast_hub() -> None:
    """Reset the hub singleton. Useful for tests."""
    global _hub
    _hub = None
