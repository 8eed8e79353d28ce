"""In-process realtime channel keyed by (user, organization).

A connected client is a ``RealtimeSession`` subscribed to exactly one
channel: its user and its currently selected organization. Publishing a
notification reaches only sessions on the notification's channel. Switching
organizations moves the session to the new channel and discards anything
queued for the previous one, including its unread count.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4

from reqflow.models.notification import Notification

logger = logging.getLogger(__name__)

ChannelKey = tuple[UUID, UUID]


def notification_payload(notification: Notification) -> dict[str, Any]:
    return {
        "type": "notification",
        "id": str(notification.id),
        "organization_id": str(notification.organization_id),
        "recipient_user_id": str(notification.recipient_user_id),
        "notification_type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "link": notification.link,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


@dataclass
class RealtimeSession:
    user_id: UUID
    organization_id: UUID | None
    unread_count: int = 0
    session_id: str = field(default_factory=lambda: uuid4().hex)
    queue: asyncio.Queue[dict[str, Any]] = field(default_factory=asyncio.Queue)
    loop: asyncio.AbstractEventLoop | None = None

    @property
    def channel(self) -> ChannelKey | None:
        if self.organization_id is None:
            return None
        return (self.user_id, self.organization_id)

    def drain(self) -> list[dict[str, Any]]:
        """Remove and return everything currently queued."""
        items = []
        while True:
            try:
                items.append(self.queue.get_nowait())
            except asyncio.QueueEmpty:
                return items


class RealtimeHub:
    def __init__(self) -> None:
        self._sessions: dict[str, RealtimeSession] = {}
        self._channels: dict[ChannelKey, set[str]] = {}
        self._lock = threading.Lock()

    def connect(
        self,
        user_id: UUID,
        organization_id: UUID | None,
        unread_count: int = 0,
    ) -> RealtimeSession:
        """Register a session. ``unread_count`` must come from the store."""
        try:
            loop: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        session = RealtimeSession(
            user_id=user_id,
            organization_id=organization_id,
            unread_count=unread_count if organization_id is not None else 0,
            loop=loop,
        )
        with self._lock:
            self._sessions[session.session_id] = session
            self._subscribe(session)
        logger.debug(
            "Realtime session %s connected (user=%s, organization=%s)",
            session.session_id,
            user_id,
            organization_id,
        )
        return session

    def disconnect(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is not None:
                self._unsubscribe(session)

    def get(self, session_id: str) -> RealtimeSession | None:
        return self._sessions.get(session_id)

    def sessions_for_user(self, user_id: UUID) -> list[RealtimeSession]:
        with self._lock:
            return [s for s in self._sessions.values() if s.user_id == user_id]

    def switch_organization(
        self,
        session_id: str,
        organization_id: UUID | None,
        unread_count: int = 0,
    ) -> RealtimeSession:
        """Move a session to another organization.

        Messages queued for the previous organization are dropped and the
        unread count is replaced by ``unread_count``, which the caller reads
        from the store for the new organization.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise KeyError(session_id)
            self._unsubscribe(session)
            session.organization_id = organization_id
            session.unread_count = unread_count if organization_id is not None else 0
            dropped = session.drain()
            self._subscribe(session)
        if dropped:
            logger.debug(
                "Dropped %d queued messages from session %s on organization switch",
                len(dropped),
                session_id,
            )
        return session

    def publish(self, notification: Notification) -> int:
        """Deliver a notification to every session on its channel.

        Returns the number of sessions reached.
        """
        key: ChannelKey = (
            notification.recipient_user_id,  # type: ignore[assignment]
            notification.organization_id,
        )
        payload = notification_payload(notification)
        with self._lock:
            targets = [self._sessions[sid] for sid in self._channels.get(key, set())]
            for session in targets:
                session.unread_count += 1
                self._enqueue(session, payload)
        return len(targets)

    def update_unread_count(self, user_id: UUID, organization_id: UUID, unread_count: int) -> None:
        """Push a fresh unread count (after mark-read or clear) to the channel."""
        payload = {
            "type": "unread_count",
            "organization_id": str(organization_id),
            "unread_count": unread_count,
        }
        with self._lock:
            for sid in self._channels.get((user_id, organization_id), set()):
                session = self._sessions[sid]
                session.unread_count = unread_count
                self._enqueue(session, payload)

    def _enqueue(self, session: RealtimeSession, payload: dict[str, Any]) -> None:
        loop = session.loop
        if loop is not None and not loop.is_closed():
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is not loop:
                loop.call_soon_threadsafe(session.queue.put_nowait, payload)
                return
        session.queue.put_nowait(payload)

    def _subscribe(self, session: RealtimeSession) -> None:
        if session.channel is not None:
            self._channels.setdefault(session.channel, set()).add(session.session_id)

    def _unsubscribe(self, session: RealtimeSession) -> None:
        if session.channel is None:
            return
        members = self._channels.get(session.channel)
        if members is not None:
            members.discard(session.session_id)
            if not members:
                del self._channels[session.channel]


hub = RealtimeHub()


def get_realtime_hub() -> RealtimeHub:
    return hub
