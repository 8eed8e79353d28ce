"""WebSocket endpoint for live notifications.

Query parameters ``user_id`` and (optionally) ``organization_id`` identify
the session, mirroring the request headers used by the HTTP API. Clients
announce an organization switch with::

    {"type": "switch_organization", "organization_id": "<uuid or null>"}
"""

import asyncio
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from reqflow.core.database import get_db
from reqflow.repositories.member_repository import MemberRepository
from reqflow.repositories.notification_repository import NotificationRepository
from reqflow.services.realtime import RealtimeHub, RealtimeSession, get_realtime_hub

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_uuid(value: Any) -> UUID | None:
    if value in (None, ""):
        return None
    return UUID(str(value))


def _org_str(organization_id: UUID | None) -> str | None:
    return str(organization_id) if organization_id is not None else None


def _unread_count(db: Session, user_id: UUID, organization_id: UUID | None) -> int:
    if organization_id is None:
        return 0
    return NotificationRepository(db).count_unread(user_id, organization_id)


def _is_member(db: Session, user_id: UUID, organization_id: UUID | None) -> bool:
    if organization_id is None:
        return True
    return MemberRepository(db).get_active(organization_id, user_id) is not None


async def _pump(websocket: WebSocket, session: RealtimeSession) -> None:
    while True:
        payload = await session.queue.get()
        # Anything published before a switch is stale once the switch is done.
        if payload.get("organization_id") != _org_str(session.organization_id):
            continue
        await websocket.send_json(payload)


async def _receive(
    websocket: WebSocket,
    session: RealtimeSession,
    hub: RealtimeHub,
    db: Session,
) -> None:
    while True:
        message = await websocket.receive_json()
        if message.get("type") != "switch_organization":
            await websocket.send_json({"type": "error", "detail": "Unknown message type"})
            continue
        try:
            organization_id = _parse_uuid(message.get("organization_id"))
        except ValueError:
            await websocket.send_json({"type": "error", "detail": "Invalid organization_id"})
            continue
        if not _is_member(db, session.user_id, organization_id):
            await websocket.send_json(
                {"type": "error", "detail": "Not a member of this organization"}
            )
            continue

        count = _unread_count(db, session.user_id, organization_id)
        hub.switch_organization(session.session_id, organization_id, count)
        session.queue.put_nowait(
            {
                "type": "organization_switched",
                "organization_id": _org_str(organization_id),
                "unread_count": count,
            }
        )


@router.websocket("/ws")
async def realtime_ws(
    websocket: WebSocket,
    db: Session = Depends(get_db),
    hub: RealtimeHub = Depends(get_realtime_hub),
) -> None:
    try:
        user_id = _parse_uuid(websocket.query_params.get("user_id"))
        organization_id = _parse_uuid(websocket.query_params.get("organization_id"))
    except ValueError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if user_id is None or not _is_member(db, user_id, organization_id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    session = hub.connect(user_id, organization_id, _unread_count(db, user_id, organization_id))
    await websocket.send_json(
        {
            "type": "connected",
            "session_id": session.session_id,
            "organization_id": _org_str(organization_id),
            "unread_count": session.unread_count,
        }
    )

    pump = asyncio.create_task(_pump(websocket, session))
    receiver = asyncio.create_task(_receive(websocket, session, hub, db))
    try:
        done, pending = await asyncio.wait({pump, receiver}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("Realtime session %s closed with error: %s", session.session_id, exc)
    finally:
        hub.disconnect(session.session_id)
        logger.debug("Realtime session %s disconnected", session.session_id)
