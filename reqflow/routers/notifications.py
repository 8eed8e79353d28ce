"""Notification inbox endpoints.

Every endpoint is scoped to the calling user AND the organization selected
for the request.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from reqflow.core.auth import get_current_organization, get_current_user
from reqflow.core.database import get_db
from reqflow.core.errors import ReqflowError, to_http_exception
from reqflow.models.notification import Notification, NotificationType
from reqflow.models.organization_member import REVIEWING_ROLES
from reqflow.schemas.notification import (
    CustomNotificationCreate,
    CustomNotificationResponse,
    NotificationBulkResponse,
    NotificationCountResponse,
    NotificationResponse,
)
from reqflow.services.notification_router import NotificationEvent, NotificationRouter
from reqflow.services.organization_service import OrganizationService

router = APIRouter()


@router.get(
    "/",
    response_model=list[NotificationResponse],
    summary="List notifications",
)
async def list_notifications(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    type: NotificationType | None = None,
    is_read: bool | None = None,
    order_by: str | None = Query(default=None),
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> list[Notification]:
    return NotificationRouter(db).list_for(
        user_id,
        organization_id,
        skip=skip,
        limit=limit,
        type=type.value if type else None,
        is_read=is_read,
        order_by=order_by,
    )


@router.get(
    "/unread_count",
    response_model=NotificationCountResponse,
    summary="Get unread notification count",
)
async def get_unread_count(
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> NotificationCountResponse:
    count = NotificationRouter(db).count_unread(user_id, organization_id)
    return NotificationCountResponse(unread_count=count)


@router.post(
    "/read_all",
    response_model=NotificationBulkResponse,
    summary="Mark all notifications as read",
)
async def mark_all_as_read(
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> NotificationBulkResponse:
    """Only the current organization's notifications are touched."""
    count = NotificationRouter(db).mark_all_read(user_id, organization_id)
    return NotificationBulkResponse(affected=count)


@router.delete(
    "/",
    response_model=NotificationBulkResponse,
    summary="Clear all notifications",
)
async def clear_all(
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> NotificationBulkResponse:
    """Only the current organization's notifications are deleted."""
    count = NotificationRouter(db).clear_all(user_id, organization_id)
    return NotificationBulkResponse(affected=count)


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification as read",
    responses={404: {"description": "Notification not found"}},
)
async def mark_as_read(
    notification_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> Notification:
    try:
        return NotificationRouter(db).mark_read(notification_id, user_id, organization_id)
    except ReqflowError as e:
        raise to_http_exception(e) from None


@router.delete(
    "/{notification_id}",
    status_code=204,
    summary="Delete a notification",
    responses={404: {"description": "Notification not found"}},
)
async def delete_notification(
    notification_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> Response:
    try:
        NotificationRouter(db).delete(notification_id, user_id, organization_id)
    except ReqflowError as e:
        raise to_http_exception(e) from None
    return Response(status_code=204)


@router.post(
    "/custom",
    response_model=CustomNotificationResponse,
    status_code=201,
    summary="Send a custom notification",
    responses={
        400: {"description": "Recipient is not a member of the organization"},
        403: {"description": "Reviewing role required"},
    },
)
async def send_custom_notification(
    data: CustomNotificationCreate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> CustomNotificationResponse:
    event = NotificationEvent(
        organization_id=organization_id,
        kind=NotificationType.CUSTOM,
        actor_user_id=user_id,
        recipient_user_ids=tuple(data.recipient_user_ids),
        title=data.title,
        message=data.message,
        link=data.link,
        event_key=data.event_key,
    )
    try:
        OrganizationService(db).require_role(organization_id, user_id, REVIEWING_ROLES)
        result = NotificationRouter(db).dispatch(event, send_email=data.send_email)
    except ReqflowError as e:
        raise to_http_exception(e) from None
    return CustomNotificationResponse(
        recipient_user_ids=sorted(result.recipients, key=str),
        emails_queued=len(result.email_jobs),
        email_errors=result.email_errors,
    )
