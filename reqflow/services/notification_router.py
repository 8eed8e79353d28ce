"""Routes domain events to per-organization notifications.

The router resolves recipients for an event, persists one ``Notification``
per recipient, pushes each one to the realtime hub and queues emails. Every
row it writes takes its ``organization_id`` from the event (and, for email,
from the event's requisition), never from where a recipient happens to be
working at the moment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from reqflow.core.config import settings
from reqflow.core.errors import (
    InvalidArgumentError,
    NotFoundError,
    TemplateError,
    TransportError,
)
from reqflow.models.email_job import EmailJob, EmailJobStatus
from reqflow.models.notification import Notification, NotificationType
from reqflow.models.organization import Organization
from reqflow.models.organization_member import REVIEWING_ROLES
from reqflow.models.requisition import Requisition
from reqflow.repositories.email_job_repository import EmailJobRepository
from reqflow.repositories.member_repository import MemberRepository
from reqflow.repositories.notification_repository import NotificationRepository
from reqflow.repositories.organization_repository import OrganizationRepository
from reqflow.repositories.requisition_repository import RequisitionRepository
from reqflow.repositories.user_repository import UserRepository
from reqflow.services.email_templates import (
    TEMPLATE_CUSTOM,
    TEMPLATE_REQUISITION_APPROVED,
    TEMPLATE_REQUISITION_REJECTED,
    TEMPLATE_REQUISITION_SUBMITTED,
    get_template,
    render_template,
)
from reqflow.services.realtime import RealtimeHub, get_realtime_hub

logger = logging.getLogger(__name__)

RESOURCE_REQUISITION = "requisition"

DEFAULT_TEMPLATES: dict[NotificationType, str] = {
    NotificationType.SUBMITTED: TEMPLATE_REQUISITION_SUBMITTED,
    NotificationType.APPROVED: TEMPLATE_REQUISITION_APPROVED,
    NotificationType.REJECTED: TEMPLATE_REQUISITION_REJECTED,
    NotificationType.CUSTOM: TEMPLATE_CUSTOM,
}


@dataclass(frozen=True)
class NotificationEvent:
    """A domain event to notify about.

    ``recipient_user_ids``, ``title``, ``message`` and ``link`` are only used
    by custom events; requisition events derive them from the requisition.
    """

    organization_id: UUID
    kind: NotificationType
    actor_user_id: UUID
    subject_entity_id: UUID | None = None
    recipient_user_ids: tuple[UUID, ...] = ()
    title: str | None = None
    message: str | None = None
    link: str | None = None
    event_key: str | None = None


@dataclass
class DispatchResult:
    recipients: set[UUID]
    notifications: list[Notification] = field(default_factory=list)
    email_jobs: list[EmailJob] = field(default_factory=list)
    email_errors: list[str] = field(default_factory=list)
    duplicate: bool = False


def _format_amount(value: object) -> str:
    if value is None:
        return "0.00"
    return f"{Decimal(str(value)):,.2f}"


def _requisition_message(
    kind: NotificationType, req: Requisition, actor_name: str
) -> tuple[str, str]:
    if kind == NotificationType.SUBMITTED:
        return (
            "New Requisition Submitted",
            f'{actor_name} submitted requisition "{req.title}" for review.',
        )
    if kind == NotificationType.APPROVED:
        return (
            "Requisition Approved",
            f'Your requisition "{req.title}" has been approved by {actor_name}.',
        )
    message = f'Your requisition "{req.title}" has been rejected by {actor_name}.'
    if req.rejection_reason:
        message += f" Reason: {req.rejection_reason}"
    return "Requisition Rejected", message


class NotificationRouter:
    def __init__(self, db: Session, hub: RealtimeHub | None = None):
        self.db = db
        self.hub = hub or get_realtime_hub()
        self.notification_repo = NotificationRepository(db)
        self.email_repo = EmailJobRepository(db)
        self.member_repo = MemberRepository(db)
        self.org_repo = OrganizationRepository(db)
        self.requisition_repo = RequisitionRepository(db)
        self.user_repo = UserRepository(db)

    # ── Event fan-out ────────────────────────────────────────────────

    def notify(self, event: NotificationEvent) -> set[UUID]:
        """Persist and push notifications for ``event``; return the recipients."""
        notifications, _ = self._notify(event)
        return {n.recipient_user_id for n in notifications}  # type: ignore[misc]

    def dispatch(self, event: NotificationEvent, send_email: bool = True) -> DispatchResult:
        """``notify`` followed by one email per created notification.

        Template failures are recorded as failed email jobs, logged and
        returned in ``email_errors``; the notifications stay committed.
        A store failure while writing notifications or jobs is raised as
        ``TransportError``.
        """
        notifications, duplicate = self._notify(event)
        result = DispatchResult(
            recipients={n.recipient_user_id for n in notifications},  # type: ignore[misc]
            notifications=notifications,
            duplicate=duplicate,
        )
        if duplicate or not send_email:
            return result

        template_id = DEFAULT_TEMPLATES[event.kind]
        for notification in notifications:
            try:
                job = self.enqueue_email(notification, template_id)
            except TemplateError as e:
                logger.warning(
                    "Email for notification %s could not be rendered: %s", notification.id, e
                )
                result.email_errors.append(str(e))
                continue
            if job is not None:
                result.email_jobs.append(job)
        return result

    def _notify(self, event: NotificationEvent) -> tuple[list[Notification], bool]:
        organization = self.org_repo.get_by_id(event.organization_id)
        if organization is None:
            raise NotFoundError(f"Organization {event.organization_id} not found")

        if event.event_key:
            existing = self.notification_repo.get_by_event_key(
                event.organization_id, event.event_key
            )
            if existing:
                logger.info(
                    "Event %s already notified in organization %s; skipping",
                    event.event_key,
                    event.organization_id,
                )
                return existing, True

        rows = self._build_rows(event)
        if not rows:
            logger.info(
                "No recipients for %s event in organization %s",
                event.kind.value,
                event.organization_id,
            )
            return [], False

        try:
            notifications = self.notification_repo.create_many(rows)
        except IntegrityError:
            # A concurrent dispatch of the same event_key won.
            self.db.rollback()
            if not event.event_key:
                raise
            return (
                self.notification_repo.get_by_event_key(event.organization_id, event.event_key),
                True,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise TransportError(
                f"Could not store {event.kind.value} notifications for organization "
                f"{event.organization_id}: {e}"
            ) from e

        for notification in notifications:
            self.deliver_realtime(notification)
        logger.info(
            "Created %d %s notifications in organization %s",
            len(notifications),
            event.kind.value,
            event.organization_id,
        )
        return notifications, False

    def _build_rows(self, event: NotificationEvent) -> list[dict[str, Any]]:
        if event.kind == NotificationType.CUSTOM:
            recipients = self._custom_recipients(event)
            if not event.title or not event.message:
                raise InvalidArgumentError("Custom notifications require a title and a message")
            title, message, link = event.title, event.message, event.link
            resource_type = None
            resource_id = event.subject_entity_id
        else:
            requisition = self._event_requisition(event)
            recipients = self._requisition_recipients(event, requisition)
            actor = self.user_repo.get_by_id(event.actor_user_id)
            actor_name = str(actor.full_name) if actor is not None else "Someone"
            title, message = _requisition_message(event.kind, requisition, actor_name)
            link = f"/requisitions/{requisition.id}"
            resource_type = RESOURCE_REQUISITION
            resource_id = requisition.id

        return [
            {
                "organization_id": event.organization_id,
                "recipient_user_id": recipient,
                "type": event.kind.value,
                "title": title,
                "message": message,
                "link": link,
                "resource_type": resource_type,
                "resource_id": resource_id,
                "event_key": event.event_key,
            }
            for recipient in sorted(recipients, key=str)
        ]

    def _event_requisition(self, event: NotificationEvent) -> Requisition:
        if event.subject_entity_id is None:
            raise InvalidArgumentError(f"A {event.kind.value} event requires a requisition id")
        requisition = self.requisition_repo.get_unscoped(event.subject_entity_id)
        if requisition is None:
            raise NotFoundError(f"Requisition {event.subject_entity_id} not found")
        if requisition.organization_id != event.organization_id:
            raise InvalidArgumentError(
                f"Requisition {requisition.id} does not belong to organization "
                f"{event.organization_id}"
            )
        return requisition

    def _requisition_recipients(
        self,
        event: NotificationEvent,
        requisition: Requisition,
    ) -> set[UUID]:
        if event.kind == NotificationType.SUBMITTED:
            reviewers = self.member_repo.user_ids_with_roles(event.organization_id, REVIEWING_ROLES)
            return {uid for uid in reviewers if uid != event.actor_user_id}
        return {requisition.submitted_by}  # type: ignore[arg-type]

    def _custom_recipients(self, event: NotificationEvent) -> set[UUID]:
        requested = set(event.recipient_user_ids)
        if not requested:
            raise InvalidArgumentError("Custom notifications require at least one recipient")
        members = self.member_repo.active_member_ids(event.organization_id, requested)
        outsiders = requested - members
        if outsiders:
            listed = ", ".join(sorted(str(uid) for uid in outsiders))
            raise InvalidArgumentError(
                f"Recipients are not members of organization {event.organization_id}: {listed}"
            )
        return requested

    # ── Delivery channels ────────────────────────────────────────────

    def deliver_realtime(self, notification: Notification) -> int:
        """Push to live sessions of the recipient on the notification's organization."""
        delivered = self.hub.publish(notification)
        if delivered == 0:
            logger.debug(
                "Notification %s persisted without live delivery", notification.id
            )
        return delivered

    def enqueue_email(self, notification: Notification, template_id: str) -> EmailJob | None:
        """Render ``template_id`` for ``notification`` and queue the email.

        Returns None when the recipient has no address or has opted out.

        Raises:
            NotFoundError: unknown template or missing organization.
            InvalidArgumentError: the triggering requisition belongs to a
                different organization than the notification.
            TemplateError: a placeholder had no value. A ``failed`` job is
                recorded before this is raised.
            TransportError: the store rejected the email job.
        """
        get_template(template_id)

        recipient = self.user_repo.get_by_id(notification.recipient_user_id)  # type: ignore[arg-type]
        if recipient is None or not recipient.email:
            logger.warning(
                "Recipient %s has no email address; no email for notification %s",
                notification.recipient_user_id,
                notification.id,
            )
            return None
        if not recipient.email_notifications_enabled:
            logger.debug("User %s has email notifications disabled", recipient.id)
            return None

        organization, requisition = self._email_source(notification)
        context = self._email_context(notification, organization, requisition)
        context["recipient_name"] = recipient.full_name

        try:
            rendered = render_template(template_id, context)
        except TemplateError as e:
            self._store_job(
                organization_id=organization.id,
                notification_id=notification.id,
                recipient_user_id=recipient.id,
                recipient_email=str(recipient.email),
                subject=str(notification.title),
                body_template_id=template_id,
                status=EmailJobStatus.FAILED,
                error_message=str(e),
            )
            raise

        return self._store_job(
            organization_id=organization.id,
            notification_id=notification.id,
            recipient_user_id=recipient.id,
            recipient_email=str(recipient.email),
            subject=rendered.subject,
            body_template_id=template_id,
            body_html=rendered.html,
            body_text=rendered.text,
        )

    def _store_job(self, **fields: Any) -> EmailJob:
        try:
            return self.email_repo.create(**fields)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise TransportError(
                f"Could not queue email to {fields['recipient_email']}: {e}"
            ) from e

    def _email_source(self, notification: Notification) -> tuple[Organization, Requisition | None]:
        """Organization (and requisition) an email is about.

        For requisition notifications the organization is reached through the
        requisition itself.
        """
        requisition = None
        organization_id = notification.organization_id
        if notification.resource_type == RESOURCE_REQUISITION and notification.resource_id:
            requisition = self.requisition_repo.get_unscoped(notification.resource_id)  # type: ignore[arg-type]
            if requisition is None:
                raise NotFoundError(f"Requisition {notification.resource_id} not found")
            if requisition.organization_id != notification.organization_id:
                raise InvalidArgumentError(
                    f"Notification {notification.id} and requisition {requisition.id} "
                    "belong to different organizations"
                )
            organization_id = requisition.organization_id

        organization = self.org_repo.get_by_id(organization_id)  # type: ignore[arg-type]
        if organization is None:
            raise NotFoundError(f"Organization {organization_id} not found")
        return organization, requisition

    def _email_context(
        self,
        notification: Notification,
        organization: Organization,
        requisition: Requisition | None,
    ) -> dict[str, Any]:
        base_url = settings.APP_BASE_URL.rstrip("/")
        context: dict[str, Any] = {
            "organization_name": organization.name,
            "title": notification.title,
            "message": notification.message,
            "link": f"{base_url}{notification.link}" if notification.link else None,
        }
        if requisition is not None:
            actor_id = requisition.submitted_by
            if notification.type == NotificationType.APPROVED.value:
                actor_id = requisition.approved_by
            elif notification.type == NotificationType.REJECTED.value:
                actor_id = requisition.rejected_by
            actor = self.user_repo.get_by_id(actor_id) if actor_id else None  # type: ignore[arg-type]
            context.update(
                {
                    "requisition_reference": requisition.reference,
                    "requisition_title": requisition.title,
                    "total_amount": _format_amount(requisition.total_amount),
                    "actor_name": actor.full_name if actor is not None else None,
                    "rejection_reason": requisition.rejection_reason or "No reason provided",
                }
            )
        return context

    # ── Inbox operations ─────────────────────────────────────────────

    def list_for(
        self,
        user_id: UUID,
        organization_id: UUID,
        skip: int = 0,
        limit: int = 50,
        type: str | None = None,
        is_read: bool | None = None,
        order_by: str | None = None,
    ) -> list[Notification]:
        return self.notification_repo.get_all(
            user_id,
            organization_id,
            skip=skip,
            limit=limit,
            type=type,
            is_read=is_read,
            order_by=order_by,
        )

    def count_unread(self, user_id: UUID, organization_id: UUID) -> int:
        return self.notification_repo.count_unread(user_id, organization_id)

    def mark_read(
        self, notification_id: UUID, user_id: UUID, organization_id: UUID
    ) -> Notification:
        notification = self.notification_repo.mark_as_read(
            notification_id, user_id, organization_id
        )
        if notification is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        self._push_unread_count(user_id, organization_id)
        return notification

    def delete(self, notification_id: UUID, user_id: UUID, organization_id: UUID) -> None:
        if not self.notification_repo.delete(notification_id, user_id, organization_id):
            raise NotFoundError(f"Notification {notification_id} not found")
        self._push_unread_count(user_id, organization_id)

    def mark_all_read(self, user_id: UUID, organization_id: UUID) -> int:
        count = self.notification_repo.mark_all_as_read(user_id, organization_id)
        self._push_unread_count(user_id, organization_id)
        return count

    def clear_all(self, user_id: UUID, organization_id: UUID) -> int:
        count = self.notification_repo.delete_all(user_id, organization_id)
        self._push_unread_count(user_id, organization_id)
        return count

    def _push_unread_count(self, user_id: UUID, organization_id: UUID) -> None:
        self.hub.update_unread_count(
            user_id, organization_id, self.notification_repo.count_unread(user_id, organization_id)
        )


__all__ = [
    "DEFAULT_TEMPLATES",
    "DispatchResult",
    "NotificationEvent",
    "NotificationRouter",
]
