"""Requisition lifecycle: draft, submit, approve, reject."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reqflow.core.errors import (
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    ReqflowError,
)
from reqflow.models.notification import NotificationType
from reqflow.models.organization_member import APPROVING_ROLES, REVIEWING_ROLES
from reqflow.models.requisition import Requisition, RequisitionStatus
from reqflow.repositories.requisition_repository import RequisitionRepository
from reqflow.schemas.requisition import RequisitionCreate
from reqflow.services.notification_router import NotificationEvent, NotificationRouter
from reqflow.services.organization_service import OrganizationService

logger = logging.getLogger(__name__)

SUBMITTABLE_STATUSES = frozenset({RequisitionStatus.DRAFT.value, RequisitionStatus.REJECTED.value})


def generate_reference(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return f"REQ-{now:%Y%m%d}-{uuid4().hex[:6].upper()}"


def event_key(kind: NotificationType, requisition: Requisition) -> str:
    return f"requisition.{kind.value}:{requisition.id}:{requisition.revision}"


@dataclass
class WorkflowResult:
    requisition: Requisition
    notified_user_ids: set[UUID] = field(default_factory=set)
    emails_queued: int = 0
    notification_error: str | None = None
    email_errors: list[str] = field(default_factory=list)


class RequisitionWorkflow:
    def __init__(self, db: Session, router: NotificationRouter | None = None):
        self.db = db
        self.repo = RequisitionRepository(db)
        self.org_service = OrganizationService(db)
        self.router = router or NotificationRouter(db)

    def get(self, requisition_id: UUID, organization_id: UUID) -> Requisition:
        requisition = self.repo.get_by_id(requisition_id, organization_id)
        if requisition is None:
            raise NotFoundError(f"Requisition {requisition_id} not found")
        return requisition

    def create(
        self,
        organization_id: UUID,
        user_id: UUID,
        data: RequisitionCreate,
    ) -> Requisition:
        """Create a draft owned by ``user_id``. No notifications are sent."""
        self.org_service.require_role(organization_id, user_id)
        requisition = Requisition(
            organization_id=organization_id,
            reference=generate_reference(),
            title=data.title,
            description=data.description,
            total_amount=data.total_amount,
            status=RequisitionStatus.DRAFT.value,
            submitted_by=user_id,
        )
        requisition = self.repo.create(requisition)
        logger.info("Created requisition %s in organization %s", requisition.id, organization_id)
        return requisition

    def submit(self, requisition_id: UUID, organization_id: UUID, user_id: UUID) -> WorkflowResult:
        self.org_service.require_role(organization_id, user_id)
        requisition = self.get(requisition_id, organization_id)
        if requisition.submitted_by != user_id:
            raise PermissionDeniedError("Only the requisition's owner can submit it")
        if requisition.status not in SUBMITTABLE_STATUSES:
            raise InvalidArgumentError(
                f"Cannot submit a requisition in status {requisition.status}"
            )

        requisition.status = RequisitionStatus.PENDING.value  # type: ignore[assignment]
        requisition.submitted_at = datetime.now(UTC)  # type: ignore[assignment]
        requisition.approved_by = None  # type: ignore[assignment]
        requisition.rejected_by = None  # type: ignore[assignment]
        requisition.rejection_reason = None  # type: ignore[assignment]
        requisition.decided_at = None  # type: ignore[assignment]
        return self._transition(requisition, NotificationType.SUBMITTED, user_id)

    def approve(self, requisition_id: UUID, organization_id: UUID, user_id: UUID) -> WorkflowResult:
        self.org_service.require_role(organization_id, user_id, APPROVING_ROLES)
        requisition = self._pending(requisition_id, organization_id, "approve")

        requisition.status = RequisitionStatus.APPROVED.value  # type: ignore[assignment]
        requisition.approved_by = user_id  # type: ignore[assignment]
        requisition.decided_at = datetime.now(UTC)  # type: ignore[assignment]
        return self._transition(requisition, NotificationType.APPROVED, user_id)

    def reject(
        self,
        requisition_id: UUID,
        organization_id: UUID,
        user_id: UUID,
        reason: str | None = None,
    ) -> WorkflowResult:
        self.org_service.require_role(organization_id, user_id, REVIEWING_ROLES)
        requisition = self._pending(requisition_id, organization_id, "reject")

        requisition.status = RequisitionStatus.REJECTED.value  # type: ignore[assignment]
        requisition.rejected_by = user_id  # type: ignore[assignment]
        requisition.rejection_reason = (reason or "").strip() or None  # type: ignore[assignment]
        requisition.decided_at = datetime.now(UTC)  # type: ignore[assignment]
        return self._transition(requisition, NotificationType.REJECTED, user_id)

    def _pending(self, requisition_id: UUID, organization_id: UUID, action: str) -> Requisition:
        requisition = self.get(requisition_id, organization_id)
        if requisition.status != RequisitionStatus.PENDING.value:
            raise InvalidArgumentError(
                f"Cannot {action} a requisition in status {requisition.status}"
            )
        return requisition

    def _transition(
        self,
        requisition: Requisition,
        kind: NotificationType,
        actor_user_id: UUID,
    ) -> WorkflowResult:
        requisition.revision = (requisition.revision or 0) + 1  # type: ignore[assignment]
        requisition = self.repo.save(requisition)
        logger.info(
            "Requisition %s moved to %s by %s", requisition.id, requisition.status, actor_user_id
        )

        requisition_id = requisition.id
        result = WorkflowResult(requisition=requisition)
        event = NotificationEvent(
            organization_id=requisition.organization_id,  # type: ignore[arg-type]
            kind=kind,
            actor_user_id=actor_user_id,
            subject_entity_id=requisition_id,  # type: ignore[arg-type]
            event_key=event_key(kind, requisition),
        )
        try:
            dispatched = self.router.dispatch(event)
        except ReqflowError as e:
            logger.exception(
                "Notification dispatch failed for requisition %s (%s)", requisition_id, kind.value
            )
            result.notification_error = str(e)
            return result
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(
                "Notification dispatch failed for requisition %s (%s)", requisition_id, kind.value
            )
            result.notification_error = f"Notification store unavailable: {e}"
            return result

        result.notified_user_ids = dispatched.recipients
        result.emails_queued = len(dispatched.email_jobs)
        result.email_errors = dispatched.email_errors
        return result
