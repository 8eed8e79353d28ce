"""Tests for the requisition workflow and its notifications."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from reqflow.core.errors import InvalidArgumentError, NotFoundError, PermissionDeniedError
from reqflow.models.email_job import EmailJob
from reqflow.models.notification import Notification, NotificationType
from reqflow.models.requisition import RequisitionStatus
from reqflow.repositories.email_job_repository import EmailJobRepository
from reqflow.repositories.notification_repository import NotificationRepository
from reqflow.schemas.requisition import RequisitionCreate
from reqflow.services.notification_router import NotificationRouter
from reqflow.services.requisition_workflow import RequisitionWorkflow, event_key, generate_reference
from tests.conftest import (
    ADMIN_ID,
    ALPHA_ORG_ID,
    APPROVER_ID,
    BETA_ORG_ID,
    OUTSIDER_ID,
    REVIEWER_ID,
    SUBMITTER_ID,
)


@pytest.fixture
def workflow(db_session, hub):
    return RequisitionWorkflow(db_session, router=NotificationRouter(db_session, hub=hub))


@pytest.fixture
def draft(workflow):
    return workflow.create(
        ALPHA_ORG_ID,
        SUBMITTER_ID,
        RequisitionCreate(title="Laptops", total_amount=Decimal("2400.00")),
    )


def test_reference_format():
    reference = generate_reference()
    prefix, date, suffix = reference.split("-")
    assert prefix == "REQ"
    assert len(date) == 8 and date.isdigit()
    assert len(suffix) == 6


class TestCreate:
    def test_creates_draft(self, draft):
        assert draft.status == RequisitionStatus.DRAFT.value
        assert draft.submitted_by == SUBMITTER_ID
        assert draft.revision == 0

    def test_non_member_cannot_create(self, workflow):
        with pytest.raises(PermissionDeniedError):
            workflow.create(ALPHA_ORG_ID, OUTSIDER_ID, RequisitionCreate(title="Chairs"))

    def test_create_sends_no_notifications(self, db_session, draft):
        assert db_session.query(Notification).count() == 0


class TestSubmit:
    def test_submit_notifies_reviewers(self, workflow, draft, db_session):
        result = workflow.submit(draft.id, ALPHA_ORG_ID, SUBMITTER_ID)

        assert result.requisition.status == RequisitionStatus.PENDING.value
        assert result.requisition.revision == 1
        assert result.notified_user_ids == {REVIEWER_ID, APPROVER_ID, ADMIN_ID}
        assert result.emails_queued == 3
        assert result.notification_error is None

        keys = {n.event_key for n in db_session.query(Notification).all()}
        assert keys == {f"requisition.submitted:{draft.id}:1"}

    def test_only_owner_can_submit(self, workflow, draft):
        with pytest.raises(PermissionDeniedError):
            workflow.submit(draft.id, ALPHA_ORG_ID, ADMIN_ID)

    def test_cannot_submit_twice(self, workflow, draft):
        workflow.submit(draft.id, ALPHA_ORG_ID, SUBMITTER_ID)
        with pytest.raises(InvalidArgumentError):
            workflow.submit(draft.id, ALPHA_ORG_ID, SUBMITTER_ID)

    def test_other_organization_header_cannot_see_requisition(self, workflow, draft):
        with pytest.raises(NotFoundError):
            workflow.submit(draft.id, BETA_ORG_ID, SUBMITTER_ID)


class TestDecisions:
    @pytest.fixture
    def pending(self, workflow, draft):
        return workflow.submit(draft.id, ALPHA_ORG_ID, SUBMITTER_ID).requisition

    def test_approve_notifies_submitter(self, workflow, pending, db_session):
        result = workflow.approve(pending.id, ALPHA_ORG_ID, APPROVER_ID)

        assert result.requisition.status == RequisitionStatus.APPROVED.value
        assert result.requisition.approved_by == APPROVER_ID
        assert result.requisition.decided_at is not None
        assert result.notified_user_ids == {SUBMITTER_ID}

        email = (
            db_session.query(EmailJob)
            .filter(EmailJob.recipient_user_id == SUBMITTER_ID)
            .one()
        )
        assert "Alpha Corp" in email.body_text
        assert "Alex Approver" in email.body_text

    def test_reviewer_cannot_approve(self, workflow, pending):
        with pytest.raises(PermissionDeniedError):
            workflow.approve(pending.id, ALPHA_ORG_ID, REVIEWER_ID)

    def test_reviewer_can_reject_with_reason(self, workflow, pending, db_session):
        result = workflow.reject(pending.id, ALPHA_ORG_ID, REVIEWER_ID, reason="Over budget")

        assert result.requisition.status == RequisitionStatus.REJECTED.value
        assert result.requisition.rejection_reason == "Over budget"
        notification = (
            db_session.query(Notification)
            .filter(Notification.type == NotificationType.REJECTED.value)
            .one()
        )
        assert notification.recipient_user_id == SUBMITTER_ID
        assert "Over budget" in notification.message

    def test_reject_without_reason(self, workflow, pending, db_session):
        result = workflow.reject(pending.id, ALPHA_ORG_ID, REVIEWER_ID, reason="  ")
        assert result.requisition.rejection_reason is None
        email = (
            db_session.query(EmailJob)
            .filter(EmailJob.subject.like("Requisition Rejected%"))
            .one()
        )
        assert "No reason provided" in email.body_text

    def test_submitter_cannot_reject(self, workflow, pending):
        with pytest.raises(PermissionDeniedError):
            workflow.reject(pending.id, ALPHA_ORG_ID, SUBMITTER_ID)

    def test_cannot_approve_draft(self, workflow, draft):
        with pytest.raises(InvalidArgumentError):
            workflow.approve(draft.id, ALPHA_ORG_ID, APPROVER_ID)

    def test_resubmit_after_rejection_notifies_again(self, workflow, pending, db_session):
        workflow.reject(pending.id, ALPHA_ORG_ID, REVIEWER_ID)
        result = workflow.submit(pending.id, ALPHA_ORG_ID, SUBMITTER_ID)

        assert result.requisition.revision == 3
        assert result.requisition.rejection_reason is None
        assert result.notified_user_ids == {REVIEWER_ID, APPROVER_ID, ADMIN_ID}
        submitted = (
            db_session.query(Notification)
            .filter(Notification.type == NotificationType.SUBMITTED.value)
            .count()
        )
        assert submitted == 6


class TestDispatchFailure:
    def test_transition_survives_dispatch_failure(self, db_session, draft):
        router = MagicMock()
        router.dispatch.side_effect = NotFoundError("Email template 'x' not found")
        workflow = RequisitionWorkflow(db_session, router=router)

        result = workflow.submit(draft.id, ALPHA_ORG_ID, SUBMITTER_ID)

        assert result.requisition.status == RequisitionStatus.PENDING.value
        assert result.notification_error == "Email template 'x' not found"
        assert result.notified_user_ids == set()
        db_session.expire_all()
        assert workflow.get(draft.id, ALPHA_ORG_ID).status == RequisitionStatus.PENDING.value

    def test_approval_survives_notification_store_failure(self, workflow, draft, db_session):
        workflow.submit(draft.id, ALPHA_ORG_ID, SUBMITTER_ID)
        locked = OperationalError("INSERT INTO notifications", {}, Exception("database is locked"))

        with patch.object(NotificationRepository, "create_many", side_effect=locked):
            result = workflow.approve(draft.id, ALPHA_ORG_ID, APPROVER_ID)

        assert result.requisition.status == RequisitionStatus.APPROVED.value
        assert "database is locked" in result.notification_error
        assert result.notified_user_ids == set()
        db_session.expire_all()
        assert workflow.get(draft.id, ALPHA_ORG_ID).status == RequisitionStatus.APPROVED.value
        approved = (
            db_session.query(Notification)
            .filter(Notification.type == NotificationType.APPROVED.value)
            .count()
        )
        assert approved == 0

    def test_approval_survives_email_queue_failure(self, workflow, draft, db_session):
        workflow.submit(draft.id, ALPHA_ORG_ID, SUBMITTER_ID)
        locked = OperationalError("INSERT INTO email_jobs", {}, Exception("database is locked"))

        with patch.object(EmailJobRepository, "create", side_effect=locked):
            result = workflow.approve(draft.id, ALPHA_ORG_ID, APPROVER_ID)

        assert result.requisition.status == RequisitionStatus.APPROVED.value
        assert result.notification_error is not None
        db_session.expire_all()
        assert workflow.get(draft.id, ALPHA_ORG_ID).status == RequisitionStatus.APPROVED.value

    def test_unexpected_store_error_from_dispatch_is_reported(self, db_session, draft):
        router = MagicMock()
        router.dispatch.side_effect = OperationalError("SELECT", {}, Exception("server closed"))
        workflow = RequisitionWorkflow(db_session, router=router)

        result = workflow.submit(draft.id, ALPHA_ORG_ID, SUBMITTER_ID)

        assert result.requisition.status == RequisitionStatus.PENDING.value
        assert "server closed" in result.notification_error

    def test_event_key_includes_revision(self, workflow, draft):
        draft.revision = 4
        assert event_key(NotificationType.APPROVED, draft) == f"requisition.approved:{draft.id}:4"
