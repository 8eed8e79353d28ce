"""Repository for the outbound email queue."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from reqflow.core.sorting import apply_order_by
from reqflow.models.email_job import EmailJob, EmailJobStatus
from reqflow.models.shared import utc_now


class EmailJobRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        *,
        organization_id: UUID,
        recipient_email: str,
        subject: str,
        body_template_id: str,
        body_html: str | None = None,
        body_text: str | None = None,
        notification_id: UUID | None = None,
        recipient_user_id: UUID | None = None,
        status: EmailJobStatus = EmailJobStatus.PENDING,
        error_message: str | None = None,
    ) -> EmailJob:
        job = EmailJob(
            organization_id=organization_id,
            notification_id=notification_id,
            recipient_user_id=recipient_user_id,
            recipient_email=recipient_email,
            subject=subject,
            body_template_id=body_template_id,
            body_html=body_html,
            body_text=body_text,
            status=status.value,
            error_message=error_message,
        )
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        return job

    def get_by_id(self, job_id: UUID, organization_id: UUID) -> EmailJob | None:
        return (
            self.db.query(EmailJob)
            .filter(EmailJob.id == job_id, EmailJob.organization_id == organization_id)
            .first()
        )

    def get_all(
        self,
        organization_id: UUID,
        skip: int = 0,
        limit: int = 100,
        status: str | None = None,
        order_by: str | None = None,
    ) -> list[EmailJob]:
        query = self.db.query(EmailJob).filter(EmailJob.organization_id == organization_id)
        if status is not None:
            query = query.filter(EmailJob.status == status)
        query = apply_order_by(query, EmailJob, order_by)
        return query.offset(skip).limit(limit).all()

    def get_pending(self, limit: int = 10) -> list[EmailJob]:
        """Oldest pending jobs across all organizations, for the dispatcher."""
        return (
            self.db.query(EmailJob)
            .filter(EmailJob.status == EmailJobStatus.PENDING.value)
            .order_by(EmailJob.created_at.asc(), EmailJob.id.asc())
            .limit(limit)
            .all()
        )

    def mark_sent(self, job: EmailJob) -> EmailJob:
        job.status = EmailJobStatus.SENT.value  # type: ignore[assignment]
        job.sent_at = utc_now()  # type: ignore[assignment]
        job.error_message = None  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(job)
        return job

    def mark_failed(self, job: EmailJob, error: str) -> EmailJob:
        job.status = EmailJobStatus.FAILED.value  # type: ignore[assignment]
        job.error_message = error  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(job)
        return job

    def requeue(self, job_id: UUID, organization_id: UUID) -> bool:
        """Move a failed job back to pending. Only failed jobs qualify."""
        count = (
            self.db.query(EmailJob)
            .filter(
                EmailJob.id == job_id,
                EmailJob.organization_id == organization_id,
                EmailJob.status == EmailJobStatus.FAILED.value,
            )
            .update(
                {
                    EmailJob.status: EmailJobStatus.PENDING.value,
                    EmailJob.error_message: None,
                    EmailJob.updated_at: utc_now(),
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        return count == 1
