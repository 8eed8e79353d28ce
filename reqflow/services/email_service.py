"""Email service: SMTP transport and the outbound queue dispatcher."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from email.message import EmailMessage
from uuid import UUID

import aiosmtplib
from sqlalchemy.orm import Session

from reqflow.core.config import settings
from reqflow.core.errors import InvalidArgumentError, NotFoundError, TransportError
from reqflow.models.email_job import EmailJob, EmailJobStatus
from reqflow.repositories.email_job_repository import EmailJobRepository

logger = logging.getLogger(__name__)


@dataclass
class DeliveryReport:
    sent: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.sent + self.failed


class EmailService:
    """Sends transactional emails via SMTP."""

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
    ) -> bool:
        """Send an email via SMTP.

        Args:
            to: Recipient email address.
            subject: Email subject line.
            html_body: HTML content of the email.
            text_body: Plain-text alternative.

        Returns:
            True if sent (or a no-op when SMTP is unconfigured).

        Raises:
            TransportError: the relay refused the message or was unreachable.
        """
        if not settings.SMTP_HOST:
            logger.info("SMTP not configured, skipping email to %s: %s", to, subject)
            return True

        msg = EmailMessage()
        msg["From"] = f"{settings.SMTP_FROM_NAME} <{settings.SMTP_FROM_EMAIL}>"
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text_body or "Please view this email in an HTML-capable client.")
        msg.add_alternative(html_body, subtype="html")

        try:
            await aiosmtplib.send(
                msg,
                hostname=settings.SMTP_HOST,
                port=settings.SMTP_PORT,
                username=settings.SMTP_USERNAME or None,
                password=settings.SMTP_PASSWORD or None,
                start_tls=settings.SMTP_USE_TLS,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            raise TransportError(f"SMTP delivery to {to} failed: {e}") from e
        logger.info("Email sent to %s: %s", to, subject)
        return True


class EmailDispatcher:
    """Drains pending email jobs through an ``EmailService``."""

    def __init__(self, db: Session, email_service: EmailService | None = None):
        self.db = db
        self.repo = EmailJobRepository(db)
        self.email_service = email_service or EmailService()

    async def deliver(self, job: EmailJob) -> EmailJob:
        """Send one job and record the outcome. Failures are terminal."""
        try:
            await self.email_service.send_email(
                to=str(job.recipient_email),
                subject=str(job.subject),
                html_body=str(job.body_html or ""),
                text_body=str(job.body_text) if job.body_text else None,
            )
        except TransportError as e:
            logger.warning("Email job %s failed: %s", job.id, e)
            return self.repo.mark_failed(job, str(e))
        return self.repo.mark_sent(job)

    async def deliver_pending(self, limit: int | None = None) -> DeliveryReport:
        """Deliver up to ``limit`` pending jobs, oldest first."""
        report = DeliveryReport()
        jobs = self.repo.get_pending(limit or settings.EMAIL_QUEUE_BATCH_SIZE)
        for job in jobs:
            if not job.body_html and not job.body_text:
                self.repo.mark_failed(job, "Email job has no rendered body")
                report.failed += 1
                continue
            delivered = await self.deliver(job)
            if delivered.status == EmailJobStatus.SENT.value:
                report.sent += 1
            else:
                report.failed += 1
        if report.processed:
            logger.info(
                "Processed %d email jobs (%d sent, %d failed)",
                report.processed,
                report.sent,
                report.failed,
            )
        return report

    def requeue(self, job_id: UUID, organization_id: UUID) -> EmailJob:
        """Return a failed job to the queue for another attempt."""
        job = self.repo.get_by_id(job_id, organization_id)
        if job is None:
            raise NotFoundError(f"Email job {job_id} not found")
        if not self.repo.requeue(job_id, organization_id):
            raise InvalidArgumentError(
                f"Email job {job_id} is {job.status}; only failed jobs can be requeued"
            )
        self.db.refresh(job)
        return job
