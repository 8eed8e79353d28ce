import logging
from typing import Any

from arq import cron

from reqflow.core.config import settings
from reqflow.core.database import SessionLocal
from reqflow.repositories.idempotency_repository import IdempotencyRepository
from reqflow.services.email_service import EmailDispatcher
from reqflow.tasks import redis_settings

logger = logging.getLogger(__name__)


async def process_email_queue_task(ctx: dict[str, Any]) -> int:
    """Background task: deliver pending email jobs, oldest first.

    Runs every minute. Each job ends up ``sent`` or ``failed``.
    """
    db = SessionLocal()
    try:
        dispatcher = EmailDispatcher(db)
        report = await dispatcher.deliver_pending(settings.EMAIL_QUEUE_BATCH_SIZE)
        return report.processed
    finally:
        db.close()


async def cleanup_idempotency_records_task(ctx: dict[str, Any]) -> int:
    """Background task: delete idempotency records older than a day."""
    db = SessionLocal()
    try:
        count = IdempotencyRepository(db).delete_expired(max_age_hours=24)
        if count > 0:
            logger.info("Deleted %d expired idempotency records", count)
        return count
    finally:
        db.close()


class WorkerSettings:
    functions = [
        process_email_queue_task,
        cleanup_idempotency_records_task,
    ]
    cron_jobs = [
        cron(process_email_queue_task),  # every minute
        cron(cleanup_idempotency_records_task, minute={30}),  # hourly
    ]
    redis_settings = redis_settings
