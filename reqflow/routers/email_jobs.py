"""Outbound email queue endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from reqflow.core.auth import get_current_organization, get_current_user
from reqflow.core.database import get_db
from reqflow.core.errors import ReqflowError, to_http_exception
from reqflow.models.email_job import EmailJob, EmailJobStatus
from reqflow.models.organization_member import WorkflowRole
from reqflow.repositories.email_job_repository import EmailJobRepository
from reqflow.schemas.email_job import EmailJobResponse
from reqflow.services.email_service import EmailDispatcher
from reqflow.services.organization_service import OrganizationService
from reqflow.tasks import enqueue_process_email_queue

router = APIRouter()


@router.get(
    "/",
    response_model=list[EmailJobResponse],
    summary="List email jobs",
)
async def list_email_jobs(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    status: EmailJobStatus | None = None,
    order_by: str | None = Query(default=None),
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[EmailJob]:
    return EmailJobRepository(db).get_all(
        organization_id,
        skip=skip,
        limit=limit,
        status=status.value if status else None,
        order_by=order_by,
    )


@router.post(
    "/{job_id}/requeue",
    response_model=EmailJobResponse,
    summary="Requeue a failed email job",
    responses={
        400: {"description": "Only failed jobs can be requeued"},
        403: {"description": "Admin role required"},
        404: {"description": "Email job not found"},
    },
)
async def requeue_email_job(
    job_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
    user_id: UUID = Depends(get_current_user),
) -> EmailJob:
    try:
        OrganizationService(db).require_role(
            organization_id, user_id, frozenset({WorkflowRole.ADMIN})
        )
        return EmailDispatcher(db).requeue(job_id, organization_id)
    except ReqflowError as e:
        raise to_http_exception(e) from None


@router.post(
    "/process",
    status_code=202,
    summary="Enqueue email queue processing",
    description="Enqueue a background task that delivers pending email jobs.",
)
async def enqueue_email_processing() -> dict[str, str]:
    job = await enqueue_process_email_queue()
    return {"job_id": job.job_id}
