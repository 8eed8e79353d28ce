from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from reqflow.models.email_job import EmailJobStatus


class EmailJobResponse(BaseModel):
    id: UUID
    organization_id: UUID
    notification_id: UUID | None
    recipient_user_id: UUID | None
    recipient_email: str
    subject: str
    body_template_id: str
    status: EmailJobStatus
    error_message: str | None
    sent_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}
