from reqflow.models.category import Category
from reqflow.models.email_job import EmailJob, EmailJobStatus
from reqflow.models.idempotency_record import IdempotencyRecord
from reqflow.models.item import Item
from reqflow.models.item_code_counter import ItemCodeCounter
from reqflow.models.notification import Notification, NotificationType
from reqflow.models.organization import Organization
from reqflow.models.organization_member import OrganizationMember, WorkflowRole
from reqflow.models.requisition import Requisition, RequisitionStatus
from reqflow.models.user import User

__all__ = [
    "Category",
    "EmailJob",
    "EmailJobStatus",
    "IdempotencyRecord",
    "Item",
    "ItemCodeCounter",
    "Notification",
    "NotificationType",
    "Organization",
    "OrganizationMember",
    "Requisition",
    "RequisitionStatus",
    "User",
    "WorkflowRole",
]
