"""Repository for Notification rows.

Every read and write here filters on both the recipient and the organization.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from reqflow.core.sorting import apply_order_by
from reqflow.models.notification import Notification


class NotificationRepository:
    def __init__(self, db: Session):
        self.db = db

    def create_many(self, rows: Sequence[dict[str, Any]]) -> list[Notification]:
        """Insert all rows in one transaction."""
        notifications = [Notification(**row) for row in rows]
        self.db.add_all(notifications)
        self.db.commit()
        for notification in notifications:
            self.db.refresh(notification)
        return notifications

    def get_by_event_key(self, organization_id: UUID, event_key: str) -> list[Notification]:
        return (
            self.db.query(Notification)
            .filter(
                Notification.organization_id == organization_id,
                Notification.event_key == event_key,
            )
            .all()
        )

    def get_for_recipient(
        self,
        notification_id: UUID,
        recipient_user_id: UUID,
        organization_id: UUID,
    ) -> Notification | None:
        return (
            self.db.query(Notification)
            .filter(
                Notification.id == notification_id,
                Notification.recipient_user_id == recipient_user_id,
                Notification.organization_id == organization_id,
            )
            .first()
        )

    def get_all(
        self,
        recipient_user_id: UUID,
        organization_id: UUID,
        skip: int = 0,
        limit: int = 50,
        type: str | None = None,
        is_read: bool | None = None,
        order_by: str | None = None,
    ) -> list[Notification]:
        query = self.db.query(Notification).filter(
            Notification.recipient_user_id == recipient_user_id,
            Notification.organization_id == organization_id,
        )
        if type is not None:
            query = query.filter(Notification.type == type)
        if is_read is not None:
            query = query.filter(Notification.is_read == is_read)
        query = apply_order_by(query, Notification, order_by)
        return query.offset(skip).limit(limit).all()

    def count_unread(self, recipient_user_id: UUID, organization_id: UUID) -> int:
        return (
            self.db.query(Notification)
            .filter(
                Notification.recipient_user_id == recipient_user_id,
                Notification.organization_id == organization_id,
                Notification.is_read == False,  # noqa: E712
            )
            .count()
        )

    def mark_as_read(
        self,
        notification_id: UUID,
        recipient_user_id: UUID,
        organization_id: UUID,
    ) -> Notification | None:
        notification = self.get_for_recipient(notification_id, recipient_user_id, organization_id)
        if notification is None:
            return None
        notification.is_read = True  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_as_read(self, recipient_user_id: UUID, organization_id: UUID) -> int:
        count = (
            self.db.query(Notification)
            .filter(
                Notification.recipient_user_id == recipient_user_id,
                Notification.organization_id == organization_id,
                Notification.is_read == False,  # noqa: E712
            )
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        self.db.commit()
        return int(count)

    def delete(
        self,
        notification_id: UUID,
        recipient_user_id: UUID,
        organization_id: UUID,
    ) -> bool:
        count = (
            self.db.query(Notification)
            .filter(
                Notification.id == notification_id,
                Notification.recipient_user_id == recipient_user_id,
                Notification.organization_id == organization_id,
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return count == 1

    def delete_all(self, recipient_user_id: UUID, organization_id: UUID) -> int:
        count = (
            self.db.query(Notification)
            .filter(
                Notification.recipient_user_id == recipient_user_id,
                Notification.organization_id == organization_id,
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return int(count)
