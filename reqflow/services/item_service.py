"""Inventory items with allocated sequential codes."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from reqflow.core.errors import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    ReqflowError,
    TransportError,
)
from reqflow.models.item import Item
from reqflow.repositories.category_repository import CategoryRepository
from reqflow.repositories.item_repository import ItemRepository
from reqflow.schemas.item import ItemCreate
from reqflow.services.sequence_allocator import SequenceAllocator

logger = logging.getLogger(__name__)


class ItemService:
    def __init__(self, db: Session, allocator: SequenceAllocator | None = None):
        self.db = db
        self.repo = ItemRepository(db)
        self.category_repo = CategoryRepository(db)
        self.allocator = allocator or SequenceAllocator(db)

    def get(self, item_id: UUID, organization_id: UUID) -> Item:
        item = self.repo.get_by_id(item_id, organization_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        return item

    def create(self, organization_id: UUID, data: ItemCreate) -> Item:
        """Create an item, allocating its code from the organization's counter.

        The category is validated before a code is allocated so invalid
        requests never consume a number.
        """
        if data.category_id is not None:
            category = self.category_repo.get_by_id(data.category_id, organization_id)
            if category is None:
                raise NotFoundError(f"Category {data.category_id} not found")
            if not category.is_active:
                raise InvalidArgumentError(f"Category '{category.name}' is inactive")

        # The counter update and the item insert commit together, so a failed
        # insert returns the number to the sequence.
        try:
            code = self.allocator.allocate_with_retry(organization_id, commit=False)
        except ReqflowError:
            self.db.rollback()
            raise
        try:
            item = self.repo.create(
                organization_id=organization_id,
                code=code,
                name=data.name,
                description=data.description,
                unit_of_measure=data.unit_of_measure,
                unit_price=data.unit_price,
                category_id=data.category_id,
            )
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(
                f"Item code {code} is already in use in this organization"
            ) from None
        except SQLAlchemyError as e:
            self.db.rollback()
            raise TransportError(f"Could not store item {code}: {e}") from e
        logger.info("Created item %s (%s) in organization %s", item.id, code, organization_id)
        return item
