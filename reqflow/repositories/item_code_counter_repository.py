"""Repository for the per-organization item code counter.

The counter row is the one contended resource in the system. Writers never
assign ``next_number`` from a value they read earlier without making the
update conditional on that value still being current.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from reqflow.models.item_code_counter import ItemCodeCounter
from reqflow.models.shared import utc_now


class ItemCodeCounterRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_organization(self, organization_id: UUID) -> ItemCodeCounter | None:
        return (
            self.db.query(ItemCodeCounter)
            .filter(ItemCodeCounter.organization_id == organization_id)
            .populate_existing()
            .first()
        )

    def add(
        self,
        organization_id: UUID,
        prefix: str,
        padding: int,
        next_number: int = 1,
    ) -> ItemCodeCounter:
        """Stage a counter row; committed together with its organization."""
        counter = ItemCodeCounter(
            organization_id=organization_id,
            prefix=prefix,
            padding=padding,
            next_number=next_number,
            last_issued_number=0,
        )
        self.db.add(counter)
        self.db.flush()
        return counter

    def advance(self, organization_id: UUID, expected_next: int, commit: bool = True) -> bool:
        """Consume ``expected_next`` if it is still the counter's next number.

        Returns False when another writer advanced or overrode the counter
        first. With ``commit=True`` a True result means the number is durably
        consumed. With ``commit=False`` the update is left uncommitted and the
        caller commits it together with the row that uses the code, or rolls
        both back.
        """
        updated = (
            self.db.query(ItemCodeCounter)
            .filter(
                ItemCodeCounter.organization_id == organization_id,
                ItemCodeCounter.next_number == expected_next,
            )
            .update(
                {
                    ItemCodeCounter.next_number: expected_next + 1,
                    ItemCodeCounter.last_issued_number: expected_next,
                    ItemCodeCounter.updated_at: utc_now(),
                },
                synchronize_session=False,
            )
        )
        if commit:
            self.db.commit()
        return updated == 1

    def override_next(self, organization_id: UUID, next_number: int) -> bool:
        """Set ``next_number`` unless a number at or above it was already issued."""
        updated = (
            self.db.query(ItemCodeCounter)
            .filter(
                ItemCodeCounter.organization_id == organization_id,
                ItemCodeCounter.last_issued_number < next_number,
            )
            .update(
                {
                    ItemCodeCounter.next_number: next_number,
                    ItemCodeCounter.updated_at: utc_now(),
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated == 1

    def update_format(
        self,
        counter: ItemCodeCounter,
        prefix: str | None = None,
        padding: int | None = None,
    ) -> ItemCodeCounter:
        if prefix is not None:
            counter.prefix = prefix  # type: ignore[assignment]
        if padding is not None:
            counter.padding = padding  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(counter)
        return counter
