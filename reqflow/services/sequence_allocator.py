"""Sequential, organization-scoped item codes.

Each organization owns exactly one ``ItemCodeCounter`` row, provisioned with
the organization. Allocation reads the row, renders the code from that
snapshot and then consumes the number with a conditional update that only
succeeds if ``next_number`` is still the value that was read. A caller that
loses the race gets ``ConflictError`` and must redo the whole allocation;
``allocate_with_retry`` does that a bounded number of times.
"""

from __future__ import annotations

import logging
import time
from uuid import UUID

from sqlalchemy.orm import Session

from reqflow.core.config import settings
from reqflow.core.errors import ConflictError, InvalidArgumentError, NotFoundError
from reqflow.models.item_code_counter import ItemCodeCounter
from reqflow.repositories.item_code_counter_repository import ItemCodeCounterRepository
from reqflow.repositories.item_repository import ItemRepository

logger = logging.getLogger(__name__)

CODE_SEPARATOR = "-"


def format_code(prefix: str, number: int, padding: int) -> str:
    """Render ``prefix-000n``. Padding is a minimum width, never a truncation."""
    return f"{prefix}{CODE_SEPARATOR}{str(number).zfill(max(padding, 0))}"


def parse_number(code: str) -> int:
    """Return the numeric part of a code produced by ``format_code``."""
    _, sep, digits = code.rpartition(CODE_SEPARATOR)
    if not sep or not digits.isdigit():
        raise InvalidArgumentError(f"'{code}' is not a sequential code")
    return int(digits)


class SequenceAllocator:
    """Issues unique, gap-free item codes per organization."""

    def __init__(
        self,
        db: Session,
        max_attempts: int | None = None,
        backoff_seconds: float | None = None,
    ):
        self.db = db
        self.counter_repo = ItemCodeCounterRepository(db)
        self.item_repo = ItemRepository(db)
        self.max_attempts = max_attempts or settings.SEQUENCE_MAX_ATTEMPTS
        self.backoff_seconds = (
            settings.SEQUENCE_RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        )

    def get_counter(self, organization_id: UUID) -> ItemCodeCounter:
        counter = self.counter_repo.get_by_organization(organization_id)
        if counter is None:
            raise NotFoundError(f"No item code counter for organization {organization_id}")
        return counter

    def peek_next(self, organization_id: UUID) -> str:
        """The code the next allocation would return. Consumes nothing."""
        counter = self.get_counter(organization_id)
        return format_code(str(counter.prefix), int(counter.next_number), int(counter.padding))

    def allocate_next(self, organization_id: UUID, commit: bool = True) -> str:
        """Consume the organization's next number and return its code.

        With ``commit=False`` the counter update joins the caller's
        transaction, so a failed insert of the coded row rolls the number
        back instead of leaving a hole in the sequence.

        Raises:
            NotFoundError: the organization has no counter.
            ConflictError: a concurrent allocation or override changed the
                counter between the read and the update.
        """
        counter = self.get_counter(organization_id)
        number = int(counter.next_number)
        code = format_code(str(counter.prefix), number, int(counter.padding))

        if not self.counter_repo.advance(organization_id, number, commit=commit):
            logger.info(
                "Item code allocation for organization %s lost race at %d",
                organization_id,
                number,
            )
            raise ConflictError(
                f"Item code counter for organization {organization_id} changed concurrently"
            )

        logger.debug("Allocated item code %s for organization %s", code, organization_id)
        return code

    def allocate_with_retry(self, organization_id: UUID, commit: bool = True) -> str:
        """``allocate_next`` with bounded retries and exponential backoff.

        Sleeps between attempts, so async callers run it in a worker thread.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self.allocate_next(organization_id, commit=commit)
            except ConflictError:
                if attempt == self.max_attempts:
                    logger.warning(
                        "Item code allocation for organization %s failed after %d attempts",
                        organization_id,
                        attempt,
                    )
                    raise
                time.sleep(self.backoff_seconds * (2 ** (attempt - 1)))
        raise AssertionError("unreachable")

    def highest_issued(self, organization_id: UUID) -> int:
        """Highest number known to be issued, from the counter and existing items."""
        counter = self.get_counter(organization_id)
        highest = int(counter.last_issued_number)
        for code in self.item_repo.codes_with_prefix(organization_id, str(counter.prefix)):
            try:
                highest = max(highest, parse_number(code))
            except InvalidArgumentError:
                continue
        return highest

    def set_next(self, organization_id: UUID, next_number: int) -> ItemCodeCounter:
        """Administrative override of the next number to issue.

        Raises:
            InvalidArgumentError: ``next_number`` is below 1 or not above the
                highest number already issued.
            NotFoundError: the organization has no counter.
        """
        if next_number < 1:
            raise InvalidArgumentError("next_number must be at least 1")

        highest = self.highest_issued(organization_id)
        if next_number <= highest:
            raise InvalidArgumentError(
                f"next_number must be greater than {highest}, the highest number already issued"
            )

        if not self.counter_repo.override_next(organization_id, next_number):
            # An allocation committed in between and reached next_number.
            raise InvalidArgumentError(
                f"next_number {next_number} has already been issued for this organization"
            )

        logger.info(
            "Item code counter for organization %s set to %d", organization_id, next_number
        )
        return self.get_counter(organization_id)

    def update_format(
        self,
        organization_id: UUID,
        prefix: str | None = None,
        padding: int | None = None,
    ) -> ItemCodeCounter:
        if prefix is not None:
            prefix = prefix.strip()
            if not prefix:
                raise InvalidArgumentError("prefix must not be empty")
        if padding is not None and padding < 0:
            raise InvalidArgumentError("padding must be zero or positive")
        counter = self.get_counter(organization_id)
        return self.counter_repo.update_format(counter, prefix=prefix, padding=padding)
