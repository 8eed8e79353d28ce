"""Tests for SequenceAllocator: code formatting, compare-and-swap and overrides."""

import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from reqflow.core.errors import ConflictError, InvalidArgumentError, NotFoundError
from reqflow.core.database import Base
from reqflow.models.item_code_counter import ItemCodeCounter
from reqflow.models.organization import Organization
from reqflow.repositories.item_repository import ItemRepository
from reqflow.services.sequence_allocator import SequenceAllocator, format_code, parse_number
from tests.conftest import ALPHA_ORG_ID, BETA_ORG_ID


@pytest.fixture
def allocator(db_session):
    return SequenceAllocator(db_session, max_attempts=3, backoff_seconds=0)


def _set_counter(db_session, org_id, **values):
    counter = db_session.query(ItemCodeCounter).filter_by(organization_id=org_id).one()
    for key, value in values.items():
        setattr(counter, key, value)
    db_session.commit()


class TestFormatCode:
    def test_pads_to_minimum_width(self):
        assert format_code("ITEM", 7, 3) == "ITEM-007"

    def test_padding_never_truncates(self):
        assert format_code("ITEM", 1234, 3) == "ITEM-1234"

    def test_zero_padding(self):
        assert format_code("SKU", 42, 0) == "SKU-42"

    def test_prefix_with_separator(self):
        assert format_code("A-B", 5, 2) == "A-B-05"


class TestParseNumber:
    def test_round_trips_formatted_code(self):
        assert parse_number(format_code("ITEM", 7, 3)) == 7

    def test_prefix_with_separator(self):
        assert parse_number("A-B-05") == 5

    def test_rejects_code_without_number(self):
        with pytest.raises(InvalidArgumentError):
            parse_number("ITEM-ABC")

    def test_rejects_code_without_separator(self):
        with pytest.raises(InvalidArgumentError):
            parse_number("ITEM7")


class TestAllocateNext:
    def test_alpha_counter_at_seven(self, db_session, allocator):
        _set_counter(db_session, ALPHA_ORG_ID, next_number=7, last_issued_number=6)

        assert allocator.allocate_next(ALPHA_ORG_ID) == "ITEM-007"

        counter = allocator.get_counter(ALPHA_ORG_ID)
        assert counter.next_number == 8
        assert counter.last_issued_number == 7

    def test_returned_code_encodes_number_before_allocation(self, allocator):
        before = allocator.get_counter(ALPHA_ORG_ID).next_number
        code = allocator.allocate_next(ALPHA_ORG_ID)
        assert parse_number(code) == before

    def test_sequential_allocations_are_contiguous(self, allocator):
        codes = [allocator.allocate_next(ALPHA_ORG_ID) for _ in range(5)]
        assert codes == ["ITEM-001", "ITEM-002", "ITEM-003", "ITEM-004", "ITEM-005"]
        assert len(set(codes)) == 5

    def test_organizations_have_independent_counters(self, allocator):
        assert allocator.allocate_next(ALPHA_ORG_ID) == "ITEM-001"
        assert allocator.allocate_next(BETA_ORG_ID) == "BT-0001"
        assert allocator.allocate_next(ALPHA_ORG_ID) == "ITEM-002"

    def test_missing_counter_is_not_found(self, db_session, allocator):
        db_session.query(ItemCodeCounter).filter_by(organization_id=BETA_ORG_ID).delete()
        db_session.commit()

        with pytest.raises(NotFoundError):
            allocator.allocate_next(BETA_ORG_ID)

    def test_lost_race_raises_conflict(self, db_session, allocator):
        """A competing allocation between read and update makes this one lose."""
        competitor = SequenceAllocator(db_session)
        real_advance = allocator.counter_repo.advance
        competing_codes = []

        def racing_advance(organization_id, expected_next, commit=True):
            competing_codes.append(competitor.allocate_next(organization_id))
            return real_advance(organization_id, expected_next, commit=commit)

        allocator.counter_repo.advance = racing_advance

        with pytest.raises(ConflictError):
            allocator.allocate_next(ALPHA_ORG_ID)

        assert competing_codes == ["ITEM-001"]
        counter = competitor.get_counter(ALPHA_ORG_ID)
        assert counter.next_number == 2

    def test_peek_does_not_consume(self, allocator):
        assert allocator.peek_next(ALPHA_ORG_ID) == "ITEM-001"
        assert allocator.peek_next(ALPHA_ORG_ID) == "ITEM-001"
        assert allocator.get_counter(ALPHA_ORG_ID).next_number == 1


class TestAllocateWithRetry:
    def test_recovers_after_one_conflict(self, db_session, allocator):
        competitor = SequenceAllocator(db_session)
        real_advance = allocator.counter_repo.advance
        calls = []

        def advance_losing_once(organization_id, expected_next, commit=True):
            calls.append(expected_next)
            if len(calls) == 1:
                competitor.allocate_next(organization_id)
            return real_advance(organization_id, expected_next, commit=commit)

        allocator.counter_repo.advance = advance_losing_once

        assert allocator.allocate_with_retry(ALPHA_ORG_ID) == "ITEM-002"
        assert calls == [1, 2]
        assert allocator.get_counter(ALPHA_ORG_ID).next_number == 3

    def test_gives_up_after_max_attempts(self, allocator):
        attempts = []

        def always_lose(organization_id, expected_next, commit=True):
            attempts.append(expected_next)
            return False

        allocator.counter_repo.advance = always_lose

        with pytest.raises(ConflictError):
            allocator.allocate_with_retry(ALPHA_ORG_ID)
        assert len(attempts) == 3

    def test_not_found_is_not_retried(self, db_session, allocator):
        db_session.query(ItemCodeCounter).filter_by(organization_id=BETA_ORG_ID).delete()
        db_session.commit()

        with pytest.raises(NotFoundError):
            allocator.allocate_with_retry(BETA_ORG_ID)


class TestConcurrentAllocation:
    """Real concurrent allocators, one session per thread on a shared file database."""

    WORKERS = 8
    PER_WORKER = 10

    @pytest.fixture
    def file_sessions(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'counters.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(bind=engine)
        factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        session = factory()
        session.add(Organization(id=ALPHA_ORG_ID, name="Alpha Corp"))
        session.add(
            ItemCodeCounter(
                organization_id=ALPHA_ORG_ID,
                prefix="ITEM",
                padding=3,
                next_number=1,
                last_issued_number=0,
            )
        )
        session.commit()
        session.close()
        yield factory
        engine.dispose()

    def test_concurrent_allocations_are_distinct_and_contiguous(self, file_sessions):
        start = threading.Barrier(self.WORKERS)
        codes: list[str] = []
        errors: list[Exception] = []
        lock = threading.Lock()

        def worker():
            session = file_sessions()
            allocator = SequenceAllocator(session, max_attempts=1000, backoff_seconds=0)
            try:
                start.wait()
                for _ in range(self.PER_WORKER):
                    code = allocator.allocate_with_retry(ALPHA_ORG_ID)
                    with lock:
                        codes.append(code)
            except Exception as e:
                with lock:
                    errors.append(e)
            finally:
                session.close()

        threads = [threading.Thread(target=worker) for _ in range(self.WORKERS)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        total = self.WORKERS * self.PER_WORKER
        assert errors == []
        assert len(set(codes)) == total
        assert sorted(parse_number(code) for code in codes) == list(range(1, total + 1))

        session = file_sessions()
        try:
            counter = session.query(ItemCodeCounter).filter_by(organization_id=ALPHA_ORG_ID).one()
            assert (counter.next_number, counter.last_issued_number) == (total + 1, total)
        finally:
            session.close()


class TestSetNext:
    def test_moves_counter_forward(self, allocator):
        allocator.allocate_next(ALPHA_ORG_ID)
        counter = allocator.set_next(ALPHA_ORG_ID, 50)

        assert counter.next_number == 50
        assert allocator.allocate_next(ALPHA_ORG_ID) == "ITEM-050"

    def test_rejects_number_below_highest_issued_item(self, db_session, allocator):
        _set_counter(db_session, ALPHA_ORG_ID, next_number=10, last_issued_number=9)
        ItemRepository(db_session).create(
            organization_id=ALPHA_ORG_ID, code="ITEM-009", name="Stapler"
        )

        with pytest.raises(InvalidArgumentError):
            allocator.set_next(ALPHA_ORG_ID, 5)

        assert allocator.get_counter(ALPHA_ORG_ID).next_number == 10

    def test_existing_item_codes_are_cross_checked(self, db_session, allocator):
        """Counter says 5 is next but an imported item already holds 9."""
        _set_counter(db_session, ALPHA_ORG_ID, next_number=5, last_issued_number=4)
        ItemRepository(db_session).create(
            organization_id=ALPHA_ORG_ID, code="ITEM-009", name="Stapler"
        )

        with pytest.raises(InvalidArgumentError):
            allocator.set_next(ALPHA_ORG_ID, 5)
        with pytest.raises(InvalidArgumentError):
            allocator.set_next(ALPHA_ORG_ID, 9)

        assert allocator.get_counter(ALPHA_ORG_ID).next_number == 5
        assert allocator.set_next(ALPHA_ORG_ID, 10).next_number == 10

    def test_rejects_number_below_one(self, allocator):
        with pytest.raises(InvalidArgumentError):
            allocator.set_next(ALPHA_ORG_ID, 0)

    def test_guarded_against_racing_allocation(self, db_session, allocator):
        """An allocation that lands between the check and the update wins."""
        real_override = allocator.counter_repo.override_next

        def override_after_race(organization_id, next_number):
            _set_counter(db_session, organization_id, next_number=4, last_issued_number=3)
            return real_override(organization_id, next_number)

        allocator.counter_repo.override_next = override_after_race

        with pytest.raises(InvalidArgumentError):
            allocator.set_next(ALPHA_ORG_ID, 3)
        assert allocator.get_counter(ALPHA_ORG_ID).next_number == 4


class TestUpdateFormat:
    def test_changes_prefix_and_padding(self, allocator):
        counter = allocator.update_format(ALPHA_ORG_ID, prefix="SUP", padding=5)
        assert counter.prefix == "SUP"
        assert allocator.allocate_next(ALPHA_ORG_ID) == "SUP-00001"

    def test_rejects_blank_prefix(self, allocator):
        with pytest.raises(InvalidArgumentError):
            allocator.update_format(ALPHA_ORG_ID, prefix="   ")

    def test_rejects_negative_padding(self, allocator):
        with pytest.raises(InvalidArgumentError):
            allocator.update_format(ALPHA_ORG_ID, padding=-1)
