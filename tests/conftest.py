"""Shared test fixtures for all test modules."""

import contextlib
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from reqflow.core import database as db_module
from reqflow.core.auth import ORGANIZATION_HEADER, USER_HEADER
from reqflow.core.database import Base, get_db
from reqflow.main import app
from reqflow.models.item_code_counter import ItemCodeCounter
from reqflow.models.organization import Organization
from reqflow.models.organization_member import OrganizationMember, WorkflowRole
from reqflow.models.user import User
from reqflow.services.realtime import RealtimeHub

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

ALPHA_ORG_ID = uuid.UUID("00000000-0000-0000-0000-0000000000a1")
BETA_ORG_ID = uuid.UUID("00000000-0000-0000-0000-0000000000b2")

SUBMITTER_ID = uuid.UUID("00000000-0000-0000-0000-000000000101")
REVIEWER_ID = uuid.UUID("00000000-0000-0000-0000-000000000102")
APPROVER_ID = uuid.UUID("00000000-0000-0000-0000-000000000103")
ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-000000000104")
OUTSIDER_ID = uuid.UUID("00000000-0000-0000-0000-000000000105")

_USERS = [
    (SUBMITTER_ID, "sam@example.com", "Sam Submitter"),
    (REVIEWER_ID, "rita@example.com", "Rita Reviewer"),
    (APPROVER_ID, "alex@example.com", "Alex Approver"),
    (ADMIN_ID, "ada@example.com", "Ada Admin"),
    (OUTSIDER_ID, "olga@example.com", "Olga Outsider"),
]

# (organization, user, role)
_MEMBERSHIPS = [
    (ALPHA_ORG_ID, SUBMITTER_ID, WorkflowRole.SUBMITTER),
    (ALPHA_ORG_ID, REVIEWER_ID, WorkflowRole.REVIEWER),
    (ALPHA_ORG_ID, APPROVER_ID, WorkflowRole.APPROVER),
    (ALPHA_ORG_ID, ADMIN_ID, WorkflowRole.ADMIN),
    (BETA_ORG_ID, SUBMITTER_ID, WorkflowRole.SUBMITTER),
    (BETA_ORG_ID, REVIEWER_ID, WorkflowRole.REVIEWER),
    (BETA_ORG_ID, ADMIN_ID, WorkflowRole.ADMIN),
]


def _seed(session: Session) -> None:
    """Insert the Alpha and Beta organizations, their counters and members."""
    session.add(Organization(id=ALPHA_ORG_ID, name="Alpha Corp"))
    session.add(Organization(id=BETA_ORG_ID, name="Beta Ltd"))
    session.add(
        ItemCodeCounter(
            organization_id=ALPHA_ORG_ID,
            prefix="ITEM",
            padding=3,
            next_number=1,
            last_issued_number=0,
        )
    )
    session.add(
        ItemCodeCounter(
            organization_id=BETA_ORG_ID,
            prefix="BT",
            padding=4,
            next_number=1,
            last_issued_number=0,
        )
    )
    for user_id, email, name in _USERS:
        session.add(User(id=user_id, email=email, full_name=name))
    session.flush()
    for org_id, user_id, role in _MEMBERSHIPS:
        session.add(
            OrganizationMember(organization_id=org_id, user_id=user_id, workflow_role=role.value)
        )
    session.commit()


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database. Clears data after each test.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    session = _TestSessionLocal()
    try:
        _seed(session)
    finally:
        session.close()

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def db_session():
    """Create a database session for direct repository testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def hub():
    """A private realtime hub so tests never share sessions."""
    return RealtimeHub()


def headers(user_id: uuid.UUID | None = None, org_id: uuid.UUID | None = None) -> dict[str, str]:
    """Identity headers as the identity layer would forward them."""
    result = {}
    if user_id is not None:
        result[USER_HEADER] = str(user_id)
    if org_id is not None:
        result[ORGANIZATION_HEADER] = str(org_id)
    return result
