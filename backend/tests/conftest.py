"""Shared test fixtures for all test modules."""

import contextlib
import threading
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import projectpush.models  # noqa: F401
from projectpush.core import database as db_module
from projectpush.core.auth import issue_access_token
from projectpush.core.database import Base, get_db
from projectpush.core.exceptions import GatewayTransportError
from projectpush.main import app
from projectpush.services.push_gateway import PushGateway, PushMessage, PushTicket, get_push_gateway

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

# Well-known identities used across all tests
USER_ID = uuid.UUID("00000000-0000-0000-0000-0000000000a1")
OTHER_USER_ID = uuid.UUID("00000000-0000-0000-0000-0000000000a2")
ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-0000000000ff")

TOKEN_A = "ExponentPushToken[aaaaaaaaaaaaaaaaaaaaaa]"
TOKEN_B = "ExponentPushToken[bbbbbbbbbbbbbbbbbbbbbb]"
TOKEN_C = "ExpoPushToken[cccccccccccccccccccccc]"


class FakePushGateway(PushGateway):
    """In-memory gateway that records every submitted batch.

    Messages addressed to ``error_tokens`` get an error ticket; a batch
    containing any of ``failing_tokens`` raises a transport error.
    """

    def __init__(self, max_batch_size=100, error_tokens=(), failing_tokens=(), fail_all=False):
        self.max_batch_size = max_batch_size
        self.error_tokens = set(error_tokens)
        self.failing_tokens = set(failing_tokens)
        self.fail_all = fail_all
        self.batches: list[list[PushMessage]] = []
        self._lock = threading.Lock()

    def send_batch(self, messages):
        with self._lock:
            self.batches.append(list(messages))
        if self.fail_all or any(m.to in self.failing_tokens for m in messages):
            raise GatewayTransportError("Push gateway request failed: timed out")
        return [
            PushTicket.error("DeviceNotRegistered")
            if m.to in self.error_tokens
            else PushTicket(status="ok", id=f"ticket-{uuid.uuid4()}")
            for m in messages
        ]

    @property
    def messages(self) -> list[PushMessage]:
        return [m for batch in self.batches for m in batch]


def auth_headers(user_id=USER_ID, role="user") -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_access_token(user_id, role=role)}"}


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and clear all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


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
def gateway():
    return FakePushGateway()


@pytest.fixture
def client(gateway):
    """Test client with the push gateway replaced by the in-memory fake."""
    app.dependency_overrides[get_push_gateway] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_push_gateway, None)


@pytest.fixture
def user_headers():
    return auth_headers(USER_ID)


@pytest.fixture
def admin_headers():
    return auth_headers(ADMIN_ID, role="admin")
