import os

# CRITICAL: Set environment variables BEFORE any marketplace imports.
# These must be set before marketplace.config.settings is loaded.
os.environ["SECRET_KEY"] = "test-secret-key-1234567890"
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["API_V1_STR"] = "/api"
os.environ["EXCHANGE_RATE"] = "0.75"
os.environ["DEFAULT_FEE_PERCENTAGE"] = "5"

import uuid  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from marketplace import models  # noqa: E402
from marketplace.core.security import create_access_token_for_subject, hash_password  # noqa: E402
from marketplace.database import Base, get_db  # noqa: E402
from marketplace.main import app  # noqa: E402

# One shared in-memory connection so the app's threadpool and the test see the same data.
TEST_ENGINE = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    future=True,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=TEST_ENGINE, future=True)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function", autouse=True)
def setup_test_database():
    """Fresh schema per test; dependency overrides restored afterwards."""

    original_overrides = dict(app.dependency_overrides)

    Base.metadata.drop_all(bind=TEST_ENGINE)
    Base.metadata.create_all(bind=TEST_ENGINE)

    yield

    app.dependency_overrides.clear()
    app.dependency_overrides.update(original_overrides)
    Base.metadata.drop_all(bind=TEST_ENGINE)


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


def make_user(
    db,
    role: models.UserRole,
    *,
    name: str | None = None,
    email: str | None = None,
    short_code: str | None = None,
    is_approved: bool | None = None,
    fee_percentage: float | None = None,
    password: str = "secret123",
) -> models.User:
    uid = uuid.uuid4().hex[:8]
    user = models.User(
        email=email or f"{role.value.lower()}-{uid}@test.com",
        name=name or f"{role.value.title()} {uid}",
        hashed_password=hash_password(password),
        role=role,
        active=True,
        is_approved=(role != models.UserRole.SUPPLIER) if is_approved is None else is_approved,
        fee_percentage=fee_percentage,
    )
    if role == models.UserRole.SUPPLIER:
        user.short_code = short_code or str(100000 + int(uid, 16) % 900000)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: models.User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token_for_subject(user.email)}"}


@pytest.fixture
def user_factory(db_session):
    def _make(role: models.UserRole, **kwargs) -> models.User:
        return make_user(db_session, role, **kwargs)

    return _make


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def admin(db_session):
    return make_user(db_session, models.UserRole.ADMIN, name="Admin")


@pytest.fixture
def supplier(db_session):
    return make_user(db_session, models.UserRole.SUPPLIER, short_code="888888", is_approved=True)


@pytest.fixture
def client_user(db_session):
    return make_user(db_session, models.UserRole.CLIENT, fee_percentage=5.0)
