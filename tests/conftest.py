"""Shared pytest configuration: test settings, isolated database and HTTP client."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable, Iterator
from pathlib import Path

TEST_JWT_SECRET = "spendshare-test-secret-with-enough-entropy-for-hs256"


def _insert_repo_root() -> None:
    """Make the repository root importable when the package is not installed."""

    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_insert_repo_root()
# Settings are cached on first import, so they must be in place beforehand.
os.environ["SPENDSHARE_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["SPENDSHARE_DATABASE_URL"] = "sqlite://"
os.environ.pop("SPENDSHARE_CONFIG", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import spendshare.models  # noqa: E402,F401  # Ensure models are registered with metadata
from spendshare import crud, database, schemas, security  # noqa: E402
from spendshare.database import Base  # noqa: E402
from spendshare.server import app  # noqa: E402


def pytest_report_header(config: pytest.Config) -> Iterable[str]:  # pragma: no cover - pytest hook
    log_level = os.environ.get("SPENDSHARE_LOG_LEVEL", "INFO")
    return [f"SpendShare repo: {Path.cwd()}", f"SPENDSHARE_LOG_LEVEL={log_level}"]


@pytest.fixture(scope="session")
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture()
def db_session(engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    TestingSessionLocal = sessionmaker(bind=connection, autoflush=False, autocommit=False, future=True)
    session: Session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def client(db_session) -> Iterator[TestClient]:
    def override_get_db():
        yield db_session

    app.dependency_overrides[database.get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session):
    """Factory registering users directly through the CRUD layer."""

    def _make(name: str = "Ana", email: str = "ana@example.com", password: str = "s3cret"):
        return crud.register_user(db_session, schemas.UserCreate(name=name, email=email, password=password))

    return _make


@pytest.fixture()
def user(make_user):
    return make_user()


@pytest.fixture()
def auth_headers(user) -> dict[str, str]:
    token = security.issue_token(user.id, user.email)
    return {"Authorization": f"Bearer {token}"}
