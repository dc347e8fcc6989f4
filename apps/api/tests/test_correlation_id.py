from __future__ import annotations

import uuid
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from salesconfig import audit
from salesconfig.core.auth import AuthUser, get_current_user
from salesconfig.core.config import get_settings
from salesconfig.core.database import Base, get_db
from salesconfig.main import app


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def setup_env() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    def override_get_current_user() -> AuthUser:
        return AuthUser(sub="admin-user", roles=["admin"])

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_inbound_correlation_id_is_echoed(client: TestClient) -> None:
    response = client.get("/health", headers={"X-Correlation-Id": "corr-123"})

    assert response.status_code == 200
    assert response.headers["x-correlation-id"] == "corr-123"


def test_request_id_is_used_when_correlation_id_absent(client: TestClient) -> None:
    response = client.get("/health", headers={"X-Request-Id": "req-9"})

    assert response.headers["x-correlation-id"] == "req-9"


def test_correlation_id_is_generated_when_missing(client: TestClient) -> None:
    response = client.get("/health")

    generated = response.headers["x-correlation-id"]
    assert str(uuid.UUID(generated)) == generated


def test_audit_entry_carries_request_correlation_id(client: TestClient) -> None:
    response = client.post(
        "/api/access-control/p-1/web/initialize",
        json={"role_ids": ["agent"], "module_ids": ["leads"]},
        headers={"X-Correlation-Id": "corr-audit-1"},
    )
    assert response.status_code == 200

    entries = audit.entries_for("access_control", response.json()["id"])
    assert entries
    assert entries[-1]["correlation_id"] == "corr-audit-1"
