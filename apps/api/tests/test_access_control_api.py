from __future__ import annotations

from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

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
def client(db_session: Session) -> Generator[tuple[TestClient, Callable[[str], None]], None, None]:
    actors = {
        "admin": AuthUser(sub="admin-user", roles=["admin"]),
        "agent": AuthUser(sub="agent-user", roles=["agent"]),
    }
    state = {"actor": "admin"}

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    def override_get_current_user() -> AuthUser:
        return actors[state["actor"]]

    def set_actor(actor: str) -> None:
        state["actor"] = actor

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user

    with TestClient(app) as test_client:
        yield test_client, set_actor

    app.dependency_overrides.clear()


BASE = "/api/access-control/p-1/web"


def _decision(client: TestClient, module_id: str, role_id: str) -> bool:
    response = client.get(f"{BASE}/modules/{module_id}/roles/{role_id}")
    assert response.status_code == 200
    return response.json()["enabled"]


def test_unknown_channel_is_fail_closed(client: tuple[TestClient, Callable[[str], None]]) -> None:
    test_client, _ = client

    response = test_client.get(f"{BASE}/modules/leads/roles/agent")
    assert response.status_code == 200
    assert response.json() == {
        "project_id": "p-1",
        "channel_id": "web",
        "module_id": "leads",
        "role_id": "agent",
        "enabled": False,
    }
    assert test_client.get(BASE).status_code == 404


def test_initialize_then_enable_role(client: tuple[TestClient, Callable[[str], None]]) -> None:
    test_client, _ = client

    initialized = test_client.post(f"{BASE}/initialize", json={"role_ids": ["agent", "supervisor"], "module_ids": ["leads"]})
    assert initialized.status_code == 200
    assert initialized.json()["module_configs"] == [
        {
            "module_id": "leads",
            "role_configs": [{"role_id": "agent", "status": False}, {"role_id": "supervisor", "status": False}],
        }
    ]
    assert _decision(test_client, "leads", "agent") is False

    merged = test_client.patch(
        f"{BASE}/module-configs",
        json={"module_configs": [{"module_id": "leads", "role_configs": [{"role_id": "agent", "status": True}]}]},
    )
    assert merged.status_code == 200
    assert _decision(test_client, "leads", "agent") is True
    assert _decision(test_client, "leads", "supervisor") is False

    modules = test_client.get(f"{BASE}/roles/agent/modules")
    assert modules.json() == [{"module_id": "leads", "status": True}]


def test_replace_requires_module_configs(client: tuple[TestClient, Callable[[str], None]]) -> None:
    test_client, _ = client

    empty = test_client.put(f"{BASE}/module-configs", json={"module_configs": []})
    assert empty.status_code == 422

    no_roles = test_client.put(
        f"{BASE}/module-configs",
        json={"module_configs": [{"module_id": "leads", "role_configs": []}]},
    )
    assert no_roles.status_code == 422

    replaced = test_client.put(
        f"{BASE}/module-configs",
        json={"module_configs": [{"module_id": "reports", "role_configs": [{"role_id": "agent", "status": True}]}]},
    )
    assert replaced.status_code == 200
    assert _decision(test_client, "reports", "agent") is True


def test_create_conflict_and_delete(client: tuple[TestClient, Callable[[str], None]]) -> None:
    test_client, _ = client
    payload = {
        "project_id": "p-1",
        "channel_id": "web",
        "module_configs": [{"module_id": "leads", "role_configs": [{"role_id": "agent", "status": True}]}],
    }

    assert test_client.post("/api/access-control", json=payload).status_code == 201
    assert test_client.post("/api/access-control", json=payload).status_code == 409

    assert test_client.delete(BASE).status_code == 204
    assert _decision(test_client, "leads", "agent") is False
    assert test_client.delete(BASE).status_code == 404


def test_configuration_changes_require_admin(client: tuple[TestClient, Callable[[str], None]]) -> None:
    test_client, set_actor = client
    set_actor("agent")

    response = test_client.post(f"{BASE}/initialize", json={"role_ids": ["agent"], "module_ids": ["leads"]})
    assert response.status_code == 403

    set_actor("admin")
    assert _decision(test_client, "leads", "agent") is False


def test_reading_toggles_requires_access_control_read_rule(client: tuple[TestClient, Callable[[str], None]]) -> None:
    test_client, set_actor = client
    assert test_client.post(f"{BASE}/initialize", json={"role_ids": ["agent"], "module_ids": ["leads"]}).status_code == 200

    set_actor("agent")
    assert test_client.get(BASE).status_code == 403
    assert test_client.get(f"{BASE}/modules/leads/roles/agent").status_code == 403
    assert test_client.get(f"{BASE}/roles/agent/modules").status_code == 403

    set_actor("admin")
    role = test_client.post("/api/admin/roles", json={"name": "agent"})
    rule = test_client.post("/api/admin/permissions", json={"resource_id": "access_control", "action": "read"})
    linked = test_client.post(
        f"/api/admin/roles/{role.json()['id']}/permissions",
        json={"permission_id": rule.json()["id"]},
    )
    assert linked.status_code == 201

    set_actor("agent")
    assert test_client.get(BASE).status_code == 200
    assert _decision(test_client, "leads", "agent") is False
    assert test_client.get(f"{BASE}/roles/agent/modules").json() == [{"module_id": "leads", "status": False}]
