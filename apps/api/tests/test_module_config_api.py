from __future__ import annotations

import uuid
from collections.abc import Callable, Generator

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
def client(db_session: Session) -> Generator[tuple[TestClient, Callable[[str], None]], None, None]:
    actors = {
        "admin": AuthUser(sub="admin-user", roles=["admin"]),
        "viewer": AuthUser(sub="viewer-user", roles=["viewer"]),
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


def _payload(*, project_id: str | None = None, config_name: str = "lead-status", bucket: str = "FOLLOW_UP") -> dict:
    return {
        "module_id": "leads",
        "project_id": project_id,
        "config_name": config_name,
        "description": "Lead status mapping",
        "fields": [
            {
                "field_name": "leadProgressDisposition",
                "field_type": "select",
                "values": [
                    {
                        "display_name": "Contacted",
                        "key": "contacted",
                        "dispositions": [
                            {"name": "Interested", "sub_dispositions": [{"name": None, "bucket": bucket}]},
                        ],
                    }
                ],
            }
        ],
        "metadata": {"owner": "sales-ops"},
    }


def test_create_get_update_delete_module_config(client: tuple[TestClient, Callable[[str], None]]) -> None:
    test_client, _ = client

    created = test_client.post("/api/module-configs", json=_payload(project_id="p-1"))
    assert created.status_code == 201
    body = created.json()
    assert body["project_id"] == "p-1"
    assert body["metadata"] == {"owner": "sales-ops"}
    sub_dispositions = body["fields"][0]["values"][0]["dispositions"][0]["sub_dispositions"]
    assert sub_dispositions == [{"name": "", "bucket": "FOLLOW_UP"}]

    fetched = test_client.get(f"/api/module-configs/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["config_name"] == "lead-status"

    updated = test_client.patch(f"/api/module-configs/{body['id']}", json={"description": "Updated"})
    assert updated.status_code == 200
    assert updated.json()["description"] == "Updated"

    deleted = test_client.delete(f"/api/module-configs/{body['id']}")
    assert deleted.status_code == 204

    missing = test_client.get(f"/api/module-configs/{body['id']}")
    assert missing.status_code == 404

    actions = [entry["action"] for entry in audit.entries_for("module_config", body["id"])]
    assert actions == ["module_config.created", "module_config.updated", "module_config.deleted"]


def test_duplicate_config_name_in_same_scope_conflicts(client: tuple[TestClient, Callable[[str], None]]) -> None:
    test_client, _ = client

    assert test_client.post("/api/module-configs", json=_payload()).status_code == 201
    assert test_client.post("/api/module-configs", json=_payload()).status_code == 409
    assert test_client.post("/api/module-configs", json=_payload(project_id="p-1")).status_code == 201
    assert test_client.post("/api/module-configs", json=_payload(project_id="p-1")).status_code == 409


def test_invalid_config_documents_are_rejected(client: tuple[TestClient, Callable[[str], None]]) -> None:
    test_client, _ = client

    payload = _payload()
    payload["fields"].append(dict(payload["fields"][0]))
    assert test_client.post("/api/module-configs", json=payload).status_code == 422

    empty_name = _payload()
    empty_name["config_name"] = ""
    assert test_client.post("/api/module-configs", json=empty_name).status_code == 422


def test_list_filters_by_scope(client: tuple[TestClient, Callable[[str], None]]) -> None:
    test_client, _ = client
    test_client.post("/api/module-configs", json=_payload())
    test_client.post("/api/module-configs", json=_payload(project_id="p-1"))
    test_client.post("/api/module-configs", json=_payload(project_id="p-2"))

    assert len(test_client.get("/api/module-configs", params={"module_id": "leads"}).json()) == 3
    assert [item["project_id"] for item in test_client.get("/api/module-configs", params={"global_only": True}).json()] == [None]
    assert [item["project_id"] for item in test_client.get("/api/module-configs", params={"project_id": "p-2"}).json()] == ["p-2"]


def test_resolve_reports_winning_scope(client: tuple[TestClient, Callable[[str], None]]) -> None:
    test_client, _ = client
    test_client.post("/api/module-configs", json=_payload(bucket="GLOBAL"))
    test_client.post("/api/module-configs", json=_payload(project_id="p-1", bucket="PROJECT"))

    project = test_client.get("/api/module-configs/resolve", params={"module_id": "leads", "project_id": "p-1"})
    assert project.status_code == 200
    assert project.json()["resolved"] is True
    assert project.json()["source"] == "project"
    assert project.json()["config"]["project_id"] == "p-1"

    fallback = test_client.get("/api/module-configs/resolve", params={"module_id": "leads", "project_id": "p-3"})
    assert fallback.json()["source"] == "global"
    assert fallback.json()["config"]["project_id"] is None

    missing = test_client.get("/api/module-configs/resolve", params={"module_id": "accounts"})
    assert missing.json() == {"resolved": False, "source": None, "config": None}


def test_writes_require_admin(client: tuple[TestClient, Callable[[str], None]]) -> None:
    test_client, set_actor = client
    set_actor("viewer")

    assert test_client.post("/api/module-configs", json=_payload()).status_code == 403
    assert test_client.delete(f"/api/module-configs/{uuid.uuid4()}").status_code == 403
    assert test_client.get("/api/module-configs").status_code == 200
