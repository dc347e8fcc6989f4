from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from salesconfig import audit
from salesconfig.accesscontrol.schemas import (
    AccessControlCreate,
    AccessControlInitialize,
    ModuleConfigsUpdate,
)
from salesconfig.accesscontrol.service import access_control_service
from salesconfig.core.database import Base


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


def _create(session: Session) -> None:
    access_control_service.create_access_control(
        session,
        AccessControlCreate.model_validate(
            {
                "project_id": "p-1",
                "channel_id": "web",
                "module_configs": [
                    {
                        "module_id": "leads",
                        "role_configs": [{"role_id": "agent", "status": True}, {"role_id": "supervisor"}],
                    }
                ],
            }
        ),
        actor_user_id="admin-user",
    )


def _statuses(session: Session, module_id: str) -> dict[str, bool]:
    document = access_control_service.get_document(session, "p-1", "web")
    assert document is not None
    module = document.find_module(module_id)
    assert module is not None
    return {toggle.role_id: toggle.status for toggle in module.role_configs}


def test_missing_document_denies_access(db_session: Session) -> None:
    assert access_control_service.is_module_enabled(db_session, "p-1", "web", "leads", "agent") is False


def test_create_and_decide(db_session: Session) -> None:
    _create(db_session)

    assert access_control_service.is_module_enabled(db_session, "p-1", "web", "leads", "agent") is True
    assert access_control_service.is_module_enabled(db_session, "p-1", "web", "leads", "supervisor") is False
    assert access_control_service.is_module_enabled(db_session, "p-1", "api", "leads", "agent") is False


def test_duplicate_create_conflicts(db_session: Session) -> None:
    _create(db_session)

    with pytest.raises(HTTPException) as exc_info:
        _create(db_session)
    assert exc_info.value.status_code == 409


def test_initialize_creates_disabled_document(db_session: Session) -> None:
    created = access_control_service.get_or_create_default(
        db_session,
        "p-1",
        "web",
        AccessControlInitialize(role_ids=["agent", "supervisor", "agent"], module_ids=["leads", "reports"]),
        actor_user_id="admin-user",
    )

    assert [config.module_id for config in created.module_configs] == ["leads", "reports"]
    assert _statuses(db_session, "leads") == {"agent": False, "supervisor": False}
    assert _statuses(db_session, "reports") == {"agent": False, "supervisor": False}


def test_initialize_adds_new_roles_without_touching_existing(db_session: Session) -> None:
    _create(db_session)

    access_control_service.get_or_create_default(
        db_session,
        "p-1",
        "web",
        AccessControlInitialize(role_ids=["agent", "auditor"], module_ids=["ignored"]),
        actor_user_id="admin-user",
    )

    assert _statuses(db_session, "leads") == {"agent": True, "supervisor": False, "auditor": False}
    document = access_control_service.get_document(db_session, "p-1", "web")
    assert document is not None
    assert document.find_module("ignored") is None


def test_initialize_without_roles_or_modules_fails(db_session: Session) -> None:
    with pytest.raises(HTTPException) as no_roles:
        access_control_service.get_or_create_default(
            db_session, "p-1", "web", AccessControlInitialize(module_ids=["leads"]), actor_user_id="admin-user"
        )
    assert no_roles.value.status_code == 404
    assert no_roles.value.detail == "No active roles found for the channel"

    with pytest.raises(HTTPException) as no_modules:
        access_control_service.get_or_create_default(
            db_session, "p-1", "web", AccessControlInitialize(role_ids=["agent"]), actor_user_id="admin-user"
        )
    assert no_modules.value.detail == "No active modules found"


def test_merge_updates_only_named_roles(db_session: Session) -> None:
    _create(db_session)

    access_control_service.merge_module_configs(
        db_session,
        "p-1",
        "web",
        ModuleConfigsUpdate.model_validate(
            {
                "module_configs": [
                    {"module_id": "leads", "role_configs": [{"role_id": "supervisor", "status": True}]},
                    {"module_id": "reports", "role_configs": [{"role_id": "agent", "status": True}]},
                ]
            }
        ),
        actor_user_id="admin-user",
    )

    assert _statuses(db_session, "leads") == {"agent": True, "supervisor": True}
    assert _statuses(db_session, "reports") == {"agent": True}


def test_replace_overwrites_module_configs(db_session: Session) -> None:
    _create(db_session)

    access_control_service.replace_module_configs(
        db_session,
        "p-1",
        "web",
        ModuleConfigsUpdate.model_validate(
            {"module_configs": [{"module_id": "reports", "role_configs": [{"role_id": "agent", "status": True}]}]}
        ),
        actor_user_id="admin-user",
    )

    assert access_control_service.is_module_enabled(db_session, "p-1", "web", "leads", "agent") is False
    assert access_control_service.is_module_enabled(db_session, "p-1", "web", "reports", "agent") is True


def test_soft_deleted_document_denies_then_revives(db_session: Session) -> None:
    _create(db_session)
    access_control_service.soft_delete(db_session, "p-1", "web", actor_user_id="admin-user")

    assert access_control_service.get_document(db_session, "p-1", "web") is None
    assert access_control_service.is_module_enabled(db_session, "p-1", "web", "leads", "agent") is False

    _create(db_session)
    assert access_control_service.is_module_enabled(db_session, "p-1", "web", "leads", "agent") is True


def test_writes_are_audited(db_session: Session) -> None:
    _create(db_session)
    document = access_control_service.get_document(db_session, "p-1", "web")
    assert document is not None

    entries = audit.entries_for("access_control", str(document.id))
    assert [entry["action"] for entry in entries] == ["access_control.created"]
    assert entries[0]["actor_user_id"] == "admin-user"
