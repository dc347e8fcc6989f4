from __future__ import annotations

import pytest
from pydantic import ValidationError

from salesconfig.accesscontrol.engine import AccessDecisionEngine, ModuleAccess, is_enabled
from salesconfig.accesscontrol.schemas import AccessControlDocument


@pytest.fixture()
def document() -> AccessControlDocument:
    return AccessControlDocument.model_validate(
        {
            "project_id": "p-1",
            "channel_id": "web",
            "module_configs": [
                {
                    "module_id": "leads",
                    "role_configs": [
                        {"role_id": "agent", "status": True},
                        {"role_id": "supervisor", "status": False},
                    ],
                },
                {"module_id": "reports", "role_configs": [{"role_id": "supervisor", "status": True}]},
            ],
        }
    )


def test_enabled_role_is_allowed(document: AccessControlDocument) -> None:
    assert is_enabled(document, "leads", "agent") is True


def test_disabled_role_is_denied(document: AccessControlDocument) -> None:
    assert is_enabled(document, "leads", "supervisor") is False


def test_unconfigured_module_or_role_fails_closed(document: AccessControlDocument) -> None:
    assert is_enabled(document, "billing", "agent") is False
    assert is_enabled(document, "reports", "agent") is False


def test_module_access_for_role_lists_configured_modules(document: AccessControlDocument) -> None:
    engine = AccessDecisionEngine()

    assert engine.module_access_for_role(document, "supervisor") == [
        ModuleAccess(module_id="leads", status=False),
        ModuleAccess(module_id="reports", status=True),
    ]
    assert engine.module_access_for_role(document, "guest") == []


def test_empty_module_configs_are_rejected() -> None:
    with pytest.raises(ValidationError, match="At least one module configuration is required"):
        AccessControlDocument(project_id="p-1", channel_id="web", module_configs=())


def test_empty_role_configs_are_rejected() -> None:
    with pytest.raises(ValidationError, match="At least one role configuration is required"):
        AccessControlDocument.model_validate(
            {"project_id": "p-1", "channel_id": "web", "module_configs": [{"module_id": "leads", "role_configs": []}]}
        )


def test_duplicate_module_ids_are_rejected() -> None:
    with pytest.raises(ValidationError, match="duplicate module ids"):
        AccessControlDocument.model_validate(
            {
                "project_id": "p-1",
                "channel_id": "web",
                "module_configs": [
                    {"module_id": "leads", "role_configs": [{"role_id": "agent"}]},
                    {"module_id": "leads", "role_configs": [{"role_id": "agent", "status": True}]},
                ],
            }
        )
