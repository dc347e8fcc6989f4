from salesconfig.accesscontrol.engine import AccessDecisionEngine, ModuleAccess, access_decision_engine, is_enabled
from salesconfig.accesscontrol.models import AccessControlRecord
from salesconfig.accesscontrol.schemas import AccessControlDocument, ModuleRoleConfig, RoleToggle
from salesconfig.accesscontrol.service import AccessControlService, access_control_service

__all__ = [
    "RoleToggle",
    "ModuleRoleConfig",
    "AccessControlDocument",
    "AccessControlRecord",
    "AccessDecisionEngine",
    "ModuleAccess",
    "access_decision_engine",
    "is_enabled",
    "AccessControlService",
    "access_control_service",
]
