from __future__ import annotations

import logging
from dataclasses import dataclass

from salesconfig.accesscontrol.schemas import AccessControlDocument


logger = logging.getLogger("salesconfig.accesscontrol.engine")


@dataclass(frozen=True, slots=True)
class ModuleAccess:
    module_id: str
    status: bool


class AccessDecisionEngine:
    """Fail-closed lookups over an access control document."""

    def is_enabled(self, doc: AccessControlDocument, module_id: str, role_id: str) -> bool:
        module_config = doc.find_module(module_id)
        if module_config is None:
            logger.debug(
                "access_control.module_not_configured",
                extra={"project_id": doc.project_id, "channel_id": doc.channel_id, "module_id": module_id},
            )
            return False

        toggle = module_config.find_role(role_id)
        if toggle is None:
            logger.debug(
                "access_control.role_not_configured",
                extra={"project_id": doc.project_id, "module_id": module_id, "role_id": role_id},
            )
            return False
        return toggle.status

    def module_access_for_role(self, doc: AccessControlDocument, role_id: str) -> list[ModuleAccess]:
        """List every module that configures ``role_id``, enabled or not, in document order."""

        access: list[ModuleAccess] = []
        for module_config in doc.module_configs:
            toggle = module_config.find_role(role_id)
            if toggle is not None:
                access.append(ModuleAccess(module_id=module_config.module_id, status=toggle.status))
        return access


access_decision_engine = AccessDecisionEngine()


def is_enabled(doc: AccessControlDocument, module_id: str, role_id: str) -> bool:
    return access_decision_engine.is_enabled(doc, module_id, role_id)
