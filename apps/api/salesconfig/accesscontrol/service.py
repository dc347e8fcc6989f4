from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salesconfig import audit
from salesconfig.accesscontrol.engine import AccessDecisionEngine, access_decision_engine
from salesconfig.accesscontrol.models import AccessControlRecord, utcnow
from salesconfig.accesscontrol.schemas import (
    AccessControlCreate,
    AccessControlDocument,
    AccessControlInitialize,
    AccessControlRead,
    ModuleAccessRead,
    ModuleConfigsUpdate,
    ModuleRoleConfig,
    RoleToggle,
)
from salesconfig.metrics import observe_access_decision


logger = logging.getLogger("salesconfig.accesscontrol")


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(value for value in values if value))


class AccessControlService:
    def __init__(self, engine: AccessDecisionEngine | None = None) -> None:
        self._engine = engine or access_decision_engine

    def get_document(self, session: Session, project_id: str, channel_id: str) -> AccessControlDocument | None:
        record = self._find(session, project_id, channel_id)
        if record is None:
            return None
        return self._to_document(record)

    def get_access_control(self, session: Session, project_id: str, channel_id: str) -> AccessControlRead:
        return self._to_read(self._get_active(session, project_id, channel_id))

    def create_access_control(self, session: Session, dto: AccessControlCreate, *, actor_user_id: str) -> AccessControlRead:
        if self._find(session, dto.project_id, dto.channel_id) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="access control already exists")
        document = AccessControlDocument(
            project_id=dto.project_id,
            channel_id=dto.channel_id,
            module_configs=tuple(dto.module_configs),
        )
        return self._save(session, document, actor_user_id=actor_user_id, action="access_control.created")

    def get_or_create_default(
        self,
        session: Session,
        project_id: str,
        channel_id: str,
        dto: AccessControlInitialize,
        *,
        actor_user_id: str,
    ) -> AccessControlRead:
        """Return the (project, channel) document, registering any new channel roles as disabled.

        When no document exists one is created for ``dto.module_ids`` with every role disabled.
        """

        role_ids = _dedupe(dto.role_ids)
        if not role_ids:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active roles found for the channel")

        record = self._find(session, project_id, channel_id)
        if record is not None:
            current = self._to_document(record)
            module_configs = tuple(self._with_missing_roles(config, role_ids) for config in current.module_configs)
            if module_configs == current.module_configs:
                return self._to_read(record)
            document = AccessControlDocument(project_id=project_id, channel_id=channel_id, module_configs=module_configs)
            return self._save(session, document, actor_user_id=actor_user_id, action="access_control.roles_synced")

        module_ids = _dedupe(dto.module_ids)
        if not module_ids:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active modules found")

        document = AccessControlDocument(
            project_id=project_id,
            channel_id=channel_id,
            module_configs=tuple(
                ModuleRoleConfig(
                    module_id=module_id,
                    role_configs=tuple(RoleToggle(role_id=role_id, status=False) for role_id in role_ids),
                )
                for module_id in module_ids
            ),
        )
        return self._save(session, document, actor_user_id=actor_user_id, action="access_control.created")

    def replace_module_configs(
        self,
        session: Session,
        project_id: str,
        channel_id: str,
        dto: ModuleConfigsUpdate,
        *,
        actor_user_id: str,
    ) -> AccessControlRead:
        document = AccessControlDocument(
            project_id=project_id,
            channel_id=channel_id,
            module_configs=tuple(dto.module_configs),
        )
        return self._save(session, document, actor_user_id=actor_user_id, action="access_control.replaced")

    def merge_module_configs(
        self,
        session: Session,
        project_id: str,
        channel_id: str,
        dto: ModuleConfigsUpdate,
        *,
        actor_user_id: str,
    ) -> AccessControlRead:
        current = self._to_document(self._get_active(session, project_id, channel_id))

        merged: dict[str, ModuleRoleConfig] = {config.module_id: config for config in current.module_configs}
        for incoming in dto.module_configs:
            existing = merged.get(incoming.module_id)
            if existing is None:
                merged[incoming.module_id] = incoming
                continue
            toggles = {toggle.role_id: toggle for toggle in existing.role_configs}
            toggles.update({toggle.role_id: toggle for toggle in incoming.role_configs})
            merged[incoming.module_id] = ModuleRoleConfig(module_id=incoming.module_id, role_configs=tuple(toggles.values()))

        document = AccessControlDocument(
            project_id=project_id,
            channel_id=channel_id,
            module_configs=tuple(merged.values()),
        )
        return self._save(session, document, actor_user_id=actor_user_id, action="access_control.merged")

    def is_module_enabled(self, session: Session, project_id: str, channel_id: str, module_id: str, role_id: str) -> bool:
        document = self.get_document(session, project_id, channel_id)
        if document is None:
            logger.warning(
                "access_control.not_found",
                extra={"project_id": project_id, "channel_id": channel_id, "module_id": module_id, "role_id": role_id},
            )
            enabled = False
        else:
            enabled = self._engine.is_enabled(document, module_id, role_id)

        observe_access_decision(enabled)
        logger.info(
            "access_control.decision",
            extra={
                "project_id": project_id,
                "channel_id": channel_id,
                "module_id": module_id,
                "role_id": role_id,
                "decision": "enabled" if enabled else "disabled",
            },
        )
        return enabled

    def module_access_for_role(
        self,
        session: Session,
        project_id: str,
        channel_id: str,
        role_id: str,
    ) -> list[ModuleAccessRead]:
        document = self._to_document(self._get_active(session, project_id, channel_id))
        return [
            ModuleAccessRead(module_id=item.module_id, status=item.status)
            for item in self._engine.module_access_for_role(document, role_id)
        ]

    def soft_delete(self, session: Session, project_id: str, channel_id: str, *, actor_user_id: str) -> None:
        record = self._get_active(session, project_id, channel_id)
        record.is_deleted = True
        record.deleted_at = utcnow()
        session.commit()
        audit.record(
            actor_user_id=actor_user_id,
            entity_type="access_control",
            entity_id=str(record.id),
            action="access_control.deleted",
            before={"is_deleted": False},
            after={"is_deleted": True},
        )

    def _save(
        self,
        session: Session,
        document: AccessControlDocument,
        *,
        actor_user_id: str,
        action: str,
    ) -> AccessControlRead:
        payload = [config.model_dump(mode="json") for config in document.module_configs]

        record = session.scalar(
            select(AccessControlRecord).where(
                AccessControlRecord.project_id == document.project_id,
                AccessControlRecord.channel_id == document.channel_id,
            )
        )
        before: dict[str, Any] | None = None
        if record is None:
            record = AccessControlRecord(project_id=document.project_id, channel_id=document.channel_id, module_configs=payload)
            session.add(record)
        else:
            # A soft-deleted row keeps the (project, channel) key, so it is revived rather than duplicated.
            if not record.is_deleted:
                before = {"module_configs": record.module_configs}
            record.module_configs = payload
            record.is_deleted = False
            record.deleted_at = None

        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="access control already exists")
        session.refresh(record)

        audit.record(
            actor_user_id=actor_user_id,
            entity_type="access_control",
            entity_id=str(record.id),
            action=action,
            before=before,
            after={"module_configs": payload},
        )
        logger.info(
            action,
            extra={"project_id": document.project_id, "channel_id": document.channel_id},
        )
        return self._to_read(record)

    @staticmethod
    def _with_missing_roles(config: ModuleRoleConfig, role_ids: list[str]) -> ModuleRoleConfig:
        known = {toggle.role_id for toggle in config.role_configs}
        missing = [RoleToggle(role_id=role_id, status=False) for role_id in role_ids if role_id not in known]
        if not missing:
            return config
        return ModuleRoleConfig(module_id=config.module_id, role_configs=config.role_configs + tuple(missing))

    @staticmethod
    def _find(session: Session, project_id: str, channel_id: str) -> AccessControlRecord | None:
        return session.scalar(
            select(AccessControlRecord).where(
                AccessControlRecord.project_id == project_id,
                AccessControlRecord.channel_id == channel_id,
                AccessControlRecord.is_deleted.is_(False),
            )
        )

    def _get_active(self, session: Session, project_id: str, channel_id: str) -> AccessControlRecord:
        record = self._find(session, project_id, channel_id)
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Access control configuration not found")
        return record

    @staticmethod
    def _to_document(record: AccessControlRecord) -> AccessControlDocument:
        return AccessControlDocument.model_validate(
            {
                "id": record.id,
                "project_id": record.project_id,
                "channel_id": record.channel_id,
                "module_configs": record.module_configs,
            }
        )

    @staticmethod
    def _to_read(record: AccessControlRecord) -> AccessControlRead:
        return AccessControlRead(
            id=record.id,
            project_id=record.project_id,
            channel_id=record.channel_id,
            module_configs=record.module_configs,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


access_control_service = AccessControlService()
