from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salesconfig import audit
from salesconfig.moduleconfig.models import ModuleConfigRecord, utcnow
from salesconfig.moduleconfig.resolver import get_config_resolver
from salesconfig.moduleconfig.schemas import ModuleConfigCreate, ModuleConfigRead, ModuleConfigUpdate


logger = logging.getLogger("salesconfig.moduleconfig")


class ModuleConfigService:
    def create_config(self, session: Session, dto: ModuleConfigCreate, *, actor_user_id: str) -> ModuleConfigRead:
        self._ensure_name_available(session, module_id=dto.module_id, project_id=dto.project_id, config_name=dto.config_name)

        record = ModuleConfigRecord(
            module_id=dto.module_id.strip(),
            project_id=dto.project_id.strip() if dto.project_id is not None else None,
            config_name=dto.config_name.strip(),
            description=dto.description,
            fields=[field.model_dump(mode="json") for field in dto.fields],
            config_metadata=dto.metadata,
        )
        session.add(record)
        self._commit(session)
        session.refresh(record)

        get_config_resolver().invalidate(record.module_id)
        audit.record(
            actor_user_id=actor_user_id,
            entity_type="module_config",
            entity_id=str(record.id),
            action="module_config.created",
            before=None,
            after=self._audit_snapshot(record),
        )
        logger.info(
            "module_config.created",
            extra={"module_id": record.module_id, "project_id": record.project_id, "config_name": record.config_name},
        )
        return self._to_read(record)

    def list_configs(
        self,
        session: Session,
        *,
        module_id: str | None = None,
        project_id: str | None = None,
        global_only: bool = False,
    ) -> list[ModuleConfigRead]:
        stmt = select(ModuleConfigRecord).where(ModuleConfigRecord.is_deleted.is_(False))
        if module_id is not None:
            stmt = stmt.where(ModuleConfigRecord.module_id == module_id)
        if global_only:
            stmt = stmt.where(ModuleConfigRecord.project_id.is_(None))
        elif project_id is not None:
            stmt = stmt.where(ModuleConfigRecord.project_id == project_id)

        rows = session.scalars(stmt.order_by(ModuleConfigRecord.created_at.desc())).all()
        return [self._to_read(row) for row in rows]

    def get_config(self, session: Session, config_id: uuid.UUID) -> ModuleConfigRead:
        return self._to_read(self._get_active(session, config_id))

    def update_config(
        self,
        session: Session,
        config_id: uuid.UUID,
        dto: ModuleConfigUpdate,
        *,
        actor_user_id: str,
    ) -> ModuleConfigRead:
        record = self._get_active(session, config_id)
        before = self._audit_snapshot(record)

        if dto.config_name is not None and dto.config_name.strip() != record.config_name:
            self._ensure_name_available(
                session,
                module_id=record.module_id,
                project_id=record.project_id,
                config_name=dto.config_name,
            )
            record.config_name = dto.config_name.strip()
        if dto.description is not None:
            record.description = dto.description
        if dto.fields is not None:
            record.fields = [field.model_dump(mode="json") for field in dto.fields]
        if dto.metadata is not None:
            record.config_metadata = dto.metadata

        self._commit(session)
        session.refresh(record)

        get_config_resolver().invalidate(record.module_id)
        audit.record(
            actor_user_id=actor_user_id,
            entity_type="module_config",
            entity_id=str(record.id),
            action="module_config.updated",
            before=before,
            after=self._audit_snapshot(record),
        )
        return self._to_read(record)

    def soft_delete_config(self, session: Session, config_id: uuid.UUID, *, actor_user_id: str) -> None:
        record = self._get_active(session, config_id)
        record.is_deleted = True
        record.deleted_at = utcnow()
        session.commit()

        get_config_resolver().invalidate(record.module_id)
        audit.record(
            actor_user_id=actor_user_id,
            entity_type="module_config",
            entity_id=str(record.id),
            action="module_config.deleted",
            before={"is_deleted": False},
            after={"is_deleted": True, "deleted_at": record.deleted_at.isoformat()},
        )
        logger.info(
            "module_config.deleted",
            extra={"module_id": record.module_id, "project_id": record.project_id, "config_name": record.config_name},
        )

    def _get_active(self, session: Session, config_id: uuid.UUID) -> ModuleConfigRecord:
        record = session.scalar(
            select(ModuleConfigRecord).where(
                ModuleConfigRecord.id == config_id,
                ModuleConfigRecord.is_deleted.is_(False),
            )
        )
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="module config not found")
        return record

    def _ensure_name_available(
        self,
        session: Session,
        *,
        module_id: str,
        project_id: str | None,
        config_name: str,
    ) -> None:
        # NULL project ids never collide in the unique index, so the global scope is checked here.
        stmt = select(ModuleConfigRecord.id).where(
            ModuleConfigRecord.module_id == module_id.strip(),
            ModuleConfigRecord.config_name == config_name.strip(),
            ModuleConfigRecord.is_deleted.is_(False),
        )
        if project_id is None:
            stmt = stmt.where(ModuleConfigRecord.project_id.is_(None))
        else:
            stmt = stmt.where(ModuleConfigRecord.project_id == project_id.strip())
        if session.scalar(stmt) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="module config already exists")

    @staticmethod
    def _commit(session: Session) -> None:
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="module config already exists")

    @staticmethod
    def _audit_snapshot(record: ModuleConfigRecord) -> dict[str, Any]:
        return {
            "module_id": record.module_id,
            "project_id": record.project_id,
            "config_name": record.config_name,
            "field_names": [field.get("field_name") for field in record.fields or []],
        }

    @staticmethod
    def _to_read(record: ModuleConfigRecord) -> ModuleConfigRead:
        return ModuleConfigRead(
            id=record.id,
            module_id=record.module_id,
            project_id=record.project_id,
            config_name=record.config_name,
            description=record.description,
            fields=record.fields or [],
            metadata=record.config_metadata,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


module_config_service = ModuleConfigService()
