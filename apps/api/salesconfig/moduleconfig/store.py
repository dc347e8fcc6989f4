from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from salesconfig.moduleconfig.models import ModuleConfigRecord
from salesconfig.moduleconfig.schemas import ModuleConfig


def to_module_config(record: ModuleConfigRecord) -> ModuleConfig:
    """Validate a stored row into the immutable snapshot handed to the engines."""

    return ModuleConfig.model_validate(
        {
            "id": record.id,
            "module_id": record.module_id,
            "project_id": record.project_id,
            "config_name": record.config_name,
            "description": record.description,
            "fields": record.fields or [],
            "metadata": record.config_metadata,
        }
    )


class ModuleConfigStore:
    """Read access to non-deleted module configuration documents."""

    def find_one(self, session: Session, *, module_id: str, project_id: str | None) -> ModuleConfig | None:
        stmt = select(ModuleConfigRecord).where(
            ModuleConfigRecord.module_id == module_id,
            ModuleConfigRecord.is_deleted.is_(False),
        )
        if project_id is None:
            stmt = stmt.where(ModuleConfigRecord.project_id.is_(None))
        else:
            stmt = stmt.where(ModuleConfigRecord.project_id == project_id)

        record = session.scalar(stmt.order_by(ModuleConfigRecord.created_at.asc()).limit(1))
        if record is None:
            return None
        return to_module_config(record)
