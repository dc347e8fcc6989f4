from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from salesconfig.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ModuleConfigRecord(Base):
    __tablename__ = "module_config"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    module_id: Mapped[str] = mapped_column(String(64), nullable=False)
    # NULL marks the global default for the module.
    project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    config_name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    fields: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    config_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        Index("ix_module_config_module_project", "module_id", "project_id"),
        Index("ix_module_config_is_deleted", "is_deleted"),
    )


# Soft-deleted rows keep their name but no longer reserve it.
Index(
    "uq_module_config_scope_name_active",
    ModuleConfigRecord.module_id,
    ModuleConfigRecord.project_id,
    ModuleConfigRecord.config_name,
    unique=True,
    postgresql_where=ModuleConfigRecord.is_deleted.is_(False),
    sqlite_where=ModuleConfigRecord.is_deleted.is_(False),
)
