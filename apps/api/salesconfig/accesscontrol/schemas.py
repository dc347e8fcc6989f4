from __future__ import annotations

import uuid
from collections import Counter
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _reject_duplicates(kind: str, values: list[str]) -> None:
    duplicated = sorted(value for value, count in Counter(values).items() if count > 1)
    if duplicated:
        raise ValueError(f"duplicate {kind}: {', '.join(duplicated)}")


class RoleToggle(BaseModel):
    model_config = ConfigDict(frozen=True)

    role_id: str = Field(min_length=1)
    status: bool = False


class ModuleRoleConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    module_id: str = Field(min_length=1)
    role_configs: tuple[RoleToggle, ...]

    @field_validator("role_configs")
    @classmethod
    def _validate_role_configs(cls, value: tuple[RoleToggle, ...]) -> tuple[RoleToggle, ...]:
        if not value:
            raise ValueError("At least one role configuration is required")
        _reject_duplicates("role ids", [toggle.role_id for toggle in value])
        return value

    def find_role(self, role_id: str) -> RoleToggle | None:
        return next((toggle for toggle in self.role_configs if toggle.role_id == role_id), None)


def _validate_module_configs(value: tuple[ModuleRoleConfig, ...]) -> tuple[ModuleRoleConfig, ...]:
    if not value:
        raise ValueError("At least one module configuration is required")
    _reject_duplicates("module ids", [config.module_id for config in value])
    return value


class AccessControlDocument(BaseModel):
    """Per (project, channel) allow-list of which roles may use which modules."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID | None = None
    project_id: str = Field(min_length=1)
    channel_id: str = Field(min_length=1)
    module_configs: tuple[ModuleRoleConfig, ...]

    @field_validator("module_configs")
    @classmethod
    def _validate_module_configs(cls, value: tuple[ModuleRoleConfig, ...]) -> tuple[ModuleRoleConfig, ...]:
        return _validate_module_configs(value)

    def find_module(self, module_id: str) -> ModuleRoleConfig | None:
        return next((config for config in self.module_configs if config.module_id == module_id), None)


class ModuleConfigsUpdate(BaseModel):
    module_configs: list[ModuleRoleConfig]

    @field_validator("module_configs")
    @classmethod
    def _validate_module_configs(cls, value: list[ModuleRoleConfig]) -> list[ModuleRoleConfig]:
        return list(_validate_module_configs(tuple(value)))


class AccessControlCreate(ModuleConfigsUpdate):
    project_id: str = Field(min_length=1)
    channel_id: str = Field(min_length=1)


class AccessControlInitialize(BaseModel):
    role_ids: list[str] = Field(default_factory=list)
    module_ids: list[str] = Field(default_factory=list)


class AccessControlRead(BaseModel):
    id: uuid.UUID
    project_id: str
    channel_id: str
    module_configs: list[ModuleRoleConfig]
    created_at: datetime
    updated_at: datetime


class ModuleAccessRead(BaseModel):
    module_id: str
    status: bool


class AccessDecisionRead(BaseModel):
    project_id: str
    channel_id: str
    module_id: str
    role_id: str
    enabled: bool
