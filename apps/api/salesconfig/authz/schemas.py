from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from salesconfig.authz.evaluator import Decision, PermissionAction, PermissionEffect, RuleStatus


class RoleCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    is_system: bool = False


class RoleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None


class RoleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    is_system: bool
    created_at: datetime


class PermissionRuleCreate(BaseModel):
    resource_id: str = Field(min_length=1)
    action: PermissionAction
    effect: PermissionEffect = PermissionEffect.ALLOW
    conditions: dict[str, Any] | None = None
    status: RuleStatus = RuleStatus.ACTIVE
    description: str | None = None


class PermissionRuleUpdate(BaseModel):
    action: PermissionAction | None = None
    effect: PermissionEffect | None = None
    conditions: dict[str, Any] | None = None
    status: RuleStatus | None = None
    description: str | None = None


class PermissionRuleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    resource_id: str
    action: str
    effect: str
    conditions: dict[str, Any] | None
    status: str
    description: str | None
    created_at: datetime


class AttachRolePermissionRequest(BaseModel):
    permission_id: UUID


class RolePermissionRead(BaseModel):
    role_id: UUID
    role_name: str
    permission_id: UUID
    resource_id: str
    action: str
    effect: str
    status: str
    created_at: datetime


class PermissionEvaluateRequest(BaseModel):
    roles: list[str] = Field(min_length=1)
    resource_id: str = Field(min_length=1)
    action: PermissionAction
    context: dict[str, Any] = Field(default_factory=dict)


class PermissionEvaluateResponse(BaseModel):
    decision: Decision
    allowed: bool
    rule_id: str | None = None
