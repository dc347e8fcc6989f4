from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from salesconfig.authz.evaluator import RuleStatus
from salesconfig.authz.schemas import (
    AttachRolePermissionRequest,
    PermissionEvaluateRequest,
    PermissionEvaluateResponse,
    PermissionRuleCreate,
    PermissionRuleRead,
    PermissionRuleUpdate,
    RoleCreate,
    RolePermissionRead,
    RoleRead,
    RoleUpdate,
)
from salesconfig.authz.service import authorization_admin_service, role_permission_service
from salesconfig.core.auth import AuthUser
from salesconfig.core.database import get_db
from salesconfig.core.rbac import require_admin


admin_router = APIRouter(prefix="/api/admin", tags=["admin.authz"])
evaluate_router = APIRouter(prefix="/api/authz", tags=["authz"])


@admin_router.post("/roles", response_model=RoleRead, status_code=status.HTTP_201_CREATED)
def create_role(
    dto: RoleCreate,
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(require_admin),
) -> RoleRead:
    return authorization_admin_service.create_role(db, dto)


@admin_router.get("/roles", response_model=list[RoleRead])
def list_roles(
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(require_admin),
) -> list[RoleRead]:
    return authorization_admin_service.list_roles(db)


@admin_router.patch("/roles/{role_id}", response_model=RoleRead)
def update_role(
    role_id: uuid.UUID,
    dto: RoleUpdate,
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(require_admin),
) -> RoleRead:
    return authorization_admin_service.update_role(db, role_id, dto)


@admin_router.delete("/roles/{role_id}", status_code=status.HTTP_200_OK)
def delete_role(
    role_id: uuid.UUID,
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(require_admin),
) -> None:
    authorization_admin_service.delete_role(db, role_id)


@admin_router.post("/permissions", response_model=PermissionRuleRead, status_code=status.HTTP_201_CREATED)
def create_permission(
    dto: PermissionRuleCreate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_admin),
) -> PermissionRuleRead:
    return authorization_admin_service.create_permission(db, dto, actor_user_id=user.sub)


@admin_router.get("/permissions", response_model=list[PermissionRuleRead])
def list_permissions(
    resource_id: str | None = Query(default=None),
    rule_status: RuleStatus | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(require_admin),
) -> list[PermissionRuleRead]:
    return authorization_admin_service.list_permissions(
        db,
        resource_id=resource_id,
        rule_status=rule_status.value if rule_status is not None else None,
    )


@admin_router.patch("/permissions/{permission_id}", response_model=PermissionRuleRead)
def update_permission(
    permission_id: uuid.UUID,
    dto: PermissionRuleUpdate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_admin),
) -> PermissionRuleRead:
    return authorization_admin_service.update_permission(db, permission_id, dto, actor_user_id=user.sub)


@admin_router.delete("/permissions/{permission_id}", status_code=status.HTTP_200_OK)
def delete_permission(
    permission_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_admin),
) -> None:
    authorization_admin_service.delete_permission(db, permission_id, actor_user_id=user.sub)


@admin_router.post("/roles/{role_id}/permissions", response_model=RolePermissionRead, status_code=status.HTTP_201_CREATED)
def attach_role_permission(
    role_id: uuid.UUID,
    dto: AttachRolePermissionRequest,
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(require_admin),
) -> RolePermissionRead:
    return authorization_admin_service.attach_permission_to_role(db, role_id, dto.permission_id)


@admin_router.get("/roles/{role_id}/permissions", response_model=list[RolePermissionRead])
def list_role_permissions(
    role_id: uuid.UUID,
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(require_admin),
) -> list[RolePermissionRead]:
    return authorization_admin_service.list_role_permissions(db, role_id=role_id)


@admin_router.delete("/roles/{role_id}/permissions/{permission_id}", status_code=status.HTTP_200_OK)
def detach_role_permission(
    role_id: uuid.UUID,
    permission_id: uuid.UUID,
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(require_admin),
) -> None:
    authorization_admin_service.detach_permission_from_role(db, role_id, permission_id)


@evaluate_router.post("/evaluate", response_model=PermissionEvaluateResponse)
def evaluate_permission(
    dto: PermissionEvaluateRequest,
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(require_admin),
) -> PermissionEvaluateResponse:
    evaluation = role_permission_service.evaluate(db, dto.roles, dto.resource_id, dto.action.value, dto.context)
    return PermissionEvaluateResponse(
        decision=evaluation.decision,
        allowed=role_permission_service.is_allowed(evaluation),
        rule_id=evaluation.rule.id if evaluation.rule is not None else None,
    )
