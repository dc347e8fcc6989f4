from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from salesconfig.accesscontrol.schemas import (
    AccessControlCreate,
    AccessControlInitialize,
    AccessControlRead,
    AccessDecisionRead,
    ModuleAccessRead,
    ModuleConfigsUpdate,
)
from salesconfig.accesscontrol.service import access_control_service
from salesconfig.authz.dependencies import require_permission
from salesconfig.authz.evaluator import PermissionAction
from salesconfig.core.auth import AuthUser
from salesconfig.core.database import get_db
from salesconfig.core.rbac import require_admin


router = APIRouter(prefix="/api/access-control", tags=["access_control"])


@router.post("", response_model=AccessControlRead, status_code=status.HTTP_201_CREATED)
def create_access_control(
    dto: AccessControlCreate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_admin),
) -> AccessControlRead:
    return access_control_service.create_access_control(db, dto, actor_user_id=user.sub)


@router.get("/{project_id}/{channel_id}", response_model=AccessControlRead)
def get_access_control(
    project_id: str,
    channel_id: str,
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(require_permission("access_control", PermissionAction.READ)),
) -> AccessControlRead:
    return access_control_service.get_access_control(db, project_id, channel_id)


@router.post("/{project_id}/{channel_id}/initialize", response_model=AccessControlRead)
def initialize_access_control(
    project_id: str,
    channel_id: str,
    dto: AccessControlInitialize,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_admin),
) -> AccessControlRead:
    return access_control_service.get_or_create_default(db, project_id, channel_id, dto, actor_user_id=user.sub)


@router.put("/{project_id}/{channel_id}/module-configs", response_model=AccessControlRead)
def replace_module_configs(
    project_id: str,
    channel_id: str,
    dto: ModuleConfigsUpdate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_admin),
) -> AccessControlRead:
    return access_control_service.replace_module_configs(db, project_id, channel_id, dto, actor_user_id=user.sub)


@router.patch("/{project_id}/{channel_id}/module-configs", response_model=AccessControlRead)
def merge_module_configs(
    project_id: str,
    channel_id: str,
    dto: ModuleConfigsUpdate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_admin),
) -> AccessControlRead:
    return access_control_service.merge_module_configs(db, project_id, channel_id, dto, actor_user_id=user.sub)


@router.get("/{project_id}/{channel_id}/modules/{module_id}/roles/{role_id}", response_model=AccessDecisionRead)
def check_module_access(
    project_id: str,
    channel_id: str,
    module_id: str,
    role_id: str,
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(require_permission("access_control", PermissionAction.READ)),
) -> AccessDecisionRead:
    enabled = access_control_service.is_module_enabled(db, project_id, channel_id, module_id, role_id)
    return AccessDecisionRead(
        project_id=project_id,
        channel_id=channel_id,
        module_id=module_id,
        role_id=role_id,
        enabled=enabled,
    )


@router.get("/{project_id}/{channel_id}/roles/{role_id}/modules", response_model=list[ModuleAccessRead])
def list_role_module_access(
    project_id: str,
    channel_id: str,
    role_id: str,
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(require_permission("access_control", PermissionAction.READ)),
) -> list[ModuleAccessRead]:
    return access_control_service.module_access_for_role(db, project_id, channel_id, role_id)


@router.delete("/{project_id}/{channel_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_access_control(
    project_id: str,
    channel_id: str,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_admin),
) -> None:
    access_control_service.soft_delete(db, project_id, channel_id, actor_user_id=user.sub)
