from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from salesconfig.authz.dependencies import require_permission
from salesconfig.authz.evaluator import PermissionAction
from salesconfig.core.auth import AuthUser, get_current_user
from salesconfig.core.database import get_db
from salesconfig.core.rbac import require_admin
from salesconfig.moduleconfig.resolver import get_config_resolver
from salesconfig.moduleconfig.schemas import (
    ModuleConfigCreate,
    ModuleConfigRead,
    ModuleConfigUpdate,
    ResolvedModuleConfigRead,
)
from salesconfig.moduleconfig.service import module_config_service


router = APIRouter(prefix="/api/module-configs", tags=["module_configs"])


@router.post("", response_model=ModuleConfigRead, status_code=status.HTTP_201_CREATED)
def create_module_config(
    dto: ModuleConfigCreate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_admin),
) -> ModuleConfigRead:
    return module_config_service.create_config(db, dto, actor_user_id=user.sub)


@router.get("", response_model=list[ModuleConfigRead])
def list_module_configs(
    module_id: str | None = Query(default=None),
    project_id: str | None = Query(default=None),
    global_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(get_current_user),
) -> list[ModuleConfigRead]:
    return module_config_service.list_configs(db, module_id=module_id, project_id=project_id, global_only=global_only)


@router.get("/resolve", response_model=ResolvedModuleConfigRead)
def resolve_module_config(
    module_id: str = Query(min_length=1),
    project_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(require_permission("module_config", PermissionAction.READ)),
) -> ResolvedModuleConfigRead:
    config = get_config_resolver().resolve(db, project_id, module_id)
    if config is None:
        return ResolvedModuleConfigRead(resolved=False)
    return ResolvedModuleConfigRead(resolved=True, source="global" if config.is_global else "project", config=config)


@router.get("/{config_id}", response_model=ModuleConfigRead)
def get_module_config(
    config_id: uuid.UUID,
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(get_current_user),
) -> ModuleConfigRead:
    return module_config_service.get_config(db, config_id)


@router.patch("/{config_id}", response_model=ModuleConfigRead)
def update_module_config(
    config_id: uuid.UUID,
    dto: ModuleConfigUpdate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_admin),
) -> ModuleConfigRead:
    return module_config_service.update_config(db, config_id, dto, actor_user_id=user.sub)


@router.delete("/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_module_config(
    config_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_admin),
) -> None:
    module_config_service.soft_delete_config(db, config_id, actor_user_id=user.sub)
