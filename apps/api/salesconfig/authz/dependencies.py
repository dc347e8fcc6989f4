from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from salesconfig.authz.errors import PermissionDeniedError
from salesconfig.authz.service import role_permission_service
from salesconfig.core.auth import AuthUser, get_current_user
from salesconfig.core.database import get_db
from salesconfig.core.rbac import ADMIN_ROLES


def _request_context(user: AuthUser) -> dict[str, Any]:
    context: dict[str, Any] = {"user_id": user.sub}
    if user.project_id is not None:
        context["project_id"] = user.project_id
    if user.channel_id is not None:
        context["channel_id"] = user.channel_id
    return context


def require_permission(resource_id: str, action: str) -> Callable[..., AuthUser]:
    """Route guard evaluating the caller's role rules; administrators bypass rule evaluation."""

    def checker(user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)) -> AuthUser:
        if not ADMIN_ROLES.isdisjoint(user.roles):
            return user
        try:
            role_permission_service.ensure_allowed(db, user.roles, resource_id, action, _request_context(user))
        except PermissionDeniedError as exc:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
        return user

    return checker
