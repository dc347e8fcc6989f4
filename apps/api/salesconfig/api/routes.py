from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from salesconfig.accesscontrol.api import router as access_control_router
from salesconfig.authz.api import admin_router as authz_admin_router
from salesconfig.authz.api import evaluate_router as authz_evaluate_router
from salesconfig.core.auth import AuthUser, get_current_user
from salesconfig.core.config import get_settings
from salesconfig.leadstatus.api import router as lead_status_router
from salesconfig.metrics import generate_metrics_payload, metrics_content_type
from salesconfig.moduleconfig.api import router as module_config_router

router = APIRouter()
router.include_router(module_config_router)
router.include_router(lead_status_router)
router.include_router(access_control_router)
router.include_router(authz_admin_router)
router.include_router(authz_evaluate_router)


@router.get("/health", tags=["system"])
def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
    }


@router.get("/me", tags=["auth"])
async def me(user: AuthUser = Depends(get_current_user)) -> dict[str, str | list[str] | None]:
    return {
        "sub": user.sub,
        "roles": user.roles,
        "project_id": user.project_id,
        "channel_id": user.channel_id,
    }


@router.get("/metrics", tags=["system"])
def metrics(user: AuthUser = Depends(get_current_user)) -> Response:
    settings = get_settings()
    if not settings.metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    if "system.metrics.read" not in user.roles:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Missing permission: system.metrics.read")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
