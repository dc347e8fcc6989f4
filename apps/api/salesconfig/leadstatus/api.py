from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from salesconfig.authz.dependencies import require_permission
from salesconfig.authz.evaluator import PermissionAction
from salesconfig.core.auth import AuthUser
from salesconfig.core.database import get_db
from salesconfig.leadstatus.schemas import LeadStatusResolveRequest, LeadStatusResolveResponse
from salesconfig.leadstatus.service import lead_status_service


router = APIRouter(prefix="/api/leads", tags=["leads.status"])


@router.post("/status/resolve", response_model=LeadStatusResolveResponse)
def resolve_lead_status(
    dto: LeadStatusResolveRequest,
    db: Session = Depends(get_db),
    _user: AuthUser = Depends(require_permission("lead", PermissionAction.UPDATE)),
) -> LeadStatusResolveResponse:
    return lead_status_service.resolve(db, dto)
