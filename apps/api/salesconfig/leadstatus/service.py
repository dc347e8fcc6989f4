from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from salesconfig.core.config import get_settings
from salesconfig.leadstatus.engine import StatusResolutionEngine
from salesconfig.leadstatus.schemas import LeadStatusResolveRequest, LeadStatusResolveResponse
from salesconfig.metrics import observe_lead_status_resolution
from salesconfig.moduleconfig.resolver import ModuleConfigResolver, get_config_resolver


logger = logging.getLogger("salesconfig.leadstatus")


class LeadStatusService:
    """Resolve the effective module config for a lead's scope and compute its status bucket."""

    def __init__(self, resolver: ModuleConfigResolver | None = None) -> None:
        self._resolver = resolver

    def determine_lead_status(
        self,
        session: Session,
        *,
        project_id: str | None,
        module_id: str,
        progress: str,
        disposition: str | None = None,
        sub_disposition: str | None = None,
    ) -> str | None:
        _, bucket = self._determine(session, project_id, module_id, progress, disposition, sub_disposition)
        return bucket

    def resolve(self, session: Session, dto: LeadStatusResolveRequest) -> LeadStatusResolveResponse:
        config_found, bucket = self._determine(
            session,
            dto.project_id,
            dto.module_id,
            dto.progress,
            dto.disposition,
            dto.sub_disposition,
        )
        return LeadStatusResolveResponse(resolved=bucket is not None, bucket=bucket, config_found=config_found)

    def _determine(
        self,
        session: Session,
        project_id: str | None,
        module_id: str,
        progress: str,
        disposition: str | None,
        sub_disposition: str | None,
    ) -> tuple[bool, str | None]:
        if not module_id:
            observe_lead_status_resolution(False)
            return False, None

        resolver = self._resolver or get_config_resolver()
        config = resolver.resolve(session, project_id, module_id)
        if config is None:
            observe_lead_status_resolution(False)
            return False, None

        engine = StatusResolutionEngine(field_name=get_settings().lead_progress_field_name)
        bucket = engine.determine_bucket(config, progress, disposition, sub_disposition)
        observe_lead_status_resolution(bucket is not None)
        logger.info(
            "lead_status.resolved" if bucket is not None else "lead_status.unresolved",
            extra={
                "project_id": project_id,
                "module_id": module_id,
                "progress": progress,
                "disposition": disposition,
                "sub_disposition": sub_disposition,
                "bucket": bucket,
            },
        )
        return True, bucket


lead_status_service = LeadStatusService()
