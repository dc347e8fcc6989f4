from salesconfig.leadstatus.engine import StatusResolutionEngine, determine_bucket, status_resolution_engine
from salesconfig.leadstatus.service import LeadStatusService, lead_status_service

__all__ = [
    "StatusResolutionEngine",
    "status_resolution_engine",
    "determine_bucket",
    "LeadStatusService",
    "lead_status_service",
]
