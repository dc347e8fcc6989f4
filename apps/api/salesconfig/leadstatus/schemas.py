from __future__ import annotations

from pydantic import BaseModel, Field


class LeadStatusResolveRequest(BaseModel):
    project_id: str | None = None
    module_id: str = Field(min_length=1)
    progress: str = Field(min_length=1)
    disposition: str | None = None
    sub_disposition: str | None = None


class LeadStatusResolveResponse(BaseModel):
    resolved: bool
    bucket: str | None = None
    config_found: bool
