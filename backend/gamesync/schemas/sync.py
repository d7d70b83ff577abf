"""Sync Schemas — request and response models for sync and push-import routes.

Invariants:
    - ScheduleRequest.interval_minutes >= 1
    - Push-import responses serialize camelCase for the agent; sync responses stay snake_case
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SyncJobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: UUID
    job_type: str
    status: str
    parent_job_id: UUID | None = None
    entries_processed: int = 0
    entries_added: int = 0
    entries_updated: int = 0
    error_message: str | None = None
    created_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None


class SyncTriggerResponse(BaseModel):
    job_id: UUID
    status: str
    error: str | None = None
    enrichment_job_id: UUID | None = None


class SyncStatusResponse(BaseModel):
    account_id: UUID
    last_synced_at: datetime | None
    latest_job: SyncJobResponse | None
    is_scheduled: bool


class ScheduleRequest(BaseModel):
    owner_id: int
    interval_minutes: int = Field(ge=1, le=7 * 24 * 60)


class ScheduleResponse(BaseModel):
    account_id: UUID
    is_scheduled: bool


# --- Push import ------------------------------------------------------------

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImportCountsResponse(_CamelModel):
    received: int
    created: int
    updated: int
    unchanged: int
    soft_removed: int
    needs_review: int


class ImportWarningResponse(_CamelModel):
    code: str
    message: str
    external_game_id: str | None = None


class PushImportResponse(_CamelModel):
    device_id: str
    imported_at: datetime
    job_id: UUID
    enrichment_job_id: UUID | None
    counts: ImportCountsResponse
    warnings: list[ImportWarningResponse] = []
