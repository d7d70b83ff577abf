"""Device Schemas — push-agent device registration and listing.

Invariants:
    - The plaintext token appears only in DeviceRegisteredResponse, once
    - token_hash is never serialized
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DeviceCreate(BaseModel):
    owner_id: int
    account_id: UUID
    device_name: str = Field(min_length=1, max_length=100)

    @field_validator("device_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("device_name cannot be empty or whitespace")
        return v


class DeviceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: UUID
    provider: str
    device_name: str
    created_at: datetime
    last_seen_at: datetime | None = None
    last_import_at: datetime | None = None
    revoked_at: datetime | None = None


class DeviceRegisteredResponse(BaseModel):
    device: DeviceResponse
    token: str
