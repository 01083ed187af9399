# connector_sync/schemas/reconciliation.py
import json
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ReconciliationSummary(BaseModel):
    devices_processed: int = 0
    connectors_created: int = 0
    unmatched_devices: list[str] = Field(default_factory=list)
    filtered_devices: list[str] = Field(default_factory=list)   # skipped by TEST_DEVICE_ID
    surplus_devices: list[str] = Field(default_factory=list)    # more points stored than reported
    committed: bool = False


class ReconciliationRunOut(BaseModel):
    id: int
    started_at: datetime
    finished_at: Optional[datetime]
    status: str
    test_device_id: Optional[str]
    devices_processed: int
    connectors_created: int
    unmatched_devices: list[str] = Field(default_factory=list)
    error: Optional[str]

    @field_validator("unmatched_devices", mode="before")
    @classmethod
    def _decode_json_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return json.loads(value) if value else []
        return value

    class Config:
        from_attributes = True
