from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TimeEntryCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    project_id: Optional[int] = None
    occurred_on: date
    minutes: int = Field(ge=0)
    phase_code: Optional[str] = None
    notes: Optional[str] = None


class TimeEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: Optional[int]
    occurred_on: date
    minutes: Optional[int]
    phase_code: Optional[str]
    notes: Optional[str]
    invoiced_at: Optional[date]
    invoice_number: Optional[str]
    created_at: datetime
