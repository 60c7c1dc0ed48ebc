from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProjectCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    client_name: Optional[str] = None
    default_rate_cents: Optional[int] = Field(default=None, ge=0)
    phase_rates_cents: Optional[Dict[str, int]] = None


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    client_name: Optional[str]
    default_rate_cents: Optional[int]
    phase_rates_cents: Optional[Dict[str, int]]
    archived: bool
    created_at: datetime
