from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

InvoiceStatus = Literal["draft", "sent", "overdue", "paid", "void"]


class LineItemCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str
    quantity: Decimal = Field(max_digits=10, decimal_places=2)
    rate_cents: int
    amount_cents: int


class InvoiceCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    invoice_number: str = Field(min_length=1)
    invoice_date: date
    project_id: Optional[int] = None
    due_date: Optional[date] = None
    status: InvoiceStatus = "draft"
    vat_percent: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None
    items: List[LineItemCreate] = Field(default_factory=list)
    time_entry_ids: List[str] = Field(default_factory=list)


class InvoiceUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[InvoiceStatus] = None
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    vat_percent: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None


class LineItemResponse(BaseModel):
    id: int
    invoice_id: int
    position: int
    description: str
    quantity: float
    rate_cents: int
    amount_cents: int


class InvoiceProjectSummary(BaseModel):
    name: str
    client_name: Optional[str]


class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str
    project_id: Optional[int]
    invoice_date: date
    due_date: Optional[date]
    amount_cents: int
    status: str
    vat_percent: Optional[float]
    notes: Optional[str]
    project: Optional[InvoiceProjectSummary]
    items: List[LineItemResponse]


class InvoiceCreateResponse(InvoiceResponse):
    warnings: List[str]
    unmarked_time_entry_ids: List[str]


class InvoiceDeleteResponse(BaseModel):
    success: bool
    invoice_id: int
    released_time_entries: int


class UnbilledEntryResponse(BaseModel):
    id: str
    project_id: Optional[int]
    occurred_on: date
    minutes: Optional[int]
    phase_code: Optional[str]
    notes: Optional[str]
    invoiced_at: Optional[date]
    invoice_number: Optional[str]
    rate_cents: int
    amount_cents: int


class UnbilledGroupResponse(BaseModel):
    project_id: Optional[int]
    project_name: str
    client_name: str
    total_hours: float
    total_amount_cents: int
    entries: List[UnbilledEntryResponse]
