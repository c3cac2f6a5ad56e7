import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from invoicer.schemas._dates import coerce_date


class LineItem(BaseModel):
    description: str
    quantity: int = 1
    unit_price: float
    tax_rate: float = 0.0  # percentage, e.g. 12.5 for 12.5%


class InvoiceDraft(BaseModel):
    client_id: str
    date: datetime.date
    due_date: datetime.date
    currency: str
    notes: Optional[str] = None
    items: List[LineItem]
    schedule_id: Optional[str] = None


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    invoice_id: str = Field(validation_alias=AliasChoices("invoice_id", "invoiceId"))
    invoice_number: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("invoice_number", "invoiceNumber")
    )
    client_id: Optional[str] = None
    total: float = 0.0
    currency: Optional[str] = None
    status: str = "DRAFT"
    date: Optional[datetime.date] = None
    due_date: Optional[datetime.date] = None
    schedule_id: Optional[str] = None

    @field_validator("date", "due_date", mode="before")
    def _normalize_dates(cls, value):
        return coerce_date(value)


class InvoiceLookupRequest(BaseModel):
    invoice_id: str


class InvoiceListRequest(BaseModel):
    client_id: Optional[str] = None


class InvoiceListResponse(BaseModel):
    total: int
    items: List[InvoiceResponse]
