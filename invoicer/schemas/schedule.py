import datetime
import re
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from invoicer.schemas._dates import coerce_date
from invoicer.schemas.billing import InvoiceDraft, InvoiceResponse

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class BillingFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"
    BIANNUALLY = "BIANNUALLY"
    ONE_TIME = "ONE_TIME"


class BillingCycle(str, Enum):
    FIRST_OF_MONTH = "FIRST_OF_MONTH"
    END_OF_MONTH = "END_OF_MONTH"
    FIRST_OF_QUARTER = "FIRST_OF_QUARTER"


class ScheduleStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"


def parse_leading_int(value: object) -> Optional[int]:
    """Parse an integer prefix the way the backend's sheets do ("15", "15 days", 15.0)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def enum_text(value: object) -> str:
    """Return the tag text of an enum member or plain value; ``None`` becomes ``""``."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class ScheduleItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    description: Optional[str] = None
    quantity: Optional[int] = None
    unit_price: Optional[float] = None
    tax_rate: Optional[float] = None

    @field_validator("quantity", "unit_price", "tax_rate", mode="before")
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class BillingSchedule(BaseModel):
    """Transient copy of a recurring billing schedule owned by the backend."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    schedule_id: str
    client_id: str
    billing_frequency: str = BillingFrequency.MONTHLY.value  # enum tag or "N" days
    billing_cycle: Optional[str] = None
    billing_day: int = 1
    billing_amount: float = 0.0
    tax_rate: float = 0.0  # percentage
    quantity: Optional[int] = 1
    bill_description: Optional[str] = None
    next_billing_date: Optional[datetime.date] = None
    last_billed_date: Optional[datetime.date] = None
    cycles_completed: int = 0
    status: ScheduleStatus = ScheduleStatus.ACTIVE
    auto_generate: bool = False
    items: Optional[List[ScheduleItem]] = None

    @field_validator("billing_frequency", mode="before")
    def _normalize_frequency(cls, value):
        return enum_text(value).strip().upper()

    @field_validator("billing_cycle", "status", mode="before")
    def _upper(cls, value):
        if value is None:
            return None
        return enum_text(value).strip().upper() or None

    @field_validator("billing_day", mode="before")
    def _lenient_day(cls, value):
        day = parse_leading_int(value)
        if not day or day < 1:
            return 1
        return min(day, 31)

    @field_validator("cycles_completed", mode="before")
    def _lenient_cycles(cls, value):
        return parse_leading_int(value) or 0

    @field_validator("billing_amount", "tax_rate", mode="before")
    def _blank_amounts(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return 0.0
        return value

    @field_validator("quantity", mode="before")
    def _blank_quantity(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("next_billing_date", "last_billed_date", mode="before")
    def _normalize_dates(cls, value):
        return coerce_date(value)

    @property
    def is_active(self) -> bool:
        return self.status == ScheduleStatus.ACTIVE


class ScheduleAdvance(BaseModel):
    """State transition committed back to the backend after a billing cycle."""

    schedule_id: str
    next_billing_date: datetime.date
    last_billed_date: datetime.date
    cycles_completed: int


class ScheduleLookupRequest(BaseModel):
    schedule_id: str


class ScheduleListRequest(BaseModel):
    client_id: Optional[str] = None
    status: Optional[ScheduleStatus] = None


class ScheduleListResponse(BaseModel):
    total: int
    items: List[BillingSchedule]


class NextBillingDateRequest(BaseModel):
    frequency: str
    billing_day: Optional[int] = 1
    billing_cycle: Optional[str] = None
    from_date: Optional[datetime.date] = None


class NextBillingDateResponse(BaseModel):
    frequency: str
    from_date: datetime.date
    next_billing_date: datetime.date


class UpcomingInvoicesRequest(BaseModel):
    days: Optional[int] = Field(default=None, ge=0)


class UpcomingInvoice(BaseModel):
    schedule_id: str
    client_id: str
    client_name: Optional[str] = None
    next_billing_date: datetime.date
    days_until: int
    billing_amount: float
    frequency: str


class UpcomingInvoicesResponse(BaseModel):
    total: int
    items: List[UpcomingInvoice]


class RecurringRevenueResponse(BaseModel):
    monthly_revenue: float
    active_schedules: int
    currency: str


class GenerateInvoiceResponse(BaseModel):
    schedule_id: str
    draft: InvoiceDraft
    invoice: InvoiceResponse
    advance: Optional[ScheduleAdvance] = None
    schedule_updated: bool = False
    message: Optional[str] = None
