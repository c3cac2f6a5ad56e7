from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class Client(BaseModel):
    model_config = ConfigDict(extra="ignore")

    client_id: str
    name: str
    email: Optional[str] = None
    payment_terms: Optional[int] = None  # days until an invoice is due
    currency: Optional[str] = None

    @field_validator("payment_terms", mode="before")
    def _blank_terms(cls, value):
        if value in ("", None):
            return None
        return value

    @field_validator("currency", mode="before")
    def _blank_currency(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ClientLookupRequest(BaseModel):
    client_id: str


class ClientListResponse(BaseModel):
    total: int
    items: List[Client]
