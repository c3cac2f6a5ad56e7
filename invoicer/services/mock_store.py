from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

from invoicer.schemas.billing import InvoiceDraft, InvoiceResponse
from invoicer.schemas.client import Client
from invoicer.schemas.schedule import (
    BillingSchedule,
    ScheduleAdvance,
    ScheduleItem,
    ScheduleStatus,
)
from invoicer.services.exceptions import (
    ClientNotFound,
    InvalidScheduleState,
    InvoiceNotFound,
    ScheduleNotFound,
)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def invoice_total(draft: InvoiceDraft) -> float:
    total = 0.0
    for item in draft.items:
        line_total = float(item.quantity) * float(item.unit_price)
        line_total *= 1.0 + float(item.tax_rate) / 100.0
        total += line_total
    return round(total, 2)


class _BaseRepository:
    def __init__(self, prefix: str) -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)

    def _next_id(self) -> str:
        return f"{self._prefix}-{next(self._counter):05d}"


class ClientRepository(_BaseRepository):
    def __init__(self, *, seed: bool = True) -> None:
        super().__init__("CLI")
        self._clients: Dict[str, Client] = {}
        if seed:
            self._seed_defaults()

    def _seed_defaults(self) -> None:
        self.add(
            Client(
                client_id="CLI-ACCRA-001",
                name="Accra Logistics Ltd",
                email="accounts@accralogistics.example",
                payment_terms=14,
                currency="GHS",
            )
        )
        self.add(
            Client(
                client_id="CLI-KUMASI-002",
                name="Kumasi Print Works",
                email="billing@kumasiprint.example",
            )
        )
        self.add(
            Client(
                client_id="CLI-LAGOS-003",
                name="Lagos Cloud Studio",
                email="finance@lagoscloud.example",
                payment_terms=45,
                currency="USD",
            )
        )

    def add(self, client: Client) -> Client:
        self._clients[client.client_id] = client
        return client

    async def get(self, client_id: str) -> Client:
        client = self._clients.get(client_id)
        if client is None:
            raise ClientNotFound(f"Client {client_id} not found")
        return client

    async def list(self) -> List[Client]:
        return list(self._clients.values())


class ScheduleRepository(_BaseRepository):
    def __init__(self, *, seed: bool = True) -> None:
        super().__init__("SCH")
        self._schedules: Dict[str, BillingSchedule] = {}
        self._lock = asyncio.Lock()
        if seed:
            self._seed_defaults()

    def _seed_defaults(self) -> None:
        today = date.today()
        self.add(
            BillingSchedule(
                schedule_id=self._next_id(),
                client_id="CLI-ACCRA-001",
                billing_frequency="MONTHLY",
                billing_day=1,
                billing_cycle="FIRST_OF_MONTH",
                billing_amount=1500.0,
                tax_rate=15.0,
                bill_description="Fleet tracking subscription",
                next_billing_date=today + timedelta(days=5),
                auto_generate=True,
            )
        )
        self.add(
            BillingSchedule(
                schedule_id=self._next_id(),
                client_id="CLI-KUMASI-002",
                billing_frequency="QUARTERLY",
                billing_day=15,
                billing_amount=4200.0,
                next_billing_date=today + timedelta(days=20),
                items=[
                    ScheduleItem(description="Print server maintenance", unit_price=3000.0),
                    ScheduleItem(description="Consumables", quantity=4, unit_price=300.0, tax_rate=5.0),
                ],
            )
        )
        self.add(
            BillingSchedule(
                schedule_id=self._next_id(),
                client_id="CLI-LAGOS-003",
                billing_frequency="WEEKLY",
                billing_amount=250.0,
                next_billing_date=today + timedelta(days=2),
                status=ScheduleStatus.PAUSED,
            )
        )

    def add(self, schedule: BillingSchedule) -> BillingSchedule:
        self._schedules[schedule.schedule_id] = schedule
        return schedule

    async def list(
        self,
        *,
        client_id: Optional[str] = None,
        status: Optional[ScheduleStatus] = None,
    ) -> List[BillingSchedule]:
        return [
            schedule
            for schedule in self._schedules.values()
            if (client_id is None or schedule.client_id == client_id)
            and (status is None or schedule.status == status)
        ]

    async def get(self, schedule_id: str) -> BillingSchedule:
        schedule = self._schedules.get(schedule_id)
        if schedule is None:
            raise ScheduleNotFound(f"Schedule {schedule_id} not found")
        return schedule

    async def apply_advance(self, advance: ScheduleAdvance) -> BillingSchedule:
        async with self._lock:
            current = await self.get(advance.schedule_id)
            if advance.cycles_completed != current.cycles_completed + 1:
                raise InvalidScheduleState(
                    f"Schedule {advance.schedule_id} was advanced concurrently "
                    f"(stored cycle {current.cycles_completed}, update {advance.cycles_completed})",
                    schedule_id=advance.schedule_id,
                    status=current.status.value,
                )
            updated = current.model_copy(
                update={
                    "next_billing_date": advance.next_billing_date,
                    "last_billed_date": advance.last_billed_date,
                    "cycles_completed": advance.cycles_completed,
                }
            )
            self._schedules[updated.schedule_id] = updated
            return updated

    async def set_status(self, schedule_id: str, status: ScheduleStatus) -> BillingSchedule:
        async with self._lock:
            current = await self.get(schedule_id)
            if current.status == ScheduleStatus.CANCELLED:
                raise InvalidScheduleState(
                    f"Schedule {schedule_id} is CANCELLED",
                    schedule_id=schedule_id,
                    status=current.status.value,
                )
            updated = current.model_copy(update={"status": status})
            self._schedules[schedule_id] = updated
            return updated


class InvoiceRepository(_BaseRepository):
    def __init__(self) -> None:
        super().__init__("INV")
        self._invoices: Dict[str, Dict[str, object]] = {}

    async def create(self, draft: InvoiceDraft) -> InvoiceResponse:
        invoice_id = self._next_id()
        record = {
            "invoice_id": invoice_id,
            "invoice_number": f"{invoice_id[:3]}-{draft.date.year}-{invoice_id[4:]}",
            "client_id": draft.client_id,
            "total": invoice_total(draft),
            "currency": draft.currency,
            "status": "DRAFT",
            "date": draft.date,
            "due_date": draft.due_date,
            "schedule_id": draft.schedule_id,
            "notes": draft.notes,
            "items": [item.model_dump() for item in draft.items],
            "created_at": _utc_now_iso(),
        }
        self._invoices[invoice_id] = record
        return InvoiceResponse(**record)

    async def list(self, client_id: Optional[str] = None) -> List[Dict[str, object]]:
        return [
            dict(invoice)
            for invoice in self._invoices.values()
            if client_id is None or invoice["client_id"] == client_id
        ]

    async def get(self, invoice_id: str) -> Dict[str, object]:
        invoice = self._invoices.get(invoice_id)
        if invoice is None:
            raise InvoiceNotFound(f"Invoice {invoice_id} not found")
        return dict(invoice)


@dataclass
class MockDataStore:
    clients: ClientRepository
    schedules: ScheduleRepository
    invoices: InvoiceRepository


_mock_store: Optional[MockDataStore] = None


def get_mock_store() -> MockDataStore:
    global _mock_store
    if _mock_store is None:
        _mock_store = MockDataStore(
            clients=ClientRepository(),
            schedules=ScheduleRepository(),
            invoices=InvoiceRepository(),
        )
    return _mock_store


def reset_mock_store() -> None:
    global _mock_store
    _mock_store = None
