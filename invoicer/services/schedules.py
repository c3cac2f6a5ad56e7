from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List

from invoicer.clients.backend import BackendClient
from invoicer.schemas.schedule import (
    BillingFrequency,
    BillingSchedule,
    GenerateInvoiceResponse,
    RecurringRevenueResponse,
    ScheduleAdvance,
    ScheduleListRequest,
    ScheduleListResponse,
    ScheduleStatus,
    UpcomingInvoice,
    UpcomingInvoicesResponse,
)
from invoicer.services.advancer import BillingScheduleAdvancer
from invoicer.services.clients import ClientService
from invoicer.services.exceptions import ScheduleNotFound, ServiceError
from invoicer.services.invoice import InvoiceService
from invoicer.services.mock_store import ScheduleRepository, get_mock_store

logger = logging.getLogger(__name__)

# Approximate number of billing cycles per month, per frequency.
MONTHLY_MULTIPLIERS: Dict[str, float] = {
    BillingFrequency.DAILY.value: 30,
    BillingFrequency.WEEKLY.value: 4.33,
    BillingFrequency.BIWEEKLY.value: 2.17,
    BillingFrequency.MONTHLY.value: 1,
    BillingFrequency.QUARTERLY.value: 0.33,
    BillingFrequency.YEARLY.value: 0.083,
    BillingFrequency.BIANNUALLY.value: 0.167,
}


class BillingScheduleService:
    """Invoice generation workflow around :class:`BillingScheduleAdvancer`.

    Advancement is two-phase: the advancer computes the next state, the
    backend persists it, and only a confirmed write counts as a billed cycle.
    """

    def __init__(
        self,
        client: BackendClient,
        advancer: BillingScheduleAdvancer,
        *,
        invoices: InvoiceService,
        clients: ClientService,
        repository: ScheduleRepository | None = None,
        upcoming_window_days: int = 30,
        currency: str = "GHS",
    ) -> None:
        self._client = client
        self._advancer = advancer
        self._invoices = invoices
        self._clients = clients
        self._repository = repository
        self._upcoming_window_days = upcoming_window_days
        self._currency = currency
        if self._client.use_mock_data:
            self._repository = repository or get_mock_store().schedules

    def _require_repository(self) -> ScheduleRepository:
        if not self._repository:
            raise RuntimeError("Mock schedule repository not configured")
        return self._repository

    async def _fetch(self, request: ScheduleListRequest) -> List[BillingSchedule]:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            return await self._require_repository().list(
                client_id=request.client_id, status=request.status
            )

        try:
            filters = request.model_dump(mode="json", exclude_none=True)
            data = await self._client.call("get_billing_schedules", filters)
            schedules = [BillingSchedule(**row) for row in data or []]
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error while fetching billing schedules")
            raise ServiceError("Failed to fetch billing schedules", cause=exc)

        # The backend may ignore filters it does not understand.
        return [
            schedule
            for schedule in schedules
            if (request.client_id is None or schedule.client_id == request.client_id)
            and (request.status is None or schedule.status == request.status)
        ]

    async def list(self, request: ScheduleListRequest) -> ScheduleListResponse:
        logger.info("Listing billing schedules (client=%s, status=%s)", request.client_id, request.status)
        items = await self._fetch(request)
        return ScheduleListResponse(total=len(items), items=items)

    async def get(self, schedule_id: str) -> BillingSchedule:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            return await self._require_repository().get(schedule_id)

        for schedule in await self._fetch(ScheduleListRequest()):
            if schedule.schedule_id == schedule_id:
                return schedule
        raise ScheduleNotFound(f"Schedule {schedule_id} not found")

    async def pause(self, schedule_id: str) -> BillingSchedule:
        return await self._set_status(schedule_id, ScheduleStatus.PAUSED, "pause_billing_schedule")

    async def resume(self, schedule_id: str) -> BillingSchedule:
        return await self._set_status(schedule_id, ScheduleStatus.ACTIVE, "resume_billing_schedule")

    async def _set_status(self, schedule_id: str, status: ScheduleStatus, action: str) -> BillingSchedule:
        logger.info("Setting schedule %s to %s", schedule_id, status.value)
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            return await self._require_repository().set_status(schedule_id, status)

        try:
            await self._client.call(action, {"id": schedule_id})
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error during %s", action)
            raise ServiceError(f"Failed to {action.split('_', 1)[0]} schedule", cause=exc)
        return await self.get(schedule_id)

    async def upcoming(self, days: int | None = None) -> UpcomingInvoicesResponse:
        window = self._upcoming_window_days if days is None else days
        today = self._advancer.today()
        horizon = today + timedelta(days=window)

        schedules = await self._fetch(ScheduleListRequest(status=ScheduleStatus.ACTIVE))
        due = [
            schedule
            for schedule in schedules
            if schedule.next_billing_date is not None
            and today <= schedule.next_billing_date <= horizon
        ]
        if not due:
            return UpcomingInvoicesResponse(total=0, items=[])

        names = {client.client_id: client.name for client in (await self._clients.list()).items}
        items = [
            UpcomingInvoice(
                schedule_id=schedule.schedule_id,
                client_id=schedule.client_id,
                client_name=names.get(schedule.client_id),
                next_billing_date=schedule.next_billing_date,
                days_until=(schedule.next_billing_date - today).days,
                billing_amount=schedule.billing_amount,
                frequency=schedule.billing_frequency,
            )
            for schedule in sorted(due, key=lambda s: s.next_billing_date)
        ]
        return UpcomingInvoicesResponse(total=len(items), items=items)

    async def recurring_revenue(self) -> RecurringRevenueResponse:
        schedules = await self._fetch(ScheduleListRequest(status=ScheduleStatus.ACTIVE))
        revenue = sum(
            schedule.billing_amount * MONTHLY_MULTIPLIERS.get(schedule.billing_frequency, 1)
            for schedule in schedules
        )
        return RecurringRevenueResponse(
            monthly_revenue=round(revenue, 2),
            active_schedules=len(schedules),
            currency=self._currency,
        )

    async def _persist_advance(self, advance: ScheduleAdvance) -> None:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            await self._require_repository().apply_advance(advance)
            return

        payload = advance.model_dump(mode="json")
        payload["last_modified"] = datetime.now(timezone.utc).isoformat()
        try:
            await self._client.call("update_billing_schedule", payload)
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error while updating schedule %s", advance.schedule_id)
            raise ServiceError("Failed to update billing schedule", cause=exc)

    async def advance(self, schedule_id: str) -> ScheduleAdvance:
        schedule = await self.get(schedule_id)
        advance = self._advancer.advance_schedule(schedule)
        await self._persist_advance(advance)
        logger.info(
            "Schedule %s advanced to %s (cycle %s)",
            schedule_id,
            advance.next_billing_date,
            advance.cycles_completed,
        )
        return advance

    async def generate_invoice(self, schedule_id: str) -> GenerateInvoiceResponse:
        schedule = await self.get(schedule_id)
        # Computed up front so ineligible schedules fail before anything is created.
        advance = self._advancer.advance_schedule(schedule)
        client = await self._clients.get(schedule.client_id)
        draft = self._advancer.build_invoice_draft(schedule, client)

        invoice = await self._invoices.create(draft)
        logger.info("Invoice %s created from schedule %s", invoice.invoice_id, schedule_id)

        try:
            await self._persist_advance(advance)
        except ServiceError as exc:
            logger.warning(
                "Invoice %s created but schedule %s was not advanced: %s",
                invoice.invoice_id,
                schedule_id,
                exc,
            )
            return GenerateInvoiceResponse(
                schedule_id=schedule_id,
                draft=draft,
                invoice=invoice,
                schedule_updated=False,
                message=f"Invoice created; schedule update failed: {exc}",
            )

        return GenerateInvoiceResponse(
            schedule_id=schedule_id,
            draft=draft,
            invoice=invoice,
            advance=advance,
            schedule_updated=True,
            message=f"Invoice {invoice.invoice_number or invoice.invoice_id} created",
        )
