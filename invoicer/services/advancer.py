"""Recurring billing date arithmetic and schedule advancement.

Everything in this module is pure: no I/O, no shared state. Callers persist
the returned :class:`ScheduleAdvance` through the backend and only treat the
cycle as billed once that write is confirmed.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta

from invoicer.schemas.billing import InvoiceDraft, LineItem
from invoicer.schemas.client import Client
from invoicer.schemas.schedule import (
    BillingCycle,
    BillingFrequency,
    BillingSchedule,
    ScheduleAdvance,
    enum_text,
    parse_leading_int,
)
from invoicer.services.exceptions import InvalidScheduleState, NonRecurringSchedule

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_DAYS = 30
DEFAULT_PAYMENT_TERMS = 30
DEFAULT_CURRENCY = "GHS"

_FIXED_DAY_STEPS = {
    BillingFrequency.DAILY.value: 1,
    BillingFrequency.WEEKLY.value: 7,
    BillingFrequency.BIWEEKLY.value: 14,
}


def days_in_month(value: date) -> int:
    return calendar.monthrange(value.year, value.month)[1]


def _pin_day(value: date, billing_day: int) -> date:
    return value.replace(day=max(1, min(billing_day, days_in_month(value))))


def _interval_days(frequency: str, fallback: int) -> int:
    days = parse_leading_int(frequency)
    if not days or days < 0:
        logger.warning(
            "Unparseable billing frequency %r; using a %s day interval", frequency, fallback
        )
        return fallback
    return days


def compute_next_billing_date(
    frequency: Optional[str],
    billing_day: Optional[int | str] = 1,
    billing_cycle: Optional[str] = None,
    from_date: Optional[date] = None,
    *,
    fallback_days: int = DEFAULT_INTERVAL_DAYS,
) -> date:
    """Return the billing date that follows ``from_date`` for a recurring schedule.

    ``frequency`` is one of the :class:`BillingFrequency` tags (any case) or a
    custom interval in days. Values that are neither fall back to
    ``fallback_days``. MONTHLY, QUARTERLY, YEARLY and BIANNUALLY results are
    pinned to ``billing_day`` clamped to the month's length, unless
    ``billing_cycle`` selects a different pin.

    ``END_OF_MONTH`` pins to the last day of the month after ``from_date``'s
    month: the date is advanced twice and then rolled back to day zero. This
    mirrors how the backend has always scheduled these cycles.

    Raises :class:`NonRecurringSchedule` for ``ONE_TIME`` schedules.
    """
    start = from_date or date.today()
    tag = enum_text(frequency).strip().upper()
    cycle = enum_text(billing_cycle).strip().upper() or None
    day = parse_leading_int(billing_day) or 1

    if tag in _FIXED_DAY_STEPS:
        return start + timedelta(days=_FIXED_DAY_STEPS[tag])

    if tag == BillingFrequency.MONTHLY.value:
        advanced = start + relativedelta(months=1)
        if cycle == BillingCycle.FIRST_OF_MONTH.value:
            return advanced.replace(day=1)
        if cycle == BillingCycle.END_OF_MONTH.value:
            following = advanced + relativedelta(months=1)
            return following.replace(day=1) - timedelta(days=1)
        return _pin_day(advanced, day)

    if tag == BillingFrequency.QUARTERLY.value:
        advanced = start + relativedelta(months=3)
        if cycle == BillingCycle.FIRST_OF_QUARTER.value:
            quarter_start = ((advanced.month - 1) // 3) * 3 + 1
            return advanced.replace(month=quarter_start, day=1)
        return _pin_day(advanced, day)

    if tag == BillingFrequency.YEARLY.value:
        return _pin_day(start + relativedelta(years=1), day)

    # No backend rule exists for BIANNUALLY; treated as a six month YEARLY.
    if tag == BillingFrequency.BIANNUALLY.value:
        return _pin_day(start + relativedelta(months=6), day)

    if tag == BillingFrequency.ONE_TIME.value:
        raise NonRecurringSchedule("ONE_TIME schedules have no next billing date")

    return start + timedelta(days=_interval_days(tag, fallback_days))


class BillingScheduleAdvancer:
    """Computes schedule advancement and invoice drafts for a billing run."""

    def __init__(
        self,
        *,
        today: Callable[[], date] = date.today,
        fallback_interval_days: int = DEFAULT_INTERVAL_DAYS,
        default_payment_terms: int = DEFAULT_PAYMENT_TERMS,
        default_currency: str = DEFAULT_CURRENCY,
    ) -> None:
        self._today = today
        self._fallback_interval_days = fallback_interval_days
        self._default_payment_terms = default_payment_terms
        self._default_currency = default_currency

    def today(self) -> date:
        return self._today()

    def compute_next_billing_date(
        self,
        frequency: Optional[str],
        billing_day: Optional[int | str] = 1,
        billing_cycle: Optional[str] = None,
        from_date: Optional[date] = None,
    ) -> date:
        return compute_next_billing_date(
            frequency,
            billing_day,
            billing_cycle,
            from_date or self.today(),
            fallback_days=self._fallback_interval_days,
        )

    def advance_schedule(self, schedule: BillingSchedule) -> ScheduleAdvance:
        if not schedule.is_active:
            raise InvalidScheduleState(
                f"Schedule {schedule.schedule_id} is {schedule.status.value}; only ACTIVE schedules advance",
                schedule_id=schedule.schedule_id,
                status=schedule.status.value,
            )

        try:
            next_date = self.compute_next_billing_date(
                schedule.billing_frequency,
                schedule.billing_day,
                schedule.billing_cycle,
                schedule.next_billing_date,
            )
        except NonRecurringSchedule as exc:
            raise NonRecurringSchedule(
                f"Schedule {schedule.schedule_id} is ONE_TIME and cannot be advanced",
                schedule_id=schedule.schedule_id,
                status=schedule.status.value,
            ) from exc

        advance = ScheduleAdvance(
            schedule_id=schedule.schedule_id,
            next_billing_date=next_date,
            last_billed_date=self.today(),
            cycles_completed=schedule.cycles_completed + 1,
        )
        logger.debug(
            "Schedule %s advances to %s (cycle %s)",
            schedule.schedule_id,
            advance.next_billing_date,
            advance.cycles_completed,
        )
        return advance

    def build_invoice_draft(self, schedule: BillingSchedule, client: Client) -> InvoiceDraft:
        issued = self.today()
        terms = client.payment_terms
        if terms is None:
            terms = self._default_payment_terms

        return InvoiceDraft(
            client_id=schedule.client_id,
            date=issued,
            due_date=issued + timedelta(days=terms),
            currency=client.currency or self._default_currency,
            notes=f"Auto-generated from billing schedule {schedule.schedule_id}",
            items=self._line_items(schedule),
            schedule_id=schedule.schedule_id,
        )

    @staticmethod
    def _line_items(schedule: BillingSchedule) -> list[LineItem]:
        frequency = schedule.billing_frequency
        if schedule.items:
            return [
                LineItem(
                    description=item.description or f"Service - {frequency}",
                    quantity=item.quantity if item.quantity is not None else (schedule.quantity or 1),
                    unit_price=item.unit_price if item.unit_price is not None else schedule.billing_amount,
                    tax_rate=item.tax_rate if item.tax_rate is not None else (schedule.tax_rate or 0.0),
                )
                for item in schedule.items
            ]

        return [
            LineItem(
                description=schedule.bill_description or f"Recurring service - {frequency}",
                quantity=schedule.quantity or 1,
                unit_price=schedule.billing_amount,
                tax_rate=schedule.tax_rate or 0.0,
            )
        ]
