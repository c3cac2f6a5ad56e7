import os
import sys
from datetime import date, timedelta

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from invoicer.schemas.client import Client
from invoicer.schemas.schedule import (
    BillingCycle,
    BillingFrequency,
    BillingSchedule,
    ScheduleItem,
    ScheduleStatus,
)
from invoicer.services.advancer import (
    BillingScheduleAdvancer,
    compute_next_billing_date,
    days_in_month,
)
from invoicer.services.exceptions import InvalidScheduleState, NonRecurringSchedule


TODAY = date(2024, 3, 10)


def _advancer() -> BillingScheduleAdvancer:
    return BillingScheduleAdvancer(today=lambda: TODAY)


def _schedule(**overrides) -> BillingSchedule:
    values = {
        "schedule_id": "SCH-1",
        "client_id": "CLI-1",
        "billing_frequency": "MONTHLY",
        "billing_day": 15,
        "billing_amount": 250.0,
        "tax_rate": 12.5,
        "next_billing_date": date(2024, 3, 15),
    }
    values.update(overrides)
    return BillingSchedule(**values)


def test_fixed_day_frequencies() -> None:
    start = date(2024, 12, 31)
    assert compute_next_billing_date("DAILY", from_date=start) == date(2025, 1, 1)
    assert compute_next_billing_date("WEEKLY", from_date=start) == date(2025, 1, 7)
    assert compute_next_billing_date("BIWEEKLY", from_date=start) == date(2025, 1, 14)


def test_daily_is_always_one_day_later() -> None:
    start = date(2023, 1, 1)
    for offset in range(0, 800, 7):
        current = start + timedelta(days=offset)
        assert compute_next_billing_date("DAILY", from_date=current) == current + timedelta(days=1)


def test_frequency_is_case_insensitive() -> None:
    assert compute_next_billing_date("weekly", from_date=date(2024, 1, 1)) == date(2024, 1, 8)


def test_monthly_end_of_month_lands_on_last_day_of_following_month() -> None:
    result = compute_next_billing_date("MONTHLY", 1, "END_OF_MONTH", date(2024, 1, 15))
    assert result == date(2024, 2, 29)

    result = compute_next_billing_date("MONTHLY", 1, "END_OF_MONTH", date(2023, 11, 30))
    assert result == date(2023, 12, 31)


def test_monthly_first_of_month() -> None:
    for day in (1, 15, 31):
        result = compute_next_billing_date("MONTHLY", 20, "FIRST_OF_MONTH", date(2024, 3, day))
        assert result == date(2024, 4, 1)


def test_monthly_billing_day_is_clamped_to_month_length() -> None:
    assert compute_next_billing_date("MONTHLY", 31, None, date(2024, 1, 31)) == date(2024, 2, 29)
    assert compute_next_billing_date("MONTHLY", 31, None, date(2023, 1, 31)) == date(2023, 2, 28)
    assert compute_next_billing_date("MONTHLY", 31, None, date(2024, 3, 31)) == date(2024, 4, 30)


def test_monthly_pins_to_billing_day() -> None:
    assert compute_next_billing_date("MONTHLY", 5, None, date(2024, 1, 20)) == date(2024, 2, 5)
    assert compute_next_billing_date("MONTHLY", 5, None, date(2024, 12, 20)) == date(2025, 1, 5)


def test_missing_or_invalid_billing_day_counts_as_first() -> None:
    assert compute_next_billing_date("MONTHLY", None, None, date(2024, 1, 20)) == date(2024, 2, 1)
    assert compute_next_billing_date("MONTHLY", "n/a", None, date(2024, 1, 20)) == date(2024, 2, 1)


def test_quarterly_first_of_quarter() -> None:
    result = compute_next_billing_date("QUARTERLY", 1, "FIRST_OF_QUARTER", date(2024, 5, 10))
    assert result == date(2024, 7, 1)

    result = compute_next_billing_date("QUARTERLY", 1, "FIRST_OF_QUARTER", date(2024, 11, 30))
    assert result == date(2025, 1, 1)


def test_quarterly_pins_to_billing_day() -> None:
    assert compute_next_billing_date("QUARTERLY", 31, None, date(2024, 11, 30)) == date(2025, 2, 28)


def test_yearly_clamps_leap_day() -> None:
    assert compute_next_billing_date("YEARLY", 29, None, date(2024, 2, 29)) == date(2025, 2, 28)


def test_biannually_advances_six_months() -> None:
    assert compute_next_billing_date("BIANNUALLY", 31, None, date(2024, 2, 29)) == date(2024, 8, 31)
    assert compute_next_billing_date("BIANNUALLY", 31, None, date(2024, 8, 31)) == date(2025, 2, 28)


def test_custom_day_interval() -> None:
    assert compute_next_billing_date("45", from_date=date(2024, 1, 1)) == date(2024, 2, 15)


def test_unparseable_frequency_falls_back_to_thirty_days(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("WARNING"):
        result = compute_next_billing_date("FORTNIGHTLY-ISH", from_date=date(2024, 1, 1))

    assert result == date(2024, 1, 31)
    assert "Unparseable billing frequency" in caplog.text
    assert compute_next_billing_date("0", from_date=date(2024, 1, 1)) == date(2024, 1, 31)
    assert compute_next_billing_date(None, from_date=date(2024, 1, 1)) == date(2024, 1, 31)


def test_fallback_interval_is_configurable() -> None:
    advancer = BillingScheduleAdvancer(today=lambda: TODAY, fallback_interval_days=10)
    assert advancer.compute_next_billing_date("bogus") == TODAY + timedelta(days=10)


def test_one_time_has_no_next_date() -> None:
    with pytest.raises(NonRecurringSchedule):
        compute_next_billing_date("ONE_TIME", from_date=date(2024, 1, 1))


def test_days_in_month_handles_leap_years() -> None:
    assert days_in_month(date(2024, 2, 1)) == 29
    assert days_in_month(date(2023, 2, 1)) == 28
    assert days_in_month(date(1900, 2, 1)) == 28
    assert days_in_month(date(2000, 2, 1)) == 29


def test_advance_schedule_moves_one_cycle() -> None:
    schedule = _schedule(cycles_completed=4)

    advance = _advancer().advance_schedule(schedule)

    assert advance.schedule_id == "SCH-1"
    assert advance.next_billing_date == date(2024, 4, 15)
    assert advance.last_billed_date == TODAY
    assert advance.cycles_completed == 5


def test_advance_schedule_without_next_date_starts_today() -> None:
    advance = _advancer().advance_schedule(_schedule(next_billing_date=None, billing_frequency="WEEKLY"))
    assert advance.next_billing_date == TODAY + timedelta(days=7)


def test_advancing_twice_increments_counter_each_time() -> None:
    advancer = _advancer()
    schedule = _schedule()

    first = advancer.advance_schedule(schedule)
    second = advancer.advance_schedule(schedule.model_copy(update=first.model_dump(exclude={"schedule_id"})))

    assert first.cycles_completed == 1
    assert second.cycles_completed == 2
    assert second.next_billing_date == date(2024, 5, 15)


def test_advance_rejects_paused_schedule() -> None:
    with pytest.raises(InvalidScheduleState) as excinfo:
        _advancer().advance_schedule(_schedule(status="PAUSED"))

    assert excinfo.value.status == ScheduleStatus.PAUSED.value
    assert excinfo.value.schedule_id == "SCH-1"


def test_advance_rejects_one_time_schedule() -> None:
    with pytest.raises(NonRecurringSchedule):
        _advancer().advance_schedule(_schedule(billing_frequency="one_time"))


def test_draft_synthesizes_single_item_when_schedule_has_none() -> None:
    schedule = _schedule(items=[], quantity=None, bill_description=None)
    client = Client(client_id="CLI-1", name="Accra Logistics", payment_terms=14, currency="USD")

    draft = _advancer().build_invoice_draft(schedule, client)

    assert len(draft.items) == 1
    item = draft.items[0]
    assert item.unit_price == schedule.billing_amount
    assert item.quantity == 1
    assert item.tax_rate == 12.5
    assert item.description == "Recurring service - MONTHLY"
    assert draft.date == TODAY
    assert draft.due_date == date(2024, 3, 24)
    assert draft.currency == "USD"
    assert draft.notes == "Auto-generated from billing schedule SCH-1"
    assert draft.schedule_id == "SCH-1"


def test_draft_uses_defaults_for_missing_client_terms() -> None:
    client = Client(client_id="CLI-1", name="Kumasi Print Works")

    draft = _advancer().build_invoice_draft(_schedule(bill_description="Hosting"), client)

    assert draft.due_date == TODAY + timedelta(days=30)
    assert draft.currency == "GHS"
    assert draft.items[0].description == "Hosting"


def test_draft_zero_payment_terms_is_due_immediately() -> None:
    client = Client(client_id="CLI-1", name="Kumasi Print Works", payment_terms=0)
    draft = _advancer().build_invoice_draft(_schedule(), client)
    assert draft.due_date == TODAY


def test_draft_maps_template_items_with_schedule_fallbacks() -> None:
    schedule = _schedule(
        quantity=3,
        items=[
            ScheduleItem(description="Support retainer", unit_price=900.0, tax_rate=0.0),
            ScheduleItem(quantity=2),
        ],
    )
    client = Client(client_id="CLI-1", name="Lagos Cloud Studio")

    draft = _advancer().build_invoice_draft(schedule, client)

    assert [item.description for item in draft.items] == ["Support retainer", "Service - MONTHLY"]
    assert draft.items[0].quantity == 3
    assert draft.items[0].unit_price == 900.0
    assert draft.items[0].tax_rate == 0.0
    assert draft.items[1].quantity == 2
    assert draft.items[1].unit_price == 250.0
    assert draft.items[1].tax_rate == 12.5


def test_schedule_accepts_enum_members() -> None:
    schedule = _schedule(
        billing_frequency=BillingFrequency.MONTHLY,
        billing_cycle=BillingCycle.END_OF_MONTH,
        status=ScheduleStatus.PAUSED,
    )

    assert schedule.billing_frequency == "MONTHLY"
    assert schedule.billing_cycle == "END_OF_MONTH"
    assert schedule.status == ScheduleStatus.PAUSED


def test_enum_frequency_advances_by_its_own_rule() -> None:
    schedule = _schedule(
        billing_frequency=BillingFrequency.MONTHLY,
        billing_day=15,
        next_billing_date=date(2024, 1, 15),
    )

    assert _advancer().advance_schedule(schedule).next_billing_date == date(2024, 2, 15)


def test_every_frequency_from_enum_members() -> None:
    start = date(2024, 1, 31)
    expected = {
        BillingFrequency.DAILY: date(2024, 2, 1),
        BillingFrequency.WEEKLY: date(2024, 2, 7),
        BillingFrequency.BIWEEKLY: date(2024, 2, 14),
        BillingFrequency.MONTHLY: date(2024, 2, 29),
        BillingFrequency.QUARTERLY: date(2024, 4, 30),
        BillingFrequency.YEARLY: date(2025, 1, 31),
        BillingFrequency.BIANNUALLY: date(2024, 7, 31),
    }
    advancer = _advancer()

    for frequency, next_date in expected.items():
        schedule = _schedule(billing_frequency=frequency, billing_day=31, next_billing_date=start)
        assert advancer.advance_schedule(schedule).next_billing_date == next_date, frequency


def test_enum_cycles_select_their_pin() -> None:
    advancer = _advancer()
    end_of_month = _schedule(
        billing_frequency=BillingFrequency.MONTHLY,
        billing_cycle=BillingCycle.END_OF_MONTH,
        next_billing_date=date(2024, 1, 15),
    )
    first_of_month = _schedule(
        billing_frequency=BillingFrequency.MONTHLY,
        billing_cycle=BillingCycle.FIRST_OF_MONTH,
        next_billing_date=date(2024, 3, 20),
    )
    first_of_quarter = _schedule(
        billing_frequency=BillingFrequency.QUARTERLY,
        billing_cycle=BillingCycle.FIRST_OF_QUARTER,
        next_billing_date=date(2024, 5, 10),
    )

    assert advancer.advance_schedule(end_of_month).next_billing_date == date(2024, 2, 29)
    assert advancer.advance_schedule(first_of_month).next_billing_date == date(2024, 4, 1)
    assert advancer.advance_schedule(first_of_quarter).next_billing_date == date(2024, 7, 1)


def test_end_of_month_from_the_31st_clamps_before_second_advance() -> None:
    result = compute_next_billing_date(
        BillingFrequency.MONTHLY, 1, BillingCycle.END_OF_MONTH, date(2024, 1, 31)
    )
    assert result == date(2024, 2, 29)


def test_one_time_enum_member_is_rejected() -> None:
    with pytest.raises(NonRecurringSchedule):
        _advancer().advance_schedule(_schedule(billing_frequency=BillingFrequency.ONE_TIME))


def test_billing_day_is_clamped_at_the_model() -> None:
    assert _schedule(billing_day=-5).billing_day == 1
    assert _schedule(billing_day="0").billing_day == 1
    assert _schedule(billing_day=45).billing_day == 31
    assert _schedule(billing_day="20th").billing_day == 20
