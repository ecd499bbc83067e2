import dataclasses
from datetime import date, timedelta

import pytest

from ustcurve.bond.ust.pricing import (
    DAY_COUNT_LABEL,
    calculate_accrued_interest,
    calculate_pricing,
    price_security,
)
from ustcurve.errors import InvalidInput, NoEnclosingPeriod


def test_accrued_interest_example():
    accrued = calculate_accrued_interest(
        date(2025, 8, 15), date(2026, 2, 15), date(2025, 11, 19), 0.04, 2
    )
    assert accrued.days_in_period == 184
    assert accrued.days_accrued == 96
    assert accrued.f == pytest.approx(96 / 184)
    assert accrued.coupon_payment == pytest.approx(0.02)
    assert accrued.accrued_interest == pytest.approx(2.0 * 96 / 184)


def test_accrued_interest_outside_period():
    with pytest.raises(NoEnclosingPeriod):
        calculate_accrued_interest(
            date(2025, 8, 15), date(2026, 2, 15), date(2026, 2, 15), 0.04, 2
        )


def test_price_security_note(note_record, reference_date):
    result = price_security(note_record, reference_date)
    assert result.clean_price == 98.5
    assert result.accrued_interest == pytest.approx(1.043478, abs=1e-9)
    assert result.dirty_price == pytest.approx(99.543478, abs=1e-9)
    assert result.f == pytest.approx(0.52173913, abs=1e-12)
    assert not result.is_zero_coupon

    period = result.period
    assert period.last_coupon_date == date(2025, 8, 15)
    assert period.next_coupon_date == date(2026, 2, 15)
    assert period.days_in_period == 184
    assert period.days_accrued == 96
    assert period.frequency == 2
    assert period.frequency_name == "Semi-Annual"
    assert period.coupon_rate_percent == 4.0
    assert period.coupon_payment_per_period == pytest.approx(0.02)
    assert period.day_count_convention == DAY_COUNT_LABEL


def test_price_security_defaults_to_next_business_day(note_record):
    # 2025-11-18 is a Tuesday, so settlement is the 19th
    result = price_security(note_record, today=date(2025, 11, 18))
    assert result.period.days_accrued == 96


def test_pricing_to_dict(note_record, reference_date):
    out = price_security(note_record, reference_date).to_dict()
    assert out["dirty_price"] == pytest.approx(99.543478)
    assert out["period"]["last_coupon_date"] == "2025-08-15"
    assert out["period"]["next_coupon_date"] == "2026-02-15"


def test_bill_has_no_accrued_interest(bill_record):
    result = price_security(bill_record, "2025-11-19")
    assert result.accrued_interest == 0.0
    assert result.dirty_price == result.clean_price == 98.0
    assert result.f == 0.0
    assert result.period is None
    assert result.is_zero_coupon
    assert result.to_dict()["period"] is None


def test_zero_coupon_rate_is_not_accrued():
    result = calculate_pricing(97.0, 0.0, "Bond", date(2030, 5, 15), date(2025, 11, 19), None, 2)
    assert result.dirty_price == 97.0
    assert result.period is None


def test_accrued_interest_stays_within_one_coupon(note_record):
    start = date(2025, 8, 15)
    for offset in range(0, 184, 5):
        result = price_security(note_record, start + timedelta(days=offset))
        assert 0.0 <= result.accrued_interest < 2.0
        assert result.dirty_price == pytest.approx(result.clean_price + result.accrued_interest)


def test_no_accrual_on_coupon_date(note_record):
    result = price_security(note_record, date(2025, 8, 15))
    assert result.accrued_interest == 0.0
    assert result.f == 0.0


def test_invalid_cusip(note_record, reference_date):
    with pytest.raises(InvalidInput):
        price_security(dataclasses.replace(note_record, cusip="BAD"), reference_date)


def test_missing_clean_price(note_record, reference_date):
    with pytest.raises(InvalidInput):
        price_security(dataclasses.replace(note_record, clean_price=None), reference_date)


def test_matured_security_carries_cusip(note_record):
    with pytest.raises(NoEnclosingPeriod) as excinfo:
        price_security(note_record, date(2034, 3, 1))
    assert excinfo.value.context["cusip"] == "91282CJZ5"


def test_accrual_from_dated_date():
    accrued = calculate_accrued_interest(
        date(2025, 11, 15),
        date(2026, 5, 15),
        date(2025, 11, 19),
        0.04,
        2,
        accrual_start=date(2025, 11, 17),
    )
    assert accrued.days_in_period == 181
    assert accrued.days_accrued == 2
    assert accrued.accrued_interest == pytest.approx(2.0 * 2 / 181)


def test_calculate_pricing_with_dated_date():
    result = calculate_pricing(
        clean_price=99.0,
        coupon_rate=0.04,
        security_type="Note",
        maturity_date=date(2030, 11, 15),
        reference_date=date(2025, 11, 19),
        first_coupon_date=date(2026, 5, 15),
        frequency=2,
        dated_date=date(2025, 11, 17),
    )
    assert result.period.last_coupon_date == date(2025, 11, 15)
    assert result.period.days_accrued == 2
    assert result.dirty_price == pytest.approx(99.0 + 2.0 * 2 / 181, abs=1e-6)
