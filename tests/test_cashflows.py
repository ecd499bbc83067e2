import dataclasses
from datetime import date

import pytest

from ustcurve.bond.ust.cashflows import (
    CashflowKind,
    coupon_amount,
    generate_cashflows_and_price,
    generate_coupon_cashflows,
    generate_zero_coupon_cashflows,
)
from ustcurve.bond.ust.pricing import price_security
from ustcurve.errors import NoEnclosingPeriod


def test_coupon_amount():
    assert coupon_amount(100.0, 0.04, 2) == pytest.approx(2.0)
    assert coupon_amount(100.0, 0.05, 4) == pytest.approx(1.25)


def test_note_cashflows_and_dirty_price(note_record, reference_date):
    flows, dirty = generate_cashflows_and_price(note_record, reference_date)
    assert len(flows) == 17
    assert flows[0].date == date(2026, 2, 15)
    assert flows[0].term == pytest.approx(88 / 365.25)
    assert flows[0].amount == pytest.approx(2.0)
    assert flows[0].kind is CashflowKind.COUPON

    last = flows[-1]
    assert last.date == note_record.maturity_date
    assert last.amount == pytest.approx(102.0)
    assert last.kind is CashflowKind.PRINCIPAL_COUPON
    assert last.kind.includes_principal

    terms = [cf.term for cf in flows]
    assert all(t > 0 for t in terms)
    assert terms == sorted(terms)
    assert dirty == pytest.approx(98.5 + 2.0 * 96 / 184)


def test_issue_date_fallback_matches_recorded_first_coupon(note_record, reference_date):
    fallback = dataclasses.replace(note_record, first_interest_payment_date=None)
    assert generate_cashflows_and_price(fallback, reference_date) == generate_cashflows_and_price(
        note_record, reference_date
    )


def test_bill_cashflows(bill_record, reference_date):
    flows, dirty = generate_cashflows_and_price(bill_record, reference_date)
    assert len(flows) == 1
    assert flows[0].kind is CashflowKind.PRINCIPAL
    assert flows[0].amount == 100.0
    assert dirty == 98.0


def test_zero_coupon_cashflows():
    flows = generate_zero_coupon_cashflows(date(2026, 11, 19), date(2025, 11, 19))
    assert flows[0].term == pytest.approx(365 / 365.25)
    assert not CashflowKind.COUPON.includes_principal


def test_coupons_on_reference_date_are_excluded():
    flows = generate_coupon_cashflows(
        date(2024, 8, 15), date(2026, 2, 15), date(2025, 8, 15), 2.0, 2
    )
    assert [cf.date for cf in flows] == [date(2026, 2, 15)]
    assert flows[0].amount == pytest.approx(102.0)


def test_month_end_cashflows():
    flows = generate_coupon_cashflows(
        date(2025, 2, 28), date(2027, 2, 28), date(2025, 11, 19), 1.75, 2
    )
    assert [cf.date for cf in flows] == [
        date(2026, 2, 28),
        date(2026, 8, 31),
        date(2027, 2, 28),
    ]


def test_matured_security(note_record):
    with pytest.raises(NoEnclosingPeriod) as excinfo:
        generate_cashflows_and_price(note_record, note_record.maturity_date)
    assert excinfo.value.context["cusip"] == note_record.cusip


def test_month_end_issue_fallback_matches_price_security(note_record, reference_date):
    record = dataclasses.replace(
        note_record,
        maturity_date=date(2030, 2, 28),
        issue_date=date(2023, 2, 28),
        first_interest_payment_date=None,
        coupon_rate=3.5,
        clean_price=98.0,
    )
    flows, dirty = generate_cashflows_and_price(record, reference_date)
    assert [cf.date for cf in flows[:3]] == [
        date(2026, 2, 28),
        date(2026, 8, 31),
        date(2027, 2, 28),
    ]
    assert dirty == pytest.approx(98.0 + 1.75 * 80 / 181)

    priced = price_security(record, reference_date)
    assert priced.period.last_coupon_date == date(2025, 8, 31)
    assert dirty == pytest.approx(priced.dirty_price, abs=1e-6)


def test_dated_date_starts_accrual_in_both_paths(note_record, reference_date):
    record = dataclasses.replace(
        note_record,
        maturity_date=date(2030, 11, 15),
        issue_date=date(2025, 11, 17),
        dated_date=date(2025, 11, 17),
        first_interest_payment_date=date(2026, 5, 15),
        clean_price=99.0,
    )
    flows, dirty = generate_cashflows_and_price(record, reference_date)
    assert flows[0].date == date(2026, 5, 15)
    assert dirty == pytest.approx(99.0 + 2.0 * 2 / 181)
    assert dirty == pytest.approx(price_security(record, reference_date).dirty_price, abs=1e-6)
