from datetime import date

import pytest

from ustcurve.bond.ust.security import SecurityRecord

REFERENCE_DATE = date(2025, 11, 19)


@pytest.fixture
def reference_date():
    return REFERENCE_DATE


@pytest.fixture
def note_record():
    """4% semi-annual note, first coupon 2024-08-15, maturing 2034-02-15."""
    return SecurityRecord(
        cusip="91282CJZ5",
        maturity_date=date(2034, 2, 15),
        security_type="Note",
        issue_date=date(2024, 2, 15),
        coupon_rate=4.0,
        payment_frequency="Semi-Annual",
        first_interest_payment_date=date(2024, 8, 15),
        clean_price=98.5,
        high_yield=4.19,
    )


@pytest.fixture
def bill_record():
    return SecurityRecord(
        cusip="912797LB1",
        maturity_date=date(2026, 5, 14),
        security_type="Market Based Bill",
        clean_price=98.0,
        high_investment_rate=4.10,
    )
