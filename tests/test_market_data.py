import dataclasses
import logging
import math
from datetime import date

import pandas as pd
import pytest

from ustcurve.bond.ust.security import SecurityRecord
from ustcurve.curve.calibration import fit_curve
from ustcurve.curve.market_data import (
    bonds_from_records,
    observations_from_prices,
    observations_from_records,
    records_from_frame,
)
from ustcurve.errors import InvalidInput


def test_records_from_frame():
    frame = pd.DataFrame(
        [
            {
                "cusip": "91282CJZ5",
                "securityType": "Note",
                "maturityDate": "2034-02-15T00:00:00",
                "issueDate": "2024-02-15T00:00:00",
                "interestRate": "4.000",
                "interestPaymentFrequency": "Semi-Annual",
                "firstInterestPaymentDate": "2024-08-15T00:00:00",
                "highYield": "4.190",
                "highInvestmentRate": "",
                "cleanPrice": 98.5,
            },
            {
                "cusip": "912797LB1",
                "securityType": "Market Based Bill",
                "maturityDate": "2026-05-14T00:00:00",
                "issueDate": "2025-11-13T00:00:00",
                "interestRate": float("nan"),
                "interestPaymentFrequency": float("nan"),
                "firstInterestPaymentDate": float("nan"),
                "highYield": "4.000",
                "highInvestmentRate": "4.100",
                "cleanPrice": 98.0,
            },
        ]
    )
    note, bill = records_from_frame(frame)
    assert note.first_interest_payment_date == date(2024, 8, 15)
    assert note.coupon_rate == 4.0
    assert not note.is_zero_coupon
    assert bill.is_zero_coupon
    assert bill.coupon_rate is None
    assert bill.first_interest_payment_date is None
    assert bill.quoted_yield == pytest.approx(4.1)


def test_observations_from_records(note_record, bill_record, reference_date):
    records = [
        note_record,
        bill_record,
        dataclasses.replace(note_record, cusip="912810TV0", maturity_date=date(2056, 2, 15)),
        dataclasses.replace(note_record, cusip="91282CKA8", high_yield=None),
        dataclasses.replace(bill_record, cusip="912797KX4", maturity_date=date(2025, 10, 1)),
    ]
    observations = observations_from_records(records, reference_date)
    assert [obs.cusip for obs in observations] == ["912797LB1", "91282CJZ5"]
    assert observations[0].yield_ == pytest.approx(0.041)
    assert observations[1].yield_ == pytest.approx(0.0419)
    assert observations[0].term == pytest.approx(176 / 365.25)


def test_observations_from_prices_skip(note_record, bill_record, reference_date, caplog):
    broken = dataclasses.replace(note_record, cusip="91282CKA8", clean_price=None)
    with caplog.at_level(logging.WARNING, logger="ustcurve.curve.market_data"):
        observations = observations_from_prices(
            [note_record, broken, bill_record], reference_date, errors="skip"
        )
    assert [obs.cusip for obs in observations] == ["912797LB1", "91282CJZ5"]
    assert "91282CKA8" in caplog.text
    assert 0.04 < observations[1].yield_ < 0.05


def test_observations_from_prices_raise(note_record, reference_date):
    broken = dataclasses.replace(note_record, clean_price=None)
    with pytest.raises(InvalidInput):
        observations_from_prices([broken], reference_date)
    with pytest.raises(InvalidInput):
        observations_from_prices([note_record], reference_date, errors="ignore")


def test_bonds_from_records(note_record, bill_record, reference_date):
    bonds = bonds_from_records([note_record, bill_record], reference_date)
    assert [b.cusip for b in bonds] == ["912797LB1", "91282CJZ5"]
    assert bonds[0].price == 98.0
    assert bonds[1].price == pytest.approx(98.5 + 2.0 * 96 / 184)
    assert bonds[1].maturity_term == pytest.approx((date(2034, 2, 15) - reference_date).days / 365.25)


def test_bonds_from_records_requires_price(note_record, reference_date):
    with pytest.raises(InvalidInput):
        bonds_from_records([dataclasses.replace(note_record, clean_price=None)], reference_date)


def test_records_round_trip_into_fit(reference_date):
    # eight notes maturing each November with a first coupon after the reference date
    records = [
        SecurityRecord(
            cusip=f"91282{chr(65 + i)}AB{i}",
            maturity_date=date(2026 + i, 11, 15),
            security_type="Note",
            coupon_rate=4.0,
            payment_frequency="Semi-Annual",
            first_interest_payment_date=date(2026, 5, 15),
            clean_price=100.0 - 0.2 * i,
            high_yield=4.0 + 0.02 * i,
        )
        for i in range(8)
    ]
    observations = observations_from_records(records, reference_date)
    bonds = bonds_from_records(records, reference_date)
    assert len(observations) == len(bonds) == 8
    assert observations == sorted(observations, key=lambda obs: obs.term)

    fit = fit_curve(bonds)
    assert fit.objective == "price"
    assert fit.data_points == 8
    assert math.isfinite(fit.sum_squared_error)
