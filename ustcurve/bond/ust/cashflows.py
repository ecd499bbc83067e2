"""Cash flow generation for Treasury bills, notes and bonds."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List, Tuple

import logging

from ustcurve.bond.ust.pricing import calculate_accrued_interest
from ustcurve.bond.ust.schedule import MAX_PERIODS, coupon_anchor_day, generate_coupon_dates
from ustcurve.bond.ust.security import SecurityRecord, months_per_period
from ustcurve.bond.utils.date import add_months_safe, calculate_term, datetime_to_str
from ustcurve.errors import CurveError, NoEnclosingPeriod, ScheduleOverflow

logger = logging.getLogger(__name__)

FACE_VALUE = 100.0


class CashflowKind(Enum):
    """What a cash flow pays."""

    PRINCIPAL = "Principal"
    COUPON = "Coupon"
    PRINCIPAL_COUPON = "Principal + Coupon"

    @property
    def includes_principal(self) -> bool:
        return self is not CashflowKind.COUPON


@dataclass(frozen=True)
class Cashflow:
    date: date
    term: float  # years from the reference date, ACT/365.25
    amount: float
    kind: CashflowKind


def coupon_amount(face: float, coupon_rate: float, frequency: int) -> float:
    """Return the per-period coupon cash amount (coupon_rate as a decimal)."""
    return float(face) * float(coupon_rate) / float(frequency)


def generate_zero_coupon_cashflows(
    maturity: date, reference_date: date, face: float = FACE_VALUE
) -> List[Cashflow]:
    """Single redemption at maturity."""
    return [
        Cashflow(maturity, calculate_term(reference_date, maturity), face, CashflowKind.PRINCIPAL)
    ]


def generate_coupon_cashflows(
    first_payment_date: date,
    maturity: date,
    reference_date: date,
    coupon: float,
    frequency: int,
    face: float = FACE_VALUE,
) -> List[Cashflow]:
    """Future coupons strictly after the reference date plus the final
    principal-and-coupon payment at maturity."""
    months = months_per_period(frequency)
    anchor_day = coupon_anchor_day(first_payment_date, maturity)
    flows: List[Cashflow] = []
    step = 0
    payment = first_payment_date
    while payment < maturity:
        if payment > reference_date:
            flows.append(
                Cashflow(
                    payment,
                    calculate_term(reference_date, payment),
                    coupon,
                    CashflowKind.COUPON,
                )
            )
        step += 1
        if step > MAX_PERIODS:
            raise ScheduleOverflow(
                "Too many coupon periods - check security data",
                first_payment=datetime_to_str(first_payment_date),
            )
        payment = add_months_safe(first_payment_date, step * months, anchor_day)

    flows.append(
        Cashflow(
            maturity,
            calculate_term(reference_date, maturity),
            face + coupon,
            CashflowKind.PRINCIPAL_COUPON,
        )
    )
    return flows


def generate_cashflows_and_price(
    security: SecurityRecord, reference_date: date
) -> Tuple[List[Cashflow], float]:
    """Return (future cash flows, dirty price) for curve fitting.

    The dirty price is the record's clean price plus accrued interest from
    the same coupon period used by :func:`ustcurve.bond.ust.pricing.calculate_pricing`.
    """
    maturity = security.maturity_date
    clean = security.clean_price or 0.0
    if reference_date >= maturity:
        raise NoEnclosingPeriod(
            "Reference date is on or after maturity",
            cusip=security.cusip,
            reference_date=datetime_to_str(reference_date),
            maturity=datetime_to_str(maturity),
        )

    if security.is_zero_coupon:
        return generate_zero_coupon_cashflows(maturity, reference_date), clean

    try:
        frequency = security.frequency
        coupon_rate = security.coupon_rate_decimal
        first_payment = security.first_payment_date
        schedule = generate_coupon_dates(
            maturity, first_payment, frequency, reference_date, security.dated_date
        )
        flows = generate_coupon_cashflows(
            first_payment,
            maturity,
            reference_date,
            coupon_amount(FACE_VALUE, coupon_rate, frequency),
            frequency,
        )
        accrued = calculate_accrued_interest(
            schedule.last_coupon,
            schedule.next_coupon,
            reference_date,
            coupon_rate,
            frequency,
            FACE_VALUE,
            schedule.dated_date,
        )
    except CurveError as exc:
        exc.add_context(cusip=security.cusip)
        raise

    logger.debug(
        "%s: %d cash flows, accrued %.6f", security.cusip, len(flows), accrued.accrued_interest
    )
    return flows, clean + accrued.accrued_interest
