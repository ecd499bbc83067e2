"""Accrued interest and clean/dirty pricing for US Treasury securities."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, Optional

import logging

from ustcurve.bond.ust.schedule import generate_coupon_dates
from ustcurve.bond.ust.security import (
    BILL_SECURITY_TYPE,
    SecurityRecord,
    frequency_name,
    validate_cusip,
)
from ustcurve.bond.utils.date import DateLike, datetime_to_str, resolve_settlement_date
from ustcurve.bond.utils.daycount import accrual_fraction, days_between
from ustcurve.bond.utils.mathutils import round_to
from ustcurve.errors import CurveError, InvalidInput, NoEnclosingPeriod

logger = logging.getLogger(__name__)

DAY_COUNT_LABEL = "Actual/Actual (US Treasury)"
PRICE_DECIMALS = 6
FRACTION_DECIMALS = 8


@dataclass(frozen=True)
class AccruedInterest:
    accrued_interest: float
    days_in_period: int
    days_accrued: int
    f: float
    coupon_payment: float  # coupon rate per period, decimal


@dataclass(frozen=True)
class PeriodDetails:
    coupon_rate_percent: float
    frequency: int
    frequency_name: str
    coupon_payment_per_period: float
    last_coupon_date: date
    next_coupon_date: date
    days_in_period: int
    days_accrued: int
    day_count_convention: str = DAY_COUNT_LABEL


@dataclass(frozen=True)
class PricingResult:
    clean_price: float
    accrued_interest: float
    dirty_price: float
    f: float
    period: Optional[PeriodDetails] = None

    @property
    def is_zero_coupon(self) -> bool:
        return self.period is None

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        if self.period is not None:
            out["period"]["last_coupon_date"] = datetime_to_str(self.period.last_coupon_date)
            out["period"]["next_coupon_date"] = datetime_to_str(self.period.next_coupon_date)
        return out


def calculate_accrued_interest(
    last_coupon: date,
    next_coupon: date,
    reference_date: date,
    coupon_rate: float,
    frequency: int,
    face_value: float = 100.0,
    accrual_start: Optional[date] = None,
) -> AccruedInterest:
    """Accrued interest on the Actual/Actual basis.

    ``coupon_rate`` is the annual rate as a decimal. A reference date outside
    ``[last_coupon, next_coupon)`` raises rather than reporting zero accrual.
    ``accrual_start`` is the dated date of a new issue when it falls inside
    the period.
    """
    if reference_date >= next_coupon:
        raise NoEnclosingPeriod(
            "Reference date is not before the next coupon",
            reference_date=datetime_to_str(reference_date),
            next_coupon=datetime_to_str(next_coupon),
        )
    f = accrual_fraction(last_coupon, next_coupon, reference_date, accrual_start)
    days_in_period = days_between(last_coupon, next_coupon)
    days_accrued = days_between(accrual_start or last_coupon, reference_date)
    coupon_payment = coupon_rate / frequency
    return AccruedInterest(
        accrued_interest=coupon_payment * face_value * f,
        days_in_period=days_in_period,
        days_accrued=days_accrued,
        f=f,
        coupon_payment=coupon_payment,
    )


def calculate_pricing(
    clean_price: float,
    coupon_rate: float,
    security_type: str,
    maturity_date: date,
    reference_date: date,
    first_coupon_date: Optional[date],
    frequency: int,
    dated_date: Optional[date] = None,
) -> PricingResult:
    """Clean price, accrued interest and dirty price at ``reference_date``.

    Bills and zero-coupon securities accrue nothing, so dirty == clean.
    Output fields are rounded for display only.
    """
    if (security_type or "").upper() == BILL_SECURITY_TYPE or coupon_rate == 0:
        return PricingResult(clean_price, 0.0, clean_price, 0.0, None)

    schedule = generate_coupon_dates(
        maturity_date, first_coupon_date, frequency, reference_date, dated_date
    )
    accrued = calculate_accrued_interest(
        schedule.last_coupon,
        schedule.next_coupon,
        reference_date,
        coupon_rate,
        frequency,
        100.0,
        schedule.dated_date,
    )
    dirty_price = clean_price + accrued.accrued_interest
    logger.debug(
        "Accrued %s/%s days from %s: %.8f",
        accrued.days_accrued,
        accrued.days_in_period,
        schedule.accrual_start,
        accrued.accrued_interest,
    )

    period = PeriodDetails(
        coupon_rate_percent=round_to(coupon_rate * 100, 3),
        frequency=frequency,
        frequency_name=frequency_name(frequency),
        coupon_payment_per_period=round_to(accrued.coupon_payment, PRICE_DECIMALS),
        last_coupon_date=schedule.last_coupon,
        next_coupon_date=schedule.next_coupon,
        days_in_period=accrued.days_in_period,
        days_accrued=accrued.days_accrued,
    )
    return PricingResult(
        clean_price=round_to(clean_price, PRICE_DECIMALS),
        accrued_interest=round_to(accrued.accrued_interest, PRICE_DECIMALS),
        dirty_price=round_to(dirty_price, PRICE_DECIMALS),
        f=round_to(accrued.f, FRACTION_DECIMALS),
        period=period,
    )


def price_security(
    security: SecurityRecord,
    reference_date: Optional[DateLike] = None,
    *,
    today: Optional[DateLike] = None,
) -> PricingResult:
    """Price a security record at the settlement date (T+1 when not given)."""
    validate_cusip(security.cusip)
    if security.clean_price is None:
        raise InvalidInput("Security has no clean price", cusip=security.cusip)
    settlement = resolve_settlement_date(reference_date, today)
    try:
        return calculate_pricing(
            clean_price=security.clean_price,
            coupon_rate=0.0 if security.is_zero_coupon else security.coupon_rate_decimal,
            security_type=security.security_type,
            maturity_date=security.maturity_date,
            reference_date=settlement,
            first_coupon_date=security.first_interest_payment_date,
            frequency=security.frequency,
            dated_date=security.dated_date,
        )
    except CurveError as exc:
        logger.debug("Pricing failed for %s: %s", security.cusip, exc)
        exc.add_context(cusip=security.cusip)
        raise
