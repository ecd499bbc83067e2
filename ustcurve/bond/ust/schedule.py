"""Coupon schedule helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

import logging

from ustcurve.bond.ust.security import months_per_period
from ustcurve.bond.utils.date import (
    add_months_safe,
    datetime_to_str,
    is_month_end,
    subtract_months_safe,
)
from ustcurve.errors import InvalidInput, NoEnclosingPeriod, ScheduleOverflow

logger = logging.getLogger(__name__)

MAX_PERIODS = 300


@dataclass(frozen=True)
class CouponSchedule:
    """Coupon dates around a reference date.

    ``last_coupon <= reference < next_coupon`` always holds.
    """

    last_coupon: date
    next_coupon: date
    dates: List[date] = field(default_factory=list)
    used_first_coupon_date: bool = False
    dated_date: Optional[date] = None  # set only when it falls inside the period

    @property
    def accrual_start(self) -> date:
        """Date interest accrues from: the dated date of a new issue, else the last coupon."""
        return self.dated_date or self.last_coupon


def _check_overflow(dates: List[date]) -> None:
    if len(dates) > MAX_PERIODS:
        raise ScheduleOverflow(
            "Too many coupon periods - check security data",
            limit=MAX_PERIODS,
            first=datetime_to_str(dates[0]),
        )


def coupon_anchor_day(first_coupon: date, maturity: date) -> int:
    """Day of month coupons fall on.

    End-of-month rule: when both the first coupon and maturity fall on
    month ends, every coupon does (Feb 28 -> Aug 31).
    """
    if is_month_end(first_coupon) and is_month_end(maturity):
        return 31
    return first_coupon.day


def _forward_from_first_coupon(
    maturity: date, first_coupon: date, months: int, reference: date
) -> List[date]:
    anchor_day = coupon_anchor_day(first_coupon, maturity)
    dates: List[date] = []
    step = 0
    current = first_coupon
    while current <= maturity:
        dates.append(current)
        if current == maturity:
            break
        step += 1
        current = add_months_safe(first_coupon, step * months, anchor_day)
        _check_overflow(dates)
    if not dates or dates[-1] != maturity:
        dates.append(maturity)

    # Synthesize the quasi-coupon dates before the first coupon (dated-date period)
    step = 0
    while reference < dates[0]:
        step += 1
        dates.insert(0, subtract_months_safe(first_coupon, step * months, anchor_day))
        _check_overflow(dates)
    return dates


def _backward_from_maturity(maturity: date, months: int, reference: date) -> List[date]:
    anchor_day = 31 if is_month_end(maturity) else maturity.day
    dates = [maturity]
    step = 0
    while dates[0] > reference:
        step += 1
        dates.insert(0, subtract_months_safe(maturity, step * months, anchor_day))
        _check_overflow(dates)
    return dates


def generate_coupon_dates(
    maturity: date,
    first_coupon_date: Optional[date],
    frequency: int,
    reference_date: date,
    dated_date: Optional[date] = None,
) -> CouponSchedule:
    """Build the coupon grid and locate the period enclosing ``reference_date``.

    With a first coupon date the grid is anchored on it, which handles
    irregular first periods; otherwise it is generated backwards from
    maturity assuming regular periods. A ``dated_date`` strictly inside the
    enclosing (quasi-)coupon period moves the start of accrual to it; the
    period length used for the fraction is unchanged.
    """
    if not isinstance(maturity, date):
        raise InvalidInput("Invalid maturity date", maturity=repr(maturity))
    months = months_per_period(frequency)
    use_first = isinstance(first_coupon_date, date) and first_coupon_date <= maturity

    if use_first:
        dates = _forward_from_first_coupon(maturity, first_coupon_date, months, reference_date)
    else:
        if first_coupon_date is not None:
            logger.debug(
                "Ignoring first coupon %s after maturity %s", first_coupon_date, maturity
            )
        dates = _backward_from_maturity(maturity, months, reference_date)

    for last_coupon, next_coupon in zip(dates, dates[1:]):
        if last_coupon <= reference_date < next_coupon:
            if dated_date is not None and last_coupon < dated_date <= reference_date:
                return CouponSchedule(last_coupon, next_coupon, dates, use_first, dated_date)
            return CouponSchedule(last_coupon, next_coupon, dates, use_first)

    if reference_date < dates[0]:
        raise NoEnclosingPeriod(
            "Reference date is before first coupon",
            reference_date=datetime_to_str(reference_date),
            first_coupon=datetime_to_str(dates[0]),
        )
    raise NoEnclosingPeriod(
        "Reference date is on or after maturity",
        reference_date=datetime_to_str(reference_date),
        maturity=datetime_to_str(maturity),
    )
