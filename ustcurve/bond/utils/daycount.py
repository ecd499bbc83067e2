"""Day count conventions for Treasury analytics.

Two usages are kept apart on purpose:

* accrued interest uses exact Actual/Actual day counts
  (:func:`days_between`, :func:`accrual_fraction`);
* curve-fitting terms use the ``ACT/365.25`` year fraction registered below.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Dict, Optional

import logging

from ustcurve.errors import InvalidDateRange

logger = logging.getLogger(__name__)

DayCountFunc = Callable[[date, date], float]

DAYS_PER_YEAR = 365.25


def _as_day(value, name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise InvalidDateRange(f"{name} is not a valid date", value=repr(value))


def days_between(start: date, end: date) -> int:
    """Return the exact number of calendar days from ``start`` to ``end``.

    Only defined for forward ranges: raises :class:`InvalidDateRange` when
    ``end < start`` or either argument is not a date.
    """
    start_d = _as_day(start, "start")
    end_d = _as_day(end, "end")
    if end_d < start_d:
        raise InvalidDateRange(
            "end date must not precede start date",
            start=start_d.isoformat(),
            end=end_d.isoformat(),
        )
    return (end_d - start_d).days


def accrual_fraction(
    last_coupon: date,
    next_coupon: date,
    reference: date,
    accrual_start: Optional[date] = None,
) -> float:
    """Actual/Actual fraction of the coupon period elapsed at ``reference``.

    Days are counted from ``accrual_start`` (default ``last_coupon``), over
    the full length of the period.
    """
    days_in_period = days_between(last_coupon, next_coupon)
    if days_in_period == 0:
        raise InvalidDateRange(
            "coupon period has zero length", last_coupon=last_coupon.isoformat()
        )
    return days_between(accrual_start or last_coupon, reference) / days_in_period


def _act_365_25(start: date, end: date) -> float:
    """Return the ACT/365.25 year fraction between two dates.

    Signed: a target before the reference yields a negative term.
    """
    return (end - start).days / DAYS_PER_YEAR


_REGISTRY: Dict[str, DayCountFunc] = {"ACT/365.25": _act_365_25}

TERM_DAY_COUNT = "ACT/365.25"


def get_day_count(name: str) -> DayCountFunc:
    """Return a callable implementing the requested day-count convention."""
    key = name.upper()
    try:
        return _REGISTRY[key]
    except KeyError as exc:
        raise ValueError(f"Unsupported day count convention: {name}") from exc


def register_day_count(name: str, func: DayCountFunc) -> None:
    """Register a custom day-count convention."""
    key = name.upper()
    if key in _REGISTRY:
        raise ValueError(f"Day count '{name}' already registered")
    logger.debug("Registering day count %s", key)
    _REGISTRY[key] = func
