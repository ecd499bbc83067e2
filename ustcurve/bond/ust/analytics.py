"""Yield-to-maturity routines for US Treasury securities."""

from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

import logging

from ustcurve.bond.ust.cashflows import FACE_VALUE, Cashflow, generate_cashflows_and_price
from ustcurve.bond.ust.security import SecurityRecord
from ustcurve.bond.utils.rootfinding import newton_with_bisect
from ustcurve.errors import CurveError, InvalidInput, RootFindingError

logger = logging.getLogger(__name__)

GUESS_BOUNDS = (-0.02, 0.30)


def price_from_yield(cashflows: Sequence[Cashflow], ytm: float, frequency: Optional[int]) -> float:
    """Dirty price of ``cashflows`` at a yield compounded ``frequency`` times a year.

    ``frequency`` of ``None`` (zero-coupon) compounds annually.
    """
    freq = float(frequency or 1)
    base = 1.0 + ytm / freq
    if base <= 0.0:
        raise InvalidInput("1 + ytm/frequency must be positive", ytm=ytm, frequency=frequency)
    return sum(cf.amount * base ** (-freq * cf.term) for cf in cashflows)


def initial_yield_guess(
    price: float, coupon_rate: float, years_to_maturity: float, face_value: float = FACE_VALUE
) -> float:
    """Current-yield style starting point, clamped to [-2%, 30%]."""
    if price > 0 and years_to_maturity > 0:
        guess = coupon_rate + (face_value - price) / (price * years_to_maturity)
    else:
        guess = 0.05
    return max(GUESS_BOUNDS[0], min(GUESS_BOUNDS[1], guess))


def ytm_from_price(
    cashflows: Sequence[Cashflow],
    price: float,
    coupon_rate: float,
    frequency: Optional[int],
    face_value: float = FACE_VALUE,
) -> float:
    """Solve YTM (decimal) from a DIRTY price.

    Coupon rate is a decimal; the yield compounds at the coupon frequency.
    """
    if not cashflows:
        raise InvalidInput("No future cash flows to solve a yield for")
    years = cashflows[-1].term
    if years <= 0:
        raise InvalidInput("Maturity must be after settlement", years_to_maturity=years)
    if price <= 0:
        raise InvalidInput("Price must be positive", price=price)

    def objective(y: float) -> float:
        return price_from_yield(cashflows, y, frequency) - price

    guess = initial_yield_guess(price, coupon_rate, years, face_value)
    try:
        result = newton_with_bisect(objective, guess)
    except RootFindingError as exc:
        logger.error("Root finding failed: %s", exc)
        exc.add_context(price=price)
        raise
    logger.debug("YTM solved after %s iterations via %s", result.iterations, result.method)
    return result.root


def yield_for_security(security: SecurityRecord, reference_date: date) -> float:
    """Yield to maturity in percent from the record's clean price."""
    if security.clean_price is None:
        raise InvalidInput("Security has no clean price", cusip=security.cusip)
    flows, dirty_price = generate_cashflows_and_price(security, reference_date)
    frequency = None if security.is_zero_coupon else security.frequency
    coupon_rate = 0.0 if security.is_zero_coupon else security.coupon_rate_decimal
    try:
        ytm = ytm_from_price(flows, dirty_price, coupon_rate, frequency)
    except CurveError as exc:
        exc.add_context(cusip=security.cusip)
        raise
    return ytm * 100.0
