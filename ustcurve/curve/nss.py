"""Nelson-Siegel-Svensson curve model.

The spot rate at maturity ``tau`` is::

    r(tau) = theta0
           + theta1 * f1
           + theta2 * (f1 - exp(-tau/lambda1))
           + theta3 * (f2 - exp(-tau/lambda2))

with ``fi = (1 - exp(-tau/lambdai)) / (tau/lambdai)``. Rates are decimals
and discounting is continuous.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Union

import logging
import math

import numpy as np
import pandas as pd

from ustcurve.bond.ust.cashflows import Cashflow
from ustcurve.curve.curve_types import CurvePoint, NSSParameters
from ustcurve.errors import InvalidInput

logger = logging.getLogger(__name__)

EPSILON = 1e-6
MAX_MATURITY = 30.0

ArrayLike = Union[float, np.ndarray]


def _loading(x: np.ndarray) -> np.ndarray:
    # (1 - exp(-x)) / x, accurate for small x
    return -np.expm1(-x) / x


def nss_spot_rate(
    tau: ArrayLike,
    theta0: float,
    theta1: float,
    theta2: float,
    theta3: float,
    lambda1: float,
    lambda2: float,
) -> ArrayLike:
    """Return the NSS spot rate (decimal) at maturity ``tau`` in years.

    Maturities below EPSILON are lifted to EPSILON and non-positive decay
    constants are replaced by EPSILON, so optimizer excursions never divide
    by zero. Accepts a scalar or a numpy array of maturities.
    """
    scalar = np.ndim(tau) == 0
    t = np.maximum(np.asarray(tau, dtype=float), EPSILON)
    l1 = lambda1 if lambda1 > 0 else EPSILON
    l2 = lambda2 if lambda2 > 0 else EPSILON

    x1 = t / l1
    x2 = t / l2
    f1 = _loading(x1)
    f2 = _loading(x2)
    with np.errstate(invalid="ignore", over="ignore"):
        rate = (
            theta0
            + theta1 * f1
            + theta2 * (f1 - np.exp(-x1))
            + theta3 * (f2 - np.exp(-x2))
        )
    return float(rate) if scalar else rate


class NSSCurve:
    """Fitted NSS curve with continuous-compounding discount factors."""

    def __init__(self, parameters: NSSParameters):
        self.parameters = parameters

    def zero(self, t: ArrayLike) -> ArrayLike:
        """Return the spot rate (decimal) at tenor t."""
        p = self.parameters
        return nss_spot_rate(t, p.theta0, p.theta1, p.theta2, p.theta3, p.lambda1, p.lambda2)

    def df(self, t: ArrayLike) -> ArrayLike:
        """Return the discount factor exp(-r(t) t)."""
        factors = np.exp(-np.asarray(self.zero(t)) * np.asarray(t, dtype=float))
        return float(factors) if np.ndim(t) == 0 else factors

    def price(self, cashflows: Iterable[Cashflow]) -> float:
        """Present value of cash flows discounted on the curve."""
        flows = list(cashflows)
        if not flows:
            return 0.0
        terms = np.array([cf.term for cf in flows], dtype=float)
        amounts = np.array([cf.amount for cf in flows], dtype=float)
        return float(np.dot(amounts, self.df(terms)))


def spot_rate(maturity_years: float, params: NSSParameters) -> float:
    """Spot rate in percent for a maturity in (0, 30] years."""
    if not (0.0 < maturity_years <= MAX_MATURITY):
        raise InvalidInput(
            "Target maturity must be between 0 and 30 years",
            maturity=maturity_years,
        )
    return NSSCurve(params).zero(maturity_years) * 100.0


class YieldCurveGrid:
    """Evenly spaced spot rates from ``min_maturity`` to ``max_maturity``.

    Iterating is lazy and can be repeated; points whose rate is not finite
    are skipped.
    """

    def __init__(
        self,
        num_points: int,
        params: NSSParameters,
        max_maturity: float,
        min_maturity: float = 0.25,
    ):
        if num_points < 1:
            raise InvalidInput("num_points must be at least 1", num_points=num_points)
        if not 0.0 < min_maturity <= max_maturity:
            raise InvalidInput(
                "Maturity range must satisfy 0 < min <= max",
                min_maturity=min_maturity,
                max_maturity=max_maturity,
            )
        self.num_points = int(num_points)
        self.params = params
        self.max_maturity = float(max_maturity)
        self.min_maturity = float(min_maturity)
        self._curve = NSSCurve(params)

    def maturities(self) -> Iterator[float]:
        if self.num_points == 1:
            yield self.min_maturity
            return
        step = (self.max_maturity - self.min_maturity) / (self.num_points - 1)
        for i in range(self.num_points):
            yield self.min_maturity + i * step

    def __iter__(self) -> Iterator[CurvePoint]:
        for maturity in self.maturities():
            rate = self._curve.zero(maturity) * 100.0
            if not math.isfinite(rate):
                logger.debug("Skipping non-finite rate at %.4fy", maturity)
                continue
            yield CurvePoint(maturity=maturity, rate=rate)

    def to_frame(self) -> pd.DataFrame:
        """Curve points as a DataFrame with columns ``maturity`` and ``rate``."""
        return pd.DataFrame(
            [(p.maturity, p.rate) for p in self], columns=["maturity", "rate"]
        )


def yield_curve(
    num_points: int,
    params: NSSParameters,
    max_maturity: float,
    min_maturity: float = 0.25,
) -> YieldCurveGrid:
    """Spot-rate grid (percent) over evenly spaced maturities."""
    return YieldCurveGrid(num_points, params, max_maturity, min_maturity)
