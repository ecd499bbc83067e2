"""Data structures for curve fitting."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import math

import numpy as np

from ustcurve.bond.ust.cashflows import Cashflow

PARAMETER_NAMES = ("theta0", "theta1", "theta2", "theta3", "lambda1", "lambda2")


@dataclass(frozen=True)
class MarketObservation:
    """A single (term, yield) point used for fitting by yield."""

    term: float  # years, > 0
    yield_: float  # decimal, e.g., 0.0425
    cusip: Optional[str] = None


@dataclass(frozen=True)
class Bond:
    """Cash flows and dirty price used by the price-space objective."""

    cusip: str
    cashflows: List[Cashflow] = field(default_factory=list)
    price: float = 0.0  # dirty, per 100 face

    @property
    def maturity_term(self) -> float:
        return self.cashflows[-1].term if self.cashflows else 0.0


@dataclass(frozen=True)
class NSSParameters:
    """Nelson-Siegel-Svensson factors and decay constants."""

    theta0: float  # long-run level
    theta1: float  # short-term slope
    theta2: float  # first curvature
    theta3: float  # second curvature
    lambda1: float
    lambda2: float

    def as_array(self) -> np.ndarray:
        return np.array([getattr(self, name) for name in PARAMETER_NAMES], dtype=float)

    @classmethod
    def from_array(cls, values: Sequence[float]) -> "NSSParameters":
        if len(values) != len(PARAMETER_NAMES):
            raise ValueError(f"Expected {len(PARAMETER_NAMES)} parameters, got {len(values)}")
        return cls(*(float(v) for v in values))

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in PARAMETER_NAMES}


@dataclass(frozen=True)
class FitResult:
    """Diagnostic wrapper around one calibration run."""

    parameters: NSSParameters
    sum_squared_error: float
    iterations: int
    data_points: int
    objective: str = "yield"
    converged: bool = True

    @property
    def rmse(self) -> float:
        if self.data_points <= 0:
            return float("nan")
        return math.sqrt(self.sum_squared_error / self.data_points)


@dataclass(frozen=True)
class CurvePoint:
    maturity: float  # years
    rate: float  # percent
