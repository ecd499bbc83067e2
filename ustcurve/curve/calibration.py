"""Calibration of NSS parameters to market yields or bond prices.

Two objective strategies are available and kept separate because they give
different parameters for the same data:

* ``ObjectiveKind.YIELD``: squared differences between observed yields and
  model spot rates. Treats each quoted yield as a zero-coupon rate.
* ``ObjectiveKind.PRICE``: squared differences between dirty prices and
  the cash flows discounted on the model curve. Prices coupon bonds
  correctly and is the preferred strategy when cash flows are available.

Decay constants at or below ``lambda_floor`` are penalised rather than
rejected, which keeps the simplex away from the singular region near zero.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple, Union

import logging
import math

import numpy as np

from ustcurve.curve.curve_types import Bond, FitResult, MarketObservation, NSSParameters
from ustcurve.curve.nss import nss_spot_rate
from ustcurve.curve.optimizer import nelder_mead
from ustcurve.errors import InsufficientData, InvalidInput

logger = logging.getLogger(__name__)

ParamObjective = Callable[[NSSParameters], float]
BoundsTuple = Tuple[Tuple[Optional[float], Optional[float]], ...]


class StartPolicy(Enum):
    """Where the simplex search starts."""

    HEURISTIC = "heuristic"  # derived from the short and long end of the data
    FIXED = "fixed"  # CalibrationConfig.fixed_start


class ObjectiveKind(Enum):
    YIELD = "yield"
    PRICE = "price"


# Literal starting point tuned on historical Treasury fits
DEFAULT_FIXED_START = NSSParameters(0.04, -0.01, -0.01, 0.01, 1.5, 3.0)

DEFAULT_BOUNDS: BoundsTuple = (
    (0.0, 0.15),  # theta0
    (-0.15, 0.15),  # theta1
    (-0.15, 0.15),  # theta2
    (-0.15, 0.15),  # theta3
    (0.1, 10.0),  # lambda1
    (0.1, 20.0),  # lambda2
)


@dataclass(frozen=True)
class CalibrationConfig:
    """Settings for one calibration run.

    Attributes
    ----------
    start:
        Starting-point policy; the heuristic adapts to the data range.
    fixed_start:
        Parameters used when ``start`` is ``StartPolicy.FIXED``.
    heuristic_lambda1, heuristic_lambda2:
        Decay constants used by the heuristic start.
    bounds:
        Per-parameter box for the simplex, or ``None`` for an unbounded search.
    max_iterations, tolerance, x_tolerance, restarts:
        Passed to :func:`ustcurve.curve.optimizer.nelder_mead`.
    lambda_floor, penalty:
        Objective value returned when a decay constant is at or below the floor.
    min_observations:
        Fewer data points than this is underdetermined.
    """

    start: StartPolicy = StartPolicy.HEURISTIC
    fixed_start: NSSParameters = field(default=DEFAULT_FIXED_START)
    heuristic_lambda1: float = 1.5
    heuristic_lambda2: float = 3.0
    bounds: Optional[BoundsTuple] = DEFAULT_BOUNDS
    max_iterations: int = 10_000
    tolerance: float = 1e-12
    x_tolerance: float = 1e-8
    restarts: int = 2
    lambda_floor: float = 0.05
    penalty: float = 1e9
    min_observations: int = 6


def is_feasible(params: NSSParameters, lambda_floor: float = 0.05) -> bool:
    """Both decay constants strictly above the floor."""
    return params.lambda1 > lambda_floor and params.lambda2 > lambda_floor


def penalized(
    objective: ParamObjective, config: CalibrationConfig
) -> Callable[[np.ndarray], float]:
    """Wrap a parameter objective for the optimizer, applying the soft constraint."""

    def wrapped(x: np.ndarray) -> float:
        params = NSSParameters.from_array(x)
        if not is_feasible(params, config.lambda_floor):
            return config.penalty
        return objective(params)

    return wrapped


def yield_objective(observations: Sequence[MarketObservation]) -> ParamObjective:
    """Sum of squared yield errors against the model spot rate."""
    terms = np.array([obs.term for obs in observations], dtype=float)
    yields = np.array([obs.yield_ for obs in observations], dtype=float)

    def sse(params: NSSParameters) -> float:
        model = nss_spot_rate(
            terms,
            params.theta0,
            params.theta1,
            params.theta2,
            params.theta3,
            params.lambda1,
            params.lambda2,
        )
        return float(np.sum((yields - model) ** 2))

    return sse


def price_objective(bonds: Sequence[Bond]) -> ParamObjective:
    """Sum of squared dirty-price errors, discounting continuously at the model spot rate."""
    terms = np.array([cf.term for bond in bonds for cf in bond.cashflows], dtype=float)
    amounts = np.array([cf.amount for bond in bonds for cf in bond.cashflows], dtype=float)
    starts = np.cumsum([0] + [len(bond.cashflows) for bond in bonds[:-1]])
    prices = np.array([bond.price for bond in bonds], dtype=float)

    def sse(params: NSSParameters) -> float:
        rates = nss_spot_rate(
            terms,
            params.theta0,
            params.theta1,
            params.theta2,
            params.theta3,
            params.lambda1,
            params.lambda2,
        )
        model_prices = np.add.reduceat(amounts * np.exp(-rates * terms), starts)
        return float(np.sum((prices - model_prices) ** 2))

    return sse


def approximate_yield(bond: Bond) -> float:
    """Continuously compounded yield implied by price and cash-flow weighted term."""
    total = sum(cf.amount for cf in bond.cashflows)
    weighted_term = sum(cf.amount * cf.term for cf in bond.cashflows) / total
    return math.log(total / bond.price) / weighted_term


def initial_guess(
    observations: Sequence[MarketObservation], config: CalibrationConfig
) -> NSSParameters:
    """Heuristic start: level from the long end, slope from short minus long."""
    if not observations:
        raise InsufficientData("Cannot generate guesses: market data is empty", data_points=0)
    ordered = sorted(observations, key=lambda obs: obs.term)
    short_yield = ordered[0].yield_
    long_yield = ordered[-1].yield_
    return NSSParameters(
        theta0=long_yield,
        theta1=short_yield - long_yield,
        theta2=0.0,
        theta3=0.0,
        lambda1=config.heuristic_lambda1,
        lambda2=config.heuristic_lambda2,
    )


def _check_count(count: int, config: CalibrationConfig) -> None:
    if count < config.min_observations:
        raise InsufficientData(
            "Insufficient data points for NSS calibration",
            data_points=count,
            required=config.min_observations,
        )


def _validate_observations(observations: Sequence[MarketObservation]) -> None:
    for obs in observations:
        if not (obs.term > 0 and math.isfinite(obs.term) and math.isfinite(obs.yield_)):
            raise InvalidInput(
                "Observation needs a positive term and a finite yield",
                cusip=obs.cusip,
                term=obs.term,
                yield_=obs.yield_,
            )


def _validate_bonds(bonds: Sequence[Bond]) -> None:
    for bond in bonds:
        if not bond.cashflows:
            raise InvalidInput("Bond has no future cash flows", cusip=bond.cusip)
        if not bond.price > 0:
            raise InvalidInput("Bond price must be positive", cusip=bond.cusip, price=bond.price)


def _minimize(
    kind: ObjectiveKind,
    objective: ParamObjective,
    start: NSSParameters,
    data_points: int,
    config: CalibrationConfig,
) -> FitResult:
    logger.debug("Fitting NSS (%s) to %s points from %s", kind.value, data_points, start)
    result = nelder_mead(
        penalized(objective, config),
        start.as_array(),
        config.bounds,
        max_iterations=config.max_iterations,
        tolerance=config.tolerance,
        x_tolerance=config.x_tolerance,
        restarts=config.restarts,
    )
    fit = FitResult(
        parameters=NSSParameters.from_array(result.x),
        sum_squared_error=result.fx,
        iterations=result.iterations,
        data_points=data_points,
        objective=kind.value,
        converged=result.converged,
    )
    logger.debug(
        "NSS fit done: sse=%.6e rmse=%.6e iterations=%s", fit.sum_squared_error, fit.rmse,
        fit.iterations,
    )
    return fit


def fit_curve_to_yields(
    observations: Sequence[MarketObservation], config: Optional[CalibrationConfig] = None
) -> FitResult:
    """Fit NSS parameters to (term, decimal yield) observations."""
    config = config or CalibrationConfig()
    _check_count(len(observations), config)
    _validate_observations(observations)
    if config.start is StartPolicy.FIXED:
        start = config.fixed_start
    else:
        start = initial_guess(observations, config)
    return _minimize(
        ObjectiveKind.YIELD, yield_objective(observations), start, len(observations), config
    )


def fit_curve_to_prices(
    bonds: Sequence[Bond], config: Optional[CalibrationConfig] = None
) -> FitResult:
    """Fit NSS parameters to bond dirty prices by discounting their cash flows."""
    config = config or CalibrationConfig()
    _check_count(len(bonds), config)
    _validate_bonds(bonds)
    if config.start is StartPolicy.FIXED:
        start = config.fixed_start
    else:
        proxies = [
            MarketObservation(bond.maturity_term, approximate_yield(bond), bond.cusip)
            for bond in bonds
        ]
        start = initial_guess(proxies, config)
    return _minimize(ObjectiveKind.PRICE, price_objective(bonds), start, len(bonds), config)


def fit_curve(
    data: Sequence[Union[MarketObservation, Bond]],
    config: Optional[CalibrationConfig] = None,
    objective: Optional[ObjectiveKind] = None,
) -> FitResult:
    """Fit an NSS curve, choosing the objective from the input type.

    Observations are fitted in yield space and bonds in price space. Passing
    ``objective`` states the strategy explicitly; it must match the data.
    """
    data = list(data)
    config = config or CalibrationConfig()
    _check_count(len(data), config)
    if all(isinstance(item, Bond) for item in data):
        kind = ObjectiveKind.PRICE
    elif all(isinstance(item, MarketObservation) for item in data):
        kind = ObjectiveKind.YIELD
    else:
        raise InvalidInput("Data must be all MarketObservation or all Bond")
    if objective is not None and objective is not kind:
        raise InvalidInput(
            "Objective does not match the data", objective=objective.value, data=kind.value
        )
    if kind is ObjectiveKind.PRICE:
        return fit_curve_to_prices(data, config)
    return fit_curve_to_yields(data, config)
