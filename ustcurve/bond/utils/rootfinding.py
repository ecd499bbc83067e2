"""Root-finding utilities (Newton-Raphson with safe fallbacks)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Tuple

import logging

from ustcurve.errors import NoRootInInterval

logger = logging.getLogger(__name__)

Func = Callable[[float], float]

DEFAULT_BRACKET = (-0.02, 0.30)
WIDE_BRACKET = (-0.05, 0.50)


@dataclass
class RootResult:
    root: float
    iterations: int
    converged: bool
    method: str


def central_difference(func: Func, x: float, h: float = 1e-6) -> float:
    """Numerical first derivative of ``func`` at ``x``."""
    return (func(x + h) - func(x - h)) / (2.0 * h)


def _bisect(
    func: Func,
    lower: float,
    upper: float,
    tol: float = 1e-8,
    max_iter: int = 100,
    wide_bracket: Tuple[float, float] = WIDE_BRACKET,
) -> RootResult:
    f_lower = func(lower)
    f_upper = func(upper)
    if f_lower * f_upper > 0:
        logger.debug(
            "No sign change on [%s, %s]; widening to %s", lower, upper, wide_bracket
        )
        lower, upper = wide_bracket
        f_lower = func(lower)
        f_upper = func(upper)
        if f_lower * f_upper > 0:
            raise NoRootInInterval(
                "Bisection requires a sign change in the bracket",
                lower=lower,
                upper=upper,
                f_lower=f_lower,
                f_upper=f_upper,
            )
    if f_lower == 0.0:
        return RootResult(lower, 0, True, "bisect")
    if f_upper == 0.0:
        return RootResult(upper, 0, True, "bisect")

    for iteration in range(1, max_iter + 1):
        mid = 0.5 * (lower + upper)
        f_mid = func(mid)
        if abs(f_mid) < tol or abs(upper - lower) < tol:
            return RootResult(mid, iteration, True, "bisect")
        if f_lower * f_mid < 0:
            upper, f_upper = mid, f_mid
        else:
            lower, f_lower = mid, f_mid
    logger.debug("Bisection hit %s halvings without meeting tolerance", max_iter)
    return RootResult(0.5 * (lower + upper), max_iter, False, "bisect")


def newton_with_bisect(
    func: Func,
    initial_guess: float,
    *,
    tol_value: float = 1e-8,
    max_iter: int = 100,
    step: float = 1e-6,
    min_derivative: float = 1e-10,
    sane_bounds: Tuple[float, float] = WIDE_BRACKET,
    bracket: Tuple[float, float] = DEFAULT_BRACKET,
    wide_bracket: Tuple[float, float] = WIDE_BRACKET,
) -> RootResult:
    """Newton-Raphson root finder with a bisection fallback.

    Parameters
    ----------
    func:
        Scalar function whose root is sought.
    initial_guess:
        Starting point for Newton iterations.
    tol_value:
        Absolute tolerance for the function value (and for successive updates).
    step:
        Central-difference step for the numerical derivative.
    min_derivative:
        Derivatives smaller than this in magnitude trigger the bisection fallback.
    sane_bounds:
        Newton iterates leaving this interval trigger the bisection fallback.
    bracket, wide_bracket:
        Bisection brackets; the wide one is tried when the first has no sign change.
    """
    x = float(initial_guess)
    lower, upper = sane_bounds

    for iteration in range(1, max_iter + 1):
        value = func(x)
        if abs(value) < tol_value:
            return RootResult(x, iteration, True, "newton")
        deriv = central_difference(func, x, step)
        logger.debug("Newton iter %s: x=%s value=%s deriv=%s", iteration, x, value, deriv)
        if abs(deriv) < min_derivative:
            logger.debug("Flat derivative at iter %s; switching to bisection", iteration)
            break
        x_new = x - value / deriv
        if not lower <= x_new <= upper:
            logger.debug("Newton iterate %s left %s; switching to bisection", x_new, sane_bounds)
            break
        if abs(x_new - x) < tol_value:
            return RootResult(x_new, iteration, True, "newton")
        x = x_new

    return _bisect(
        func, bracket[0], bracket[1], tol=tol_value, max_iter=max_iter,
        wide_bracket=wide_bracket,
    )
