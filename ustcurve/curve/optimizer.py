"""Derivative-free minimisation with the Nelder-Mead simplex method."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

import logging
import math

import numpy as np

logger = logging.getLogger(__name__)

Objective = Callable[[np.ndarray], float]
Bounds = Sequence[Tuple[Optional[float], Optional[float]]]

REFLECTION = 1.0
EXPANSION = 2.0
CONTRACTION = 0.5
SHRINK = 0.5

INITIAL_STEP = 0.05  # fraction of the bound range (or of |x| when unbounded)
ZERO_STEP = 0.00025  # unbounded dimension starting at exactly zero


@dataclass
class SimplexResult:
    x: np.ndarray
    fx: float
    iterations: int
    converged: bool


def _bound_arrays(bounds: Optional[Bounds], n: int) -> Tuple[np.ndarray, np.ndarray]:
    lower = np.full(n, -np.inf)
    upper = np.full(n, np.inf)
    if bounds is None:
        return lower, upper
    if len(bounds) != n:
        raise ValueError(f"Expected {n} bounds, got {len(bounds)}")
    for i, (lo, hi) in enumerate(bounds):
        if lo is not None:
            lower[i] = lo
        if hi is not None:
            upper[i] = hi
        if lower[i] > upper[i]:
            raise ValueError(f"Lower bound exceeds upper bound in dimension {i}")
    return lower, upper


def _initial_simplex(base: np.ndarray, lower: np.ndarray, upper: np.ndarray) -> np.ndarray:
    n = base.size
    span = upper - lower
    vertices = [base]
    for i in range(n):
        if math.isfinite(span[i]):
            step = INITIAL_STEP * span[i]
        elif base[i] != 0.0:
            step = INITIAL_STEP * abs(base[i])
        else:
            step = ZERO_STEP
        vertex = base.copy()
        vertex[i] += step
        vertex = np.clip(vertex, lower, upper)
        if vertex[i] == base[i]:
            # guess sits on the upper face; perturb inwards instead
            vertex[i] = max(base[i] - step, lower[i])
        vertices.append(vertex)
    return np.array(vertices)


def _spread(simplex: np.ndarray) -> float:
    best = simplex[0]
    scale = max(1.0, float(np.max(np.abs(best))))
    return float(np.max(np.abs(simplex[1:] - best))) / scale


def nelder_mead(
    objective: Objective,
    initial: Sequence[float],
    bounds: Optional[Bounds] = None,
    *,
    max_iterations: int = 10_000,
    tolerance: float = 1e-8,
    x_tolerance: float = 1e-8,
    restarts: int = 0,
) -> SimplexResult:
    """Minimise ``objective`` starting from ``initial``.

    Parameters
    ----------
    objective:
        Scalar function of a numpy vector. NaN values are treated as +inf.
    initial:
        Starting point; clipped into ``bounds``.
    bounds:
        Optional ``(min, max)`` per dimension; ``None`` on either side means
        unbounded. Every candidate vertex is clipped into the box before it
        is evaluated.
    max_iterations:
        Iteration budget, shared across restarts.
    tolerance:
        Stop when ``worst - best`` across the simplex falls below this and
        the simplex is also small in x.
    x_tolerance:
        Largest allowed distance, per coordinate, between a vertex and the
        best one, relative to ``max(1, |best|)``. Equal values alone are not
        enough: in one dimension two vertices can straddle the minimum.
    restarts:
        Number of times the simplex may be rebuilt around the best point
        after convergence, as long as the previous round improved the best
        value by more than ``tolerance``.

    Never raises for numerical reasons: the best vertex found is returned.
    """
    x0 = np.asarray(initial, dtype=float).ravel()
    n = x0.size
    lower, upper = _bound_arrays(bounds, n)

    def clip(x: np.ndarray) -> np.ndarray:
        return np.clip(x, lower, upper)

    def evaluate(x: np.ndarray) -> float:
        value = float(objective(x))
        return math.inf if math.isnan(value) else value

    simplex = _initial_simplex(clip(x0), lower, upper)
    values = np.array([evaluate(v) for v in simplex])

    iterations = 0
    converged = False
    previous_best = math.inf
    restarts_left = restarts

    while True:
        order = np.argsort(values, kind="stable")
        simplex = simplex[order]
        values = values[order]

        if values[-1] - values[0] < tolerance and _spread(simplex) <= x_tolerance:
            if restarts_left > 0 and previous_best - values[0] > tolerance:
                logger.debug(
                    "Restarting simplex at iter %s with best %.3e", iterations, values[0]
                )
                restarts_left -= 1
                previous_best = values[0]
                simplex = _initial_simplex(simplex[0].copy(), lower, upper)
                values = np.array([evaluate(v) for v in simplex])
                continue
            converged = True
            break
        if iterations >= max_iterations:
            break
        iterations += 1

        centroid = simplex[:-1].mean(axis=0)
        worst = simplex[-1]

        reflected = clip(centroid + REFLECTION * (centroid - worst))
        f_reflected = evaluate(reflected)

        if values[0] <= f_reflected < values[-2]:
            simplex[-1], values[-1] = reflected, f_reflected
            continue

        if f_reflected < values[0]:
            expanded = clip(centroid + EXPANSION * (reflected - centroid))
            f_expanded = evaluate(expanded)
            if f_expanded < f_reflected:
                simplex[-1], values[-1] = expanded, f_expanded
            else:
                simplex[-1], values[-1] = reflected, f_reflected
            continue

        contracted = clip(centroid + CONTRACTION * (worst - centroid))
        f_contracted = evaluate(contracted)
        if f_contracted < values[-1]:
            simplex[-1], values[-1] = contracted, f_contracted
            continue

        best = simplex[0]
        simplex[1:] = clip(best + SHRINK * (simplex[1:] - best))
        values[1:] = [evaluate(v) for v in simplex[1:]]

    logger.debug(
        "Nelder-Mead finished: fx=%.6e iterations=%s converged=%s",
        values[0],
        iterations,
        converged,
    )
    return SimplexResult(
        x=simplex[0].copy(),
        fx=float(values[0]),
        iterations=iterations,
        converged=converged,
    )
