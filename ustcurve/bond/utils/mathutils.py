"""Mathematical utility functions for Treasury analytics."""

from __future__ import annotations

import math


def round_to(value: float, decimals: int) -> float:
    """
    Round half away from zero to a fixed number of decimal places.

    Used only for display output; internal computation keeps full precision.

    Parameters
    ----------
    value : float
        The number to round
    decimals : int
        Number of decimal places

    Returns
    -------
    float
        The rounded value (non-finite values are returned unchanged)
    """
    if not math.isfinite(value):
        return value
    multiplier = 10.0 ** decimals
    return math.copysign(math.floor(abs(value) * multiplier + 0.5), value) / multiplier
