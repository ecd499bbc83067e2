"""NSS curve model, calibration and market-data preparation."""

from .calibration import (
    CalibrationConfig,
    ObjectiveKind,
    StartPolicy,
    fit_curve,
    fit_curve_to_prices,
    fit_curve_to_yields,
)
from .curve_types import Bond, CurvePoint, FitResult, MarketObservation, NSSParameters
from .market_data import (
    bonds_from_records,
    observations_from_prices,
    observations_from_records,
    records_from_frame,
)
from .nss import NSSCurve, YieldCurveGrid, nss_spot_rate, spot_rate, yield_curve

__all__ = [
    # Calibration
    "CalibrationConfig",
    "ObjectiveKind",
    "StartPolicy",
    "fit_curve",
    "fit_curve_to_prices",
    "fit_curve_to_yields",
    # Types
    "Bond",
    "CurvePoint",
    "FitResult",
    "MarketObservation",
    "NSSParameters",
    # Model
    "NSSCurve",
    "YieldCurveGrid",
    "nss_spot_rate",
    "spot_rate",
    "yield_curve",
    # Market data
    "bonds_from_records",
    "observations_from_prices",
    "observations_from_records",
    "records_from_frame",
]
