"""Treasury bond pricing and Nelson-Siegel-Svensson yield curve fitting."""

from ustcurve.bond.ust import (
    Cashflow,
    CashflowKind,
    PricingResult,
    SecurityRecord,
    price_security,
    yield_for_security,
)
from ustcurve.curve import (
    Bond,
    CalibrationConfig,
    CurvePoint,
    FitResult,
    MarketObservation,
    NSSParameters,
    ObjectiveKind,
    StartPolicy,
    fit_curve,
    fit_curve_to_prices,
    fit_curve_to_yields,
    spot_rate,
    yield_curve,
)
from ustcurve.errors import (
    CurveError,
    InsufficientData,
    InvalidDateRange,
    InvalidInput,
    NoEnclosingPeriod,
    NoRootInInterval,
    RootFindingError,
    ScheduleOverflow,
)

__version__ = "0.1.0"

__all__ = [
    # Curve
    "fit_curve",
    "fit_curve_to_yields",
    "fit_curve_to_prices",
    "spot_rate",
    "yield_curve",
    "CalibrationConfig",
    "ObjectiveKind",
    "StartPolicy",
    # Bonds
    "price_security",
    "yield_for_security",
    # Types
    "Bond",
    "Cashflow",
    "CashflowKind",
    "CurvePoint",
    "FitResult",
    "MarketObservation",
    "NSSParameters",
    "PricingResult",
    "SecurityRecord",
    # Errors
    "CurveError",
    "InsufficientData",
    "InvalidDateRange",
    "InvalidInput",
    "NoEnclosingPeriod",
    "NoRootInInterval",
    "RootFindingError",
    "ScheduleOverflow",
]
