"""US Treasury analytics public API."""

from .analytics import price_from_yield, ytm_from_price, yield_for_security
from .cashflows import Cashflow, CashflowKind, generate_cashflows_and_price
from .pricing import AccruedInterest, PricingResult, calculate_accrued_interest, price_security
from .schedule import CouponSchedule, generate_coupon_dates
from .security import SecurityRecord, validate_cusip

__all__ = [
    "AccruedInterest",
    "Cashflow",
    "CashflowKind",
    "CouponSchedule",
    "PricingResult",
    "SecurityRecord",
    "calculate_accrued_interest",
    "generate_cashflows_and_price",
    "generate_coupon_dates",
    "price_from_yield",
    "price_security",
    "validate_cusip",
    "yield_for_security",
    "ytm_from_price",
]
