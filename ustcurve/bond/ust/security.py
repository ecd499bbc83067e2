"""Treasury security records and their static terms."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional

import math
import re

from ustcurve.bond.utils.date import add_months_safe, is_month_end, parse_date_or_none
from ustcurve.errors import InvalidInput

BILL_SECURITY_TYPE = "MARKET BASED BILL"
DEFAULT_FREQUENCY = 2

_FREQUENCY_NAMES = {1: "Annual", 2: "Semi-Annual", 4: "Quarterly", 12: "Monthly"}
_CUSIP_PATTERN = re.compile(r"^[0-9]{5}[0-9A-Z]{3}[0-9]$")


def validate_cusip(cusip: Any) -> str:
    """Return the CUSIP if it is 9 characters of the Treasury form, else raise."""
    if not isinstance(cusip, str):
        raise InvalidInput("CUSIP must be a string", cusip=repr(cusip))
    if len(cusip) != 9:
        raise InvalidInput("CUSIP must be exactly 9 characters", cusip=cusip)
    if not _CUSIP_PATTERN.match(cusip):
        raise InvalidInput("Invalid CUSIP format", cusip=cusip)
    return cusip


def parse_payment_frequency(text: Optional[str]) -> int:
    """Map free-text payment frequency to payments per year (default semi-annual)."""
    if not text:
        return DEFAULT_FREQUENCY
    lower = str(text).lower()
    if "semi" in lower:
        return 2
    if "annual" in lower:
        return 1
    if "quarter" in lower:
        return 4
    if "month" in lower:
        return 12
    return DEFAULT_FREQUENCY


def frequency_name(frequency: int) -> str:
    return _FREQUENCY_NAMES.get(frequency, _FREQUENCY_NAMES[DEFAULT_FREQUENCY])


def months_per_period(frequency: int) -> int:
    """Months between coupon dates for 1, 2, 4 or 12 payments per year."""
    if frequency not in _FREQUENCY_NAMES:
        raise InvalidInput("Unsupported payment frequency", frequency=frequency)
    return 12 // frequency


def determine_first_payment_date(
    first_payment_date: Optional[date],
    issue_date: Optional[date],
    frequency: int,
    maturity_date: Optional[date] = None,
) -> date:
    """First coupon date: the recorded one, else one period after issue.

    A month-end issue date keeps coupons on month ends (Feb 28 -> Aug 31)
    unless the maturity is known and is not a month end.
    """
    if first_payment_date is not None:
        return first_payment_date
    if issue_date is None:
        raise InvalidInput("Need a first interest payment date or an issue date")
    target_day = issue_date.day
    if is_month_end(issue_date) and (maturity_date is None or is_month_end(maturity_date)):
        target_day = 31
    return add_months_safe(issue_date, months_per_period(frequency), target_day)


def _number(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if value in ("", "None", "null"):
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _pick(row: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = row.get(key)
        if value is None or (isinstance(value, float) and math.isnan(value)):
            continue
        return value
    return None


@dataclass(frozen=True)
class SecurityRecord:
    """Static terms and market quotes for one Treasury security.

    Rates and yields are percentages as published (4.25 means 4.25%).
    Dates that fail to parse are stored as ``None``.
    """

    cusip: str
    maturity_date: date
    security_type: str = ""
    issue_date: Optional[date] = None
    coupon_rate: Optional[float] = None
    payment_frequency: Optional[str] = None
    first_interest_payment_date: Optional[date] = None
    dated_date: Optional[date] = None
    clean_price: Optional[float] = None
    high_yield: Optional[float] = None
    high_investment_rate: Optional[float] = None

    @property
    def frequency(self) -> int:
        return parse_payment_frequency(self.payment_frequency)

    @property
    def coupon_rate_decimal(self) -> float:
        return (self.coupon_rate or 0.0) / 100.0

    @property
    def is_zero_coupon(self) -> bool:
        """Bills, securities without a coupon and frequency 'None' pay no coupons."""
        return (
            self.security_type.upper() == BILL_SECURITY_TYPE
            or not self.coupon_rate
            or (
                self.payment_frequency is not None
                and self.payment_frequency.strip().lower() == "none"
            )
        )

    @property
    def first_payment_date(self) -> date:
        return determine_first_payment_date(
            self.first_interest_payment_date,
            self.issue_date,
            self.frequency,
            self.maturity_date,
        )

    @property
    def quoted_yield(self) -> Optional[float]:
        """Auction yield in percent: investment rate for bills, high yield otherwise."""
        if self.security_type.upper() == BILL_SECURITY_TYPE:
            return self.high_investment_rate
        return self.high_yield

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "SecurityRecord":
        """Build a record from a query row using either camelCase or snake_case keys."""
        cusip = _pick(row, "cusip", "CUSIP")
        maturity = parse_date_or_none(_pick(row, "maturityDate", "maturity_date"))
        if maturity is None:
            raise InvalidInput("Missing or invalid maturity date", cusip=cusip)
        frequency = _pick(row, "interestPaymentFrequency", "payment_frequency", "frequency")
        return cls(
            cusip=str(cusip) if cusip is not None else "",
            maturity_date=maturity,
            security_type=str(_pick(row, "securityType", "security_type") or ""),
            issue_date=parse_date_or_none(_pick(row, "issueDate", "issue_date")),
            coupon_rate=_number(_pick(row, "interestRate", "couponRate", "coupon_rate", "rate")),
            payment_frequency=str(frequency) if frequency is not None else None,
            first_interest_payment_date=parse_date_or_none(
                _pick(row, "firstInterestPaymentDate", "first_interest_payment_date")
            ),
            dated_date=parse_date_or_none(_pick(row, "datedDate", "dated_date")),
            clean_price=_number(_pick(row, "cleanPrice", "clean_price", "pricePer100", "price")),
            high_yield=_number(_pick(row, "highYield", "high_yield")),
            high_investment_rate=_number(
                _pick(row, "highInvestmentRate", "high_investment_rate")
            ),
        )
