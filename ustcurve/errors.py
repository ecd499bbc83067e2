"""Error types raised by the curve and bond analytics."""

from __future__ import annotations

from typing import Any, Dict


class CurveError(Exception):
    """Base class for data-driven failures.

    ``context`` carries the identifiers needed to act on the failure
    (CUSIP, dates, bounds) and is appended to the message.
    """

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context)

    def add_context(self, **context: Any) -> "CurveError":
        for key, value in context.items():
            self.context.setdefault(key, value)
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class InvalidInput(CurveError, ValueError):
    """Malformed CUSIP, date or out-of-range argument."""


class InvalidDateRange(CurveError, ValueError):
    """Reversed or unparseable dates passed to a day-count function."""


class InsufficientData(CurveError):
    """Too few observations for the number of free parameters."""


class ScheduleOverflow(CurveError):
    """Coupon date generation exceeded the period limit."""


class NoEnclosingPeriod(CurveError):
    """Reference date falls outside the life of the security."""


class RootFindingError(CurveError, RuntimeError):
    """Raised when root-finding fails to converge."""


class NoRootInInterval(RootFindingError):
    """The objective does not change sign across the search bracket."""
