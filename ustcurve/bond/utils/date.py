from typing import Optional, Set, Union
from datetime import datetime, date
import calendar

from dateutil.easter import easter
from dateutil.relativedelta import relativedelta, MO, TH
import pandas as pd
from pandas import Timestamp

from ustcurve.bond.utils.daycount import TERM_DAY_COUNT, get_day_count
from ustcurve.errors import InvalidInput

DATE_FMT = "%Y-%m-%d"
COMPACT_FMT = "%Y%m%d"

DateLike = Union[str, date, datetime, Timestamp]


def to_date(date_like: DateLike) -> date:
    """
    Convert a string, datetime or Timestamp to a date.
    Accepts 'YYYY-MM-DD', 'YYYYMMDD' and ISO timestamps ('YYYY-MM-DDTHH:MM:SS').
    """
    if date_like is pd.NaT:
        raise InvalidInput("Missing date", value="NaT")
    if isinstance(date_like, Timestamp):
        return date_like.date()
    if isinstance(date_like, datetime):
        return date_like.date()
    if isinstance(date_like, date):
        return date_like
    if isinstance(date_like, str):
        text = date_like.strip().split("T")[0]
        for fmt in (DATE_FMT, COMPACT_FMT):
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        raise InvalidInput("Unsupported date string format", value=repr(date_like))
    raise InvalidInput(f"Unsupported type for date: {type(date_like).__name__}")


def parse_date_or_none(date_like) -> Optional[date]:
    """
    Like to_date, but missing or unparseable values come back as None so
    optional fields fall through to their documented fallback.
    """
    if date_like is None:
        return None
    if not isinstance(date_like, (str, date)) and pd.isna(date_like):
        return None
    if isinstance(date_like, str) and date_like.strip() in ("", "None", "null"):
        return None
    try:
        return to_date(date_like)
    except InvalidInput:
        return None


def datetime_to_str(datetime_date: DateLike) -> str:
    """
    Format a date-like into 'YYYY-MM-DD' string.
    """
    return to_date(datetime_date).strftime(DATE_FMT)


def add_months_safe(dt: date, months: int, target_day: int) -> date:
    """
    Advance by whole months, landing on target_day clamped to the length of
    the destination month (Jan 31 + 1 month -> Feb 28/29).
    """
    index = dt.month - 1 + months
    year = dt.year + index // 12
    month = index % 12 + 1
    day = min(target_day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def is_month_end(dt: date) -> bool:
    return dt.day == calendar.monthrange(dt.year, dt.month)[1]


def subtract_months_safe(dt: date, months: int, target_day: int) -> date:
    """
    Mirror of add_months_safe.
    """
    return add_months_safe(dt, -months, target_day)


def calculate_term(reference: date, target: date) -> float:
    """
    Years from reference to target on the ACT/365.25 curve-term basis.
    """
    return get_day_count(TERM_DAY_COUNT)(to_date(reference), to_date(target))


def _observed(holiday: date) -> date:
    # Saturday -> Friday, Sunday -> Monday
    if holiday.weekday() == 5:
        return holiday - relativedelta(days=1)
    if holiday.weekday() == 6:
        return holiday + relativedelta(days=1)
    return holiday


def us_holidays(year: int) -> Set[date]:
    """
    Observed US Treasury market holidays for the given year (Good Friday included).
    """
    jan1 = date(year, 1, 1)
    holidays = [
        jan1,
        jan1 + relativedelta(weekday=MO(+3)),  # MLK
        date(year, 2, 1) + relativedelta(weekday=MO(+3)),  # Presidents
        easter(year) - relativedelta(days=2),  # Good Friday
        date(year, 5, 31) + relativedelta(weekday=MO(-1)),  # Memorial
        date(year, 7, 4),
        date(year, 9, 1) + relativedelta(weekday=MO(+1)),  # Labor
        date(year, 10, 1) + relativedelta(weekday=MO(+2)),  # Columbus
        date(year, 11, 11),
        date(year, 11, 1) + relativedelta(weekday=TH(+4)),  # Thanksgiving
        date(year, 12, 25),
    ]
    if year >= 2022:
        holidays.append(date(year, 6, 19))  # Juneteenth
    return {_observed(h) for h in holidays}


def is_business_day(dt: DateLike) -> bool:
    """
    True if dt is not a weekend and not an observed US holiday.
    """
    day = to_date(dt)
    if day.weekday() in (5, 6):
        return False
    # New Year's Day on a Saturday is observed on Dec 31 of the prior year
    return day not in us_holidays(day.year) and day not in us_holidays(day.year + 1)


def next_business_date(dt: DateLike) -> date:
    """
    Next business day strictly after the given date.
    """
    day = to_date(dt) + relativedelta(days=1)
    while not is_business_day(day):
        day += relativedelta(days=1)
    return day


def resolve_settlement_date(
    requested: Optional[DateLike] = None, today: Optional[DateLike] = None
) -> date:
    """
    Settlement date for pricing: the requested date when given, otherwise
    T+1 (next business day after today).
    """
    if requested is not None:
        return to_date(requested)
    base = to_date(today) if today is not None else date.today()
    return next_business_date(base)
