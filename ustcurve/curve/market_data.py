"""Turn Treasury security records into curve-fitting inputs."""

from __future__ import annotations

from datetime import date
from typing import Iterable, List

import logging
import math

import pandas as pd

from ustcurve.bond.ust.analytics import yield_for_security
from ustcurve.bond.ust.cashflows import generate_cashflows_and_price
from ustcurve.bond.ust.security import SecurityRecord
from ustcurve.bond.utils.date import calculate_term, datetime_to_str
from ustcurve.curve.curve_types import Bond, MarketObservation
from ustcurve.curve.nss import MAX_MATURITY
from ustcurve.errors import CurveError, InvalidInput

logger = logging.getLogger(__name__)

_ERROR_MODES = ("raise", "skip")


def records_from_frame(df: pd.DataFrame) -> List[SecurityRecord]:
    """One SecurityRecord per row; columns may be camelCase or snake_case."""
    return [SecurityRecord.from_mapping(row) for row in df.to_dict(orient="records")]


def observations_from_records(
    records: Iterable[SecurityRecord],
    reference_date: date,
    max_term: float = MAX_MATURITY,
) -> List[MarketObservation]:
    """Observations from quoted auction yields, sorted by term.

    Bills use the investment rate and coupon securities the high yield.
    Rows without a yield or with a term outside (0, max_term] are skipped.
    """
    observations = []
    for record in records:
        quoted = record.quoted_yield
        if quoted is None or not math.isfinite(quoted):
            logger.debug("%s: no quoted yield, skipped", record.cusip)
            continue
        term = calculate_term(reference_date, record.maturity_date)
        if not 0.0 < term <= max_term:
            logger.debug("%s: term %.4f outside (0, %s], skipped", record.cusip, term, max_term)
            continue
        observations.append(MarketObservation(term, quoted / 100.0, record.cusip))
    observations.sort(key=lambda obs: obs.term)
    logger.debug(
        "Prepared %d yield observations at %s", len(observations), datetime_to_str(reference_date)
    )
    return observations


def observations_from_prices(
    records: Iterable[SecurityRecord],
    reference_date: date,
    errors: str = "raise",
) -> List[MarketObservation]:
    """Observations whose yields are solved from clean prices.

    With ``errors="skip"`` a security whose yield cannot be computed is
    logged and left out; with ``"raise"`` the error propagates.
    """
    if errors not in _ERROR_MODES:
        raise InvalidInput("errors must be 'raise' or 'skip'", errors=errors)
    observations = []
    for record in records:
        try:
            ytm = yield_for_security(record, reference_date)
        except CurveError as exc:
            if errors == "raise":
                raise
            logger.warning("Skipping %s: %s", record.cusip, exc)
            continue
        term = calculate_term(reference_date, record.maturity_date)
        observations.append(MarketObservation(term, ytm / 100.0, record.cusip))
    observations.sort(key=lambda obs: obs.term)
    return observations


def bonds_from_records(
    records: Iterable[SecurityRecord], reference_date: date
) -> List[Bond]:
    """Bonds with future cash flows and dirty prices for the price objective."""
    bonds = []
    for record in records:
        if record.clean_price is None:
            raise InvalidInput("Security has no clean price", cusip=record.cusip)
        flows, dirty_price = generate_cashflows_and_price(record, reference_date)
        bonds.append(Bond(record.cusip, flows, dirty_price))
    bonds.sort(key=lambda bond: bond.maturity_term)
    return bonds
