"""
Build curve tenors from market quote rows.

Quote rows are dicts (or DataFrame rows) with at least ``instrument_type``,
``tenor`` and ``quote``. Optional keys: ``name``, ``day_count``,
``start_tenor`` (forward start for FRAs/futures; a forward tenor such as
``"3Mx3M"`` may be given as ``tenor`` instead), ``start``/``maturity``
(explicit dates), ``fixed_frequency``, ``float_frequency``, ``frequency``,
``recovery``, ``coupon``, ``basis`` (quote is a basis spread).

Example quote rows:
    {"instrument_type": "DEPOSIT", "tenor": "3M", "quote": "5.30%"}
    {"instrument_type": "FRA", "tenor": "3Mx3M", "quote": 0.0531}
    {"instrument_type": "SWAP", "tenor": "5Y", "quote": 0.0455}
    {"instrument_type": "CDS", "tenor": "5Y", "quote": "125bp"}
"""

from datetime import date, datetime
from typing import Dict, Iterable, List, Mapping, Optional, Union
import logging
import math

import pandas as pd

from ..conventions import DayCount
from ..dates import DateUtils
from ..errors import QuoteFormatError
from .instruments import (
    CDS,
    FRA,
    BasisSwap,
    Bond,
    CurvePoint,
    Deposit,
    Future,
    Note,
    Swap,
    SwapLeg,
)
from .tenor import CurveTenor, CurveTenorCollection, InstrumentType

logger = logging.getLogger(__name__)


def parse_quote(value: object, tenor_name: Optional[str] = None) -> float:
    """
    Read a quote given as a number or as text ("5.25%", "25bp", "0.0525").

    Raises:
        QuoteFormatError: If the value cannot be read as a number
    """
    if isinstance(value, bool):
        raise QuoteFormatError(value, "cannot parse quote", tenor_name)
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise QuoteFormatError(value, "cannot parse quote", tenor_name) from exc

    text = value.strip().lower().replace(",", "")
    scale = 1.0
    if text.endswith("%"):
        text, scale = text[:-1], 0.01
    elif text.endswith("bps"):
        text, scale = text[:-3], 0.0001
    elif text.endswith("bp"):
        text, scale = text[:-2], 0.0001
    try:
        return float(text.strip()) * scale
    except ValueError as exc:
        raise QuoteFormatError(value, "cannot parse quote", tenor_name) from exc


def create_tenor(
    as_of: date,
    instrument_type: Union[str, InstrumentType],
    tenor: str,
    quote: float,
    name: Optional[str] = None,
    **terms
) -> CurveTenor:
    """
    Create a single curve tenor.

    Args:
        as_of: Curve as-of date
        instrument_type: Family name or InstrumentType
        tenor: Instrument tenor ("3M", "5Y") measured from its start, or a
            forward tenor ("3Mx3M")
        quote: Market quote, already parsed
        name: Tenor name; defaults to ``tenor`` (``"<start>x<tenor>"`` for forward starts)
        **terms: Optional instrument terms (see module docstring)

    Returns:
        CurveTenor
    """
    if isinstance(instrument_type, str):
        instrument_type = InstrumentType.from_string(instrument_type)

    day_count = terms.get("day_count", DayCount.ACT_360)
    if isinstance(day_count, str):
        day_count = DayCount.from_string(day_count)

    start_tenor = terms.get("start_tenor")
    if not start_tenor:
        start_tenor, tenor = DateUtils.split_forward_tenor(tenor)
    start = _as_date(terms.get("start"))
    if start is None:
        start = DateUtils.add_tenor(as_of, start_tenor) if start_tenor else as_of
    maturity = _as_date(terms.get("maturity")) or DateUtils.add_tenor(start, tenor)

    if name is None:
        name = f"{start_tenor}x{tenor}" if start_tenor else tenor

    if instrument_type == InstrumentType.DEPOSIT:
        product = Deposit(start, maturity, quote, day_count)
    elif instrument_type == InstrumentType.NOTE:
        product = Note(start, maturity, quote, day_count)
    elif instrument_type == InstrumentType.FUTURE:
        product = Future(start, maturity, quote, day_count, convexity=float(terms.get("convexity", 0.0)))
    elif instrument_type == InstrumentType.FRA:
        product = FRA(start, maturity, quote, day_count)
    elif instrument_type == InstrumentType.SWAP and terms.get("basis"):
        product = BasisSwap(
            start, maturity, quote, day_count,
            frequency=int(terms.get("frequency", 4)),
            reference_frequency=int(terms.get("reference_frequency", 4)),
        )
    elif instrument_type == InstrumentType.SWAP:
        product = Swap(
            start, maturity, quote, day_count,
            fixed_frequency=int(terms.get("fixed_frequency", 1)),
            float_frequency=int(terms.get("float_frequency", 4)),
        )
    elif instrument_type == InstrumentType.SWAP_LEG:
        product = SwapLeg(start, maturity, quote, day_count, frequency=int(terms.get("frequency", 1)))
    elif instrument_type == InstrumentType.CDS:
        product = CDS(
            start, maturity, quote, day_count,
            recovery=float(terms.get("recovery", 0.4)),
            frequency=int(terms.get("frequency", 4)),
        )
    elif instrument_type == InstrumentType.BOND:
        product = Bond(
            start, maturity, quote, day_count,
            coupon=float(terms.get("coupon", 0.0)),
            frequency=int(terms.get("frequency", 2)),
        )
    else:
        product = CurvePoint(start, maturity, quote, day_count)

    return CurveTenor(name=name, product=product, family=instrument_type)


def tenors_from_quotes(
    as_of: date,
    quotes: Union[Iterable[Mapping], pd.DataFrame],
    curve_name: Optional[str] = None
) -> CurveTenorCollection:
    """
    Build a tenor collection from quote rows.

    Rows whose quote is missing or NaN are dropped with a warning before
    any calibration sees them.

    Raises:
        QuoteFormatError: If a present quote cannot be parsed
        DuplicateTenorError: If two rows produce the same tenor name
    """
    if isinstance(quotes, pd.DataFrame):
        rows: List[Dict] = quotes.to_dict("records")
    else:
        rows = [dict(q) for q in quotes]

    collection = CurveTenorCollection(curve_name=curve_name)
    for row in rows:
        terms = {k: v for k, v in row.items()
                 if k not in ("instrument_type", "tenor", "quote", "name") and not _is_missing(v)}
        tenor = str(row.get("tenor", ""))
        name = row.get("name") if not _is_missing(row.get("name")) else None
        raw = row.get("quote")
        if _is_missing(raw):
            logger.warning("Dropping tenor %s on %s: no quote", name or tenor, curve_name or "curve")
            continue
        quote = parse_quote(raw, name or tenor)
        collection.add(create_tenor(as_of, row.get("instrument_type", ""), tenor, quote, name, **terms))

    return collection


def _as_date(value: object) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, str):
        return date.fromisoformat(value.strip())
    if isinstance(value, datetime):
        return value.date()
    return value


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float):
        return math.isnan(value)
    if isinstance(value, str):
        return not value.strip()
    return bool(pd.isna(value)) if pd.api.types.is_scalar(value) else False


__all__ = [
    "parse_quote",
    "create_tenor",
    "tenors_from_quotes",
]
