"""
Curve tenors: calibration instruments attached to a curve.

A tenor pairs a name ("3M", "5Y", "Z8"...) with the product it quotes.
Quotes live on the product so pricing sees bumps immediately; the tenor
remembers the quote it was created with.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union
import bisect
import copy

from ..errors import DuplicateTenorError
from .instruments import CurveInstrument


class InstrumentType(Enum):
    """Closed set of calibration instrument families."""
    DEPOSIT = "Deposit"
    FUTURE = "Future"
    SWAP = "Swap"
    SWAP_LEG = "SwapLeg"
    CDS = "CDS"
    FRA = "FRA"
    BOND = "Bond"
    NOTE = "Note"
    GENERIC = "Generic"

    @classmethod
    def from_string(cls, s: str) -> "InstrumentType":
        """Parse family names and the usual market shorthands."""
        key = s.strip().upper().replace(" ", "").replace("_", "")
        aliases = {
            "MM": cls.DEPOSIT,
            "DEPO": cls.DEPOSIT,
            "DEPOSIT": cls.DEPOSIT,
            "FUT": cls.FUTURE,
            "FUTURE": cls.FUTURE,
            "FUTURES": cls.FUTURE,
            "SWAP": cls.SWAP,
            "OIS": cls.SWAP,
            "IRS": cls.SWAP,
            "BASIS": cls.SWAP,
            "SWAPLEG": cls.SWAP_LEG,
            "CDS": cls.CDS,
            "FRA": cls.FRA,
            "BOND": cls.BOND,
            "NOTE": cls.NOTE,
            "GENERIC": cls.GENERIC,
            "POINT": cls.GENERIC,
        }
        if key in aliases:
            return aliases[key]
        raise ValueError(f"Unknown instrument type: {s}")


@dataclass
class CurveTenor:
    """
    One calibration instrument on a curve.

    Attributes:
        name: Tenor label, unique per curve
        product: Instrument whose ``quote`` is the market quote
        family: Instrument family; defaults to the product's
        weight: Relative weight (kept for reporting and hedging)
        original_quote: Quote at creation
    """
    name: str
    product: CurveInstrument
    family: Optional[InstrumentType] = None
    weight: float = 1.0
    original_quote: float = field(init=False)

    def __post_init__(self):
        if self.family is None:
            self.family = InstrumentType[self.product.family]
        self.original_quote = self.product.quote

    @property
    def current_quote(self) -> float:
        return self.product.quote

    @current_quote.setter
    def current_quote(self, value: float) -> None:
        self.product.quote = float(value)

    @property
    def quote_change(self) -> float:
        return self.product.quote - self.original_quote

    @property
    def curve_date(self) -> date:
        return self.product.curve_date

    @property
    def maturity(self) -> date:
        return self.product.maturity

    def bump_quote(self, bump_size: float, flags=None) -> float:
        """Bump the quote under the zero-crossing policy; see :func:`bump_quote`."""
        from .quote_handler import BumpFlags, bump_quote
        return bump_quote(self, bump_size, flags if flags is not None else BumpFlags.NONE)

    def reset_quote(self) -> None:
        self.product.quote = self.original_quote


def is_rate_tenor(tenor: CurveTenor) -> bool:
    """Outright interest rate instruments."""
    if tenor.family == InstrumentType.SWAP:
        return not getattr(tenor.product, "floating_quote", False)
    return tenor.family in (
        InstrumentType.DEPOSIT,
        InstrumentType.NOTE,
        InstrumentType.FUTURE,
        InstrumentType.FRA,
        InstrumentType.SWAP_LEG,
        InstrumentType.BOND,
    )


def is_basis_tenor(tenor: CurveTenor) -> bool:
    """Floating vs floating spread instruments."""
    return tenor.family == InstrumentType.SWAP and getattr(tenor.product, "floating_quote", False)


def is_credit_tenor(tenor: CurveTenor) -> bool:
    return tenor.family == InstrumentType.CDS


class CurveTenorCollection:
    """
    Tenors of one curve, kept in increasing maturity order.

    Raises:
        DuplicateTenorError: When a second tenor with an existing name is added
    """

    def __init__(self, tenors: Iterable[CurveTenor] = (), curve_name: Optional[str] = None):
        self.curve_name = curve_name
        self._tenors: List[CurveTenor] = []
        self._by_name: Dict[str, CurveTenor] = {}
        for tenor in tenors:
            self.add(tenor)

    def add(self, tenor: CurveTenor) -> None:
        if tenor.name in self._by_name:
            raise DuplicateTenorError(self.curve_name, tenor.name)
        keys = [t.maturity for t in self._tenors]
        pos = bisect.bisect_right(keys, tenor.maturity)
        self._tenors.insert(pos, tenor)
        self._by_name[tenor.name] = tenor

    def remove(self, name: str) -> CurveTenor:
        tenor = self._by_name.pop(name)
        self._tenors.remove(tenor)
        return tenor

    def index(self, name: str) -> int:
        return self._tenors.index(self._by_name[name])

    def names(self) -> List[str]:
        return [t.name for t in self._tenors]

    def after(self, d: date) -> Optional[CurveTenor]:
        """First tenor maturing on or after ``d``."""
        for tenor in self._tenors:
            if tenor.maturity >= d:
                return tenor
        return None

    def quotes(self) -> Tuple[float, ...]:
        return tuple(t.current_quote for t in self._tenors)

    def restore_quotes(self, quotes: Tuple[float, ...]) -> None:
        if len(quotes) != len(self._tenors):
            raise ValueError("Quote count does not match tenor count")
        for tenor, quote in zip(self._tenors, quotes):
            tenor.current_quote = quote

    def clone(self) -> "CurveTenorCollection":
        return copy.deepcopy(self)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __getitem__(self, key: Union[int, str]) -> CurveTenor:
        if isinstance(key, str):
            return self._by_name[key]
        return self._tenors[key]

    def __iter__(self) -> Iterator[CurveTenor]:
        return iter(list(self._tenors))

    def __len__(self) -> int:
        return len(self._tenors)

    def __repr__(self) -> str:
        return f"CurveTenorCollection({self.names()})"


__all__ = [
    "InstrumentType",
    "CurveTenor",
    "CurveTenorCollection",
    "is_rate_tenor",
    "is_basis_tenor",
    "is_credit_tenor",
]
