"""
Curves package - curve construction, tenors and calibration instruments.

Provides:
- Curve: Dated points with pluggable interpolation, spread and overlays
- DiscountCurve / ProjectionCurve / SurvivalCurve: Calibrated curves
- CurveTenor / CurveTenorCollection: Calibration instruments per curve
- Instruments: Deposit, Future, FRA, Swap, BasisSwap, SwapLeg, CDS, Bond
"""

from .curve import Curve, CurveSnapshot, create_flat_curve
from .calibrated import CalibratedCurve, DiscountCurve, ProjectionCurve, SurvivalCurve
from .interpolation import (
    Extrapolation,
    Interpolator,
    LinearInterpolator,
    WeightedInterpolator,
    CubicSplineInterpolator,
    ParametricInterpolator,
    create_interpolator,
)
from .overlay import Overlay, knot_overlay, curve_overlay
from .instruments import (
    PricingCurves,
    CurveInstrument,
    Deposit,
    Note,
    Future,
    FRA,
    Swap,
    BasisSwap,
    SwapLeg,
    CDS,
    Bond,
    CurvePoint,
)
from .resets import RateResets
from .tenor import (
    InstrumentType,
    CurveTenor,
    CurveTenorCollection,
    is_rate_tenor,
    is_basis_tenor,
    is_credit_tenor,
)
from .quote_handler import BumpFlags, bump_quote
from .tenor_factory import parse_quote, create_tenor, tenors_from_quotes

__all__ = [
    "Curve",
    "CurveSnapshot",
    "create_flat_curve",
    "CalibratedCurve",
    "DiscountCurve",
    "ProjectionCurve",
    "SurvivalCurve",
    "Extrapolation",
    "Interpolator",
    "LinearInterpolator",
    "WeightedInterpolator",
    "CubicSplineInterpolator",
    "ParametricInterpolator",
    "create_interpolator",
    "Overlay",
    "knot_overlay",
    "curve_overlay",
    "PricingCurves",
    "CurveInstrument",
    "Deposit",
    "Note",
    "Future",
    "FRA",
    "Swap",
    "BasisSwap",
    "SwapLeg",
    "CDS",
    "Bond",
    "CurvePoint",
    "RateResets",
    "InstrumentType",
    "CurveTenor",
    "CurveTenorCollection",
    "is_rate_tenor",
    "is_basis_tenor",
    "is_credit_tenor",
    "BumpFlags",
    "bump_quote",
    "parse_quote",
    "create_tenor",
    "tenors_from_quotes",
]
