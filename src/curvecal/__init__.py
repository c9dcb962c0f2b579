"""
CurveCal: Curve Calibration, Dependency & Bump Engine

A library for:
- Building discount, projection and survival curves from market quotes
- Fitting multi-curve sets in dependency order
- Bumping tenor quotes with overlay or in-place refits and exact restore
- Computing deltas, gammas and hedge notionals by bump and reprice
"""

__version__ = "0.1.0"

# Core modules
from .conventions import DayCount, BusinessDayConvention, Frequency, year_fraction
from .dates import DateUtils, ScheduleInfo
from .errors import (
    CurveError,
    InvalidCurvePointError,
    CalibrationError,
    MissingGroupError,
    MissingItemError,
    QuoteFormatError,
    DuplicateTenorError,
    CyclicDependencyError,
    MissingFixingError,
)
from .config import CurveFitSettings

# Curves
from .curves import (
    Curve,
    CalibratedCurve,
    DiscountCurve,
    ProjectionCurve,
    SurvivalCurve,
    CurveTenor,
    CurveTenorCollection,
    InstrumentType,
    create_flat_curve,
    tenors_from_quotes,
)

# Calibration
from .calibrators import (
    DiscountCalibrator,
    ProjectionCalibrator,
    SurvivalCalibrator,
    clone_curve_set,
    fit_curves,
)
from .graph import DependencyGraph, TenorGrouping, select_tenors, to_dependency_graph

# Risk
from .risk import (
    BumpEngine,
    BumpFlags,
    BumpTarget,
    BumpType,
    SensitivityCalculator,
)

__all__ = [
    "__version__",
    "DayCount",
    "BusinessDayConvention",
    "Frequency",
    "year_fraction",
    "DateUtils",
    "ScheduleInfo",
    "CurveError",
    "InvalidCurvePointError",
    "CalibrationError",
    "MissingGroupError",
    "MissingItemError",
    "QuoteFormatError",
    "DuplicateTenorError",
    "CyclicDependencyError",
    "MissingFixingError",
    "CurveFitSettings",
    "Curve",
    "CalibratedCurve",
    "DiscountCurve",
    "ProjectionCurve",
    "SurvivalCurve",
    "CurveTenor",
    "CurveTenorCollection",
    "InstrumentType",
    "create_flat_curve",
    "tenors_from_quotes",
    "DiscountCalibrator",
    "ProjectionCalibrator",
    "SurvivalCalibrator",
    "clone_curve_set",
    "fit_curves",
    "DependencyGraph",
    "TenorGrouping",
    "select_tenors",
    "to_dependency_graph",
    "BumpEngine",
    "BumpFlags",
    "BumpTarget",
    "BumpType",
    "SensitivityCalculator",
]
