"""
Calibrators package - fitting curve points to tenor quotes.

Provides:
- Calibrator: Base interface (scratch fit, commit on success)
- DiscountCalibrator / ProjectionCalibrator / SurvivalCalibrator: Bootstrap
  calibrators for the usual curve roles
- fit_curves: Fit a curve set in dependency order
- clone_curve_set: Independent copies of a curve set for worker threads
"""

from .base import Calibrator, FitResult, clone_curve_set, fit_curves
from .bootstrap import (
    BootstrapCalibrator,
    DiscountCalibrator,
    ProjectionCalibrator,
    SurvivalCalibrator,
    apply_overlap_order,
    discount_curve_from_quotes,
    projection_curve_from_quotes,
    survival_curve_from_quotes,
)

__all__ = [
    "Calibrator",
    "FitResult",
    "fit_curves",
    "clone_curve_set",
    "BootstrapCalibrator",
    "DiscountCalibrator",
    "ProjectionCalibrator",
    "SurvivalCalibrator",
    "apply_overlap_order",
    "discount_curve_from_quotes",
    "projection_curve_from_quotes",
    "survival_curve_from_quotes",
]
