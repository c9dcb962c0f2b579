"""
Calibrator interface and multi-curve fitting.

A calibrator turns a curve's tenor quotes into curve points. Every fit is
solved on a scratch copy of the curve; the curve itself only receives the
new points once all tenors reprice within tolerance, so a failed fit
leaves it exactly as it was.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
import copy
import logging
import math
import time

from ..config import CurveFitSettings
from ..curves.curve import Curve
from ..curves.instruments import PricingCurves
from ..curves.tenor import CurveTenor
from ..errors import CalibrationError
from ..graph import to_dependency_graph

logger = logging.getLogger(__name__)


@dataclass
class FitResult:
    """Diagnostics of one curve fit."""
    curve_name: Optional[str]
    repricing_errors: Dict[str, float]
    iterations: int
    elapsed: float

    @property
    def max_error(self) -> float:
        return max((abs(e) for e in self.repricing_errors.values()), default=0.0)


class Calibrator(ABC):
    """
    Base class for curve calibrators.

    Attributes:
        as_of: Valuation date; calibrated curves must share it
        settings: Fit tolerances and overlap treatment
    """

    def __init__(self, as_of: date, settings: Optional[CurveFitSettings] = None):
        self.as_of = as_of
        self.settings = settings if settings is not None else CurveFitSettings()

    def parent_curves(self) -> List[Curve]:
        """Curves read while pricing this calibrator's tenors."""
        return []

    def with_parents(self, parents: Mapping[int, Curve]) -> "Calibrator":
        """Copy reading ``parents[id(p)]`` in place of each parent ``p`` found there."""
        return copy.copy(self)

    @abstractmethod
    def pricing_curves(self, curve: Curve) -> PricingCurves:
        """Pricing context in which ``curve`` plays its calibrated role."""

    def calibration_tenors(self, curve) -> List[CurveTenor]:
        """Tenors that determine points, in curve date order."""
        return list(curve.tenors)

    @abstractmethod
    def _solve(self, scratch: Curve, tenors: Sequence[CurveTenor], from_index: int) -> int:
        """Populate ``scratch``'s points; returns root-finder iterations used."""

    def fit(self, curve) -> FitResult:
        """Calibrate every point of ``curve``."""
        return self.refit(curve, 0)

    def refit(self, curve, from_index: int = 0) -> FitResult:
        """
        Re-solve points from ``from_index`` on and commit them to ``curve``.

        Points before ``from_index`` are kept when they still line up with
        the calibration tenors.

        Raises:
            CalibrationError: If a point cannot be solved or a tenor does not
                reprice within ``settings.repricing_tolerance``
        """
        scratch, result = self.calibrate(curve, from_index)
        curve.set_points(scratch.dates(), scratch.values())
        logger.info("Calibrated %s: %d points, %d iterations in %.4fs",
                    curve.name, len(curve), result.iterations, result.elapsed)
        return result

    def calibrate(self, curve, from_index: int = 0) -> Tuple[Curve, FitResult]:
        """Solve into a scratch copy of ``curve`` and return it without committing."""
        if curve.as_of != self.as_of:
            raise CalibrationError(
                curve.name, f"curve as-of {curve.as_of} differs from calibrator as-of {self.as_of}"
            )
        start = time.perf_counter()

        tenors = self.calibration_tenors(curve)
        if not tenors:
            raise CalibrationError(curve.name, "no tenors to calibrate")
        for tenor in tenors:
            if not math.isfinite(tenor.current_quote):
                raise CalibrationError(curve.name, f"quote {tenor.current_quote} is not finite", tenor.name)

        scratch = Curve.clone(curve)
        scratch.spread = 0.0
        scratch.clear_overlays()

        iterations = self._solve(scratch, tenors, from_index)
        errors = self.repricing_errors(scratch, tenors)
        self._check_errors(curve.name, errors)

        return scratch, FitResult(curve.name, errors, iterations, time.perf_counter() - start)

    def repricing_errors(self, curve: Curve, tenors: Sequence[CurveTenor]) -> Dict[str, float]:
        """Model quote minus market quote per tenor, priced on ``curve``."""
        ctx = self.pricing_curves(curve)
        return {tenor.name: tenor.product.calibration_error(ctx) for tenor in tenors}

    def _check_errors(self, curve_name: Optional[str], errors: Dict[str, float]) -> None:
        tolerance = self.settings.repricing_tolerance
        for name, error in errors.items():
            if not abs(error) <= tolerance:
                raise CalibrationError(
                    curve_name, f"repricing error {error:.3e} exceeds tolerance {tolerance:.1e}", name
                )

    def __repr__(self) -> str:
        parents = ", ".join(str(c.name) for c in self.parent_curves())
        return f"{type(self).__name__}(as_of={self.as_of}, parents=[{parents}])"


def _fit(curve) -> Optional[FitResult]:
    if getattr(curve, "calibrator", None) is None:
        return None
    return curve.fit()


def fit_curves(curves, parallel: bool = False, max_workers: Optional[int] = None) -> List[FitResult]:
    """
    Calibrate ``curves`` (and any calibrated parents they reference) in
    dependency order.

    With ``parallel=True`` independent branches are fitted concurrently;
    a curve still waits for all of its parents.

    Returns:
        FitResult per calibrated curve, parents first

    Raises:
        CyclicDependencyError: Before any fit, if the curves depend on each
            other in a cycle
        CalibrationError: From the first curve that fails to fit
    """
    graph = to_dependency_graph(curves)
    start = time.perf_counter()
    if parallel:
        results = graph.parallel_for_each(_fit, max_workers)
    else:
        results = graph.for_each(_fit)
    results = [r for r in results if r is not None]
    logger.info("Fitted %d curves in %.4fs", len(results), time.perf_counter() - start)
    return results


def clone_curve_set(curves) -> List:
    """
    Clone ``curves`` together with every curve they depend on.

    Each cloned calibrator reads the cloned parents, so a worker thread can
    bump and refit its copy while the originals stay untouched.

    Returns:
        Clones in the order of ``curves``
    """
    curves = list(curves)
    clones: Dict[int, Curve] = {}
    for curve in to_dependency_graph(curves).reverse_ordered():
        new_curve = curve.clone()
        calibrator = getattr(curve, "calibrator", None)
        if calibrator is not None:
            new_curve.calibrator = calibrator.with_parents(clones)
        clones[id(curve)] = new_curve
    logger.debug("Cloned %d curves for %d requested", len(clones), len(curves))
    return [clones[id(curve)] for curve in curves]


__all__ = [
    "Calibrator",
    "FitResult",
    "fit_curves",
    "clone_curve_set",
]
