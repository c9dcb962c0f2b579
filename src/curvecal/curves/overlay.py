"""
Curve overlays: non-destructive corrections layered on a base curve.

An overlay is a pure function of time (days from the curve's as-of date)
returning a delta in the curve interpolator's working space. A curve
evaluates its base points, maps the result into working space, adds every
attached overlay and maps back. Addition commutes, so the result does not
depend on the order overlays were attached.
"""

from dataclasses import dataclass
from typing import Callable, Sequence
import logging

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Overlay:
    """A labelled ``time -> delta`` correction."""
    label: str
    function: Callable[[float], float]

    def __call__(self, t: float) -> float:
        return float(self.function(t))


def knot_overlay(curve, bumped_values: Sequence[float], label: str = "bump") -> Overlay:
    """
    Overlay that moves ``curve``'s points to ``bumped_values``.

    Knot deltas are taken in the interpolator's working space and spread
    with the same scheme, so for interpolators that are linear in that
    space (linear, weighted, cubic spline) base plus overlay equals a curve
    built directly on ``bumped_values``.
    """
    times = curve.times()
    base = curve.values()
    bumped = np.asarray(bumped_values, dtype=np.float64)
    if len(bumped) != len(base):
        raise ValueError(
            f"Expected {len(base)} bumped values for {curve.name}, got {len(bumped)}"
        )

    interp = curve.interpolator
    deltas = interp.to_space(times, bumped) - interp.to_space(times, base)
    spreader = interp.delta_interpolator()
    spreader.fit_space(times, deltas)

    logger.debug("Knot overlay %s on %s: max |delta| %.3e",
                 label, curve.name, float(np.max(np.abs(deltas))) if len(deltas) else 0.0)
    return Overlay(label, spreader.interpolate_space)


def curve_overlay(curve, target, label: str = "bump") -> Overlay:
    """
    Overlay that makes ``curve`` evaluate like ``target``.

    Used when the bumped curve does not share the base curve's dates; it
    keeps ``target`` alive for the lifetime of the overlay.
    """
    interp = curve.interpolator

    def delta(t: float) -> float:
        return float(
            interp.to_space(t, target.evaluate_base(t))
            - interp.to_space(t, curve.evaluate_base(t))
        )

    return Overlay(label, delta)


__all__ = [
    "Overlay",
    "knot_overlay",
    "curve_overlay",
]
