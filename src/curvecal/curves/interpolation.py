"""
Interpolation and extrapolation schemes for curves.

Provides:
- LinearInterpolator: linear on the stored values
- WeightedInterpolator: linear in log(value), i.e. piecewise flat forwards
  on a discount factor or survival probability curve
- CubicSplineInterpolator: natural cubic spline on the stored values
- ParametricInterpolator: wraps a user function of time

Every point based interpolator works in a *working space*: stored values
are mapped through ``to_space`` before interpolation and mapped back with
``from_space`` afterwards. The interpolation itself is linear in the knot
values of that space, which is what lets curve overlays add knot deltas
and reproduce a re-fitted curve exactly.

The x-coordinate is time in days from the curve's as-of date.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional, Union
import bisect

import numpy as np

from ..conventions import day_fraction


class Extrapolation(Enum):
    """Behaviour outside the first/last curve point."""
    CONST = "Const"
    SMOOTH = "Smooth"

    @classmethod
    def from_string(cls, s: str) -> "Extrapolation":
        key = s.strip().lower()
        if key in ("const", "constant", "flat"):
            return cls.CONST
        if key in ("smooth", "linear"):
            return cls.SMOOTH
        raise ValueError(f"Unknown extrapolation method: {s}")


class Interpolator(ABC):
    """
    Abstract base class for curve interpolation.

    Curves talk to an interpolator through two calls: ``initialize(curve)``
    whenever the curve's points have changed, then ``evaluate(curve, t, index)``
    where ``t`` is days from the as-of date and ``index`` the position of the
    first point strictly after ``t``. Custom schemes may override just these
    two methods.
    """

    needs_points = True

    def __init__(self, extrapolation: Extrapolation = Extrapolation.CONST):
        self.extrapolation = extrapolation
        self.times: Optional[np.ndarray] = None
        self.ys: Optional[np.ndarray] = None

    def initialize(self, curve) -> None:
        """Fit to the curve's current points."""
        self.fit(curve.times(), curve.values())

    def evaluate(self, curve, t: float, index: Optional[int] = None) -> float:
        """Evaluate at ``t`` days for ``curve``."""
        return self.interpolate(t, index)

    def to_space(self, t, value):
        """Map stored values into the working space."""
        return value

    def from_space(self, t, y):
        """Map working-space values back to stored values."""
        return y

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit the interpolator to data points.

        Args:
            times: Days from as-of (sorted ascending)
            values: Stored curve values
        """
        times = np.asarray(times, dtype=np.float64)
        values = np.asarray(values, dtype=np.float64)
        if len(times) != len(values):
            raise ValueError("Times and values must have same length")
        self.fit_space(times, self.to_space(times, values))

    @abstractmethod
    def fit_space(self, times: np.ndarray, ys: np.ndarray) -> None:
        """Fit directly to working-space knot values."""

    @abstractmethod
    def interpolate_space(self, t: float, index: Optional[int] = None) -> float:
        """Evaluate in working space."""

    def interpolate(self, t: float, index: Optional[int] = None) -> float:
        return float(self.from_space(t, self.interpolate_space(t, index)))

    def __call__(self, t: float) -> float:
        """Convenience method to call interpolate."""
        return self.interpolate(t)

    def delta_interpolator(self) -> "Interpolator":
        """
        Fresh interpolator used to spread overlay knot deltas.

        The returned object is fitted with ``fit_space`` so that its output
        adds directly to this interpolator's working space.
        """
        return type(self)(self.extrapolation)

    def _check_fitted(self) -> None:
        if self.times is None or self.ys is None or len(self.times) == 0:
            raise RuntimeError("Interpolator not fitted")

    def _locate(self, t: float, index: Optional[int]) -> int:
        if index is None:
            index = bisect.bisect_right(self.times, t)
        return index

    def __repr__(self) -> str:
        return f"{type(self).__name__}(extrapolation={self.extrapolation.value})"


class LinearInterpolator(Interpolator):
    """
    Linear interpolation between knot points.

    Const extrapolation holds the first/last working-space value; smooth
    extrapolation continues the first/last segment.
    """

    def fit_space(self, times: np.ndarray, ys: np.ndarray) -> None:
        self.times = np.array(times, dtype=np.float64)
        self.ys = np.array(ys, dtype=np.float64)

    def interpolate_space(self, t: float, index: Optional[int] = None) -> float:
        self._check_fitted()
        times, ys = self.times, self.ys
        n = len(times)
        idx = self._locate(t, index)

        if idx > 0 and times[idx - 1] == t:
            return float(ys[idx - 1])
        if idx == 0:
            return self._extrapolate_left(t)
        if idx == n:
            return self._extrapolate_right(t)

        t0, t1 = times[idx - 1], times[idx]
        y0, y1 = ys[idx - 1], ys[idx]
        w = (t - t0) / (t1 - t0)
        return float(y0 + w * (y1 - y0))

    def _extrapolate_left(self, t: float) -> float:
        times, ys = self.times, self.ys
        if self.extrapolation == Extrapolation.SMOOTH and len(times) > 1:
            slope = (ys[1] - ys[0]) / (times[1] - times[0])
            return float(ys[0] + slope * (t - times[0]))
        return float(ys[0])

    def _extrapolate_right(self, t: float) -> float:
        times, ys = self.times, self.ys
        if self.extrapolation == Extrapolation.SMOOTH and len(times) > 1:
            slope = (ys[-1] - ys[-2]) / (times[-1] - times[-2])
            return float(ys[-1] + slope * (t - times[-1]))
        return float(ys[-1])


class WeightedInterpolator(LinearInterpolator):
    """
    Log-linear interpolation on discount factors or survival probabilities.

    Interpolates linearly in log(value), which corresponds to piecewise
    constant forward (or hazard) rates. The value at the as-of date is taken
    to be 1.0, so between the origin and the first point the first segment's
    rate applies.

    Const extrapolation keeps the zero rate constant: ``v(t) = v_n ** (t / t_n)``.
    Smooth extrapolation keeps the last forward rate.
    """

    def to_space(self, t, value):
        value = np.asarray(value, dtype=np.float64)
        if np.any(value <= 0):
            raise ValueError("Weighted interpolation requires positive values")
        return np.log(value)

    def from_space(self, t, y):
        return np.exp(y)

    def _extrapolate_left(self, t: float) -> float:
        t0, y0 = self.times[0], self.ys[0]
        if t0 <= 0:
            return super()._extrapolate_left(t)
        return float(y0 * t / t0)

    def _extrapolate_right(self, t: float) -> float:
        if self.extrapolation == Extrapolation.SMOOTH:
            if len(self.times) > 1:
                return super()._extrapolate_right(t)
        tn, yn = self.times[-1], self.ys[-1]
        if tn <= 0:
            return float(yn)
        return float(yn * t / tn)


class CubicSplineInterpolator(Interpolator):
    """
    Natural cubic spline interpolation (second derivative = 0 at boundaries).

    Const extrapolation is flat; smooth extrapolation continues with the
    end-point slope.
    """

    def __init__(self, extrapolation: Extrapolation = Extrapolation.CONST):
        super().__init__(extrapolation)
        self.coefficients: Optional[np.ndarray] = None  # Shape: (n-1, 4) for [a, b, c, d]

    def fit_space(self, times: np.ndarray, ys: np.ndarray) -> None:
        """
        Fit natural cubic spline.

        Solves tridiagonal system for second derivatives,
        then computes polynomial coefficients for each interval.
        """
        self.times = np.array(times, dtype=np.float64)
        self.ys = np.array(ys, dtype=np.float64)
        n = len(self.times)

        if n < 2:
            self.coefficients = np.zeros((0, 4))
            return

        h = np.diff(self.times)

        if n == 2:
            slope = (self.ys[1] - self.ys[0]) / h[0]
            self.coefficients = np.array([[self.ys[0], slope, 0.0, 0.0]])
            return

        A = np.zeros((n, n))
        b = np.zeros(n)

        A[0, 0] = 1.0
        A[n-1, n-1] = 1.0

        for i in range(1, n-1):
            A[i, i-1] = h[i-1]
            A[i, i] = 2 * (h[i-1] + h[i])
            A[i, i+1] = h[i]
            b[i] = 6 * ((self.ys[i+1] - self.ys[i]) / h[i] -
                        (self.ys[i] - self.ys[i-1]) / h[i-1])

        M = np.linalg.solve(A, b)

        # S_i(x) = a_i + b_i*(x-x_i) + c_i*(x-x_i)^2 + d_i*(x-x_i)^3
        self.coefficients = np.zeros((n-1, 4))
        for i in range(n-1):
            self.coefficients[i, 0] = self.ys[i]
            self.coefficients[i, 1] = (self.ys[i+1] - self.ys[i]) / h[i] - h[i] * (M[i+1] + 2*M[i]) / 6
            self.coefficients[i, 2] = M[i] / 2
            self.coefficients[i, 3] = (M[i+1] - M[i]) / (6 * h[i])

    def interpolate_space(self, t: float, index: Optional[int] = None) -> float:
        self._check_fitted()
        times, ys = self.times, self.ys
        idx = self._locate(t, index)

        if idx > 0 and times[idx - 1] == t:
            return float(ys[idx - 1])
        if len(times) == 1:
            return float(ys[0])
        if idx == 0:
            if self.extrapolation == Extrapolation.SMOOTH:
                return float(ys[0] + self._slope(0, 0.0) * (t - times[0]))
            return float(ys[0])
        if idx == len(times):
            if self.extrapolation == Extrapolation.SMOOTH:
                last = len(self.coefficients) - 1
                return float(ys[-1] + self._slope(last, times[-1] - times[-2]) * (t - times[-1]))
            return float(ys[-1])

        dx = t - times[idx - 1]
        a, b, c, d = self.coefficients[idx - 1]
        return float(a + b*dx + c*dx**2 + d*dx**3)

    def _slope(self, segment: int, dx: float) -> float:
        _, b, c, d = self.coefficients[segment]
        return float(b + 2*c*dx + 3*d*dx**2)


class ParametricInterpolator(Interpolator):
    """
    Curve shape given by a function of year fraction rather than by points.

    The function receives the year fraction from the as-of date (using the
    curve's day count) and returns the curve value. Overlays on a parametric
    curve spread their knot deltas linearly.
    """

    needs_points = False

    def __init__(
        self,
        function: Callable[[float], float],
        extrapolation: Extrapolation = Extrapolation.CONST
    ):
        super().__init__(extrapolation)
        self.function = function
        self._to_years: Callable[[float], float] = lambda t: t / 365.0

    def initialize(self, curve) -> None:
        as_of, day_count = curve.as_of, curve.day_count
        self._to_years = lambda t: day_fraction(as_of, t, day_count)

    def evaluate(self, curve, t: float, index: Optional[int] = None) -> float:
        return float(self.function(self._to_years(t)))

    def fit_space(self, times: np.ndarray, ys: np.ndarray) -> None:
        self.times = np.array(times, dtype=np.float64)
        self.ys = np.array(ys, dtype=np.float64)

    def interpolate_space(self, t: float, index: Optional[int] = None) -> float:
        return float(self.function(self._to_years(t)))

    def delta_interpolator(self) -> Interpolator:
        return LinearInterpolator(self.extrapolation)


def create_interpolator(
    method: str,
    extrapolation: Union[str, Extrapolation] = Extrapolation.CONST
) -> Interpolator:
    """
    Factory function to create an interpolator by name.

    Args:
        method: One of "linear", "weighted" (alias "log_linear"), "cubic_spline"
        extrapolation: "const" or "smooth"

    Returns:
        Interpolator instance
    """
    if isinstance(extrapolation, str):
        extrapolation = Extrapolation.from_string(extrapolation)
    method = method.lower().replace("-", "_").replace(" ", "_")

    if method in ("linear", "lin"):
        return LinearInterpolator(extrapolation)
    elif method in ("weighted", "log_linear", "loglinear"):
        return WeightedInterpolator(extrapolation)
    elif method in ("cubic_spline", "cubic", "spline"):
        return CubicSplineInterpolator(extrapolation)
    else:
        raise ValueError(f"Unknown interpolation method: {method}")


__all__ = [
    "Extrapolation",
    "Interpolator",
    "LinearInterpolator",
    "WeightedInterpolator",
    "CubicSplineInterpolator",
    "ParametricInterpolator",
    "create_interpolator",
]
