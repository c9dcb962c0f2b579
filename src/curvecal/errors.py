"""
Exception taxonomy for curve construction, calibration and bumping.

Every error derives from :class:`CurveError` and from the builtin that
best describes it, so callers can catch either.
"""

from datetime import date
from typing import Optional, Sequence


class CurveError(Exception):
    """Base exception for the curve library."""


class InvalidCurvePointError(CurveError, ValueError):
    """A curve point is malformed or breaks the strictly increasing date order."""

    def __init__(self, curve_name: Optional[str], message: str):
        self.curve_name = curve_name
        super().__init__(f"[{curve_name or 'curve'}] {message}")


class CalibrationError(CurveError, RuntimeError):
    """A curve could not be fitted to its tenor quotes."""

    def __init__(self, curve_name: Optional[str], message: str, tenor_name: Optional[str] = None):
        self.curve_name = curve_name
        self.tenor_name = tenor_name
        where = f"{curve_name or 'curve'}/{tenor_name}" if tenor_name else (curve_name or "curve")
        super().__init__(f"[{where}] {message}")


class MissingGroupError(CalibrationError):
    """A required configuration group is absent."""

    def __init__(self, group: str):
        self.group = group
        super().__init__(None, f"missing configuration group '{group}'")


class MissingItemError(CalibrationError):
    """A required item is absent from a configuration group."""

    def __init__(self, group: str, item: str):
        self.group = group
        self.item = item
        super().__init__(None, f"missing item '{item}' in configuration group '{group}'")


class QuoteFormatError(CalibrationError):
    """A quote or configuration value could not be read."""

    def __init__(self, text: object, message: str = "cannot parse value", tenor_name: Optional[str] = None):
        self.text = text
        super().__init__(None, f"{message}: {text!r}", tenor_name)


class DuplicateTenorError(CurveError, ValueError):
    """Two calibration instruments on one curve share a tenor name."""

    def __init__(self, curve_name: Optional[str], tenor_name: str):
        self.curve_name = curve_name
        self.tenor_name = tenor_name
        super().__init__(f"[{curve_name or 'curve'}] duplicate tenor '{tenor_name}'")


class CyclicDependencyError(CurveError, ValueError):
    """The curve dependency graph contains a cycle."""

    def __init__(self, items: Sequence[object] = ()):
        self.items = list(items)
        names = ", ".join(str(getattr(i, "name", i)) for i in self.items)
        message = "Cyclic dependency detected"
        super().__init__(f"{message}: {names}" if names else message)


class MissingFixingError(CurveError, LookupError):
    """A historical rate fixing is absent and cannot be projected."""

    def __init__(self, index_name: Optional[str], fixing_date: date):
        self.index_name = index_name
        self.fixing_date = fixing_date
        super().__init__(f"[{index_name or 'index'}] no fixing for {fixing_date.isoformat()}")


__all__ = [
    "CurveError",
    "InvalidCurvePointError",
    "CalibrationError",
    "MissingGroupError",
    "MissingItemError",
    "QuoteFormatError",
    "DuplicateTenorError",
    "CyclicDependencyError",
    "MissingFixingError",
]
