"""
Curve fit settings.

Settings are an immutable value handed to calibrators and the bump engine
at construction time. They can be built directly or read from a nested
mapping (e.g. parsed from JSON or YAML by the caller):

    {
        "CurveFit": {
            "Tolerance": 1e-12,
            "MaxIterations": 100,
            "OverlapTreatmentOrder": "Deposit+Future+Swap",
            "Interpolation": "weighted",
            "Extrapolation": "const"
        }
    }
"""

from dataclasses import dataclass, field, replace
from typing import Mapping, Tuple, Union

from .curves.interpolation import Extrapolation, Interpolator, create_interpolator
from .curves.tenor import InstrumentType
from .errors import MissingGroupError, MissingItemError, QuoteFormatError


def parse_overlap_order(order: Union[str, Tuple, list]) -> Tuple[InstrumentType, ...]:
    """Parse ``"Deposit+Future+Swap"`` (or a sequence) into instrument families."""
    if isinstance(order, str):
        parts = [p for p in order.split("+") if p.strip()]
    else:
        parts = list(order)
    families = []
    for part in parts:
        family = part if isinstance(part, InstrumentType) else InstrumentType.from_string(part)
        if family not in families:
            families.append(family)
    return tuple(families)


@dataclass(frozen=True)
class CurveFitSettings:
    """
    Calibration parameters.

    Attributes:
        tolerance: Root-finder x tolerance on the solved rate
        max_iterations: Root-finder iteration cap; exceeding it is fatal
        repricing_tolerance: Largest accepted |model quote - market quote|
        overlap_treatment_order: Families in priority order; empty keeps all tenors
        rate_bracket: Initial continuous-rate bracket for each bootstrap step
        bracket_expansions: How many times the bracket may be widened
        max_sweeps: Extra bootstrap passes allowed when a later point moves
            earlier fits (non-local interpolation such as cubic splines)
        interpolation: Default interpolation method for new curves
        extrapolation: Default extrapolation method for new curves
    """
    tolerance: float = 1e-12
    max_iterations: int = 100
    repricing_tolerance: float = 1e-8
    overlap_treatment_order: Tuple[InstrumentType, ...] = field(default_factory=tuple)
    rate_bracket: Tuple[float, float] = (-0.5, 1.0)
    bracket_expansions: int = 5
    max_sweeps: int = 20
    interpolation: str = "weighted"
    extrapolation: str = "const"

    def __post_init__(self):
        if self.tolerance <= 0:
            raise ValueError("tolerance must be positive")
        if self.max_iterations <= 0:
            raise ValueError("max_iterations must be positive")
        if self.max_sweeps < 0:
            raise ValueError("max_sweeps must be non-negative")
        if self.rate_bracket[0] >= self.rate_bracket[1]:
            raise ValueError("rate_bracket must be (low, high) with low < high")
        if not isinstance(self.overlap_treatment_order, tuple) or any(
            not isinstance(f, InstrumentType) for f in self.overlap_treatment_order
        ):
            object.__setattr__(self, "overlap_treatment_order",
                               parse_overlap_order(self.overlap_treatment_order))

    def create_interpolator(self) -> Interpolator:
        return create_interpolator(self.interpolation, Extrapolation.from_string(self.extrapolation))

    def with_overrides(self, **changes) -> "CurveFitSettings":
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, config: Mapping, group: str = "CurveFit") -> "CurveFitSettings":
        """
        Read settings from a nested mapping.

        Raises:
            MissingGroupError: If ``group`` is absent
            MissingItemError: If ``Tolerance`` is absent from the group
            QuoteFormatError: If a value cannot be read
        """
        if group not in config:
            raise MissingGroupError(group)
        section = config[group]
        if "Tolerance" not in section:
            raise MissingItemError(group, "Tolerance")

        kwargs = {"tolerance": _number(section["Tolerance"], float)}
        if "MaxIterations" in section:
            kwargs["max_iterations"] = _number(section["MaxIterations"], int)
        if "RepricingTolerance" in section:
            kwargs["repricing_tolerance"] = _number(section["RepricingTolerance"], float)
        if "OverlapTreatmentOrder" in section:
            try:
                kwargs["overlap_treatment_order"] = parse_overlap_order(section["OverlapTreatmentOrder"])
            except ValueError as exc:
                raise QuoteFormatError(section["OverlapTreatmentOrder"], "bad overlap order") from exc
        if "MaxSweeps" in section:
            kwargs["max_sweeps"] = _number(section["MaxSweeps"], int)
        if "RateBracket" in section:
            low, high = section["RateBracket"]
            kwargs["rate_bracket"] = (_number(low, float), _number(high, float))
        if "Interpolation" in section:
            kwargs["interpolation"] = str(section["Interpolation"])
        if "Extrapolation" in section:
            kwargs["extrapolation"] = str(section["Extrapolation"])

        try:
            settings = cls(**kwargs)
            settings.create_interpolator()
        except ValueError as exc:
            raise QuoteFormatError(dict(section), str(exc)) from exc
        return settings


def _number(value: object, kind):
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise QuoteFormatError(value) from exc


__all__ = [
    "CurveFitSettings",
    "parse_overlap_order",
]
