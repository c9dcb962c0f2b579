"""
Quote bumping policy per instrument family.

Bump sizes are in basis points for absolute bumps and a plain factor for
relative bumps (``BumpFlags.BUMP_RELATIVE``). A relative down bump of size
``b`` is applied as ``b / (1 + b)`` so that an up bump followed by a down
bump of the same size returns to the starting quote.

Zero-crossing policy:
- A positive quote bumped below zero is capped at half its value unless
  ``ALLOW_DOWN_CROSSING_ZERO`` is set.
- A negative quote bumped above zero is allowed to cross unless
  ``FORBID_UP_CROSSING_ZERO`` is set, in which case the same cap applies.
- CDS premiums skip the policy entirely when ``ALLOW_NEGATIVE_CDS_SPREADS``
  is set; spreads on floating swap legs and generic points never apply it.

A capped bump is not an error; the returned amount is what was applied.
"""

from enum import IntFlag
import logging

from .tenor import InstrumentType

logger = logging.getLogger(__name__)


class BumpFlags(IntFlag):
    """Options controlling how a bump is applied."""
    NONE = 0
    BUMP_DOWN = 1
    BUMP_RELATIVE = 2
    BUMP_IN_PLACE = 4
    REFIT_CURVE = 8
    ALLOW_DOWN_CROSSING_ZERO = 16
    ALLOW_NEGATIVE_CDS_SPREADS = 32
    FORBID_UP_CROSSING_ZERO = 64


def adjust_to_handle_crossing_zero(shift: float, base: float, flags: BumpFlags, name: str = "") -> float:
    """
    Cap ``shift`` so that ``base + shift`` lands at half of ``base`` instead
    of crossing zero, when the flags forbid the crossing.
    """
    crosses_down = base > 0 and base + shift < 0 and not flags & BumpFlags.ALLOW_DOWN_CROSSING_ZERO
    crosses_up = base < 0 and base + shift > 0 and bool(flags & BumpFlags.FORBID_UP_CROSSING_ZERO)
    if crosses_down or crosses_up:
        capped = -base / 2.0
        logger.debug("Bump on %s capped at zero crossing: %.6g -> %.6g", name or "quote", shift, capped)
        return capped
    return shift


def bump_quote(tenor, bump_size: float, flags: BumpFlags = BumpFlags.NONE) -> float:
    """
    Bump ``tenor``'s quote and report the bump actually applied.

    Args:
        tenor: CurveTenor whose product quote is modified
        bump_size: Size in bp (absolute) or factor (relative); sign is
            given by ``BumpFlags.BUMP_DOWN``
        flags: Bump options

    Returns:
        Magnitude of the applied bump, in bp for quote families and in
        curve units for generic points
    """
    up = not flags & BumpFlags.BUMP_DOWN
    relative = bool(flags & BumpFlags.BUMP_RELATIVE)
    amount = bump_size if up else -bump_size
    if relative and amount < 0:
        amount = amount / (1.0 - amount)

    product = tenor.product
    family = tenor.family

    if family == InstrumentType.GENERIC:
        shift = amount * abs(product.quote) if relative else amount
        product.quote += shift
        return shift if up else -shift

    if family == InstrumentType.FUTURE:
        base = 1.0 - product.quote
    elif family == InstrumentType.BOND:
        base = -product.quote
    else:
        base = product.quote

    shift = amount * abs(base) if relative else amount / 10000.0

    if family == InstrumentType.CDS:
        if not flags & BumpFlags.ALLOW_NEGATIVE_CDS_SPREADS:
            shift = adjust_to_handle_crossing_zero(shift, base, flags, tenor.name)
    elif not getattr(product, "floating_quote", False):
        shift = adjust_to_handle_crossing_zero(shift, base, flags, tenor.name)

    if family in (InstrumentType.FUTURE, InstrumentType.BOND):
        product.quote -= shift
    else:
        product.quote += shift

    return (shift if up else -shift) * 10000.0


__all__ = [
    "BumpFlags",
    "adjust_to_handle_crossing_zero",
    "bump_quote",
]
