"""
Risk package - bump engine and sensitivity calculations.

Provides:
- Quote bumping with overlay or in-place refits and exact restore
- Delta, gamma and hedge notionals by bump and reprice
"""

from .bumping import (
    BUMP_OVERLAY,
    BumpEngine,
    BumpFlags,
    BumpResult,
)
from .sensitivities import (
    BumpTarget,
    BumpType,
    FunctionPricer,
    ProductPricer,
    SensitivityCalculator,
)

__all__ = [
    "BUMP_OVERLAY",
    "BumpEngine",
    "BumpFlags",
    "BumpResult",
    "BumpTarget",
    "BumpType",
    "FunctionPricer",
    "ProductPricer",
    "SensitivityCalculator",
]
