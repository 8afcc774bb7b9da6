"""Local volatility calculators: Dupire transform and implied trinomial tree."""

from .base import LocalVolatilityCalculator, LocalVolatilityPoint, LocalVolatilitySurface
from .cache import CacheKey, LatticeCache
from .dupire import DupireLocalVolatilityCalculator, DupireLocalVolatilitySurface
from .implied_tree import (
    ImpliedTreeCalibration,
    ImpliedTrinomialLattice,
    ImpliedTrinomialTreeLocalVolatilityCalculator,
    LatticeState,
)

__all__ = [
    "CacheKey",
    "DupireLocalVolatilityCalculator",
    "DupireLocalVolatilitySurface",
    "ImpliedTreeCalibration",
    "ImpliedTrinomialLattice",
    "ImpliedTrinomialTreeLocalVolatilityCalculator",
    "LatticeCache",
    "LatticeState",
    "LocalVolatilityCalculator",
    "LocalVolatilityPoint",
    "LocalVolatilitySurface",
]
