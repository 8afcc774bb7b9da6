"""Lattice pricing models."""

from . import bs
from .lattice import (
    CoxRossRubinsteinLatticeSpecification,
    KamradRitchkenLatticeSpecification,
    LatticeParameters,
    LatticeSpecification,
)
from .option_functions import (
    AmericanVanillaOptionFunction,
    BarrierType,
    ConstantContinuousSingleBarrierKnockoutFunction,
    EuropeanVanillaOptionFunction,
    OptionFunction,
)
from .trinomial_tree import TrinomialTree

__all__ = [
    "AmericanVanillaOptionFunction",
    "BarrierType",
    "ConstantContinuousSingleBarrierKnockoutFunction",
    "CoxRossRubinsteinLatticeSpecification",
    "EuropeanVanillaOptionFunction",
    "KamradRitchkenLatticeSpecification",
    "LatticeParameters",
    "LatticeSpecification",
    "OptionFunction",
    "TrinomialTree",
    "bs",
]
