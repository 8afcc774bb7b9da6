"""Common types of the local volatility calculators."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable

import jax.numpy as jnp

from ...core.errors import CalibrationDiagnostics, InvalidInputError, WarningRecord
from ...market.base import RateLike, Surface
from ...market.surfaces import InterpolatedNodalSurface


@dataclass(frozen=True)
class LocalVolatilityPoint:
    """Local volatility at one ``(time, strike)`` point.

    Attributes:
        volatility: Local volatility
        variance: Local variance before flooring
        floored: Whether the variance was floored to a positive epsilon
        warning: Warning emitted for this point, if any
    """

    volatility: float
    variance: float
    floored: bool = False
    warning: Optional[WarningRecord] = None


@runtime_checkable
class LocalVolatilityCalculator(Protocol):
    """Transform an implied volatility or call price surface into local volatility."""

    def local_volatility_from_implied_volatility(
        self,
        implied_volatility_surface: Surface,
        spot: float,
        interest_rate: RateLike,
        dividend_rate: RateLike,
    ) -> Surface:
        ...

    def local_volatility_from_price(
        self,
        price_surface: Surface,
        spot: float,
        interest_rate: RateLike,
        dividend_rate: RateLike,
    ) -> Surface:
        ...


@dataclass(frozen=True, eq=False)
class LocalVolatilitySurface:
    """Local volatility fitted over a set of ``(time, strike)`` samples.

    The values are interpolated by ``surface``; ``diagnostics`` carries the
    warnings and point failures recorded while the samples were computed.
    """

    surface: InterpolatedNodalSurface
    diagnostics: CalibrationDiagnostics = field(default_factory=CalibrationDiagnostics)
    name: str = "local_volatility"

    @property
    def times(self) -> jnp.ndarray:
        return self.surface.x

    @property
    def strikes(self) -> jnp.ndarray:
        return self.surface.y

    @property
    def volatilities(self) -> jnp.ndarray:
        return self.surface.z

    @property
    def parameter_count(self) -> int:
        return self.surface.parameter_count

    def value(self, t: float, k: float) -> float:
        return self.surface.value(t, k)

    def jax_value(self, t, k):
        return self.surface.jax_value(t, k)

    def __call__(self, t: float, k: float) -> float:
        return self.value(t, k)

    def parameter_sensitivity(self, t: float, k: float) -> jnp.ndarray:
        return self.surface.parameter_sensitivity(t, k)


def check_spot(spot: float) -> float:
    spot = float(spot)
    if not (spot > 0.0 and math.isfinite(spot)):
        raise InvalidInputError(f"spot must be positive and finite, got {spot}")
    return spot


__all__ = [
    "LocalVolatilityCalculator",
    "LocalVolatilityPoint",
    "LocalVolatilitySurface",
    "check_spot",
]
