"""
Base protocols for the market objects consumed by the calibrators.

- Curve: time-dependent scalar function (zero rates for discounting and dividends)
- Surface: function of (time, strike), e.g. implied or local volatility
- ExtrapolationPolicy: behaviour of interpolated objects outside their nodes
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Protocol, Union, runtime_checkable

from jax import Array


class ExtrapolationPolicy(Enum):
    """Policy for handling extrapolation beyond curve/surface boundaries."""

    FLAT = "flat"              # Use boundary value
    LINEAR = "linear"          # Linear extrapolation from the boundary slope
    ERROR = "error"            # Raise error on out-of-bounds


@runtime_checkable
class Curve(Protocol):
    """
    Protocol for deterministic term structures.

    A rate curve maps a time in years to a continuously-compounded zero rate.
    Both the risk-free curve and the dividend (or foreign) curve satisfy it.
    """

    def value(self, t: float | Array) -> float | Array:
        """Zero rate at time ``t``."""
        ...

    def __call__(self, t: float | Array) -> float | Array:
        """Convenience method: curve(t) is equivalent to curve.value(t)."""
        ...


@runtime_checkable
class RateCurve(Curve, Protocol):
    """Zero-rate curve with discounting helpers."""

    def discount_factor(self, t: float | Array) -> float | Array:
        """
        Compute discount factor to time t.

        Args:
            t: Time(s) in years

        Returns:
            exp(-r(t) * t)
        """
        ...


@runtime_checkable
class Surface(Protocol):
    """
    Protocol for 2D surfaces indexed by (time to expiry, strike).

    Implementations must provide:
    - value(x, y): Evaluate surface at point (x, y)
    - __call__(x, y): Alias for value(x, y)
    """

    def value(self, x: float, y: float) -> float:
        """
        Evaluate surface at point (x, y).

        Args:
            x: First coordinate (time to expiry in years)
            y: Second coordinate (strike)

        Returns:
            Surface value at (x, y)
        """
        ...

    def __call__(self, x: float, y: float) -> float:
        """Convenience method: surface(x, y) is equivalent to surface.value(x, y)."""
        ...


RateLike = Union[Curve, Callable[[float], float], float]


__all__ = [
    "Curve",
    "ExtrapolationPolicy",
    "RateCurve",
    "RateLike",
    "Surface",
]
