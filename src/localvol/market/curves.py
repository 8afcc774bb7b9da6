"""Deterministic zero-rate curves consumed by the local volatility calculators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence, Union

import jax
import jax.numpy as jnp
from jax import Array

from ..core.errors import InvalidInputError
from .base import Curve, RateCurve
from .interpolation import LINEAR_FLAT

jax.config.update("jax_enable_x64", True)

ArrayLike = Union[float, Array]


@dataclass(frozen=True)
class FlatCurve:
    """
    Continuously-compounded flat zero-rate curve.

    Attributes:
        r: Continuously-compounded rate (default 0.0)
    """

    r: float = 0.0

    def value(self, t: ArrayLike) -> ArrayLike:
        """Return the constant zero rate."""
        if jnp.ndim(t) == 0:
            return float(self.r)
        return jnp.full_like(jnp.asarray(t, dtype=jnp.float64), self.r)

    def __call__(self, t: ArrayLike) -> ArrayLike:
        return self.value(t)

    def zero_rate(self, t: ArrayLike) -> ArrayLike:
        return self.value(t)

    def discount_factor(self, t: ArrayLike) -> ArrayLike:
        """Compute discount factor: DF(t) = exp(-r*t)."""
        if jnp.ndim(t) == 0:
            return float(jnp.exp(-self.r * t))
        return jnp.exp(-self.r * jnp.asarray(t, dtype=jnp.float64))


class InterpolatedZeroCurve:
    """
    Zero-rate curve interpolated linearly between nodes.

    Rates are held flat beyond the first and last node.

    Args:
        times: Node times in years, strictly increasing
        rates: Continuously-compounded zero rates at the nodes
    """

    def __init__(self, times: Sequence[float], rates: Sequence[float], name: str = "zero"):
        self.name = name
        self._interpolator = LINEAR_FLAT.bind(times, rates)

    @property
    def times(self) -> Array:
        return self._interpolator.x

    @property
    def rates(self) -> Array:
        return self._interpolator.y

    def value(self, t: ArrayLike) -> ArrayLike:
        if jnp.ndim(t) == 0:
            return self._interpolator.interpolate(float(t))
        return jax.vmap(lambda s: self._interpolator.traced(self.rates, s))(jnp.asarray(t, dtype=jnp.float64))

    def __call__(self, t: ArrayLike) -> ArrayLike:
        return self.value(t)

    def zero_rate(self, t: ArrayLike) -> ArrayLike:
        return self.value(t)

    def discount_factor(self, t: ArrayLike) -> ArrayLike:
        rate = self.value(t)
        if jnp.ndim(t) == 0:
            return float(jnp.exp(-rate * t))
        return jnp.exp(-rate * jnp.asarray(t, dtype=jnp.float64))


class _CallableCurve:
    """Adapter exposing a plain ``t -> rate`` callable as a curve."""

    def __init__(self, function: Callable[[float], float]):
        self._function = function

    def value(self, t: ArrayLike) -> ArrayLike:
        return float(self._function(float(t)))

    def __call__(self, t: ArrayLike) -> ArrayLike:
        return self.value(t)

    def zero_rate(self, t: ArrayLike) -> ArrayLike:
        return self.value(t)

    def discount_factor(self, t: ArrayLike) -> ArrayLike:
        return float(jnp.exp(-self.value(t) * t))


def as_curve(rate: Union[Curve, Callable[[float], float], float]):
    """Wrap a float or a ``t -> rate`` callable as a curve; curves pass through."""
    if isinstance(rate, (int, float)):
        return FlatCurve(float(rate))
    if isinstance(rate, RateCurve):
        return rate
    if callable(rate):
        return _CallableCurve(rate)
    raise InvalidInputError(f"Cannot interpret {type(rate)!r} as a rate curve")


__all__ = [
    "FlatCurve",
    "InterpolatedZeroCurve",
    "as_curve",
]
