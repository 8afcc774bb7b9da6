"""Volatility and price surfaces indexed by (time to expiry, strike).

All surfaces implement the :class:`~localvol.market.base.Surface` protocol.
Surfaces whose values are written with :mod:`jax.numpy` also provide
``jax_value(t, k)`` so that derivatives can be taken with :func:`jax.grad`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Sequence, Tuple

import jax
import jax.numpy as jnp

from ..core.errors import InvalidInputError
from .interpolation import (
    LINEAR_FLAT,
    TIME_SQUARE_FLAT,
    CombinedInterpolator,
    _interpolate,
    check_extrapolation,
)

jax.config.update("jax_enable_x64", True)


@dataclass(frozen=True)
class ConstantSurface:
    """Surface returning the same value everywhere."""

    z: float
    name: str = "constant"

    def value(self, t: float, k: float) -> float:
        return float(self.z)

    def jax_value(self, t, k):
        return self.z + 0.0 * t + 0.0 * k

    def __call__(self, t: float, k: float) -> float:
        return self.value(t, k)


@dataclass(frozen=True)
class FunctionSurface:
    """Surface defined by a callable ``f(t, k)``.

    When ``f`` is written with :mod:`jax.numpy` the surface supports
    automatic differentiation through :meth:`jax_value`.
    """

    function: Callable[[float, float], float]
    name: str = "function"

    def value(self, t: float, k: float) -> float:
        return float(self.function(t, k))

    def jax_value(self, t, k):
        return self.function(t, k)

    def __call__(self, t: float, k: float) -> float:
        return self.value(t, k)


@dataclass(frozen=True)
class GridInterpolator2D:
    """Two-step interpolation over nodes grouped by their x coordinate.

    For a query ``(x, y)`` each x-slice is first interpolated along y with
    ``y_interpolator``; the slice values are then interpolated along x with
    ``x_interpolator``. Slices may carry different y nodes.
    """

    x_interpolator: CombinedInterpolator = TIME_SQUARE_FLAT
    y_interpolator: CombinedInterpolator = LINEAR_FLAT


@dataclass(frozen=True)
class _Slice:
    x: float
    y: jnp.ndarray
    index: jnp.ndarray


def _group_nodes(x: jnp.ndarray, y: jnp.ndarray) -> Tuple[jnp.ndarray, List[_Slice]]:
    order = jnp.lexsort((y, x))
    xs = x[order]
    ys = y[order]
    unique_x = jnp.unique(xs)
    slices: List[_Slice] = []
    for x_value in unique_x:
        mask = xs == x_value
        idx = order[mask]
        y_slice = ys[mask]
        if y_slice.shape[0] > 1 and not bool(jnp.all(jnp.diff(y_slice) > 0.0)):
            raise InvalidInputError(f"Duplicate nodes at x={float(x_value)}")
        slices.append(_Slice(float(x_value), y_slice, idx))
    return unique_x, slices


@dataclass(frozen=True, eq=False)
class InterpolatedNodalSurface:
    """Surface interpolated from scattered ``(x, y, z)`` nodes.

    Queries with concrete coordinates honour ``ExtrapolationPolicy.ERROR``:
    a time outside the node times, or a strike outside the strikes of any
    time slice, raises :class:`InvalidInputError`.

    Attributes:
        x: Node times (years)
        y: Node strikes
        z: Node values
        interpolator: 2D interpolation scheme
        name: Surface name
    """

    x: jnp.ndarray
    y: jnp.ndarray
    z: jnp.ndarray
    interpolator: GridInterpolator2D = GridInterpolator2D()
    name: str = "surface"
    _unique_x: jnp.ndarray = field(init=False, repr=False, compare=False)
    _slices: Tuple[_Slice, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        x = jnp.asarray(self.x, dtype=jnp.float64).ravel()
        y = jnp.asarray(self.y, dtype=jnp.float64).ravel()
        z = jnp.asarray(self.z, dtype=jnp.float64).ravel()
        if not (x.shape == y.shape == z.shape):
            raise InvalidInputError("x, y and z must have the same number of nodes")
        if x.shape[0] == 0:
            raise InvalidInputError("Surface requires at least one node")
        if not bool(jnp.all(jnp.isfinite(z))):
            raise InvalidInputError("Surface node values must be finite")
        unique_x, slices = _group_nodes(x, y)
        object.__setattr__(self, "x", x)
        object.__setattr__(self, "y", y)
        object.__setattr__(self, "z", z)
        object.__setattr__(self, "_unique_x", unique_x)
        object.__setattr__(self, "_slices", tuple(slices))

    @classmethod
    def from_grid(
        cls,
        times: Sequence[float],
        strikes: Sequence[float],
        values: Sequence[Sequence[float]],
        interpolator: GridInterpolator2D = GridInterpolator2D(),
        name: str = "surface",
    ) -> "InterpolatedNodalSurface":
        """Build from a full grid; ``values[i][j]`` is the value at ``(times[i], strikes[j])``."""
        t = jnp.asarray(times, dtype=jnp.float64)
        k = jnp.asarray(strikes, dtype=jnp.float64)
        grid = jnp.asarray(values, dtype=jnp.float64)
        if grid.shape != (t.shape[0], k.shape[0]):
            raise InvalidInputError("values must have shape (len(times), len(strikes))")
        tt, kk = jnp.meshgrid(t, k, indexing="ij")
        return cls(tt.ravel(), kk.ravel(), grid.ravel(), interpolator, name)

    @property
    def parameter_count(self) -> int:
        return int(self.z.shape[0])

    def traced(self, z: jnp.ndarray, t, k):
        """Evaluate with explicit node values; usable inside JAX transformations."""
        y_scheme = self.interpolator.y_interpolator
        x_scheme = self.interpolator.x_interpolator
        slice_values = jnp.stack([
            _interpolate(y_scheme.interpolator, y_scheme.left, y_scheme.right, s.y, z[s.index], k)
            for s in self._slices
        ])
        return _interpolate(x_scheme.interpolator, x_scheme.left, x_scheme.right, self._unique_x, slice_values, t)

    def check_domain(self, t: float, k: float) -> None:
        x_scheme = self.interpolator.x_interpolator
        y_scheme = self.interpolator.y_interpolator
        check_extrapolation(x_scheme, float(self._unique_x[0]), float(self._unique_x[-1]), float(t))
        for s in self._slices:
            check_extrapolation(y_scheme, float(s.y[0]), float(s.y[-1]), float(k))

    def jax_value(self, t, k):
        return self.traced(self.z, t, k)

    def value(self, t: float, k: float) -> float:
        self.check_domain(t, k)
        return float(self.traced(self.z, float(t), float(k)))

    def __call__(self, t: float, k: float) -> float:
        return self.value(t, k)

    def first_derivative_time(self, t: float, k: float) -> float:
        self.check_domain(t, k)
        return float(jax.grad(self.jax_value, argnums=0)(float(t), float(k)))

    def first_derivative_strike(self, t: float, k: float) -> float:
        self.check_domain(t, k)
        return float(jax.grad(self.jax_value, argnums=1)(float(t), float(k)))

    def second_derivative_strike(self, t: float, k: float) -> float:
        self.check_domain(t, k)
        return float(jax.grad(jax.grad(self.jax_value, argnums=1), argnums=1)(float(t), float(k)))

    def parameter_sensitivity(self, t: float, k: float) -> jnp.ndarray:
        """Sensitivity of the value at ``(t, k)`` to each node value, in node order."""
        self.check_domain(t, k)
        return jax.grad(lambda z: self.traced(z, float(t), float(k)))(self.z)

    def with_z_values(self, z: Sequence[float]) -> "InterpolatedNodalSurface":
        return InterpolatedNodalSurface(self.x, self.y, jnp.asarray(z), self.interpolator, self.name)


__all__ = [
    "ConstantSurface",
    "FunctionSurface",
    "GridInterpolator2D",
    "InterpolatedNodalSurface",
]
