"""One-dimensional interpolation for curves and surface slices.

Provides the interpolation schemes needed by the volatility surfaces:
- Linear interpolation
- Time-square interpolation (linear in total variance ``x * y**2``)
- Natural cubic spline

Every scheme is bound to its nodes through :class:`CombinedInterpolator`, which
adds an extrapolation policy on each side and exposes the value, the first
derivative and the sensitivity of the value to each node.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import jax
import jax.numpy as jnp
from jax import jit

from ..core.errors import InvalidInputError
from .base import ExtrapolationPolicy

jax.config.update("jax_enable_x64", True)


def _segment_index(x: jnp.ndarray, x_new) -> jnp.ndarray:
    i = jnp.searchsorted(x, x_new) - 1
    return jnp.clip(i, 0, len(x) - 2)


@jit
def _linear_kernel(x: jnp.ndarray, y: jnp.ndarray, x_new):
    # Evaluates the segment containing x_new, extended beyond the end nodes.
    i = _segment_index(x, x_new)
    slope = (y[i + 1] - y[i]) / (x[i + 1] - x[i])
    return y[i] + slope * (x_new - x[i])


@jit
def _time_square_kernel(x: jnp.ndarray, y: jnp.ndarray, x_new):
    total = _linear_kernel(x, x * y * y, x_new)
    valid = jnp.logical_and(x_new > 0.0, total > 0.0)
    value = jnp.sqrt(jnp.where(valid, total, 1.0) / jnp.where(valid, x_new, 1.0))
    return jnp.where(valid, value, y[0])


@jit
def natural_cubic_spline_coefficients(
    x: jnp.ndarray, y: jnp.ndarray
) -> tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray, jnp.ndarray]:
    """Compute natural cubic spline coefficients.

    A natural cubic spline has zero second derivative at the boundaries.

    Parameters
    ----------
    x : Array
        Known x-coordinates (must be sorted), shape (n,)
    y : Array
        Known y-coordinates, shape (n,)

    Returns
    -------
    a, b, c, d : Arrays
        Spline coefficients for each interval
        For interval [x[i], x[i+1]], the spline is:
        S_i(t) = a[i] + b[i]*(t-x[i]) + c[i]*(t-x[i])^2 + d[i]*(t-x[i])^3

    Notes
    -----
    Natural boundary conditions: S''(x[0]) = S''(x[-1]) = 0
    """
    n = len(x) - 1

    h = jnp.diff(x)

    alpha = jnp.zeros(n - 1)
    for i in range(1, n):
        alpha = alpha.at[i - 1].set(
            (3.0 / h[i]) * (y[i + 1] - y[i]) - (3.0 / h[i - 1]) * (y[i] - y[i - 1])
        )

    l = jnp.ones(n + 1)
    mu = jnp.zeros(n + 1)
    z = jnp.zeros(n + 1)

    for i in range(1, n):
        l = l.at[i].set(2.0 * (x[i + 1] - x[i - 1]) - h[i - 1] * mu[i - 1])
        mu = mu.at[i].set(h[i] / l[i])
        z = z.at[i].set((alpha[i - 1] - h[i - 1] * z[i - 1]) / l[i])

    c_vals = jnp.zeros(n + 1)
    b_vals = jnp.zeros(n)
    d_vals = jnp.zeros(n)

    # Back substitution
    for j in range(n - 1, -1, -1):
        c_vals = c_vals.at[j].set(z[j] - mu[j] * c_vals[j + 1])
        b_vals = b_vals.at[j].set((y[j + 1] - y[j]) / h[j] - h[j] * (c_vals[j + 1] + 2.0 * c_vals[j]) / 3.0)
        d_vals = d_vals.at[j].set((c_vals[j + 1] - c_vals[j]) / (3.0 * h[j]))

    a_vals = y[:-1]
    c_vals = c_vals[:-1]

    return a_vals, b_vals, c_vals, d_vals


@jit
def _natural_cubic_kernel(x: jnp.ndarray, y: jnp.ndarray, x_new):
    a, b, c, d = natural_cubic_spline_coefficients(x, y)
    i = _segment_index(x, x_new)
    dx = x_new - x[i]
    return a[i] + b[i] * dx + c[i] * dx * dx + d[i] * dx * dx * dx


class Interpolator1D(Enum):
    """Interpolation schemes between nodes."""

    LINEAR = "linear"
    TIME_SQUARE = "time_square"
    NATURAL_CUBIC = "natural_cubic"


_KERNELS = {
    Interpolator1D.LINEAR: _linear_kernel,
    Interpolator1D.TIME_SQUARE: _time_square_kernel,
    Interpolator1D.NATURAL_CUBIC: _natural_cubic_kernel,
}


def _interpolate(
    kind: Interpolator1D,
    left: ExtrapolationPolicy,
    right: ExtrapolationPolicy,
    x: jnp.ndarray,
    y: jnp.ndarray,
    x_new,
):
    """Traceable evaluation of an interpolator with its extrapolation policies.

    ``ExtrapolationPolicy.ERROR`` is enforced by the caller on concrete
    values with :func:`check_extrapolation`; here it behaves like ``FLAT``.
    """
    if x.shape[0] == 1:
        return y[0] + 0.0 * x_new
    if x.shape[0] == 2 and kind is Interpolator1D.NATURAL_CUBIC:
        kind = Interpolator1D.LINEAR
    kernel = _KERNELS[kind]
    value = kernel(x, y, x_new)

    if left is ExtrapolationPolicy.LINEAR:
        slope = jax.grad(lambda s: kernel(x, y, s))(x[0])
        below = y[0] + slope * (x_new - x[0])
    else:
        below = y[0]
    if right is ExtrapolationPolicy.LINEAR:
        slope = jax.grad(lambda s: kernel(x, y, s))(x[-1])
        above = y[-1] + slope * (x_new - x[-1])
    else:
        above = y[-1]

    value = jnp.where(x_new < x[0], below, value)
    return jnp.where(x_new > x[-1], above, value)


def linear_interpolation(x: jnp.ndarray, y: jnp.ndarray, x_new: float) -> float:
    """Linear interpolation.

    Parameters
    ----------
    x : Array
        Known x-coordinates (must be sorted)
    y : Array
        Known y-coordinates
    x_new : float
        Point at which to interpolate

    Returns
    -------
    float
        Interpolated value at x_new

    Notes
    -----
    For points outside the range, uses flat extrapolation (returns boundary value).

    Examples
    --------
    >>> x = jnp.array([0.0, 1.0, 2.0])
    >>> y = jnp.array([0.0, 1.0, 4.0])
    >>> linear_interpolation(x, y, 1.5)
    2.5
    """
    return _interpolate(
        Interpolator1D.LINEAR, ExtrapolationPolicy.FLAT, ExtrapolationPolicy.FLAT,
        jnp.asarray(x), jnp.asarray(y), x_new,
    )


def time_square_interpolation(x: jnp.ndarray, y: jnp.ndarray, x_new: float) -> float:
    """Interpolate ``x * y**2`` linearly and return ``sqrt(value / x_new)``.

    With ``x`` a time and ``y`` a volatility this is linear interpolation in
    total variance. Outside the nodes the boundary value is returned.
    """
    return _interpolate(
        Interpolator1D.TIME_SQUARE, ExtrapolationPolicy.FLAT, ExtrapolationPolicy.FLAT,
        jnp.asarray(x), jnp.asarray(y), x_new,
    )


@dataclass(frozen=True)
class CombinedInterpolator:
    """Interpolation scheme with left and right extrapolation policies."""

    interpolator: Interpolator1D = Interpolator1D.LINEAR
    left: ExtrapolationPolicy = ExtrapolationPolicy.FLAT
    right: ExtrapolationPolicy = ExtrapolationPolicy.FLAT

    def bind(self, x, y) -> "BoundInterpolator":
        """Bind the scheme to nodes ``x`` (strictly increasing) and values ``y``."""
        return BoundInterpolator(self, jnp.asarray(x, dtype=jnp.float64), jnp.asarray(y, dtype=jnp.float64))


def check_extrapolation(scheme: CombinedInterpolator, first: float, last: float, x_new: float) -> None:
    """Raise :class:`InvalidInputError` when ``x_new`` lies outside ``[first, last]`` on an ``ERROR`` side."""
    if scheme.left is ExtrapolationPolicy.ERROR and x_new < first:
        raise InvalidInputError(f"{x_new} is below the first node {first}")
    if scheme.right is ExtrapolationPolicy.ERROR and x_new > last:
        raise InvalidInputError(f"{x_new} is above the last node {last}")


LINEAR_FLAT = CombinedInterpolator(Interpolator1D.LINEAR)
TIME_SQUARE_FLAT = CombinedInterpolator(Interpolator1D.TIME_SQUARE)
NATURAL_CUBIC_LINEAR = CombinedInterpolator(
    Interpolator1D.NATURAL_CUBIC, ExtrapolationPolicy.LINEAR, ExtrapolationPolicy.LINEAR
)


class BoundInterpolator:
    """Interpolator bound to its nodes.

    Exposes the value, the first derivative with respect to the abscissa and
    the sensitivity of the value to each node value. Derivatives come from
    :func:`jax.grad` and are exact for the piecewise interpolant.
    """

    def __init__(self, scheme: CombinedInterpolator, x: jnp.ndarray, y: jnp.ndarray):
        if x.ndim != 1 or x.shape != y.shape:
            raise InvalidInputError("x and y must be one-dimensional arrays of the same length")
        if x.shape[0] < 1:
            raise InvalidInputError("Need at least 1 point for interpolation")
        if x.shape[0] > 1 and not bool(jnp.all(jnp.diff(x) > 0.0)):
            raise InvalidInputError("x must be strictly increasing")
        if scheme.interpolator is Interpolator1D.TIME_SQUARE and float(x[0]) < 0.0:
            raise InvalidInputError("time-square interpolation requires non-negative x")
        self.scheme = scheme
        self.x = x
        self.y = y

    def _check_domain(self, x_new: float) -> None:
        check_extrapolation(self.scheme, float(self.x[0]), float(self.x[-1]), x_new)

    def traced(self, y: jnp.ndarray, x_new) -> jnp.ndarray:
        """Evaluate with explicit node values; usable inside JAX transformations."""
        return _interpolate(self.scheme.interpolator, self.scheme.left, self.scheme.right, self.x, y, x_new)

    def interpolate(self, x_new: float) -> float:
        self._check_domain(float(x_new))
        return float(self.traced(self.y, float(x_new)))

    def __call__(self, x_new: float) -> float:
        return self.interpolate(x_new)

    def first_derivative(self, x_new: float) -> float:
        self._check_domain(float(x_new))
        return float(jax.grad(lambda s: self.traced(self.y, s))(float(x_new)))

    def parameter_sensitivity(self, x_new: float) -> jnp.ndarray:
        """Derivative of the interpolated value with respect to each node value."""
        self._check_domain(float(x_new))
        return jax.grad(lambda values: self.traced(values, float(x_new)))(self.y)


__all__ = [
    "BoundInterpolator",
    "CombinedInterpolator",
    "Interpolator1D",
    "LINEAR_FLAT",
    "NATURAL_CUBIC_LINEAR",
    "TIME_SQUARE_FLAT",
    "check_extrapolation",
    "linear_interpolation",
    "natural_cubic_spline_coefficients",
    "time_square_interpolation",
]
