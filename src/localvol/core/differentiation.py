"""Scalar differentiation helpers used by the Dupire transform.

Two backends are available:

* finite differences with a relative bump and one-sided stencils at the edge
  of a function's domain;
* reverse-mode automatic differentiation through :func:`jax.grad`, for
  functions written with :mod:`jax.numpy`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import jax

from .errors import InvalidInputError

ScalarFunction = Callable[[float], float]
Domain = Callable[[float], bool]


def bump_size(x: float, relative_bump: float) -> float:
    """Return the bump used around ``x``: ``relative_bump * max(|x|, 1)``."""
    return relative_bump * max(abs(x), 1.0)


@dataclass(frozen=True)
class ScalarFirstOrderDifferentiator:
    """First derivative by central differences.

    When ``x + h`` or ``x - h`` falls outside ``domain`` the three-point
    one-sided stencil is used instead.
    """

    relative_bump: float = 1e-4

    def __post_init__(self) -> None:
        if self.relative_bump <= 0.0:
            raise InvalidInputError("relative_bump must be positive")

    def differentiate(self, function: ScalarFunction, domain: Optional[Domain] = None) -> ScalarFunction:
        def derivative(x: float) -> float:
            h = bump_size(x, self.relative_bump)
            if domain is None:
                return (function(x + h) - function(x - h)) / (2.0 * h)
            if not domain(x):
                raise InvalidInputError(f"point {x} is not in the function domain")
            up_ok = domain(x + h)
            down_ok = domain(x - h)
            if up_ok and down_ok:
                return (function(x + h) - function(x - h)) / (2.0 * h)
            if up_ok:
                return (-3.0 * function(x) + 4.0 * function(x + h) - function(x + 2.0 * h)) / (2.0 * h)
            if down_ok:
                return (3.0 * function(x) - 4.0 * function(x - h) + function(x - 2.0 * h)) / (2.0 * h)
            raise InvalidInputError(f"cannot get derivative at point {x}")

        return derivative


@dataclass(frozen=True)
class ScalarSecondOrderDifferentiator:
    """Second derivative by central differences, one-sided near the domain edge."""

    relative_bump: float = 1e-4

    def __post_init__(self) -> None:
        if self.relative_bump <= 0.0:
            raise InvalidInputError("relative_bump must be positive")

    def differentiate(self, function: ScalarFunction, domain: Optional[Domain] = None) -> ScalarFunction:
        def derivative(x: float) -> float:
            h = bump_size(x, self.relative_bump)
            h2 = h * h
            if domain is None:
                return (function(x + h) + function(x - h) - 2.0 * function(x)) / h2
            if not domain(x):
                raise InvalidInputError(f"point {x} is not in the function domain")
            up_ok = domain(x + h)
            down_ok = domain(x - h)
            if up_ok and down_ok:
                return (function(x + h) + function(x - h) - 2.0 * function(x)) / h2
            if up_ok:
                return (
                    -function(x + 3.0 * h)
                    + 4.0 * function(x + 2.0 * h)
                    - 5.0 * function(x + h)
                    + 2.0 * function(x)
                ) / h2
            if down_ok:
                return (
                    -function(x - 3.0 * h)
                    + 4.0 * function(x - 2.0 * h)
                    - 5.0 * function(x - h)
                    + 2.0 * function(x)
                ) / h2
            raise InvalidInputError(f"cannot get derivative at point {x}")

        return derivative


def autodiff_first(function: ScalarFunction) -> ScalarFunction:
    """First derivative through :func:`jax.grad`."""
    grad_fn = jax.grad(function)
    return lambda x: float(grad_fn(float(x)))


def autodiff_second(function: ScalarFunction) -> ScalarFunction:
    """Second derivative through nested :func:`jax.grad`."""
    grad2_fn = jax.grad(jax.grad(function))
    return lambda x: float(grad2_fn(float(x)))


__all__ = [
    "ScalarFirstOrderDifferentiator",
    "ScalarSecondOrderDifferentiator",
    "autodiff_first",
    "autodiff_second",
    "bump_size",
]
