from __future__ import annotations

from typing import Any

import jax
import jax.numpy as jnp

jax.config.update("jax_enable_x64", True)

__all__ = [
    "time_grid",
    "lattice_levels",
]


def time_grid(
    T: float,
    steps: int,
    *,
    start: float = 0.0,
    include_start: bool = True,
    dtype: Any = jnp.float64,
) -> jnp.ndarray:
    """Create a time grid for a maturity ``T`` using ``steps`` intervals."""
    if steps <= 0:
        raise ValueError("steps must be > 0 for a time grid.")
    end = start + T
    if include_start:
        return jnp.linspace(start, end, steps + 1, dtype=dtype)
    return jnp.linspace(start + (T / steps), end, steps, dtype=dtype)


def lattice_levels(spot: float, dx: float, i: int, dtype: Any = jnp.float64) -> jnp.ndarray:
    """Spot levels ``spot * exp(k * dx)`` for ``k = -i..i`` (slice ``i`` of a log-uniform lattice)."""
    if i < 0:
        raise ValueError("slice index must be >= 0.")
    k = jnp.arange(-i, i + 1, dtype=dtype)
    return spot * jnp.exp(k * dx)
