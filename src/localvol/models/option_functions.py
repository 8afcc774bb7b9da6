"""Option payoff functions evaluated on recombining trinomial lattices.

Each variant provides the same two capabilities:

- ``payoff_at_expiry(spot, down_factor, middle_over_down, steps)`` returns the
  payoff on the ``2N + 1`` terminal nodes;
- ``next_option_values(discount_factor, up_probability, middle_probability,
  down_probability, values, spot, down_factor, middle_over_down, i)`` rolls
  the values back from slice ``i + 1`` to slice ``i``.

Node ``j`` of slice ``i`` sits at ``spot * down_factor**i *
middle_over_down**j``. Probabilities may be scalars (constant-parameter
lattice) or arrays with one entry per node of slice ``i`` (implied lattice).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

import jax
import jax.numpy as jnp

from ..core.errors import InvalidInputError

jax.config.update("jax_enable_x64", True)


def node_spots(spot: float, down_factor: float, middle_over_down: float, i: int) -> jnp.ndarray:
    """Spot levels of the ``2i + 1`` nodes of slice ``i``."""
    j = jnp.arange(2 * i + 1, dtype=jnp.float64)
    return spot * down_factor**i * middle_over_down**j


def backward_step(discount_factor, up_probability, middle_probability, down_probability, values):
    """Discounted expectation over the three children of each node."""
    return discount_factor * (
        up_probability * values[2:] + middle_probability * values[1:-1] + down_probability * values[:-2]
    )


def _sign(is_call: bool) -> float:
    return 1.0 if is_call else -1.0


def _check_contract(strike: float, time_to_expiry: float) -> None:
    if not strike > 0.0:
        raise InvalidInputError(f"strike must be positive, got {strike}")
    if not time_to_expiry > 0.0:
        raise InvalidInputError(f"time to expiry must be positive, got {time_to_expiry}")


@dataclass(frozen=True)
class EuropeanVanillaOptionFunction:
    """European call or put."""

    strike: float
    time_to_expiry: float
    is_call: bool = True

    def __post_init__(self) -> None:
        _check_contract(self.strike, self.time_to_expiry)

    def payoff_at_expiry(self, spot, down_factor, middle_over_down, steps: int) -> jnp.ndarray:
        s = node_spots(spot, down_factor, middle_over_down, steps)
        return jnp.maximum(_sign(self.is_call) * (s - self.strike), 0.0)

    def next_option_values(
        self,
        discount_factor,
        up_probability,
        middle_probability,
        down_probability,
        values,
        spot,
        down_factor,
        middle_over_down,
        i,
    ) -> jnp.ndarray:
        return backward_step(discount_factor, up_probability, middle_probability, down_probability, values)


@dataclass(frozen=True)
class AmericanVanillaOptionFunction:
    """American call or put; continuation is compared with intrinsic value at every node."""

    strike: float
    time_to_expiry: float
    is_call: bool = True

    def __post_init__(self) -> None:
        _check_contract(self.strike, self.time_to_expiry)

    def payoff_at_expiry(self, spot, down_factor, middle_over_down, steps: int) -> jnp.ndarray:
        s = node_spots(spot, down_factor, middle_over_down, steps)
        return jnp.maximum(_sign(self.is_call) * (s - self.strike), 0.0)

    def next_option_values(
        self,
        discount_factor,
        up_probability,
        middle_probability,
        down_probability,
        values,
        spot,
        down_factor,
        middle_over_down,
        i,
    ) -> jnp.ndarray:
        continuation = backward_step(discount_factor, up_probability, middle_probability, down_probability, values)
        s = node_spots(spot, down_factor, middle_over_down, i)
        return jnp.maximum(continuation, _sign(self.is_call) * (s - self.strike))


class BarrierType(Enum):
    DOWN = "down"
    UP = "up"


@dataclass(frozen=True)
class ConstantContinuousSingleBarrierKnockoutFunction:
    """European vanilla with a constant, continuously monitored knock-out barrier.

    Once the barrier is breached the option pays ``rebate`` immediately.

    Attributes:
        strike: Strike
        time_to_expiry: Time to expiry in years
        barrier_level: Barrier
        barrier_type: ``BarrierType.DOWN`` knocks out at or below the barrier,
            ``BarrierType.UP`` at or above it
        rebate: Amount paid on knock-out
        is_call: Call or put payoff
    """

    strike: float
    time_to_expiry: float
    barrier_level: float
    barrier_type: BarrierType = BarrierType.DOWN
    rebate: float = 0.0
    is_call: bool = True

    def __post_init__(self) -> None:
        _check_contract(self.strike, self.time_to_expiry)
        if not self.barrier_level > 0.0:
            raise InvalidInputError(f"barrier level must be positive, got {self.barrier_level}")
        if self.rebate < 0.0:
            raise InvalidInputError(f"rebate must be non-negative, got {self.rebate}")

    def _knocked(self, s: jnp.ndarray) -> jnp.ndarray:
        if self.barrier_type is BarrierType.DOWN:
            return s <= self.barrier_level
        return s >= self.barrier_level

    def payoff_at_expiry(self, spot, down_factor, middle_over_down, steps: int) -> jnp.ndarray:
        s = node_spots(spot, down_factor, middle_over_down, steps)
        vanilla = jnp.maximum(_sign(self.is_call) * (s - self.strike), 0.0)
        return jnp.where(self._knocked(s), self.rebate, vanilla)

    def next_option_values(
        self,
        discount_factor,
        up_probability,
        middle_probability,
        down_probability,
        values,
        spot,
        down_factor,
        middle_over_down,
        i,
    ) -> jnp.ndarray:
        continuation = backward_step(discount_factor, up_probability, middle_probability, down_probability, values)
        s = node_spots(spot, down_factor, middle_over_down, i)
        return jnp.where(self._knocked(s), self.rebate, continuation)


OptionFunction = Union[
    EuropeanVanillaOptionFunction,
    AmericanVanillaOptionFunction,
    ConstantContinuousSingleBarrierKnockoutFunction,
]


__all__ = [
    "AmericanVanillaOptionFunction",
    "BarrierType",
    "ConstantContinuousSingleBarrierKnockoutFunction",
    "EuropeanVanillaOptionFunction",
    "OptionFunction",
    "backward_step",
    "node_spots",
]
