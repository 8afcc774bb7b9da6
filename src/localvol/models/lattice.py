"""Constant-parameter trinomial lattice specifications.

A specification maps ``(volatility, drift, dt)`` to the multiplicative
factors and transition probabilities of one trinomial step. Two
parameterizations are provided:

- :class:`CoxRossRubinsteinLatticeSpecification`: squared-binomial
  construction with ``dx = vol * sqrt(2 dt)``; matches the forward exactly.
- :class:`KamradRitchkenLatticeSpecification`: symmetric lattice with
  ``dx = spacing * vol * sqrt(dt)`` matching the first two moments of
  log-spot.

Probabilities outside (0, 1) are reported as :class:`CalibrationFailure`;
they are never clamped.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Union

from ..core.errors import CalibrationFailure, InvalidInputError

PROBABILITY_SUM_TOLERANCE = 1e-12


@dataclass(frozen=True)
class LatticeParameters:
    """Factors and risk-neutral probabilities of one trinomial step."""

    up_factor: float
    middle_factor: float
    down_factor: float
    up_probability: float
    middle_probability: float
    down_probability: float

    @property
    def middle_over_down(self) -> float:
        return self.middle_factor / self.down_factor

    def validate(self) -> "LatticeParameters":
        """Return ``self`` or raise :class:`CalibrationFailure` on invalid values."""
        for label, p in (
            ("up", self.up_probability),
            ("middle", self.middle_probability),
            ("down", self.down_probability),
        ):
            if not (0.0 < p < 1.0):
                raise CalibrationFailure(f"{label} probability {p:.6g} is outside (0, 1)")
        total = self.up_probability + self.middle_probability + self.down_probability
        if abs(total - 1.0) > PROBABILITY_SUM_TOLERANCE:
            raise CalibrationFailure(f"probabilities sum to {total:.15g}, expected 1")
        if not (self.down_factor < self.middle_factor < self.up_factor):
            raise CalibrationFailure("factors must satisfy down < middle < up")
        return self


def _check_step_inputs(volatility: float, dt: float) -> None:
    if not volatility > 0.0:
        raise InvalidInputError(f"volatility must be positive, got {volatility}")
    if not dt > 0.0:
        raise InvalidInputError(f"dt must be positive, got {dt}")


def _check_steps(steps: int) -> None:
    if int(steps) != steps or steps <= 0:
        raise InvalidInputError(f"step count must be a positive integer, got {steps}")


@dataclass(frozen=True)
class CoxRossRubinsteinLatticeSpecification:
    """Trinomial lattice obtained by combining two binomial CRR steps.

    Attributes:
        steps: Number of time steps
    """

    steps: int

    def __post_init__(self) -> None:
        _check_steps(self.steps)

    @property
    def step_count(self) -> int:
        return self.steps

    def parameters(self, volatility: float, drift: float, dt: float) -> LatticeParameters:
        _check_step_inputs(volatility, dt)
        dx = volatility * math.sqrt(2.0 * dt)
        up = math.exp(dx)
        half_up = math.exp(0.5 * dx)
        half_down = math.exp(-0.5 * dx)
        forward = math.exp(0.5 * drift * dt)
        width = half_up - half_down
        up_probability = ((forward - half_down) / width) ** 2
        down_probability = ((half_up - forward) / width) ** 2
        return LatticeParameters(
            up_factor=up,
            middle_factor=1.0,
            down_factor=1.0 / up,
            up_probability=up_probability,
            middle_probability=1.0 - up_probability - down_probability,
            down_probability=down_probability,
        ).validate()


@dataclass(frozen=True)
class KamradRitchkenLatticeSpecification:
    """Symmetric trinomial lattice with spacing multiplier ``spacing``.

    Attributes:
        steps: Number of time steps
        spacing: Multiplier of ``vol * sqrt(dt)`` in the log-spacing, at least 1
    """

    steps: int
    spacing: float = math.sqrt(1.5)

    def __post_init__(self) -> None:
        _check_steps(self.steps)
        if self.spacing < 1.0:
            raise InvalidInputError(f"spacing must be >= 1, got {self.spacing}")

    @property
    def step_count(self) -> int:
        return self.steps

    def parameters(self, volatility: float, drift: float, dt: float) -> LatticeParameters:
        _check_step_inputs(volatility, dt)
        dx = self.spacing * volatility * math.sqrt(dt)
        nu = drift - 0.5 * volatility * volatility
        second_moment = (volatility * volatility * dt + nu * nu * dt * dt) / (dx * dx)
        first_moment = nu * dt / dx
        up_probability = 0.5 * (second_moment + first_moment)
        down_probability = 0.5 * (second_moment - first_moment)
        up = math.exp(dx)
        return LatticeParameters(
            up_factor=up,
            middle_factor=1.0,
            down_factor=1.0 / up,
            up_probability=up_probability,
            middle_probability=1.0 - up_probability - down_probability,
            down_probability=down_probability,
        ).validate()


LatticeSpecification = Union[CoxRossRubinsteinLatticeSpecification, KamradRitchkenLatticeSpecification]


__all__ = [
    "CoxRossRubinsteinLatticeSpecification",
    "KamradRitchkenLatticeSpecification",
    "LatticeParameters",
    "LatticeSpecification",
]
