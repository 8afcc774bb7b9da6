"""Trinomial tree engine for option pricing.

Backward induction over a recombining constant-parameter lattice. The
lattice specification supplies the factors and probabilities of one step;
the option function supplies the terminal payoff and the roll-back rule
(early exercise, barrier knock-out).
"""
from __future__ import annotations

import logging
import math

import jax
import jax.numpy as jnp

from ..core.errors import InvalidInputError
from .lattice import LatticeParameters, LatticeSpecification
from .option_functions import OptionFunction

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)


class TrinomialTree:
    """Generic trinomial tree pricer.

    Examples
    --------
    >>> tree = TrinomialTree()
    >>> lattice = CoxRossRubinsteinLatticeSpecification(100)
    >>> call = EuropeanVanillaOptionFunction(strike=100.0, time_to_expiry=1.0)
    >>> tree.price(lattice, call, 100.0, 0.2, 0.05, 0.0)  # doctest: +SKIP
    10.45...
    """

    def price(
        self,
        lattice: LatticeSpecification,
        function: OptionFunction,
        spot: float,
        volatility: float,
        interest_rate: float,
        dividend_rate: float,
    ) -> float:
        """Price ``function`` on ``lattice``.

        Parameters
        ----------
        lattice : LatticeSpecification
            Step count and per-step parameterization
        function : OptionFunction
            Payoff and roll-back rule
        spot : float
            Spot price
        volatility : float
            Constant volatility
        interest_rate, dividend_rate : float
            Continuously-compounded rates

        Returns
        -------
        float
            Option price at the root node

        Raises
        ------
        InvalidInputError
            If spot or volatility are not positive
        CalibrationFailure
            If the lattice probabilities are outside (0, 1)
        """
        if not spot > 0.0:
            raise InvalidInputError(f"spot must be positive, got {spot}")
        if not volatility > 0.0:
            raise InvalidInputError(f"volatility must be positive, got {volatility}")
        steps = lattice.step_count
        dt = function.time_to_expiry / steps
        discount = math.exp(-interest_rate * dt)
        parameters = lattice.parameters(volatility, interest_rate - dividend_rate, dt)
        logger.debug("Pricing %s on %d steps, dt=%.6g", type(function).__name__, steps, dt)
        return self.price_from_parameters(parameters, function, spot, discount, steps)

    def price_from_parameters(
        self,
        parameters: LatticeParameters,
        function: OptionFunction,
        spot: float,
        discount_factor: float,
        steps: int,
    ) -> float:
        """Backward induction with pre-computed step parameters."""
        if not spot > 0.0:
            raise InvalidInputError(f"spot must be positive, got {spot}")
        if steps <= 0:
            raise InvalidInputError(f"step count must be positive, got {steps}")
        parameters.validate()
        down = parameters.down_factor
        middle_over_down = parameters.middle_over_down
        values = function.payoff_at_expiry(spot, down, middle_over_down, steps)
        for i in range(steps - 1, -1, -1):
            values = function.next_option_values(
                discount_factor,
                parameters.up_probability,
                parameters.middle_probability,
                parameters.down_probability,
                values,
                spot,
                down,
                middle_over_down,
                i,
            )
        return float(values[0])


__all__ = ["TrinomialTree"]
