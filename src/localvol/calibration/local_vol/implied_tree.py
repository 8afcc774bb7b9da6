"""Local volatility from an implied trinomial tree (Derman, Kani and Chriss).

The lattice has a uniform log-spacing ``dx = spacing * sigma_ref * sqrt(2 dt)``
set by the implied volatility at the last slice and the spot. Slice ``i``
holds ``2i + 1`` nodes ``spot * exp((j - i) dx)``.

Calibration runs forward in time:

1. At every slice the Arrow-Debreu prices implied by the market are obtained
   from calls struck at the upper nodes and puts struck at the lower nodes,
   by inverting their piecewise-linear payoffs on the node grid.
2. For each node, from the top down, the transition probabilities solve the
   3x3 system {probabilities sum to one, the expected child spot is the
   forward, the up move reproduces the next slice's state price}. Nodes whose
   solution is not a probability fall back to the drift-only assignment.
3. State prices are propagated with the probabilities and checked against the
   discount factor.

The local variance at a node is the variance of the next spot divided by
``F^2 dt``. The variances are smoothed across strikes, averaged with the next
slice, and interpolated onto a surface.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

import jax
import jax.numpy as jnp

from ...core.config.schemas import ImpliedTreeSettings
from ...core.errors import (
    CalibrationDiagnostics,
    CalibrationFailure,
    DiagnosticsRecorder,
    InvalidInputError,
    WarningKind,
)
from ...core.grid import lattice_levels, time_grid
from ...market.base import RateLike, Surface
from ...market.curves import as_curve
from ...market.surfaces import GridInterpolator2D, InterpolatedNodalSurface
from ...models import bs
from ...models.lattice import PROBABILITY_SUM_TOLERANCE, CoxRossRubinsteinLatticeSpecification
from ...models.option_functions import EuropeanVanillaOptionFunction, OptionFunction
from ...models.trinomial_tree import TrinomialTree
from .base import LocalVolatilitySurface, check_spot
from .cache import CacheKey, LatticeCache

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)

IMPLIED_VOLATILITY = "implied_volatility"
PRICE = "price"

_TREE = TrinomialTree()


class LatticeState(Enum):
    """Build state of an :class:`ImpliedTrinomialLattice`."""

    EMPTY = "empty"
    GROWING = "growing"
    CALIBRATED = "calibrated"
    FAILED = "failed"


class ImpliedTrinomialLattice:
    """Recombining trinomial lattice with node-dependent transition probabilities.

    Slices are appended in time order. Transition ``i`` links slice ``i`` to
    slice ``i + 1``; its probabilities are stored per node of slice ``i`` in
    the column order (down, middle, up).

    Attributes:
        spot: Spot at the root
        steps: Number of time steps
        max_time: Time of the last slice
        dx: Log-spacing between neighbouring nodes
        mass_tolerance: Relative tolerance of the state-price mass check
    """

    def __init__(self, spot: float, steps: int, max_time: float, dx: float, mass_tolerance: float = 1e-10):
        if steps <= 0:
            raise InvalidInputError(f"step count must be positive, got {steps}")
        if not dx > 0.0:
            raise InvalidInputError(f"lattice spacing must be positive, got {dx}")
        self.spot = float(spot)
        self.steps = int(steps)
        self.max_time = float(max_time)
        self.dt = self.max_time / self.steps
        self.dx = float(dx)
        self.mass_tolerance = float(mass_tolerance)
        self.state = LatticeState.EMPTY
        self.slice_index: Optional[int] = None
        self.failure: Optional[CalibrationFailure] = None
        self._implied_state_prices: List[jnp.ndarray] = []
        self._state_prices: List[jnp.ndarray] = []
        self._probabilities: List[jnp.ndarray] = []
        self._discount_factors: List[float] = []
        self._growth_factors: List[float] = []

    def __repr__(self) -> str:
        return (
            f"ImpliedTrinomialLattice(spot={self.spot}, steps={self.steps}, "
            f"max_time={self.max_time}, state={self.state.value}, slice={self.slice_index})"
        )

    @property
    def times(self) -> jnp.ndarray:
        return time_grid(self.max_time, self.steps)

    @property
    def down_factor(self) -> float:
        return math.exp(-self.dx)

    @property
    def middle_over_down(self) -> float:
        return math.exp(self.dx)

    def spots(self, i: int) -> jnp.ndarray:
        return lattice_levels(self.spot, self.dx, i)

    def implied_state_prices(self, i: int) -> jnp.ndarray:
        """State prices implied by the option prices at slice ``i``."""
        return self._implied_state_prices[i]

    def state_prices(self, i: int) -> jnp.ndarray:
        """State prices propagated through the calibrated probabilities to slice ``i``."""
        return self._state_prices[i]

    def probabilities(self, i: int) -> jnp.ndarray:
        """Transition probabilities of slice ``i``, shape ``(2i + 1, 3)``."""
        return self._probabilities[i]

    def discount_factor(self, i: int) -> float:
        """One-step discount factor of transition ``i``."""
        return self._discount_factors[i]

    def growth_factor(self, i: int) -> float:
        """One-step forward growth factor of transition ``i``."""
        return self._growth_factors[i]

    @property
    def slice_count(self) -> int:
        return len(self._state_prices)

    def _require(self, *states: LatticeState) -> None:
        if self.state not in states:
            raise RuntimeError(f"lattice is {self.state.value}, expected {' or '.join(s.value for s in states)}")

    def start(self) -> None:
        """Create slice 0: a single node at spot with state price 1."""
        self._require(LatticeState.EMPTY)
        self._implied_state_prices.append(jnp.ones(1))
        self._state_prices.append(jnp.ones(1))
        self.state = LatticeState.GROWING
        self.slice_index = 0

    def append(
        self,
        implied_state_prices: jnp.ndarray,
        probabilities: jnp.ndarray,
        discount_factor: float,
        growth_factor: float,
        target_discount: float,
    ) -> None:
        """Add slice ``i + 1`` from the transition probabilities of slice ``i``.

        Raises
        ------
        CalibrationFailure
            If a probability is invalid or the propagated state prices do not
            sum to ``target_discount``.
        """
        self._require(LatticeState.GROWING)
        i = self.slice_index
        n_nodes = 2 * i + 1
        probabilities = jnp.asarray(probabilities, dtype=jnp.float64)
        if probabilities.shape != (n_nodes, 3):
            raise InvalidInputError(f"slice {i} needs probabilities of shape ({n_nodes}, 3)")
        invalid = jnp.logical_not(jnp.all((probabilities > 0.0) & (probabilities < 1.0), axis=1))
        invalid = invalid | (jnp.abs(jnp.sum(probabilities, axis=1) - 1.0) > PROBABILITY_SUM_TOLERANCE)
        if bool(jnp.any(invalid)):
            node = int(jnp.argmax(invalid))
            raise CalibrationFailure("transition probabilities outside (0, 1)", slice_index=i, node_index=node)

        parents = self._state_prices[i]
        propagated = jnp.zeros(n_nodes + 2)
        propagated = propagated.at[:-2].add(probabilities[:, 0] * parents)
        propagated = propagated.at[1:-1].add(probabilities[:, 1] * parents)
        propagated = propagated.at[2:].add(probabilities[:, 2] * parents)
        propagated = discount_factor * propagated

        mass = float(jnp.sum(propagated))
        error = abs(mass / target_discount - 1.0)
        if not error <= self.mass_tolerance:
            raise CalibrationFailure(
                f"state prices sum to {mass:.15g}, discount factor is {target_discount:.15g}",
                slice_index=i + 1,
            )

        self._implied_state_prices.append(jnp.asarray(implied_state_prices, dtype=jnp.float64))
        self._state_prices.append(propagated)
        self._probabilities.append(probabilities)
        self._discount_factors.append(float(discount_factor))
        self._growth_factors.append(float(growth_factor))
        self.slice_index = i + 1
        logger.debug("Slice %d built, mass error %.3e", i + 1, error)

    def fail(self, failure: CalibrationFailure) -> None:
        self.state = LatticeState.FAILED
        self.failure = failure

    def complete(self) -> None:
        self._require(LatticeState.GROWING)
        if self.slice_index != self.steps:
            raise RuntimeError(f"lattice has {self.slice_index} of {self.steps} slices")
        self.state = LatticeState.CALIBRATED

    def node_variances(self, i: int) -> jnp.ndarray:
        """One-step local variance ``sum p (S_child - F)^2 / (F^2 dt)`` at the nodes of slice ``i``."""
        p = self._probabilities[i]
        children = self.spots(i + 1)
        forward = self.spots(i) * self._growth_factors[i]
        deviations = jnp.stack([children[:-2], children[1:-1], children[2:]], axis=1) - forward[:, None]
        return jnp.sum(p * deviations * deviations, axis=1) / (forward * forward * self.dt)

    def price(self, function: OptionFunction) -> float:
        """Price ``function`` by backward induction over the calibrated probabilities.

        The option must expire at the last slice of the lattice.
        """
        self._require(LatticeState.CALIBRATED)
        if abs(function.time_to_expiry - self.max_time) > 1e-10 * max(1.0, self.max_time):
            raise InvalidInputError(
                f"option expiry {function.time_to_expiry} does not match the lattice horizon {self.max_time}"
            )
        down = self.down_factor
        middle_over_down = self.middle_over_down
        values = function.payoff_at_expiry(self.spot, down, middle_over_down, self.steps)
        for i in range(self.steps - 1, -1, -1):
            p = self._probabilities[i]
            values = function.next_option_values(
                self._discount_factors[i],
                p[:, 2],
                p[:, 1],
                p[:, 0],
                values,
                self.spot,
                down,
                middle_over_down,
                i,
            )
        return float(values[0])


@dataclass(frozen=True, eq=False)
class ImpliedTreeCalibration:
    """Result of an implied tree calibration.

    Attributes:
        surface: Fitted local volatility surface
        lattice: Calibrated lattice
        reference_volatility: Volatility that set the lattice spacing
    """

    surface: LocalVolatilitySurface
    lattice: ImpliedTrinomialLattice
    reference_volatility: float

    @property
    def diagnostics(self) -> CalibrationDiagnostics:
        return self.surface.diagnostics


def wing_probabilities(
    forward: float, low: float, mid: float, high: float, slice_index: int, node_index: int
) -> Tuple[float, float, float]:
    """Drift-only (down, middle, up) probabilities matching the forward.

    Raises
    ------
    CalibrationFailure
        If the forward is not strictly between the lowest and highest child.
    """
    if low < forward <= mid:
        up = 0.5 * (forward - low) / (high - low)
        down = 0.5 * ((high - forward) / (high - low) + (mid - forward) / (mid - low))
    elif mid < forward < high:
        up = 0.5 * ((forward - mid) / (high - mid) + (forward - low) / (high - low))
        down = 0.5 * (high - forward) / (high - low)
    else:
        raise CalibrationFailure(
            f"forward {forward:.6g} outside the children range ({low:.6g}, {high:.6g})",
            slice_index=slice_index,
            node_index=node_index,
        )
    return down, 1.0 - up - down, up


def _is_probability(p: Sequence[float]) -> bool:
    return all(math.isfinite(x) and 0.0 < x < 1.0 for x in p)


def transition_probabilities(
    spots: Sequence[float],
    children: Sequence[float],
    implied: Sequence[float],
    implied_next: Sequence[float],
    discount_factor: float,
    growth_factor: float,
    slice_index: int,
    recorder: DiagnosticsRecorder,
) -> jnp.ndarray:
    """Solve the transition probabilities of one slice, from the top node down."""
    n_nodes = len(spots)
    probabilities: List[Tuple[float, float, float]] = [(0.0, 0.0, 0.0)] * n_nodes
    for j in range(n_nodes - 1, -1, -1):
        low, mid, high = children[j], children[j + 1], children[j + 2]
        forward = spots[j] * growth_factor
        target = implied_next[j + 2] / discount_factor
        if j + 1 < n_nodes:
            target -= probabilities[j + 1][1] * implied[j + 1]
        if j + 2 < n_nodes:
            target -= probabilities[j + 2][0] * implied[j + 2]
        matrix = jnp.array([[1.0, 1.0, 1.0], [low, mid, high], [0.0, 0.0, implied[j]]])
        solution = jnp.linalg.solve(matrix, jnp.array([1.0, forward, target]))
        p = tuple(float(x) for x in solution)

        state_ok = math.isfinite(implied[j]) and implied[j] > 0.0
        if not state_ok:
            recorder.warn(
                WarningKind.NEGATIVE_STATE_PRICE,
                f"non-positive implied state price {implied[j]:.3e} at slice {slice_index}, node {j}",
                slice_index=slice_index,
                node_index=j,
            )
        if not (state_ok and _is_probability(p)):
            p = wing_probabilities(forward, low, mid, high, slice_index, j)
            recorder.warn(
                WarningKind.WING_FALLBACK,
                f"drift-only probabilities used at slice {slice_index}, node {j}",
                slice_index=slice_index,
                node_index=j,
            )
        probabilities[j] = p
    return jnp.asarray(probabilities, dtype=jnp.float64)


def state_prices_from_options(
    strikes: Sequence[float],
    call: Callable[[int], float],
    put: Callable[[int], float],
    i: int,
) -> jnp.ndarray:
    """Arrow-Debreu prices of slice ``i`` from option prices struck at its nodes.

    ``call(j)`` and ``put(j)`` return the price of the option struck at
    ``strikes[j]``. Calls at nodes ``i - 1 .. 2i - 1`` give the state prices
    of nodes ``i .. 2i``; puts at nodes ``1 .. i`` those of nodes ``0 .. i - 1``.
    """
    n_nodes = 2 * i + 1
    s = [float(x) for x in strikes]
    ad = [0.0] * n_nodes
    for j in range(n_nodes - 1, i - 1, -1):
        value = call(j - 1)
        for k in range(j + 1, n_nodes):
            value -= (s[k] - s[j - 1]) * ad[k]
        ad[j] = value / (s[j] - s[j - 1])
    for j in range(0, i):
        value = put(j + 1)
        for k in range(0, j):
            value -= (s[j + 1] - s[k]) * ad[k]
        ad[j] = value / (s[j + 1] - s[j])
    return jnp.asarray(ad, dtype=jnp.float64)


def smoothed_local_volatilities(lattice: ImpliedTrinomialLattice) -> Tuple[List[float], List[float], List[float]]:
    """Local volatility samples ``(times, strikes, volatilities)`` of a calibrated lattice.

    Slice ``i`` contributes ``2i - 1`` samples at time ``(i + 1) dt`` and the
    spots of its interior nodes; the root adds one sample at ``(dt, spot)``.
    """
    n = lattice.steps
    dt = lattice.dt
    times: List[float] = []
    strikes: List[float] = []
    vols: List[float] = []
    following: Optional[List[float]] = None
    for i in range(n - 1, 0, -1):
        var = [float(v) for v in lattice.node_variances(i)]
        spots = [float(s) for s in lattice.spots(i)]
        n_nodes = 2 * i + 1
        current: List[float] = []
        for k in range(n_nodes - 2):
            if k == 0 or k == n_nodes - 3:
                smoothed = sum(var[k:k + 3]) / 3.0
            else:
                smoothed = sum(var[k - 1:k + 4]) / 5.0
            if following is None:
                vol = math.sqrt(smoothed)
            else:
                vol = math.sqrt(0.5 * (smoothed + following[k + 1] ** 2))
            current.append(vol)
            times.append(dt * (i + 1))
            strikes.append(spots[k + 1])
        vols.extend(current)
        following = current
    root = float(lattice.node_variances(0)[0])
    root_vol = math.sqrt(root) if following is None else math.sqrt(0.5 * (root + following[0] ** 2))
    times.append(dt)
    strikes.append(lattice.spot)
    vols.append(root_vol)
    if not all(math.isfinite(v) for v in vols):
        raise CalibrationFailure("local volatility is not finite")
    return times, strikes, vols


class ImpliedTrinomialTreeLocalVolatilityCalculator:
    """Local volatility calculator based on an implied trinomial tree.

    Parameters
    ----------
    settings : ImpliedTreeSettings, optional
        Steps, horizon, spacing, interpolation and mass tolerance; individual
        fields can also be passed as keywords.
    interpolator : GridInterpolator2D, optional
        Interpolation of the local volatility samples; overrides the one
        described by ``settings``.
    cache : LatticeCache, optional
        Cache of previous calibrations, owned by the caller.

    Examples
    --------
    >>> calculator = ImpliedTrinomialTreeLocalVolatilityCalculator(steps=10, max_time=1.0)
    >>> local_vol = calculator.local_volatility_from_implied_volatility(
    ...     ConstantSurface(0.15), 100.0, 0.0, 0.0)  # doctest: +SKIP
    >>> round(local_vol(0.5, 100.0), 4)  # doctest: +SKIP
    0.15
    """

    def __init__(
        self,
        settings: Optional[ImpliedTreeSettings] = None,
        interpolator: Optional[GridInterpolator2D] = None,
        cache: Optional[LatticeCache] = None,
        **overrides,
    ):
        if settings is None:
            settings = ImpliedTreeSettings(**overrides)
        elif overrides:
            settings = ImpliedTreeSettings(**{**settings.model_dump(), **overrides})
        self.settings = settings
        self.interpolator = interpolator or settings.grid_interpolator()
        self.cache = cache

    def local_volatility_from_implied_volatility(
        self,
        implied_volatility_surface: Surface,
        spot: float,
        interest_rate: RateLike,
        dividend_rate: RateLike,
    ) -> LocalVolatilitySurface:
        return self.calibrate(implied_volatility_surface, spot, interest_rate, dividend_rate).surface

    def local_volatility_from_price(
        self,
        price_surface: Surface,
        spot: float,
        interest_rate: RateLike,
        dividend_rate: RateLike,
    ) -> LocalVolatilitySurface:
        return self.calibrate_from_price(price_surface, spot, interest_rate, dividend_rate).surface

    def calibrate(
        self,
        implied_volatility_surface: Surface,
        spot: float,
        interest_rate: RateLike,
        dividend_rate: RateLike,
    ) -> ImpliedTreeCalibration:
        """Calibrate the lattice to an implied volatility surface."""
        return self._calibrate(implied_volatility_surface, spot, interest_rate, dividend_rate, IMPLIED_VOLATILITY)

    def calibrate_from_price(
        self,
        price_surface: Surface,
        spot: float,
        interest_rate: RateLike,
        dividend_rate: RateLike,
    ) -> ImpliedTreeCalibration:
        """Calibrate the lattice to a surface of call prices."""
        return self._calibrate(price_surface, spot, interest_rate, dividend_rate, PRICE)

    def _calibrate(self, surface: Surface, spot, interest_rate, dividend_rate, kind: str) -> ImpliedTreeCalibration:
        spot = check_spot(spot)
        key = None
        if self.cache is not None:
            key = CacheKey.build(surface, spot, interest_rate, dividend_rate, (self.settings, self.interpolator), kind)
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Reusing cached implied tree calibration")
                return cached

        r_curve = as_curve(interest_rate)
        q_curve = as_curve(dividend_rate)
        recorder = DiagnosticsRecorder()
        settings = self.settings
        n = settings.steps
        dt = settings.max_time / n

        reference = self._reference_volatility(surface, spot, r_curve, q_curve, kind)
        dx = settings.spacing * reference * math.sqrt(2.0 * dt)
        lattice = ImpliedTrinomialLattice(spot, n, settings.max_time, dx, settings.mass_tolerance)
        lattice.start()
        try:
            for _ in range(n):
                self._grow(lattice, surface, kind, r_curve, q_curve, recorder)
            lattice.complete()
            times, strikes, vols = smoothed_local_volatilities(lattice)
        except CalibrationFailure as failure:
            lattice.fail(failure)
            logger.error("Implied tree calibration failed: %s", failure)
            raise

        nodal = InterpolatedNodalSurface(
            jnp.asarray(times),
            jnp.asarray(strikes),
            jnp.asarray(vols),
            self.interpolator,
            name=f"local_volatility_{getattr(surface, 'name', 'surface')}",
        )
        diagnostics = recorder.snapshot()
        result = ImpliedTreeCalibration(
            LocalVolatilitySurface(nodal, diagnostics, name=nodal.name),
            lattice,
            reference,
        )
        logger.info(
            "Implied tree calibrated: %d steps to %.4g years, %d samples, %d warnings",
            n,
            settings.max_time,
            len(vols),
            diagnostics.warning_count,
        )
        if key is not None:
            self.cache.put(key, result, surface, interest_rate, dividend_rate)
        return result

    def _reference_volatility(self, surface: Surface, spot: float, r_curve, q_curve, kind: str) -> float:
        max_time = self.settings.max_time
        if kind == IMPLIED_VOLATILITY:
            vol = float(surface.value(max_time, spot))
        else:
            r = float(r_curve(max_time))
            q = float(q_curve(max_time))
            price = float(surface.value(max_time, spot))
            vol = float(bs.implied_vol(spot, spot, max_time, r, q, price))
        if not (math.isfinite(vol) and vol > 0.0):
            raise InvalidInputError(f"reference volatility must be positive, got {vol}")
        return vol

    def _grow(self, lattice: ImpliedTrinomialLattice, surface: Surface, kind: str, r_curve, q_curve, recorder) -> None:
        i = lattice.slice_index
        dt = lattice.dt
        t_now = i * dt
        t_next = (i + 1) * dt
        zero_rate = float(r_curve(t_next))
        zero_dividend = float(q_curve(t_next))
        rate = (zero_rate * t_next - float(r_curve(t_now)) * t_now) / dt
        dividend = (zero_dividend * t_next - float(q_curve(t_now)) * t_now) / dt
        discount = math.exp(-rate * dt)
        growth = math.exp((rate - dividend) * dt)

        strikes = [float(s) for s in lattice.spots(i + 1)]
        if kind == IMPLIED_VOLATILITY:
            call, put = self._tree_option_prices(surface, lattice.spot, t_next, i + 1, strikes, zero_rate, zero_dividend, recorder)
        else:
            call, put = self._surface_option_prices(surface, lattice.spot, t_next, strikes, zero_rate, zero_dividend)
        implied_next = state_prices_from_options(strikes, call, put, i + 1)

        probabilities = transition_probabilities(
            [float(s) for s in lattice.spots(i)],
            strikes,
            [float(a) for a in lattice.implied_state_prices(i)],
            [float(a) for a in implied_next],
            discount,
            growth,
            i,
            recorder,
        )
        lattice.append(implied_next, probabilities, discount, growth, math.exp(-zero_rate * t_next))

    @staticmethod
    def _tree_option_prices(
        surface: Surface,
        spot: float,
        time: float,
        steps: int,
        strikes: Sequence[float],
        zero_rate: float,
        zero_dividend: float,
        recorder: DiagnosticsRecorder,
    ):
        lattice = CoxRossRubinsteinLatticeSpecification(steps)

        def option_price(j: int, is_call: bool) -> float:
            strike = strikes[j]
            vol = float(surface.value(time, strike))
            if not (math.isfinite(vol) and vol > 0.0):
                # zero-volatility limit: discounted intrinsic value on the forward
                forward = spot * math.exp((zero_rate - zero_dividend) * time)
                intrinsic = forward - strike if is_call else strike - forward
                fallback = math.exp(-zero_rate * time) * max(intrinsic, 0.0)
                recorder.warn(
                    WarningKind.PRICE_FALLBACK,
                    f"volatility {vol:.3e} at T={time:.6g}, K={strike:.6g} is not positive, "
                    f"discounted intrinsic value {fallback:.3e} used",
                    slice_index=steps,
                    node_index=j,
                    time=time,
                    strike=strike,
                )
                return fallback
            function = EuropeanVanillaOptionFunction(strike, time, is_call)
            try:
                price = _TREE.price(lattice, function, spot, vol, zero_rate, zero_dividend)
            except CalibrationFailure as failure:
                logger.debug("Tree pricing failed at T=%.6g, K=%.6g: %s", time, strike, failure)
                price = float("nan")
            if price > 0.0:
                return price
            fallback = float(
                bs.price(spot, strike, time, zero_rate, zero_dividend, vol, "call" if is_call else "put")
            )
            recorder.warn(
                WarningKind.PRICE_FALLBACK,
                f"tree price {price:.3e} replaced by Black-Scholes {fallback:.3e} at T={time:.6g}, K={strike:.6g}",
                slice_index=steps,
                node_index=j,
                time=time,
                strike=strike,
            )
            return fallback

        return (lambda j: option_price(j, True)), (lambda j: option_price(j, False))

    @staticmethod
    def _surface_option_prices(
        surface: Surface,
        spot: float,
        time: float,
        strikes: Sequence[float],
        zero_rate: float,
        zero_dividend: float,
    ):
        def call(j: int) -> float:
            return float(surface.value(time, strikes[j]))

        def put(j: int) -> float:
            return call(j) - spot * math.exp(-zero_dividend * time) + math.exp(-zero_rate * time) * strikes[j]

        return call, put


__all__ = [
    "ImpliedTreeCalibration",
    "ImpliedTrinomialLattice",
    "ImpliedTrinomialTreeLocalVolatilityCalculator",
    "LatticeState",
    "smoothed_local_volatilities",
    "state_prices_from_options",
    "transition_probabilities",
    "wing_probabilities",
]
