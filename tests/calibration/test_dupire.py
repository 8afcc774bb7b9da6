"""Tests for the Dupire local volatility calculator."""

import math

import jax.numpy as jnp
import pytest

from localvol.calibration.local_vol import (
    DupireLocalVolatilityCalculator,
    LocalVolatilityCalculator,
)
from localvol.core.config import DupireSettings
from localvol.core.errors import CalibrationFailure, InvalidInputError, NumericalWarning, WarningKind
from localvol.market import ConstantSurface, FunctionSurface, InterpolatedNodalSurface
from localvol.models.bs import price as bs_price

SPOT = 100.0


def _skew(t, k):
    return 0.2 + 0.1 * jnp.log(k / SPOT) ** 2 - 0.02 * jnp.log(k / SPOT) + 0.01 * t


@pytest.mark.fast
@pytest.mark.unit
def test_calculator_protocol():
    assert isinstance(DupireLocalVolatilityCalculator(), LocalVolatilityCalculator)


@pytest.mark.fast
@pytest.mark.unit
@pytest.mark.parametrize("method", ["finite_difference", "autodiff"])
def test_flat_surface_gives_flat_local_volatility(method):
    calculator = DupireLocalVolatilityCalculator(derivative_method=method)
    local_vol = calculator.local_volatility_from_implied_volatility(ConstantSurface(0.15), SPOT, 0.02, 0.01)
    for t in (0.1, 0.5, 1.0, 3.0):
        for k in (60.0, 90.0, 100.0, 140.0):
            point = local_vol.evaluate(t, k)
            assert point.volatility == pytest.approx(0.15, abs=1e-3)
            assert point.warning is None


@pytest.mark.fast
@pytest.mark.unit
def test_finite_difference_agrees_with_autodiff():
    surface = FunctionSurface(_skew)
    fd = DupireLocalVolatilityCalculator().local_volatility_from_implied_volatility(surface, SPOT, 0.03, 0.01)
    ad = DupireLocalVolatilityCalculator(derivative_method="autodiff").local_volatility_from_implied_volatility(
        surface, SPOT, 0.03, 0.01
    )
    for t in (0.25, 1.0, 2.0):
        for k in (80.0, 100.0, 125.0):
            assert fd(t, k) == pytest.approx(ad(t, k), abs=1e-6)


@pytest.mark.fast
@pytest.mark.unit
def test_settings_object_and_overrides():
    calculator = DupireLocalVolatilityCalculator(DupireSettings(relative_bump=1e-5), variance_floor=1e-6)
    assert calculator.settings.relative_bump == pytest.approx(1e-5)
    assert calculator.settings.variance_floor == pytest.approx(1e-6)


@pytest.mark.fast
@pytest.mark.unit
@pytest.mark.parametrize("time", [0.1, 0.05, 0.01])
def test_negative_denominator_is_a_point_failure(time):
    """With zero rates sigma = ln(S/K) makes the denominator -(sigma T / 2)^2."""
    surface = FunctionSurface(lambda t, k: jnp.log(SPOT / k))
    local_vol = DupireLocalVolatilityCalculator().local_volatility_from_implied_volatility(surface, SPOT, 0.0, 0.0)
    with pytest.raises(CalibrationFailure) as excinfo:
        local_vol(time, 80.0)
    assert excinfo.value.time == pytest.approx(time)
    assert excinfo.value.strike == pytest.approx(80.0)


@pytest.mark.fast
@pytest.mark.unit
def test_negative_variance_is_floored_with_warning():
    surface = FunctionSurface(lambda t, k: 0.3 * jnp.exp(-2.0 * t) + 0.0 * k)
    local_vol = DupireLocalVolatilityCalculator().local_volatility_from_implied_volatility(surface, SPOT, 0.0, 0.0)
    with pytest.warns(NumericalWarning):
        point = local_vol.evaluate(0.5, SPOT)
    assert point.floored
    assert point.variance < 0.0
    assert point.volatility == pytest.approx(math.sqrt(1e-8))
    assert point.warning.kind is WarningKind.VARIANCE_FLOORED
    assert point.warning.time == pytest.approx(0.5)
    assert point.warning.strike == pytest.approx(SPOT)

    # negative only for T > 0.25
    assert not local_vol.evaluate(0.1, SPOT).floored


@pytest.mark.fast
@pytest.mark.unit
def test_zero_strike_limit():
    surface = FunctionSurface(lambda t, k: 0.2 + 0.05 * t + 0.0 * k)
    local_vol = DupireLocalVolatilityCalculator().local_volatility_from_implied_volatility(surface, SPOT, 0.01, 0.0)
    t = 1.0
    vol = 0.25
    expected = math.sqrt(vol * vol + 2.0 * vol * t * 0.05)
    assert local_vol(t, 0.0) == pytest.approx(expected, abs=1e-8)


@pytest.mark.fast
@pytest.mark.unit
def test_invalid_points():
    local_vol = DupireLocalVolatilityCalculator().local_volatility_from_implied_volatility(
        ConstantSurface(0.2), SPOT, 0.0, 0.0
    )
    with pytest.raises(InvalidInputError):
        local_vol(-0.5, 100.0)
    with pytest.raises(InvalidInputError):
        local_vol(1.0, -10.0)
    with pytest.raises(InvalidInputError):
        DupireLocalVolatilityCalculator().local_volatility_from_implied_volatility(
            ConstantSurface(0.2), 0.0, 0.0, 0.0
        )


@pytest.mark.fast
@pytest.mark.unit
def test_time_derivative_is_one_sided_at_zero():
    surface = FunctionSurface(lambda t, k: 0.2 + 0.1 * t + 0.0 * k)
    local_vol = DupireLocalVolatilityCalculator().local_volatility_from_implied_volatility(surface, SPOT, 0.0, 0.0)
    assert local_vol(0.0, SPOT) == pytest.approx(0.2, abs=1e-8)


@pytest.mark.unit
@pytest.mark.parametrize("method", ["finite_difference", "autodiff"])
def test_price_surface_recovers_black_scholes_volatility(method):
    r, q, sigma = 0.03, 0.01, 0.2
    surface = FunctionSurface(lambda t, k: bs_price(SPOT, k, t, r, q, sigma))
    local_vol = DupireLocalVolatilityCalculator(derivative_method=method).local_volatility_from_price(
        surface, SPOT, r, q
    )
    for t in (0.5, 1.0):
        for k in (90.0, 100.0, 110.0):
            assert local_vol(t, k) == pytest.approx(sigma, abs=1e-3)


@pytest.mark.fast
@pytest.mark.unit
def test_price_surface_without_convexity_fails():
    surface = FunctionSurface(lambda t, k: 10.0 - 0.001 * (k - SPOT) ** 2 + 0.0 * t)
    local_vol = DupireLocalVolatilityCalculator().local_volatility_from_price(surface, SPOT, 0.0, 0.0)
    with pytest.raises(CalibrationFailure):
        local_vol(1.0, 90.0)


@pytest.mark.fast
@pytest.mark.unit
def test_rate_curves_are_accepted(usd_curve, eur_curve):
    local_vol = DupireLocalVolatilityCalculator().local_volatility_from_implied_volatility(
        ConstantSurface(0.2), SPOT, usd_curve, eur_curve
    )
    assert local_vol(1.5, 95.0) == pytest.approx(0.2, abs=1e-8)


@pytest.mark.fast
@pytest.mark.unit
def test_materialize_skips_failed_points():
    """sigma = 0.05 + ln(S/K) breaks the denominator at (T=2, K=80) only."""
    surface = FunctionSurface(lambda t, k: 0.05 + jnp.log(SPOT / k) + 0.0 * t)
    local_vol = DupireLocalVolatilityCalculator().local_volatility_from_implied_volatility(surface, SPOT, 0.0, 0.0)

    materialized = local_vol.materialize([0.5, 2.0], [80.0, 90.0, 100.0])
    assert materialized.parameter_count == 5
    assert materialized.diagnostics.failure_count == 1
    failure = materialized.diagnostics.failures[0]
    assert failure.time == pytest.approx(2.0)
    assert failure.strike == pytest.approx(80.0)
    assert materialized(0.5, 100.0) == pytest.approx(local_vol(0.5, 100.0), abs=1e-12)

    with pytest.raises(CalibrationFailure):
        local_vol.materialize([0.5, 2.0], [80.0, 90.0, 100.0], skip_failures=False)


@pytest.mark.fast
@pytest.mark.unit
def test_materialize_without_any_point_fails():
    surface = FunctionSurface(lambda t, k: jnp.log(SPOT / k))
    local_vol = DupireLocalVolatilityCalculator().local_volatility_from_implied_volatility(surface, SPOT, 0.0, 0.0)
    with pytest.raises(CalibrationFailure):
        local_vol.materialize([0.1], [80.0])


@pytest.mark.unit
def test_parameter_sensitivity_matches_node_bumps():
    nodal = InterpolatedNodalSurface.from_grid(
        [0.5, 1.0, 2.0],
        [80.0, 100.0, 120.0],
        [[0.25, 0.20, 0.18], [0.24, 0.20, 0.185], [0.23, 0.20, 0.19]],
    )
    calculator = DupireLocalVolatilityCalculator(derivative_method="autodiff")
    local_vol = calculator.local_volatility_from_implied_volatility(nodal, SPOT, 0.02, 0.0)
    sensitivity = local_vol.parameter_sensitivity(0.75, 95.0)
    assert sensitivity.shape == (9,)

    eps = 1e-6
    for i in range(nodal.parameter_count):
        up = nodal.with_z_values(nodal.z.at[i].add(eps))
        down = nodal.with_z_values(nodal.z.at[i].add(-eps))
        bumped = (
            calculator.local_volatility_from_implied_volatility(up, SPOT, 0.02, 0.0)(0.75, 95.0)
            - calculator.local_volatility_from_implied_volatility(down, SPOT, 0.02, 0.0)(0.75, 95.0)
        ) / (2.0 * eps)
        assert float(sensitivity[i]) == pytest.approx(bumped, abs=1e-5)


@pytest.mark.fast
@pytest.mark.unit
def test_parameter_sensitivity_requires_nodes():
    local_vol = DupireLocalVolatilityCalculator().local_volatility_from_implied_volatility(
        ConstantSurface(0.2), SPOT, 0.0, 0.0
    )
    with pytest.raises(InvalidInputError):
        local_vol.parameter_sensitivity(1.0, 100.0)


@pytest.mark.fast
@pytest.mark.unit
def test_repeated_queries_keep_no_state():
    surface = FunctionSurface(lambda t, k: 0.3 * jnp.exp(-2.0 * t) + 0.0 * k)
    local_vol = DupireLocalVolatilityCalculator().local_volatility_from_implied_volatility(surface, SPOT, 0.0, 0.0)
    with pytest.warns(NumericalWarning):
        first = local_vol.evaluate(0.5, SPOT)
        for _ in range(20):
            again = local_vol.evaluate(0.5, SPOT)
    assert again == first
    assert not hasattr(local_vol, "diagnostics")


@pytest.mark.fast
@pytest.mark.unit
def test_materialize_collects_floor_warnings_once_per_point():
    """0.3 exp(-2t) floors for T > 0.25 only."""
    surface = FunctionSurface(lambda t, k: 0.3 * jnp.exp(-2.0 * t) + 0.0 * k)
    local_vol = DupireLocalVolatilityCalculator().local_volatility_from_implied_volatility(surface, SPOT, 0.0, 0.0)
    with pytest.warns(NumericalWarning):
        local_vol(0.5, SPOT)
        materialized = local_vol.materialize([0.1, 0.5, 1.0], [90.0, 110.0])
        again = local_vol.materialize([0.1, 0.5, 1.0], [90.0, 110.0])
    assert materialized.diagnostics.count(WarningKind.VARIANCE_FLOORED) == 4
    assert materialized.diagnostics.failure_count == 0
    assert again.diagnostics.warning_count == 4
