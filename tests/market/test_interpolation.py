"""Tests for interpolation methods."""

import jax.numpy as jnp
import pytest

from localvol.core.errors import InvalidInputError
from localvol.market.base import ExtrapolationPolicy
from localvol.market.interpolation import (
    LINEAR_FLAT,
    NATURAL_CUBIC_LINEAR,
    TIME_SQUARE_FLAT,
    CombinedInterpolator,
    Interpolator1D,
    linear_interpolation,
    time_square_interpolation,
)

X_DATA = (0.001, 0.4, 1.0, 1.8, 2.8, 5.0)
Y_DATA = (3.0, 4.0, 3.1, 2.0, 7.0, 2.0)
TOL = 1e-12


def test_linear_interpolation_basic():
    """Test basic linear interpolation."""
    x = jnp.array([0.0, 1.0, 2.0])
    y = jnp.array([0.0, 1.0, 4.0])

    result = linear_interpolation(x, y, 0.5)
    assert jnp.isclose(result, 0.5)

    result = linear_interpolation(x, y, 1.5)
    assert jnp.isclose(result, 2.5)


def test_linear_interpolation_extrapolation():
    """Test that linear interpolation uses flat extrapolation."""
    x = jnp.array([0.0, 1.0, 2.0])
    y = jnp.array([0.0, 1.0, 4.0])

    result = linear_interpolation(x, y, -1.0)
    assert jnp.isclose(result, y[0])

    result = linear_interpolation(x, y, 3.0)
    assert jnp.isclose(result, y[-1])


@pytest.mark.fast
@pytest.mark.unit
def test_time_square_reference_values():
    """Total variance ``x * y**2`` is linear between the nodes."""
    bound = TIME_SQUARE_FLAT.bind(X_DATA, Y_DATA)
    assert bound.interpolate(0.2) == pytest.approx(3.9978064160675513, abs=TOL)
    assert bound.interpolate(1.1) == pytest.approx(2.909037641557771, abs=TOL)
    assert bound.interpolate(2.3) == pytest.approx(5.602794333886091, abs=TOL)


@pytest.mark.fast
@pytest.mark.unit
def test_time_square_reproduces_nodes():
    bound = TIME_SQUARE_FLAT.bind(X_DATA, Y_DATA)
    for x, y in zip(X_DATA, Y_DATA):
        assert bound.interpolate(x) == pytest.approx(y, abs=TOL)


@pytest.mark.fast
@pytest.mark.unit
def test_time_square_flat_extrapolation_and_sensitivity():
    bound = TIME_SQUARE_FLAT.bind(X_DATA, Y_DATA)
    assert bound.interpolate(0.0) == pytest.approx(3.0, abs=TOL)
    assert bound.interpolate(8.0) == pytest.approx(2.0, abs=TOL)

    first = bound.parameter_sensitivity(0.0)
    assert float(first[0]) == pytest.approx(1.0, abs=TOL)
    assert jnp.allclose(first[1:], 0.0, atol=TOL)

    last = bound.parameter_sensitivity(5.0)
    assert float(last[-1]) == pytest.approx(1.0, abs=TOL)
    assert jnp.allclose(last[:-1], 0.0, atol=TOL)


@pytest.mark.fast
@pytest.mark.unit
def test_time_square_sensitivity_matches_bump():
    bound = TIME_SQUARE_FLAT.bind(X_DATA, Y_DATA)
    sensitivity = bound.parameter_sensitivity(1.1)
    eps = 1e-6
    for i in range(len(Y_DATA)):
        up = list(Y_DATA)
        down = list(Y_DATA)
        up[i] += eps
        down[i] -= eps
        bumped = (
            TIME_SQUARE_FLAT.bind(X_DATA, up).interpolate(1.1) - TIME_SQUARE_FLAT.bind(X_DATA, down).interpolate(1.1)
        ) / (2.0 * eps)
        assert float(sensitivity[i]) == pytest.approx(bumped, abs=1e-6)


@pytest.mark.fast
@pytest.mark.unit
def test_time_square_function_form():
    x = jnp.array(X_DATA)
    y = jnp.array(Y_DATA)
    assert float(time_square_interpolation(x, y, 0.2)) == pytest.approx(3.9978064160675513, abs=TOL)


@pytest.mark.fast
@pytest.mark.unit
def test_linear_first_derivative():
    bound = LINEAR_FLAT.bind([0.0, 1.0, 3.0], [1.0, 3.0, 2.0])
    assert bound.first_derivative(0.5) == pytest.approx(2.0)
    assert bound.first_derivative(2.0) == pytest.approx(-0.5)
    assert bound.first_derivative(5.0) == pytest.approx(0.0)


@pytest.mark.fast
@pytest.mark.unit
def test_natural_cubic_reproduces_lines():
    """A natural spline through collinear points is the line itself."""
    bound = NATURAL_CUBIC_LINEAR.bind([0.0, 1.0, 2.0, 3.0], [1.0, 3.0, 5.0, 7.0])
    assert bound.interpolate(1.5) == pytest.approx(4.0, abs=TOL)
    assert bound.first_derivative(2.5) == pytest.approx(2.0, abs=TOL)


@pytest.mark.fast
@pytest.mark.unit
def test_natural_cubic_linear_extrapolation():
    x = [0.8, 1.4, 2.0]
    y = [0.21, 0.12, 0.06]
    bound = NATURAL_CUBIC_LINEAR.bind(x, y)
    for xi, yi in zip(x, y):
        assert bound.interpolate(xi) == pytest.approx(yi, abs=TOL)
    slope = bound.first_derivative(2.5)
    assert bound.interpolate(3.0) == pytest.approx(0.06 + slope, abs=TOL)
    assert bound.interpolate(0.3) == pytest.approx(0.21 - 0.5 * bound.first_derivative(0.5), abs=TOL)


@pytest.mark.fast
@pytest.mark.unit
def test_error_extrapolation_raises():
    scheme = CombinedInterpolator(Interpolator1D.LINEAR, ExtrapolationPolicy.ERROR, ExtrapolationPolicy.ERROR)
    bound = scheme.bind([1.0, 2.0], [1.0, 2.0])
    assert bound.interpolate(1.5) == pytest.approx(1.5)
    with pytest.raises(InvalidInputError):
        bound.interpolate(0.5)
    with pytest.raises(InvalidInputError):
        bound.interpolate(2.5)


@pytest.mark.fast
@pytest.mark.unit
def test_invalid_nodes_rejected():
    with pytest.raises(InvalidInputError):
        LINEAR_FLAT.bind([0.0, 2.0, 1.0], [1.0, 2.0, 3.0])
    with pytest.raises(InvalidInputError):
        LINEAR_FLAT.bind([0.0, 1.0], [1.0, 2.0, 3.0])
    with pytest.raises(InvalidInputError):
        TIME_SQUARE_FLAT.bind([-1.0, 1.0], [0.2, 0.2])


@pytest.mark.fast
@pytest.mark.unit
def test_single_node_is_constant():
    bound = LINEAR_FLAT.bind([1.0], [0.3])
    assert bound.interpolate(0.0) == pytest.approx(0.3)
    assert bound.interpolate(7.0) == pytest.approx(0.3)
