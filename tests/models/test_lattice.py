"""Tests for constant-parameter trinomial lattice specifications."""

import math

import pytest

from localvol.core.errors import CalibrationFailure, InvalidInputError
from localvol.models.lattice import (
    CoxRossRubinsteinLatticeSpecification,
    KamradRitchkenLatticeSpecification,
    LatticeParameters,
)


@pytest.mark.fast
@pytest.mark.unit
@pytest.mark.parametrize("vol,drift,dt", [(0.2, 0.05, 0.01), (0.15, 0.0, 0.1), (0.4, -0.02, 0.25)])
def test_crr_matches_forward(vol, drift, dt):
    p = CoxRossRubinsteinLatticeSpecification(10).parameters(vol, drift, dt)
    total = p.up_probability + p.middle_probability + p.down_probability
    assert total == pytest.approx(1.0, abs=1e-14)
    mean = p.up_probability * p.up_factor + p.middle_probability * p.middle_factor + p.down_probability * p.down_factor
    assert mean == pytest.approx(math.exp(drift * dt), abs=1e-12)
    assert math.log(p.up_factor) == pytest.approx(vol * math.sqrt(2.0 * dt))
    assert p.up_factor * p.down_factor == pytest.approx(1.0)


@pytest.mark.fast
@pytest.mark.unit
def test_kamrad_ritchken_matches_log_moments():
    vol, drift, dt = 0.25, 0.03, 0.05
    lattice = KamradRitchkenLatticeSpecification(20)
    p = lattice.parameters(vol, drift, dt)
    dx = math.log(p.up_factor)
    assert dx == pytest.approx(math.sqrt(1.5) * vol * math.sqrt(dt))
    nu = drift - 0.5 * vol * vol
    assert (p.up_probability - p.down_probability) * dx == pytest.approx(nu * dt, abs=1e-14)
    second = (p.up_probability + p.down_probability) * dx * dx
    assert second == pytest.approx(vol * vol * dt + nu * nu * dt * dt, abs=1e-14)


@pytest.mark.fast
@pytest.mark.unit
def test_kamrad_ritchken_unit_spacing_leaves_no_middle_mass():
    """With spacing 1 the drift term pushes the middle probability below zero."""
    with pytest.raises(CalibrationFailure):
        KamradRitchkenLatticeSpecification(10, spacing=1.0).parameters(0.2, 0.0, 1e-4)
    p = KamradRitchkenLatticeSpecification(10, spacing=1.1).parameters(0.2, 0.0, 1e-4)
    assert 0.0 < p.middle_probability < 0.2


@pytest.mark.fast
@pytest.mark.unit
def test_invalid_specifications():
    with pytest.raises(InvalidInputError):
        KamradRitchkenLatticeSpecification(10, spacing=0.9)
    with pytest.raises(InvalidInputError):
        CoxRossRubinsteinLatticeSpecification(0)
    with pytest.raises(InvalidInputError):
        CoxRossRubinsteinLatticeSpecification(10).parameters(0.0, 0.0, 0.1)
    with pytest.raises(InvalidInputError):
        KamradRitchkenLatticeSpecification(10).parameters(0.2, 0.0, 0.0)


@pytest.mark.fast
@pytest.mark.unit
def test_invalid_probabilities_are_not_clamped():
    """A drift far larger than the volatility cannot be matched."""
    with pytest.raises(CalibrationFailure):
        KamradRitchkenLatticeSpecification(1).parameters(0.01, 0.5, 1.0)
    with pytest.raises(CalibrationFailure):
        CoxRossRubinsteinLatticeSpecification(1).parameters(0.01, 0.5, 1.0)


@pytest.mark.fast
@pytest.mark.unit
def test_lattice_parameters_validate():
    good = LatticeParameters(1.1, 1.0, 1.0 / 1.1, 0.25, 0.5, 0.25)
    assert good.validate() is good
    assert good.middle_over_down == pytest.approx(1.1)
    with pytest.raises(CalibrationFailure):
        LatticeParameters(1.1, 1.0, 1.0 / 1.1, 0.3, 0.5, 0.3).validate()
    with pytest.raises(CalibrationFailure):
        LatticeParameters(1.1, 1.0, 1.0 / 1.1, -0.1, 0.9, 0.2).validate()
    with pytest.raises(CalibrationFailure):
        LatticeParameters(0.9, 1.0, 1.1, 0.25, 0.5, 0.25).validate()
