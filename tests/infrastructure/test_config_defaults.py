"""Tests for the ml_collections configuration layer."""

import jax.numpy as jnp
import pytest

from localvol.core.config import CalibrationConfig
from localvol.infrastructure.config import (
    ConfigDict,
    calibration_config,
    get_config,
    get_default_config,
    init_environment,
)


@pytest.mark.fast
@pytest.mark.unit
def test_default_config_matches_schema_defaults():
    cfg = get_default_config()
    assert isinstance(cfg, ConfigDict)
    assert calibration_config(cfg) == CalibrationConfig()
    assert calibration_config() == CalibrationConfig()


@pytest.mark.fast
@pytest.mark.unit
def test_overrides_are_merged():
    cfg = get_config({"implied_tree": {"steps": 10, "time_interpolator": "linear"}, "dupire": {"relative_bump": 1e-5}})
    assert cfg.implied_tree.steps == 10
    assert cfg.implied_tree.max_time == pytest.approx(3.0)
    assert cfg.dupire.derivative_method == "finite_difference"

    config = calibration_config(cfg)
    assert config.implied_tree.steps == 10
    assert config.implied_tree.time_interpolator == "linear"
    assert config.dupire.relative_bump == pytest.approx(1e-5)


@pytest.mark.fast
@pytest.mark.unit
def test_invalid_override_fails_validation():
    with pytest.raises(ValueError):
        calibration_config(get_config({"implied_tree": {"spacing": 0.5}}))


@pytest.mark.fast
@pytest.mark.unit
def test_init_environment_from_mapping():
    cfg = init_environment({"logging": {"level": "DEBUG", "force": False}, "jax": {"enable_x64": True}})
    assert isinstance(cfg, ConfigDict)
    assert cfg.logging.level == "DEBUG"
    assert jnp.zeros(1).dtype == jnp.float64
