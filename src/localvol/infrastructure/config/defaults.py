"""Configuration utilities for localvol."""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Any, Mapping, MutableMapping

from ml_collections import ConfigDict

from localvol.core.config.schemas import CalibrationConfig

__all__ = [
    "ConfigDict",
    "calibration_config",
    "get_config",
    "get_default_config",
    "init_environment",
]


def get_default_config() -> ConfigDict:
    """Return the canonical configuration for the localvol stack."""
    cfg = ConfigDict()

    cfg.logging = ConfigDict()
    cfg.logging.level = "INFO"
    cfg.logging.format = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    cfg.logging.datefmt = "%Y-%m-%d %H:%M:%S"
    cfg.logging.force = True

    cfg.jax = ConfigDict()
    cfg.jax.enable_x64 = True

    # Dupire transform
    cfg.dupire = ConfigDict()
    cfg.dupire.derivative_method = "finite_difference"
    cfg.dupire.relative_bump = 1e-4
    cfg.dupire.variance_floor = 1e-8
    cfg.dupire.min_denominator = 1e-10
    cfg.dupire.small_strike = 1e-10

    # Implied trinomial tree
    cfg.implied_tree = ConfigDict()
    cfg.implied_tree.steps = 20
    cfg.implied_tree.max_time = 3.0
    cfg.implied_tree.spacing = 1.0
    cfg.implied_tree.mass_tolerance = 1e-10
    cfg.implied_tree.time_interpolator = "time_square"
    cfg.implied_tree.strike_interpolator = "linear"
    cfg.implied_tree.time_extrapolation = "flat"
    cfg.implied_tree.strike_extrapolation = "flat"

    return cfg


def get_config(overrides: Mapping[str, Any] | None = None) -> ConfigDict:
    """Create a configuration, optionally applying ``overrides``."""
    cfg = get_default_config()
    if overrides:
        _deep_update(cfg, overrides)
    return cfg


def calibration_config(config: ConfigDict | None = None) -> CalibrationConfig:
    """Validate the calculator sections of ``config`` into a :class:`CalibrationConfig`."""
    cfg = get_default_config() if config is None else config
    return CalibrationConfig.model_validate(
        {
            "dupire": cfg.dupire.to_dict(),
            "implied_tree": cfg.implied_tree.to_dict(),
        }
    )


def init_environment(config: ConfigDict | Mapping[str, Any] | None = None) -> ConfigDict:
    """Configure logging and JAX precision based on ``config``."""
    if config is None:
        cfg = get_default_config()
    elif isinstance(config, ConfigDict):
        cfg = config.copy_and_resolve_references()
    else:
        cfg = ConfigDict(deepcopy(dict(config)))

    logging_cfg = cfg.get("logging", {})
    level = logging_cfg.get("level", "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=logging_cfg.get("format", None),
        datefmt=logging_cfg.get("datefmt", None),
        force=logging_cfg.get("force", False),
    )

    jax_cfg = cfg.get("jax", {})
    enable_x64 = jax_cfg.get("enable_x64")
    if enable_x64 is not None:
        from jax import config as jax_config

        jax_config.update("jax_enable_x64", bool(enable_x64))

    return cfg


def _deep_update(target: MutableMapping[str, Any], updates: Mapping[str, Any]) -> None:
    for key, value in updates.items():
        if isinstance(value, Mapping):
            if key not in target or not isinstance(target[key], (ConfigDict, MutableMapping)):
                target[key] = ConfigDict()
            _deep_update(target[key], value)
        else:
            target[key] = value
