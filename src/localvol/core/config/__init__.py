"""Validated configuration schemas."""

from .schemas import (
    CalibrationConfig,
    ConfigValidationError,
    DupireSettings,
    ImpliedTreeSettings,
    collect_and_validate,
    discover_config_files,
    load_config,
)

__all__ = [
    "CalibrationConfig",
    "ConfigValidationError",
    "DupireSettings",
    "ImpliedTreeSettings",
    "collect_and_validate",
    "discover_config_files",
    "load_config",
]
