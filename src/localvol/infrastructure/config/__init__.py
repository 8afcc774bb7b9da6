"""Central configuration access for localvol."""

from __future__ import annotations

from .defaults import ConfigDict, calibration_config, get_config, get_default_config, init_environment

__all__ = ["ConfigDict", "calibration_config", "get_config", "get_default_config", "init_environment"]
