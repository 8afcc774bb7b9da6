"""Calibration of local volatility surfaces."""

from . import local_vol

__all__ = ["local_vol"]
