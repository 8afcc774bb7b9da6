"""localvol: local volatility calibration on JAX."""

from __future__ import annotations

import importlib
from typing import Dict

__all__ = [
    "calibration",
    "core",
    "infrastructure",
    "local_vol",
    "market",
    "models",
]

_MODULE_ALIASES: Dict[str, str] = {
    "calibration": "localvol.calibration",
    "core": "localvol.core",
    "infrastructure": "localvol.infrastructure",
    "local_vol": "localvol.calibration.local_vol",
    "market": "localvol.market",
    "models": "localvol.models",
}


def __getattr__(name: str):
    if name in _MODULE_ALIASES:
        module = importlib.import_module(_MODULE_ALIASES[name])
        globals()[name] = module
        return module
    raise AttributeError(f"module 'localvol' has no attribute '{name}'")


def __dir__():
    return sorted(set(globals().keys()) | set(__all__))


__version__ = "0.1.0"
