"""Runtime environment setup for localvol."""

from . import config

__all__ = ["config"]
