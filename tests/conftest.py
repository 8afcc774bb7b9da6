"""Configure test environment for importing the project package."""
import sys
from pathlib import Path

import jax.numpy as jnp
import pytest

REPO_ROOT = Path(__file__).resolve().parent.parent
SRC = REPO_ROOT / "src"

if SRC.exists() and str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from localvol.market import (  # noqa: E402
    NATURAL_CUBIC_LINEAR,
    TIME_SQUARE_FLAT,
    ConstantSurface,
    GridInterpolator2D,
    InterpolatedNodalSurface,
    InterpolatedZeroCurve,
)

SKEW_TIMES = (0.25, 0.50, 1.00, 0.25, 0.50, 1.00, 0.25, 0.50, 1.00)
SKEW_STRIKES = (0.8, 0.8, 0.8, 1.4, 1.4, 1.4, 2.0, 2.0, 2.0)
SKEW_VOLS = (0.21, 0.19, 0.20, 0.12, 0.10, 0.10, 0.06, 0.06, 0.06)


@pytest.fixture
def flat_surface():
    return ConstantSurface(0.15, name="flat")


@pytest.fixture
def skew_surface():
    return InterpolatedNodalSurface(
        jnp.asarray(SKEW_TIMES),
        jnp.asarray(SKEW_STRIKES),
        jnp.asarray(SKEW_VOLS),
        GridInterpolator2D(TIME_SQUARE_FLAT, NATURAL_CUBIC_LINEAR),
        name="skew",
    )


@pytest.fixture
def usd_curve():
    return InterpolatedZeroCurve((0.0, 0.5, 1.0, 2.0, 5.0), (0.0100, 0.0120, 0.0120, 0.0140, 0.0140), name="USD")


@pytest.fixture
def eur_curve():
    return InterpolatedZeroCurve((0.0, 0.5, 1.0, 2.0, 5.0), (0.0150, 0.0125, 0.0150, 0.0175, 0.0150), name="EUR")
