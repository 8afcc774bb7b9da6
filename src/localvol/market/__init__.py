"""Market objects consumed by the calibrators: curves, surfaces and interpolation."""

from .base import Curve, ExtrapolationPolicy, RateCurve, RateLike, Surface
from .curves import FlatCurve, InterpolatedZeroCurve, as_curve
from .interpolation import (
    LINEAR_FLAT,
    NATURAL_CUBIC_LINEAR,
    TIME_SQUARE_FLAT,
    BoundInterpolator,
    CombinedInterpolator,
    Interpolator1D,
    linear_interpolation,
    time_square_interpolation,
)
from .surfaces import ConstantSurface, FunctionSurface, GridInterpolator2D, InterpolatedNodalSurface

__all__ = [
    "BoundInterpolator",
    "CombinedInterpolator",
    "ConstantSurface",
    "Curve",
    "ExtrapolationPolicy",
    "FlatCurve",
    "FunctionSurface",
    "GridInterpolator2D",
    "InterpolatedNodalSurface",
    "InterpolatedZeroCurve",
    "Interpolator1D",
    "LINEAR_FLAT",
    "NATURAL_CUBIC_LINEAR",
    "RateCurve",
    "RateLike",
    "Surface",
    "TIME_SQUARE_FLAT",
    "as_curve",
    "linear_interpolation",
    "time_square_interpolation",
]
