"""Core utilities: errors, differentiation, grids and configuration schemas."""

from . import config
from .differentiation import (
    ScalarFirstOrderDifferentiator,
    ScalarSecondOrderDifferentiator,
    autodiff_first,
    autodiff_second,
)
from .errors import (
    CalibrationDiagnostics,
    CalibrationFailure,
    DiagnosticsRecorder,
    InvalidInputError,
    NumericalWarning,
    WarningKind,
    WarningRecord,
    emit_warning,
)
from .grid import lattice_levels, time_grid

__all__ = [
    "CalibrationDiagnostics",
    "CalibrationFailure",
    "DiagnosticsRecorder",
    "InvalidInputError",
    "NumericalWarning",
    "ScalarFirstOrderDifferentiator",
    "ScalarSecondOrderDifferentiator",
    "WarningKind",
    "WarningRecord",
    "autodiff_first",
    "autodiff_second",
    "config",
    "emit_warning",
    "lattice_levels",
    "time_grid",
]
