"""Error taxonomy and diagnostics shared by the local volatility calculators.

Three outcomes are distinguished:

- :class:`InvalidInputError` for inputs that can never produce a result
  (non-positive spot, volatility or step count, malformed surface domain).
- :class:`CalibrationFailure` for points or lattice slices that are not
  computable (invalid probabilities, broken state-price mass, non-positive
  Dupire denominator).
- :class:`NumericalWarning` for results that are valid but numerically
  marginal (floored variance, wing probability fallback).

Warnings are emitted through :mod:`warnings` and also collected into a
:class:`CalibrationDiagnostics` record attached to every calibrated surface.
"""
from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from enum import Enum
from threading import RLock
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Raised when calculator inputs are outside their valid domain."""


class CalibrationFailure(RuntimeError):
    """Raised when a point or a lattice slice cannot be calibrated.

    Attributes
    ----------
    reason : str
        Human readable cause.
    slice_index, node_index : int | None
        Lattice coordinates of the failure, when raised by a lattice build.
    time, strike : float | None
        Surface coordinates of the failure, when raised by a pointwise
        calculation.
    """

    def __init__(
        self,
        reason: str,
        *,
        slice_index: Optional[int] = None,
        node_index: Optional[int] = None,
        time: Optional[float] = None,
        strike: Optional[float] = None,
    ) -> None:
        self.reason = reason
        self.slice_index = slice_index
        self.node_index = node_index
        self.time = time
        self.strike = strike
        super().__init__(self._format())

    def _format(self) -> str:
        location = []
        if self.slice_index is not None:
            location.append(f"slice={self.slice_index}")
        if self.node_index is not None:
            location.append(f"node={self.node_index}")
        if self.time is not None:
            location.append(f"time={self.time:.6g}")
        if self.strike is not None:
            location.append(f"strike={self.strike:.6g}")
        if not location:
            return self.reason
        return f"{self.reason} ({', '.join(location)})"


class NumericalWarning(UserWarning):
    """Non-fatal numerical event recorded during a calibration."""


class WarningKind(Enum):
    """Categories of recorded numerical warnings."""

    VARIANCE_FLOORED = "variance_floored"
    WING_FALLBACK = "wing_fallback"
    NEGATIVE_STATE_PRICE = "negative_state_price"
    PRICE_FALLBACK = "price_fallback"


@dataclass(frozen=True)
class WarningRecord:
    """Single numerical warning with its lattice or surface location."""

    kind: WarningKind
    message: str
    slice_index: Optional[int] = None
    node_index: Optional[int] = None
    time: Optional[float] = None
    strike: Optional[float] = None


@dataclass(frozen=True)
class CalibrationDiagnostics:
    """Immutable summary of the warnings and point failures of a calibration."""

    warnings: Tuple[WarningRecord, ...] = ()
    failures: Tuple[CalibrationFailure, ...] = ()

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    def count(self, kind: WarningKind) -> int:
        """Return the number of recorded warnings of ``kind``."""
        return sum(1 for record in self.warnings if record.kind is kind)

    @property
    def is_clean(self) -> bool:
        return not self.warnings and not self.failures


def emit_warning(
    kind: WarningKind,
    message: str,
    *,
    slice_index: Optional[int] = None,
    node_index: Optional[int] = None,
    time: Optional[float] = None,
    strike: Optional[float] = None,
    stacklevel: int = 3,
) -> WarningRecord:
    """Log and emit a :class:`NumericalWarning` without storing it anywhere.

    Returns the record so that callers collecting diagnostics can keep it.
    """
    record = WarningRecord(
        kind=kind,
        message=message,
        slice_index=slice_index,
        node_index=node_index,
        time=time,
        strike=strike,
    )
    logger.warning("[%s] %s", kind.value, message)
    warnings.warn(message, NumericalWarning, stacklevel=stacklevel)
    return record


@dataclass
class DiagnosticsRecorder:
    """Mutable collector used while a calibration is running.

    A recorder belongs to one calibration or one ``materialize`` call; appends
    are guarded by a lock.
    """

    _warnings: List[WarningRecord] = field(default_factory=list)
    _failures: List[CalibrationFailure] = field(default_factory=list)
    _lock: RLock = field(default_factory=RLock, repr=False)

    def warn(
        self,
        kind: WarningKind,
        message: str,
        *,
        slice_index: Optional[int] = None,
        node_index: Optional[int] = None,
        time: Optional[float] = None,
        strike: Optional[float] = None,
        stacklevel: int = 3,
    ) -> WarningRecord:
        record = emit_warning(
            kind,
            message,
            slice_index=slice_index,
            node_index=node_index,
            time=time,
            strike=strike,
            stacklevel=stacklevel + 1,
        )
        self.record(record)
        return record

    def record(self, record: WarningRecord) -> None:
        with self._lock:
            self._warnings.append(record)

    def fail(self, failure: CalibrationFailure) -> None:
        with self._lock:
            self._failures.append(failure)
        logger.debug("Recorded calibration failure: %s", failure)

    def snapshot(self) -> CalibrationDiagnostics:
        with self._lock:
            return CalibrationDiagnostics(
                warnings=tuple(self._warnings),
                failures=tuple(self._failures),
            )


__all__ = [
    "CalibrationDiagnostics",
    "CalibrationFailure",
    "DiagnosticsRecorder",
    "InvalidInputError",
    "NumericalWarning",
    "WarningKind",
    "WarningRecord",
    "emit_warning",
]
