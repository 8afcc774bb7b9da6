"""Explicit cache of implied trinomial tree calibrations.

The cache is owned by the caller and passed to
:class:`~localvol.calibration.local_vol.implied_tree.ImpliedTrinomialTreeLocalVolatilityCalculator`.
Entries are keyed by the identity of the input surface and rate curves, the
spot and the calculator settings. Inputs are never inspected for equality:
a rebuilt surface is a new key. Entries hold strong references to their
inputs so that identities stay valid while cached.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import RLock
from typing import Any, Dict, Hashable, Iterator, Optional, Tuple

logger = logging.getLogger(__name__)


def _identity(obj: Any) -> Hashable:
    if isinstance(obj, (int, float)):
        return ("value", float(obj))
    return ("id", id(obj))


@dataclass(frozen=True)
class CacheKey:
    """Key of one cached calibration."""

    surface: Hashable
    spot: float
    interest_rate: Hashable
    dividend_rate: Hashable
    settings: Hashable
    kind: str

    @classmethod
    def build(cls, surface, spot: float, interest_rate, dividend_rate, settings: Hashable, kind: str) -> "CacheKey":
        return cls(
            surface=_identity(surface),
            spot=float(spot),
            interest_rate=_identity(interest_rate),
            dividend_rate=_identity(dividend_rate),
            settings=settings,
            kind=kind,
        )


class LatticeCache:
    """Thread-safe cache of calibrations, invalidated explicitly.

    Examples
    --------
    >>> cache = LatticeCache()
    >>> calculator = ImpliedTrinomialTreeLocalVolatilityCalculator(steps=10, max_time=1.0, cache=cache)
    >>> first = calculator.calibrate(surface, 100.0, 0.0, 0.0)  # doctest: +SKIP
    >>> calculator.calibrate(surface, 100.0, 0.0, 0.0) is first  # doctest: +SKIP
    True
    >>> cache.invalidate(surface)  # doctest: +SKIP
    1
    """

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: Dict[CacheKey, Tuple[Any, Tuple[Any, ...]]] = {}
        self._lock = RLock()
        self.hits = 0
        self.misses = 0

    def get(self, key: CacheKey) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            return entry[0]

    def put(self, key: CacheKey, value: Any, *inputs: Any) -> None:
        """Store ``value``; ``inputs`` are the objects whose identities appear in ``key``."""
        with self._lock:
            if self.max_entries is not None and key not in self._entries:
                while len(self._entries) >= self.max_entries:
                    oldest = next(iter(self._entries))
                    del self._entries[oldest]
            self._entries[key] = (value, tuple(inputs))
        logger.debug("Cached calibration for %s", key)

    def invalidate(self, surface: Any = None) -> int:
        """Drop the entries built from ``surface``, or every entry when ``surface`` is None.

        Returns the number of removed entries.
        """
        with self._lock:
            if surface is None:
                removed = len(self._entries)
                self._entries.clear()
                return removed
            target = _identity(surface)
            stale = [key for key in self._entries if key.surface == target]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __iter__(self) -> Iterator[CacheKey]:
        with self._lock:
            return iter(list(self._entries))


__all__ = ["CacheKey", "LatticeCache"]
