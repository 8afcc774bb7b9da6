"""Dupire local volatility from implied volatility or call price surfaces.

For an implied volatility surface sigma(T, K), spot S and zero rates r, q the
local variance is

    h1 = [ln(S/K) + (r - q + sigma^2/2) T] / sigma,   h2 = h1 - sigma T
    var = [sigma^2 + 2 sigma T (d_T sigma + (r - q) K d_K sigma)]
          / [1 + 2 h1 K d_K sigma + K^2 (h1 h2 (d_K sigma)^2 + T sigma d_KK sigma)]

and for a call price surface C(T, K)

    var = 2 (d_T C + q C + (r - q) K d_K C) / (K^2 d_KK C).

The returned surfaces evaluate lazily: every query computes the point, so a
failure at one point does not affect the others. Queries keep no state: a
floored point emits a warning and returns it with the point. ``materialize``
samples a grid, collects the warnings and failures of its points, and
interpolates the computable ones.
"""
from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, Tuple

import jax
import jax.numpy as jnp

from ...core.config.schemas import DupireSettings
from ...core.differentiation import (
    ScalarFirstOrderDifferentiator,
    ScalarSecondOrderDifferentiator,
    autodiff_first,
    autodiff_second,
)
from ...core.errors import (
    CalibrationFailure,
    DiagnosticsRecorder,
    InvalidInputError,
    WarningKind,
    emit_warning,
)
from ...market.base import RateLike, Surface
from ...market.curves import as_curve
from ...market.surfaces import GridInterpolator2D, InterpolatedNodalSurface
from .base import LocalVolatilityPoint, LocalVolatilitySurface, check_spot

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)

IMPLIED_VOLATILITY = "implied_volatility"
PRICE = "price"


def _time_domain(u: float) -> bool:
    return u >= 0.0


def _strike_domain(k: float) -> bool:
    return k > 0.0


def implied_volatility_terms(vol, vol_t, vol_k, vol_kk, t, k, spot, r, q) -> Tuple:
    """Numerator and denominator of the Dupire formula in implied volatility."""
    rq = r - q
    h1 = (jnp.log(spot / k) + (rq + 0.5 * vol * vol) * t) / vol
    h2 = h1 - vol * t
    num = vol * vol + 2.0 * vol * t * (vol_t + k * rq * vol_k)
    den = 1.0 + 2.0 * h1 * k * vol_k + k * k * (h1 * h2 * vol_k * vol_k + t * vol * vol_kk)
    return num, den


def price_terms(price, price_t, price_k, price_kk, k, r, q) -> Tuple:
    """Numerator and denominator of the Dupire formula in call prices."""
    num = 2.0 * (price_t + q * price + (r - q) * k * price_k)
    den = k * k * price_kk
    return num, den


class DupireLocalVolatilitySurface:
    """Pointwise local volatility surface produced by :class:`DupireLocalVolatilityCalculator`.

    Parameters
    ----------
    source : Surface
        Implied volatility surface, or call price surface when ``kind`` is ``"price"``
    spot : float
        Spot price
    interest_rate, dividend_rate : RateLike
        Zero-rate curves
    settings : DupireSettings
        Differentiation and flooring settings
    kind : str
        ``"implied_volatility"`` or ``"price"``
    """

    def __init__(
        self,
        source: Surface,
        spot: float,
        interest_rate: RateLike,
        dividend_rate: RateLike,
        settings: DupireSettings,
        kind: str = IMPLIED_VOLATILITY,
    ):
        if kind not in (IMPLIED_VOLATILITY, PRICE):
            raise InvalidInputError(f"unknown surface kind {kind!r}")
        if settings.derivative_method == "autodiff" and not hasattr(source, "jax_value"):
            raise InvalidInputError("autodiff derivatives require a surface providing jax_value(t, k)")
        self.source = source
        self.spot = check_spot(spot)
        self.interest_rate = as_curve(interest_rate)
        self.dividend_rate = as_curve(dividend_rate)
        self.settings = settings
        self.kind = kind
        self._first = ScalarFirstOrderDifferentiator(settings.relative_bump)
        self._second = ScalarSecondOrderDifferentiator(settings.relative_bump)

    def _derivatives(self, t: float, k: float, need_strike: bool = True) -> Tuple[float, float, float, float]:
        if self.settings.derivative_method == "autodiff":
            f = self.source.jax_value
            value = float(self.source.value(t, k))
            d_t = autodiff_first(lambda u: f(u, k))(t)
            if not need_strike:
                return value, d_t, 0.0, 0.0
            d_k = autodiff_first(lambda s: f(t, s))(k)
            d_kk = autodiff_second(lambda s: f(t, s))(k)
            return value, d_t, d_k, d_kk

        f = self.source.value
        value = float(f(t, k))
        d_t = self._first.differentiate(lambda u: f(u, k), _time_domain)(t)
        if not need_strike:
            return value, d_t, 0.0, 0.0
        d_k = self._first.differentiate(lambda s: f(t, s), _strike_domain)(k)
        d_kk = self._second.differentiate(lambda s: f(t, s), _strike_domain)(k)
        return value, d_t, d_k, d_kk

    def _check_point(self, t: float, k: float) -> Tuple[float, float]:
        t = float(t)
        k = float(k)
        if not (math.isfinite(t) and t >= 0.0):
            raise InvalidInputError(f"time must be non-negative, got {t}")
        if not (math.isfinite(k) and k >= 0.0):
            raise InvalidInputError(f"strike must be non-negative, got {k}")
        return t, k

    def evaluate(self, t: float, k: float) -> LocalVolatilityPoint:
        """Compute the local volatility at ``(t, k)``.

        Raises
        ------
        InvalidInputError
            If ``t`` or ``k`` are negative
        CalibrationFailure
            If the Dupire denominator is not positive at this point
        """
        t, k = self._check_point(t, k)
        r = float(self.interest_rate(t))
        q = float(self.dividend_rate(t))
        if self.kind == IMPLIED_VOLATILITY:
            variance = self._implied_volatility_variance(t, k, r, q)
        else:
            variance = self._price_variance(t, k, r, q)
        if not math.isfinite(variance):
            raise CalibrationFailure("local variance is not finite", time=t, strike=k)
        if variance < 0.0:
            warning = emit_warning(
                WarningKind.VARIANCE_FLOORED,
                f"negative local variance {variance:.3e} floored to {self.settings.variance_floor:.1e} "
                f"at T={t:.6g}, K={k:.6g}",
                time=t,
                strike=k,
            )
            return LocalVolatilityPoint(math.sqrt(self.settings.variance_floor), variance, True, warning)
        return LocalVolatilityPoint(math.sqrt(variance), variance, False)

    def _implied_volatility_variance(self, t: float, k: float, r: float, q: float) -> float:
        if k < self.settings.small_strike:
            vol, vol_t, _, _ = self._derivatives(t, k, need_strike=False)
            return vol * vol + 2.0 * vol * t * vol_t
        vol, vol_t, vol_k, vol_kk = self._derivatives(t, k)
        if not vol > 0.0:
            raise InvalidInputError(f"implied volatility must be positive, got {vol} at T={t}, K={k}")
        num, den = implied_volatility_terms(vol, vol_t, vol_k, vol_kk, t, k, self.spot, r, q)
        den = float(den)
        if not den > self.settings.min_denominator:
            raise CalibrationFailure(f"non-positive Dupire denominator {den:.3e}", time=t, strike=k)
        return float(num) / den

    def _price_variance(self, t: float, k: float, r: float, q: float) -> float:
        if k < self.settings.small_strike:
            raise CalibrationFailure("local variance from prices is undefined at zero strike", time=t, strike=k)
        price, price_t, price_k, price_kk = self._derivatives(t, k)
        num, den = price_terms(price, price_t, price_k, price_kk, k, r, q)
        if not price_kk > 0.0:
            raise CalibrationFailure(f"non-positive price convexity {price_kk:.3e}", time=t, strike=k)
        return float(num) / float(den)

    def value(self, t: float, k: float) -> float:
        return self.evaluate(t, k).volatility

    def __call__(self, t: float, k: float) -> float:
        return self.value(t, k)

    def parameter_sensitivity(self, t: float, k: float) -> jnp.ndarray:
        """Sensitivity of the local volatility at ``(t, k)`` to the nodes of the source surface.

        Requires a source surface with explicit node values such as
        :class:`~localvol.market.surfaces.InterpolatedNodalSurface`.
        Floored points have zero sensitivity.
        """
        traced = getattr(self.source, "traced", None)
        if traced is None:
            raise InvalidInputError("parameter sensitivity requires a surface with node values")
        point = self.evaluate(t, k)
        nodes = self.source.z
        if point.floored:
            return jnp.zeros_like(nodes)
        t, k = float(t), float(k)
        r = float(self.interest_rate(t))
        q = float(self.dividend_rate(t))

        def local_volatility(z):
            def f(u, s):
                return traced(z, u, s)

            value = f(t, k)
            d_t = jax.grad(f, argnums=0)(t, k)
            if self.kind == IMPLIED_VOLATILITY and k < self.settings.small_strike:
                return jnp.sqrt(value * value + 2.0 * value * t * d_t)
            d_k = jax.grad(f, argnums=1)(t, k)
            d_kk = jax.grad(jax.grad(f, argnums=1), argnums=1)(t, k)
            if self.kind == IMPLIED_VOLATILITY:
                num, den = implied_volatility_terms(value, d_t, d_k, d_kk, t, k, self.spot, r, q)
            else:
                num, den = price_terms(value, d_t, d_k, d_kk, k, r, q)
            return jnp.sqrt(num / den)

        return jax.grad(local_volatility)(nodes)

    def materialize(
        self,
        times: Sequence[float],
        strikes: Sequence[float],
        skip_failures: bool = True,
        interpolator: Optional[GridInterpolator2D] = None,
    ) -> LocalVolatilitySurface:
        """Sample the surface on ``times x strikes`` and interpolate the samples.

        Points raising :class:`CalibrationFailure` are left out and recorded in
        the diagnostics when ``skip_failures`` is true; otherwise the first
        failure is raised. Floored points are kept and their warnings recorded.
        """
        xs, ys, zs = [], [], []
        recorder = DiagnosticsRecorder()
        for t in times:
            for k in strikes:
                try:
                    point = self.evaluate(t, k)
                except CalibrationFailure as failure:
                    if not skip_failures:
                        raise
                    recorder.fail(failure)
                    continue
                if point.warning is not None:
                    recorder.record(point.warning)
                xs.append(float(t))
                ys.append(float(k))
                zs.append(point.volatility)
        if not zs:
            raise CalibrationFailure("no computable point on the requested grid")
        diagnostics = recorder.snapshot()
        if diagnostics.failures:
            skipped = diagnostics.failure_count
            logger.info("Materialized Dupire surface with %d of %d points skipped", skipped, skipped + len(zs))
        surface = InterpolatedNodalSurface(
            jnp.asarray(xs),
            jnp.asarray(ys),
            jnp.asarray(zs),
            interpolator or GridInterpolator2D(),
            name="dupire_local_volatility",
        )
        return LocalVolatilitySurface(surface, diagnostics, name="dupire_local_volatility")


class DupireLocalVolatilityCalculator:
    """Local volatility by Dupire's formula.

    Parameters
    ----------
    settings : DupireSettings, optional
        Calculator settings; individual fields can also be passed as keywords.

    Examples
    --------
    >>> calculator = DupireLocalVolatilityCalculator(relative_bump=1e-5)
    >>> local_vol = calculator.local_volatility_from_implied_volatility(
    ...     ConstantSurface(0.2), 100.0, 0.01, 0.0)
    >>> round(local_vol(1.0, 100.0), 6)
    0.2
    """

    def __init__(self, settings: Optional[DupireSettings] = None, **overrides):
        if settings is None:
            settings = DupireSettings(**overrides)
        elif overrides:
            settings = DupireSettings(**{**settings.model_dump(), **overrides})
        self.settings = settings

    def local_volatility_from_implied_volatility(
        self,
        implied_volatility_surface: Surface,
        spot: float,
        interest_rate: RateLike,
        dividend_rate: RateLike,
    ) -> DupireLocalVolatilitySurface:
        return DupireLocalVolatilitySurface(
            implied_volatility_surface, spot, interest_rate, dividend_rate, self.settings, IMPLIED_VOLATILITY
        )

    def local_volatility_from_price(
        self,
        price_surface: Surface,
        spot: float,
        interest_rate: RateLike,
        dividend_rate: RateLike,
    ) -> DupireLocalVolatilitySurface:
        return DupireLocalVolatilitySurface(price_surface, spot, interest_rate, dividend_rate, self.settings, PRICE)


__all__ = [
    "DupireLocalVolatilityCalculator",
    "DupireLocalVolatilitySurface",
    "implied_volatility_terms",
    "price_terms",
]
