from functools import partial
from typing import Literal

import jax
import jax.numpy as jnp
from jax.scipy.stats import norm

jax.config.update("jax_enable_x64", True)


@jax.jit
def _d1d2(S, K, T, r, q, sigma):
    vol = jnp.maximum(sigma, 1e-12)
    sqrtT = jnp.sqrt(jnp.maximum(T, 1e-12))
    d1 = (jnp.log(S / K) + (r - q + 0.5 * vol**2) * T) / (vol * sqrtT)
    d2 = d1 - vol * sqrtT
    return d1, d2


@partial(jax.jit, static_argnames=("kind",))
def price(S: float, K: float, T: float, r: float, q: float, sigma: float, kind: Literal["call", "put"] = "call") -> float:
    d1, d2 = _d1d2(S, K, T, r, q, sigma)
    if kind == "call":
        return jnp.exp(-q*T)*S*norm.cdf(d1) - jnp.exp(-r*T)*K*norm.cdf(d2)
    else:
        return jnp.exp(-r*T)*K*norm.cdf(-d2) - jnp.exp(-q*T)*S*norm.cdf(-d1)


@partial(jax.jit, static_argnames=("kind", "max_iter"))
def implied_vol(S, K, T, r, q, price_target, kind="call", tol=1e-12, max_iter=200):
    """Calculate implied volatility using bisection method with JAX while_loop."""

    def cond_fn(state):
        lo, hi, i = state
        mid = 0.5 * (lo + hi)
        p = price(S, K, T, r, q, mid, kind)
        converged = jnp.abs(p - price_target) < tol
        return jnp.logical_and(jnp.logical_not(converged), i < max_iter)

    def body_fn(state):
        lo, hi, i = state
        mid = 0.5 * (lo + hi)
        p = price(S, K, T, r, q, mid, kind)
        # Update bounds based on price comparison
        lo_new = jnp.where(p > price_target, lo, mid)
        hi_new = jnp.where(p > price_target, mid, hi)
        return (lo_new, hi_new, i + 1)

    init_state = (jnp.array(1e-6), jnp.array(5.0), jnp.array(0))
    lo_final, hi_final, _ = jax.lax.while_loop(cond_fn, body_fn, init_state)
    return 0.5 * (lo_final + hi_final)


__all__ = ["implied_vol", "price"]
