import math

import pytest

from localvol.models.bs import implied_vol, price


@pytest.mark.fast
@pytest.mark.unit
def test_bs_call_atm():
    p = float(price(100.0, 100.0, 1.0, 0.01, 0.00, 0.2, "call"))
    assert 7.9 < p < 8.6


@pytest.mark.fast
@pytest.mark.unit
def test_bs_reference_value():
    p = float(price(100.0, 100.0, 1.0, 0.05, 0.0, 0.2, "call"))
    assert p == pytest.approx(10.450583572185565, abs=1e-9)


@pytest.mark.fast
@pytest.mark.unit
def test_put_call_parity():
    S, K, T, r, q, sigma = 100.0, 90.0, 1.5, 0.03, 0.01, 0.25
    call = float(price(S, K, T, r, q, sigma, "call"))
    put = float(price(S, K, T, r, q, sigma, "put"))
    assert call - put == pytest.approx(S * math.exp(-q * T) - K * math.exp(-r * T), abs=1e-10)


@pytest.mark.fast
@pytest.mark.unit
def test_implied_vol_recovers_input():
    target = float(price(100.0, 110.0, 0.75, 0.02, 0.0, 0.17, "call"))
    assert float(implied_vol(100.0, 110.0, 0.75, 0.02, 0.0, target)) == pytest.approx(0.17, abs=1e-8)

    target_put = float(price(100.0, 90.0, 0.75, 0.02, 0.0, 0.3, "put"))
    assert float(implied_vol(100.0, 90.0, 0.75, 0.02, 0.0, target_put, kind="put")) == pytest.approx(0.3, abs=1e-8)
