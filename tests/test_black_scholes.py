"""
Unit tests for the Black-Scholes-Merton option pricing model.
"""
import pytest
import numpy as np
from options_iv_repair.models.black_scholes import (
    call_price, put_price, option_price, delta, gamma, theta, vega, rho,
    implied_volatility, calculate_all_greeks
)


def test_call_price():
    """Test the Black-Scholes call option price calculation."""
    price = call_price(S=100, K=100, T=1, r=0.05, sigma=0.2)
    assert price == pytest.approx(10.4506, abs=1e-3)


def test_put_price():
    """Test the Black-Scholes put option price calculation."""
    price = put_price(S=100, K=100, T=1, r=0.05, sigma=0.2)
    assert price == pytest.approx(5.5735, abs=1e-3)


def test_put_call_parity_with_dividends():
    """Test the put-call parity relationship with a continuous dividend yield."""
    S, K, T, r, sigma, q = 100, 95, 0.5, 0.03, 0.25, 0.02

    c = call_price(S, K, T, r, sigma, q)
    p = put_price(S, K, T, r, sigma, q)

    # c - p = S*exp(-q*T) - K*exp(-r*T)
    expected_difference = S * np.exp(-q * T) - K * np.exp(-r * T)
    assert abs((c - p) - expected_difference) < 1e-10


def test_option_price_dispatch():
    """Test that option_price picks the call or put formula."""
    assert option_price(100, 100, 1, 0.05, 0.2, 'call') == call_price(100, 100, 1, 0.05, 0.2)
    assert option_price(100, 100, 1, 0.05, 0.2, 'put') == put_price(100, 100, 1, 0.05, 0.2)
    with pytest.raises(ValueError):
        option_price(100, 100, 1, 0.05, 0.2, 'straddle')


def test_intrinsic_value_at_expiry():
    """Test that zero time or volatility returns intrinsic value."""
    assert call_price(110, 100, 0, 0.05, 0.2) == 10
    assert put_price(90, 100, 1, 0.05, 0) == 10
    assert call_price(90, 100, 0, 0.05, 0.2) == 0


def test_delta():
    """Test the delta calculation."""
    call_delta = delta(S=100, K=100, T=1, r=0.05, sigma=0.2, option_type="call")
    assert 0.5 < call_delta < 0.7

    put_delta = delta(S=100, K=100, T=1, r=0.05, sigma=0.2, option_type="put")
    assert -0.3 > put_delta > -0.5

    # Call and put deltas differ by exp(-qT)
    q = 0.03
    difference = delta(100, 100, 1, 0.05, 0.2, 'call', q) - delta(100, 100, 1, 0.05, 0.2, 'put', q)
    assert difference == pytest.approx(np.exp(-q))


def test_gamma():
    """Test the gamma calculation."""
    call_gamma = gamma(S=100, K=100, T=1, r=0.05, sigma=0.2, option_type="call")
    put_gamma = gamma(S=100, K=100, T=1, r=0.05, sigma=0.2, option_type="put")

    assert abs(call_gamma - put_gamma) < 1e-10
    assert call_gamma > 0


def test_theta_is_daily_and_negative():
    """Test the theta calculation is negative and quoted per calendar day."""
    call_theta = theta(S=100, K=100, T=1, r=0.05, sigma=0.2, option_type="call")
    put_theta = theta(S=100, K=100, T=1, r=0.05, sigma=0.2, option_type="put")

    assert call_theta < 0
    assert put_theta < 0
    # Annual call theta for these inputs is about -6.41
    assert call_theta == pytest.approx(-6.414 / 365, rel=1e-3)


def test_vega():
    """Test the vega calculation (per 1% volatility)."""
    v = vega(S=100, K=100, T=1, r=0.05, sigma=0.2)
    assert v == pytest.approx(0.3752, abs=1e-3)

    bumped = call_price(100, 100, 1, 0.05, 0.21) - call_price(100, 100, 1, 0.05, 0.19)
    assert v == pytest.approx(bumped / 2, rel=1e-3)


def test_rho():
    """Test the rho calculation (per 1% rate)."""
    assert rho(S=100, K=100, T=1, r=0.05, sigma=0.2, option_type="call") > 0
    assert rho(S=100, K=100, T=1, r=0.05, sigma=0.2, option_type="put") < 0
    assert rho(S=100, K=100, T=0, r=0.05, sigma=0.2, option_type="call") == 0.0


def test_implied_volatility_round_trip():
    """Test that implied volatility recovers the volatility used to price."""
    price = call_price(100, 105, 0.5, 0.04, 0.27, 0.01)
    iv = implied_volatility(price, lambda sigma: call_price(100, 105, 0.5, 0.04, sigma, 0.01))
    assert iv == pytest.approx(0.27, abs=1e-6)


def test_implied_volatility_unattainable_price():
    """Test that a price outside the model range gives NaN."""
    # A call can never be worth more than the underlying
    assert np.isnan(implied_volatility(150, lambda sigma: call_price(100, 100, 1, 0.05, sigma)))
    assert np.isnan(implied_volatility(0, lambda sigma: call_price(100, 100, 1, 0.05, sigma)))


def test_calculate_all_greeks():
    """Test that all greeks are returned together."""
    greeks = calculate_all_greeks(100, 100, 1, 0.05, 0.2, 'put', 0.01)
    assert set(greeks) == {'price', 'delta', 'gamma', 'theta', 'vega', 'rho'}
    assert greeks['price'] == put_price(100, 100, 1, 0.05, 0.2, 0.01)
    assert greeks['delta'] < 0
