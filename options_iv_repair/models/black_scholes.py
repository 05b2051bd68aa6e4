#black scholes model with continuous dividend yield
import numpy as np
from scipy.stats import norm
from scipy.optimize import brentq
import logging

# Set up logger
logger = logging.getLogger(__name__)

def d1(S, K, T, r, sigma, q=0.0):
    """
    Compute d1 component of the Black-Scholes-Merton formula.

    Args:
        S: Underlying asset price
        K: Strike price
        T: Time to expiration in years
        r: Risk-free interest rate (decimal)
        sigma: Volatility (decimal)
        q: Continuous dividend yield (decimal)

    Returns:
        d1 component value
    """
    # Handle edge cases
    if sigma <= 0 or T <= 0:
        return np.nan
    if K <= 0 or S <= 0:
        return np.nan

    return (np.log(S / K) + (r - q + 0.5 * sigma ** 2) * T) / (sigma * np.sqrt(T))

def d2(S, K, T, r, sigma, q=0.0):
    """Compute d2 component of the Black-Scholes-Merton formula."""
    if sigma <= 0 or T <= 0:
        return np.nan
    if K <= 0 or S <= 0:
        return np.nan

    return d1(S, K, T, r, sigma, q) - sigma * np.sqrt(T)

def call_price(S, K, T, r, sigma, q=0.0):
    """
    Calculate Black-Scholes-Merton call option price.

    Returns:
        Call option price, intrinsic value when T or sigma is not positive
    """
    if sigma <= 0 or T <= 0:
        return max(0.0, S - K)
    if K <= 0:
        return S * np.exp(-q * T)
    if S <= 0:
        return 0.0

    d1_val = d1(S, K, T, r, sigma, q)
    d2_val = d2(S, K, T, r, sigma, q)
    return S * np.exp(-q * T) * norm.cdf(d1_val) - K * np.exp(-r * T) * norm.cdf(d2_val)

def put_price(S, K, T, r, sigma, q=0.0):
    """
    Calculate Black-Scholes-Merton put option price.

    Returns:
        Put option price, intrinsic value when T or sigma is not positive
    """
    if sigma <= 0 or T <= 0:
        return max(0.0, K - S)
    if K <= 0:
        return 0.0
    if S <= 0:
        return K * np.exp(-r * T)

    d1_val = d1(S, K, T, r, sigma, q)
    d2_val = d2(S, K, T, r, sigma, q)
    return K * np.exp(-r * T) * norm.cdf(-d2_val) - S * np.exp(-q * T) * norm.cdf(-d1_val)

def option_price(S, K, T, r, sigma, option_type, q=0.0):
    if option_type == 'call':
        return call_price(S, K, T, r, sigma, q)
    elif option_type == 'put':
        return put_price(S, K, T, r, sigma, q)
    else:
        raise ValueError("option_type must be 'call' or 'put'")

def delta(S, K, T, r, sigma, option_type, q=0.0):
    """Calculate option Delta."""
    if sigma <= 0 or T <= 0:
        if option_type == 'call':
            return 1.0 if S > K else 0.0
        else:
            return -1.0 if S < K else 0.0

    d1_val = d1(S, K, T, r, sigma, q)
    if option_type == 'call':
        return np.exp(-q * T) * norm.cdf(d1_val)
    elif option_type == 'put':
        return np.exp(-q * T) * (norm.cdf(d1_val) - 1)
    else:
        raise ValueError("option_type must be 'call' or 'put'")

def gamma(S, K, T, r, sigma, option_type=None, q=0.0):
    """Calculate option Gamma (same for calls and puts)."""
    if sigma <= 0 or T <= 0 or S <= 0:
        return 0.0

    d1_val = d1(S, K, T, r, sigma, q)
    return np.exp(-q * T) * norm.pdf(d1_val) / (S * sigma * np.sqrt(T))

def theta(S, K, T, r, sigma, option_type, q=0.0):
    """
    Calculate option Theta.

    Returns:
        Option theta value per calendar day
    """
    if sigma <= 0 or T <= 0:
        return 0.0

    d1_val = d1(S, K, T, r, sigma, q)
    d2_val = d2(S, K, T, r, sigma, q)
    term1 = -(S * np.exp(-q * T) * norm.pdf(d1_val) * sigma) / (2 * np.sqrt(T))

    if option_type == 'call':
        term2 = -r * K * np.exp(-r * T) * norm.cdf(d2_val)
        term3 = q * S * np.exp(-q * T) * norm.cdf(d1_val)
    elif option_type == 'put':
        term2 = r * K * np.exp(-r * T) * norm.cdf(-d2_val)
        term3 = -q * S * np.exp(-q * T) * norm.cdf(-d1_val)
    else:
        raise ValueError("option_type must be 'call' or 'put'")
    return (term1 + term2 + term3) / 365.0

def vega(S, K, T, r, sigma, option_type=None, q=0.0):
    """
    Calculate option Vega.

    Returns:
        Option vega value (for 1% change in volatility)
    """
    if T <= 0 or S <= 0:
        return 0.0

    # For very low volatility, use a minimum to avoid division by zero
    if sigma < 0.001:
        sigma = 0.001

    d1_val = d1(S, K, T, r, sigma, q)
    return S * np.exp(-q * T) * np.sqrt(T) * norm.pdf(d1_val) * 0.01

def rho(S, K, T, r, sigma, option_type, q=0.0):
    """
    Calculate option Rho.

    Returns:
        Option rho value (for 1% change in interest rate)
    """
    if T <= 0:
        return 0.0

    d2_val = d2(S, K, T, r, sigma, q)
    if np.isnan(d2_val):
        return 0.0

    if option_type == 'call':
        return K * T * np.exp(-r * T) * norm.cdf(d2_val) * 0.01
    elif option_type == 'put':
        return -K * T * np.exp(-r * T) * norm.cdf(-d2_val) * 0.01
    else:
        raise ValueError("option_type must be 'call' or 'put'")

def implied_volatility(market_price, price_function, lower=1e-4, upper=5.0, tol=1e-8, max_iter=200):
    """
    Back out the volatility that reproduces market_price.

    Args:
        market_price: Observed option price
        price_function: Callable sigma -> model price
        lower: Lowest volatility searched
        upper: Highest volatility searched

    Returns:
        Implied volatility or NaN if the price is outside the attainable range
    """
    if market_price is None or np.isnan(market_price) or market_price <= 0:
        return np.nan

    def objective(sigma):
        return price_function(sigma) - market_price

    low, high = objective(lower), objective(upper)
    if low > 0 or high < 0:
        logger.debug(f"Price {market_price} outside [{low + market_price}, {high + market_price}]")
        return np.nan
    if low == 0:
        return lower

    return brentq(objective, lower, upper, xtol=tol, maxiter=max_iter)

def calculate_all_greeks(S, K, T, r, sigma, option_type, q=0.0):
    """
    Calculate all option Greeks in a single function call.

    Returns:
        Dictionary containing all Greeks and option price
    """
    return {
        'price': option_price(S, K, T, r, sigma, option_type, q),
        'delta': delta(S, K, T, r, sigma, option_type, q),
        'gamma': gamma(S, K, T, r, sigma, option_type, q),
        'theta': theta(S, K, T, r, sigma, option_type, q),
        'vega': vega(S, K, T, r, sigma, option_type, q),
        'rho': rho(S, K, T, r, sigma, option_type, q)
    }
