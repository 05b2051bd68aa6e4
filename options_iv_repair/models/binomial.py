"""
Forward binomial tree for American exercise.

The tree is centred on the forward: each step multiplies the price by
exp((r - q) dt +/- sigma sqrt(dt)), which keeps the risk-neutral probability
inside (0, 1) for any positive volatility. The last step is replaced by the
Black-Scholes value over one step, which removes the odd/even oscillation of
the plain lattice.

Delta, gamma and theta are read off the nodes at steps 1 and 2 of a single
tree. Vega and rho reprice the tree with bumped inputs.
"""

import numpy as np
from scipy.stats import norm

DEFAULT_STEPS = 200
VOL_BUMP = 0.01
RATE_BUMP = 0.001


def _option_sign(option_type):
    if option_type == 'call':
        return 1.0
    if option_type == 'put':
        return -1.0
    raise ValueError("option_type must be 'call' or 'put'")


def _node_spots(S, u, d, step):
    j = np.arange(step + 1)
    return S * u ** j * d ** (step - j)


def _one_step_black_scholes(spots, K, dt, r, q, sigma, sign):
    vol = sigma * np.sqrt(dt)
    with np.errstate(divide='ignore'):
        d1 = (np.log(spots / K) + (r - q + 0.5 * sigma ** 2) * dt) / vol
    d2 = d1 - vol
    return sign * (spots * np.exp(-q * dt) * norm.cdf(sign * d1) - K * np.exp(-r * dt) * norm.cdf(sign * d2))


def _roll_back(S, K, T, r, sigma, sign, q, steps, american, keep=0):
    """
    Backward induction on the forward tree.

    Returns:
        (layers, spacing) where layers maps every step <= keep to its node
        values and spacing is (u, d, dt)
    """
    dt = T / steps
    drift = (r - q) * dt
    vol = sigma * np.sqrt(dt)
    u = np.exp(drift + vol)
    d = np.exp(drift - vol)
    p = (np.exp(drift) - d) / (u - d)
    disc = np.exp(-r * dt)

    step = steps - 1
    spots = _node_spots(S, u, d, step)
    values = _one_step_black_scholes(spots, K, dt, r, q, sigma, sign)
    if american:
        values = np.maximum(values, sign * (spots - K))

    layers = {}
    while True:
        if step <= keep:
            layers[step] = values
        if step == 0:
            break
        step -= 1
        values = disc * (p * values[1:] + (1.0 - p) * values[:-1])
        if american:
            values = np.maximum(values, sign * (_node_spots(S, u, d, step) - K))

    return layers, (u, d, dt)


def forward_tree_price(S, K, T, r, sigma, option_type, q=0.0, steps=DEFAULT_STEPS, american=True):
    """
    Price a call or put on a forward binomial tree.

    Args:
        S: Underlying asset price
        K: Strike price
        T: Time to expiration in years
        r: Risk-free interest rate (decimal)
        sigma: Volatility (decimal)
        option_type: 'call' or 'put'
        q: Continuous dividend yield (decimal)
        steps: Number of time steps
        american: Allow early exercise at every node

    Returns:
        Option price
    """
    sign = _option_sign(option_type)
    if steps <= 0:
        raise ValueError("steps must be positive")

    if sigma <= 0 or T <= 0:
        return max(0.0, sign * (S - K))

    layers, _ = _roll_back(S, K, T, r, sigma, sign, q, steps, american)
    return float(layers[0][0])


def forward_tree_greeks(S, K, T, r, sigma, option_type, q=0.0, steps=DEFAULT_STEPS, american=True):
    """
    Price and Greeks on a forward binomial tree.

    Units follow black_scholes.calculate_all_greeks: theta per calendar day,
    vega and rho per 1% change.

    Returns:
        Dictionary with price, delta, gamma, theta, vega and rho
    """
    sign = _option_sign(option_type)
    if steps <= 0:
        raise ValueError("steps must be positive")

    if sigma <= 0 or T <= 0:
        in_the_money = sign * (S - K) > 0
        return {
            'price': max(0.0, sign * (S - K)),
            'delta': sign if in_the_money else 0.0,
            'gamma': 0.0,
            'theta': 0.0,
            'vega': 0.0,
            'rho': 0.0,
        }

    # Two layers below the root are needed for gamma
    steps = max(steps, 3)
    layers, (u, d, dt) = _roll_back(S, K, T, r, sigma, sign, q, steps, american, keep=2)
    price = float(layers[0][0])

    down, up = layers[1]
    delta = (up - down) / (S * u - S * d)

    s_dd, s_ud, s_uu = _node_spots(S, u, d, 2)
    v_dd, v_ud, v_uu = layers[2]
    delta_up = (v_uu - v_ud) / (s_uu - s_ud)
    delta_down = (v_ud - v_dd) / (s_ud - s_dd)
    gamma = (delta_up - delta_down) / (0.5 * (s_uu - s_dd))

    # The middle node sits at the forward, not at S
    shift = s_ud - S
    theta = (v_ud - price - delta * shift - 0.5 * gamma * shift ** 2) / (2 * dt) / 365.0

    def reprice(vol=sigma, rate=r):
        return float(_roll_back(S, K, T, rate, vol, sign, q, steps, american)[0][0][0])

    vol_high = sigma + VOL_BUMP
    vol_low = max(sigma - VOL_BUMP, sigma / 2)
    vega = (reprice(vol=vol_high) - reprice(vol=vol_low)) / (vol_high - vol_low) * 0.01
    rho = (reprice(rate=r + RATE_BUMP) - reprice(rate=r - RATE_BUMP)) / (2 * RATE_BUMP) * 0.01

    return {
        'price': price,
        'delta': float(delta),
        'gamma': float(gamma),
        'theta': float(theta),
        'vega': float(vega),
        'rho': float(rho),
    }
