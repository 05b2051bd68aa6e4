"""
Pricing models selected by option style.

Every model exposes ``price(iv, spot, strike, ttm, rate, dividend_yield, right)``
and ``greeks(...)`` with the same arguments. European models use the closed
form; American models read the Greeks off the forward tree.
"""

from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict

from options_iv_repair import config
from options_iv_repair.models import black_scholes
from options_iv_repair.models.binomial import forward_tree_greeks, forward_tree_price
from options_iv_repair.symbols import AMERICAN, EUROPEAN


@dataclass(frozen=True)
class PricingModel:
    style: str
    price: Callable[..., float]
    greeks: Callable[..., Dict[str, float]]


def black_theoretical_price(iv, spot, strike, ttm, rate, dividend_yield, right):
    return float(black_scholes.option_price(spot, strike, ttm, rate, iv, right, dividend_yield))


def black_greeks(iv, spot, strike, ttm, rate, dividend_yield, right):
    return black_scholes.calculate_all_greeks(spot, strike, ttm, rate, iv, right, dividend_yield)


def forward_tree_theoretical_price(iv, spot, strike, ttm, rate, dividend_yield, right, steps=None):
    return forward_tree_price(spot, strike, ttm, rate, iv, right, dividend_yield,
                              steps=steps or config.TREE_STEPS, american=True)


def forward_tree_theoretical_greeks(iv, spot, strike, ttm, rate, dividend_yield, right, steps=None):
    return forward_tree_greeks(spot, strike, ttm, rate, iv, right, dividend_yield,
                               steps=steps or config.TREE_STEPS, american=True)


EUROPEAN_MODEL = PricingModel(EUROPEAN, black_theoretical_price, black_greeks)


def american_model(steps=None):
    return PricingModel(AMERICAN, partial(forward_tree_theoretical_price, steps=steps),
                        partial(forward_tree_theoretical_greeks, steps=steps))


def model_for_style(style, tree_steps=None):
    """Forward tree for American contracts, closed form otherwise."""
    if style == AMERICAN:
        return american_model(tree_steps)
    return EUROPEAN_MODEL
