"""
Greeks for a contract and its mirror.

``GreeksEngine`` follows the indicator pattern: it is fed price observations for
the underlying, the option and its mirror (same strike and expiry, opposite
right) and answers ``greeks()`` from the latest values. The implied volatility
is backed out of whichever leg is out of the money. ``GreeksRecomputer``
prices both legs at an interpolated IV and runs them through the engine.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

import numpy as np

from options_iv_repair import config
from options_iv_repair.data.market_data import ConstantDividendYieldProvider, ConstantRateProvider
from options_iv_repair.models.black_scholes import implied_volatility
from options_iv_repair.models.pricing import PricingModel, model_for_style
from options_iv_repair.symbols import CALL, ContractSymbol, get_mirror_option_symbol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Greeks:
    delta: float
    gamma: float
    vega: float
    theta: float
    rho: float

    def sanitized(self) -> 'Greeks':
        """Vega and rho floored at zero, theta capped at zero."""
        return Greeks(
            delta=self.delta,
            gamma=self.gamma,
            vega=max(0.0, self.vega),
            theta=min(0.0, self.theta),
            rho=max(0.0, self.rho),
        )


def time_to_maturity(expiry: date, current_date: date) -> float:
    """Year fraction, floored at the configured minimum number of days."""
    days = max((expiry - current_date).days, config.MIN_TTM_DAYS)
    return days / 365.0


class GreeksEngine:
    def __init__(self, option: ContractSymbol, mirror: ContractSymbol, model: PricingModel,
                 ttm: float, rate: float, dividend_yield: float):
        self.option = option
        self.mirror = mirror
        self.model = model
        self.ttm = ttm
        self.rate = rate
        self.dividend_yield = dividend_yield
        self.underlying_price = None
        self.option_price = None
        self.mirror_price = None

    def update(self, underlying_price=None, option_price=None, mirror_price=None):
        if underlying_price is not None:
            self.underlying_price = float(underlying_price)
        if option_price is not None:
            self.option_price = float(option_price)
        if mirror_price is not None:
            self.mirror_price = float(mirror_price)

    @property
    def is_ready(self) -> bool:
        return None not in (self.underlying_price, self.option_price, self.mirror_price)

    def _price(self, iv, right):
        return self.model.price(iv, self.underlying_price, self.option.strike, self.ttm, self.rate,
                                self.dividend_yield, right)

    def _leg_iv(self, price, right):
        return implied_volatility(price, lambda sigma: self._price(sigma, right=right))

    def implied_volatility(self) -> float:
        option_iv = self._leg_iv(self.option_price, self.option.right)
        mirror_iv = self._leg_iv(self.mirror_price, self.mirror.right)

        call_is_otm = self.option.strike >= self.underlying_price
        option_is_otm = call_is_otm == (self.option.right == CALL)
        preferred, fallback = (option_iv, mirror_iv) if option_is_otm else (mirror_iv, option_iv)
        return fallback if np.isnan(preferred) else preferred

    def greeks(self) -> Greeks:
        if not self.is_ready:
            raise ValueError(f"Greeks for {self.option} need underlying, option and mirror prices")

        iv = self.implied_volatility()
        if np.isnan(iv):
            raise ValueError(f"Could not imply volatility for {self.option} from price {self.option_price}")
        return self.greeks_at(iv)

    def greeks_at(self, iv) -> Greeks:
        values = self.model.greeks(iv, self.underlying_price, self.option.strike, self.ttm,
                                   self.rate, self.dividend_yield, self.option.right)
        return Greeks(*(float(values[name]) for name in ('delta', 'gamma', 'vega', 'theta', 'rho')))


class GreeksRecomputer:
    """Greeks consistent with an interpolated IV for a single snapshot date."""

    def __init__(self, underlying_price: float, current_date: date, rate_provider=None,
                 dividend_provider=None, tree_steps: Optional[int] = None):
        self.underlying_price = float(underlying_price)
        self.current_date = current_date
        self.rate_provider = rate_provider or ConstantRateProvider()
        self.dividend_provider = dividend_provider or ConstantDividendYieldProvider()
        self.tree_steps = tree_steps

    def engine_for(self, option: ContractSymbol, model: PricingModel) -> GreeksEngine:
        mirror = get_mirror_option_symbol(option)
        rate = self.rate_provider.get_interest_rate(self.current_date)
        dividend_yield = self.dividend_provider.for_symbol(option)(self.current_date)
        ttm = time_to_maturity(option.expiry, self.current_date)
        return GreeksEngine(option, mirror, model, ttm, rate, dividend_yield)

    def get_updated_greeks(self, option: ContractSymbol, interpolated_iv: float) -> Greeks:
        model = model_for_style(option.style, self.tree_steps)
        engine = self.engine_for(option, model)

        iv = float(interpolated_iv)
        option_price = model.price(iv, self.underlying_price, option.strike, engine.ttm,
                                   engine.rate, engine.dividend_yield, option.right)
        mirror_price = model.price(iv, self.underlying_price, engine.mirror.strike, engine.ttm,
                                   engine.rate, engine.dividend_yield, engine.mirror.right)

        engine.update(underlying_price=self.underlying_price)
        engine.update(option_price=option_price)
        engine.update(mirror_price=mirror_price)

        try:
            greeks = engine.greeks()
        except ValueError as e:
            logger.warning(f"{e}; using the interpolated IV directly")
            greeks = engine.greeks_at(iv)
        greeks = greeks.sanitized()
        logger.debug(f"Greeks for {option} at IV {iv:.6f}: {greeks}")
        return greeks
