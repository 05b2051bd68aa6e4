"""
Interest rate and dividend yield providers.

The constant providers are the defaults. The Yahoo Finance providers look up
the 13-week Treasury bill yield and the trailing twelve-month dividend yield of
the underlying, and fall back to the configured constants when the lookup
fails.
"""

import logging
import threading
from datetime import date, timedelta
from typing import Callable, Dict, Optional

import pandas as pd
import yfinance as yf

from options_iv_repair import config

# Set up logger
logger = logging.getLogger(__name__)


def _naive_dates(index) -> pd.DatetimeIndex:
    index = pd.to_datetime(index)
    if index.tz is not None:
        index = index.tz_localize(None)
    return index.normalize()


class ConstantRateProvider:
    def __init__(self, rate: Optional[float] = None):
        self.rate = config.RISK_FREE_RATE if rate is None else rate

    def get_interest_rate(self, current_date: date) -> float:
        return self.rate


class ConstantDividendYieldProvider:
    def __init__(self, dividend_yield: Optional[float] = None):
        self.dividend_yield = config.DIVIDEND_YIELD if dividend_yield is None else dividend_yield

    def for_symbol(self, symbol) -> Callable[[date], float]:
        return lambda current_date: self.dividend_yield


class YahooTreasuryRateProvider:
    """Risk-free rate from the closing yield of a Treasury index (percent quoted)."""

    def __init__(self, ticker: str = None, default_rate: Optional[float] = None):
        self.ticker = ticker or config.TREASURY_TICKER
        self.default_rate = config.RISK_FREE_RATE if default_rate is None else default_rate
        self._history = None
        self._lock = threading.Lock()

    def _load_history(self) -> pd.Series:
        with self._lock:
            if self._history is None:
                try:
                    history = yf.Ticker(self.ticker).history(period="max")["Close"]
                    history.index = _naive_dates(history.index)
                    self._history = history.dropna().sort_index() / 100
                    logger.info(f"Loaded {len(self._history)} {self.ticker} yields")
                except Exception as e:
                    logger.error(f"Error getting risk-free rate history for {self.ticker}: {str(e)}")
                    self._history = pd.Series(dtype=float, index=pd.DatetimeIndex([]))
            return self._history

    def get_interest_rate(self, current_date: date) -> float:
        history = self._load_history()
        known = history.loc[:pd.Timestamp(current_date)]
        if known.empty:
            logger.warning(f"No {self.ticker} yield on or before {current_date}, using {self.default_rate:.2%}")
            return self.default_rate
        return float(known.iloc[-1])


class YahooDividendYieldProvider:
    """Trailing twelve-month dividends over the close on the requested date."""

    def __init__(self, default_yield: Optional[float] = None):
        self.default_yield = config.DIVIDEND_YIELD if default_yield is None else default_yield
        self._frames: Dict[str, pd.DataFrame] = {}
        self._lock = threading.Lock()

    def _load(self, underlying: str) -> pd.DataFrame:
        with self._lock:
            if underlying not in self._frames:
                try:
                    ticker = yf.Ticker(underlying)
                    closes = ticker.history(period="max")["Close"]
                    dividends = ticker.dividends
                    for series in (closes, dividends):
                        series.index = _naive_dates(series.index)
                    self._frames[underlying] = pd.DataFrame({'close': closes, 'dividend': dividends}).fillna({'dividend': 0.0}).sort_index()
                except Exception as e:
                    logger.error(f"Error getting dividend history for {underlying}: {str(e)}")
                    self._frames[underlying] = pd.DataFrame(columns=['close', 'dividend'], index=pd.DatetimeIndex([]), dtype=float)
            return self._frames[underlying]

    def dividend_yield(self, underlying: str, current_date: date) -> float:
        frame = self._load(underlying)
        end = pd.Timestamp(current_date)
        window = frame.loc[pd.Timestamp(current_date - timedelta(days=365)):end]
        closes = window['close'].dropna()
        if closes.empty or closes.iloc[-1] <= 0:
            return self.default_yield
        return float(window['dividend'].sum() / closes.iloc[-1])

    def for_symbol(self, symbol) -> Callable[[date], float]:
        underlying = symbol.underlying_symbol
        return lambda current_date: self.dividend_yield(underlying, current_date)


def create_providers(source: Optional[str] = None):
    """Return (rate_provider, dividend_provider) for the configured source."""
    source = (source or config.MARKET_DATA_SOURCE).lower()
    if source == 'yahoo':
        return YahooTreasuryRateProvider(), YahooDividendYieldProvider()
    if source != 'constant':
        raise ValueError(f"Unknown market data source: {source}")
    return ConstantRateProvider(), ConstantDividendYieldProvider()
