"""
Cross-sectional IV curve for one snapshot.

Implied volatilities are fitted against the standardised moneyness
ln(S / K) / sqrt(T). Strikes of every expiry share the one curve, so the fit
fills gaps using neighbouring expiries as well as neighbouring strikes.
"""

import logging
from datetime import date
from typing import Iterable, Optional

import numpy as np
from scipy.interpolate import Akima1DInterpolator, PchipInterpolator

from options_iv_repair import config
from options_iv_repair.errors import InsufficientSurfaceError
from options_iv_repair.models.greeks import time_to_maturity
from options_iv_repair.symbols import ContractSymbol

# Set up logger
logger = logging.getLogger(__name__)

CLAMP = 'clamp'
EXTRAPOLATE = 'extrapolate'


class SurfaceInterpolator:
    def __init__(self, underlying_price: float, current_date: date, symbols: Iterable[ContractSymbol],
                 ivs: Iterable[float], method: Optional[str] = None, extrapolation: Optional[str] = None):
        """
        Fit IV over moneyness.

        Args:
            underlying_price: Close of the underlying on current_date
            current_date: Snapshot date
            symbols: Contracts with a valid (positive) IV
            ivs: Their implied volatilities, aligned with symbols
            method: 'akima' (default) or 'pchip'
            extrapolation: 'clamp' holds the end values flat outside the fitted
                range, 'extrapolate' extends the end polynomials
        """
        self.underlying_price = float(underlying_price)
        self.current_date = current_date
        self.method = (method or config.SURFACE_METHOD).lower()
        self.extrapolation = (extrapolation or config.SURFACE_EXTRAPOLATION).lower()
        if self.extrapolation not in (CLAMP, EXTRAPOLATE):
            raise ValueError(f"Unknown extrapolation mode: {self.extrapolation}")

        moneyness = np.array([self.get_moneyness(s.strike, s.expiry) for s in symbols], dtype=float)
        values = np.asarray(list(ivs), dtype=float)
        if moneyness.shape != values.shape:
            raise ValueError("symbols and ivs must have the same length")

        # A call and a put on the same strike and expiry share a coordinate
        self.x, inverse = np.unique(moneyness, return_inverse=True)
        self.y = np.bincount(inverse, weights=values) / np.bincount(inverse) if len(values) else values

        if len(self.x) < 2:
            raise InsufficientSurfaceError(
                f"Need at least 2 distinct moneyness points to fit an IV curve, got {len(self.x)}")

        self._curve = self._fit()
        logger.debug(f"Fitted {self.method} IV curve on {len(self.x)} points, "
                     f"moneyness [{self.x[0]:.4f}, {self.x[-1]:.4f}]")

    def _fit(self):
        if len(self.x) == 2:
            # Akima needs more than one interval to estimate slopes
            slope = (self.y[1] - self.y[0]) / (self.x[1] - self.x[0])
            return lambda m: self.y[0] + slope * (m - self.x[0])
        if self.method == 'pchip':
            return PchipInterpolator(self.x, self.y, extrapolate=True)
        if self.method == 'akima':
            return Akima1DInterpolator(self.x, self.y)
        raise ValueError(f"Unknown interpolation method: {self.method}")

    def get_time_till_maturity(self, expiry: date) -> float:
        return time_to_maturity(expiry, self.current_date)

    def get_moneyness(self, strike: float, expiry: date) -> float:
        ttm = self.get_time_till_maturity(expiry)
        return float(np.log(self.underlying_price / float(strike)) / np.sqrt(ttm))

    def interpolate_moneyness(self, moneyness: float) -> float:
        if self.extrapolation == CLAMP:
            moneyness = min(max(moneyness, self.x[0]), self.x[-1])
        if isinstance(self._curve, Akima1DInterpolator):
            return float(self._curve(moneyness, extrapolate=True))
        return float(self._curve(moneyness))

    def get_interpolated_iv(self, strike: float, expiry: date) -> float:
        return self.interpolate_moneyness(self.get_moneyness(strike, expiry))
