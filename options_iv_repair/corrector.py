"""
Zero-IV repair for a single universe snapshot.

Rows whose implied volatility came out as exactly zero get an IV read off the
snapshot's moneyness curve, and the Greeks next to it are recomputed from that
IV. Everything else in the file is left as it was.
"""

import logging
from datetime import date
from typing import Optional

from options_iv_repair.data.snapshot import (
    SID_HEADER, TICKER_HEADER, PRICE_HEADER, IMPLIED_VOL_HEADER, GREEK_FIELDS,
    UNDERLYING_ROW, SnapshotLines,
)
from options_iv_repair.errors import InsufficientSurfaceError, SnapshotParseError
from options_iv_repair.models.greeks import GreeksRecomputer
from options_iv_repair.surface import SurfaceInterpolator

# Set up logger
logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = (IMPLIED_VOL_HEADER, SID_HEADER, TICKER_HEADER, PRICE_HEADER)


def format_value(value) -> str:
    return repr(float(value))


class SnapshotCorrector:
    def __init__(self, current_date: date, rate_provider=None, dividend_provider=None,
                 tree_steps: Optional[int] = None, method: Optional[str] = None,
                 extrapolation: Optional[str] = None):
        self.current_date = current_date
        self.rate_provider = rate_provider
        self.dividend_provider = dividend_provider
        self.tree_steps = tree_steps
        self.method = method
        self.extrapolation = extrapolation

    def clean_iv(self, csv_path) -> int:
        """
        Fill zero implied volatilities in csv_path in place.

        Args:
            csv_path: Path of the snapshot for self.current_date

        Returns:
            Number of rows rewritten. Files without the required columns, or
            without any zero IV, are not touched.
        """
        snapshot = SnapshotLines.read(csv_path)
        columns = snapshot.locate(REQUIRED_COLUMNS)
        if columns is None or len(snapshot.lines) <= UNDERLYING_ROW:
            logger.info(f"Skipping IV cleaning for {csv_path}: required columns not found")
            return 0

        iv_index = columns[IMPLIED_VOL_HEADER]
        sid_index = columns[SID_HEADER]
        ticker_index = columns[TICKER_HEADER]

        underlying_fields = snapshot.lines[UNDERLYING_ROW].split(',')
        underlying_close = snapshot.parse_float(underlying_fields, columns[PRICE_HEADER], UNDERLYING_ROW)

        valid_symbols, valid_ivs, to_fix = [], [], []
        for number, fields in snapshot.rows():
            iv = snapshot.parse_float(fields, iv_index, number)
            if iv > 0:
                valid_symbols.append(snapshot.parse_symbol(fields, sid_index, ticker_index, number))
                valid_ivs.append(iv)
            elif iv == 0:
                to_fix.append(number)

        if not to_fix:
            logger.debug(f"No zero IV rows in {csv_path}")
            return 0

        try:
            interpolation = SurfaceInterpolator(underlying_close, self.current_date, valid_symbols, valid_ivs,
                                                method=self.method, extrapolation=self.extrapolation)
        except InsufficientSurfaceError as e:
            logger.warning(f"Leaving {len(to_fix)} zero IV rows in {csv_path} unchanged: {e}")
            return 0

        recomputer = GreeksRecomputer(underlying_close, self.current_date, self.rate_provider,
                                      self.dividend_provider, self.tree_steps)

        for number in to_fix:
            items = snapshot.lines[number].split(',')
            if len(items) <= iv_index + len(GREEK_FIELDS):
                raise SnapshotParseError(csv_path, number, "row is missing the Greek columns after implied_volatility")
            symbol = snapshot.parse_symbol(items, sid_index, ticker_index, number)
            new_iv = interpolation.get_interpolated_iv(symbol.strike, symbol.expiry)
            greeks = recomputer.get_updated_greeks(symbol, new_iv)

            items[iv_index] = format_value(new_iv)
            for offset, name in enumerate(GREEK_FIELDS, start=1):
                items[iv_index + offset] = format_value(getattr(greeks, name))
            snapshot.lines[number] = ','.join(items)

        snapshot.write()
        logger.info(f"Interpolated IV for {len(to_fix)} of {len(snapshot.lines) - 2} contracts in {csv_path}")
        return len(to_fix)
