"""IV rank and IV percentile of the latest ATM IV against its trailing history."""

import logging
from datetime import date
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from options_iv_repair.data.snapshot import UNDERLYING_ROW, SnapshotLines

# Set up logger
logger = logging.getLogger(__name__)

IV_RANK_HEADER = 'iv_rank'
IV_PERCENTILE_HEADER = 'iv_percentile'


class OptionAdditionalFields:
    def __init__(self):
        self.iv_rank: Optional[float] = None
        self.iv_percentile: Optional[float] = None

    def update(self, ivs: Sequence[float]):
        """ivs is ordered by date; the last value is the current ATM IV."""
        values = np.asarray(ivs, dtype=float)
        if values.size == 0:
            return
        current = values[-1]
        low, high = values.min(), values.max()
        self.iv_rank = float((current - low) / (high - low)) if high > low else None
        self.iv_percentile = float(np.count_nonzero(values < current) / values.size)

    def update_from_history(self, history: pd.Series, current_date: date) -> bool:
        """
        Update from a date indexed history, but only when current_date has its own ATM IV.

        Returns:
            False when the latest value belongs to an earlier date; the fields
            are then left unset
        """
        if history.empty or history.index[-1] != current_date:
            return False
        self.update(history.tolist())
        return True

    def as_dict(self):
        return {IV_RANK_HEADER: self.iv_rank, IV_PERCENTILE_HEADER: self.iv_percentile}


def write_additional_fields(csv_path, fields: OptionAdditionalFields):
    """
    Put the fields on the underlying row of csv_path.

    The columns are appended to the header the first time; contract rows get
    empty cells so every row keeps the same number of fields.
    """
    snapshot = SnapshotLines.read(csv_path)
    if len(snapshot.lines) <= UNDERLYING_ROW:
        logger.warning(f"Cannot write additional fields to {csv_path}: no underlying row")
        return

    headers = snapshot.headers
    values = fields.as_dict()
    new_headers = [name for name in values if name not in headers]
    if new_headers:
        snapshot.lines[0] = ','.join(headers + new_headers)
    headers = headers + new_headers

    for number in range(1, len(snapshot.lines)):
        items = snapshot.lines[number].split(',')
        items += [''] * (len(headers) - len(items))
        if number == UNDERLYING_ROW:
            for name, value in values.items():
                items[headers.index(name)] = '' if value is None else repr(value)
        snapshot.lines[number] = ','.join(items)

    snapshot.write()
    logger.info(f"Wrote {values} to {csv_path}")
