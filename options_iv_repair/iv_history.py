"""
Trailing one-year ATM IV history of one underlying.

The history lives for as long as its owner keeps the cache object. Each call
only extracts snapshots that are not cached yet; the extraction runs on a
thread pool and the results are merged on the calling thread.
"""

import os
import glob
import logging
import concurrent.futures
from datetime import date, timedelta
from typing import Dict, List, Optional

import pandas as pd

from options_iv_repair import config
from options_iv_repair.atm_iv import UNAVAILABLE_IV, get_atm_iv
from options_iv_repair.data.snapshot import snapshot_date
from options_iv_repair.errors import NoAtmBracketError

# Set up logger
logger = logging.getLogger(__name__)


class IvHistoryCache:
    def __init__(self, folder, max_workers: Optional[int] = None, window_days: Optional[int] = None,
                 extractor=get_atm_iv):
        self.folder = folder
        self.max_workers = max_workers or config.MAX_WORKERS
        self.window_days = config.HISTORY_WINDOW_DAYS if window_days is None else window_days
        self.extractor = extractor
        self._ivs: Dict[date, float] = {}
        self._unavailable = set()

    def __len__(self):
        return len(self._ivs)

    def __contains__(self, current_date):
        return current_date in self._ivs

    def window_start(self, current_date: date) -> date:
        return current_date - timedelta(days=self.window_days)

    def pending_files(self, current_date: date) -> Dict[date, str]:
        """Snapshots inside the window that have not been looked at yet."""
        start = self.window_start(current_date)
        pending = {}
        for path in glob.glob(os.path.join(self.folder, f"*{config.SNAPSHOT_EXTENSION}")):
            file_date = snapshot_date(path)
            if file_date is None or not start <= file_date <= current_date:
                continue
            if file_date in self._ivs or file_date in self._unavailable:
                continue
            pending[file_date] = path
        return pending

    def _extract_all(self, pending: Dict[date, str]) -> Dict[date, float]:
        results = {}
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_date = {executor.submit(self.extractor, path): file_date
                              for file_date, path in pending.items()}
            for future in concurrent.futures.as_completed(future_to_date):
                file_date = future_to_date[future]
                try:
                    results[file_date] = future.result()
                except NoAtmBracketError as e:
                    logger.warning(f"No 30-day ATM IV for {file_date}: {e}")
                    results[file_date] = None
        return results

    def merge(self, results: Dict[date, Optional[float]]):
        """Add extracted values; unavailable dates are remembered but never stored as IVs."""
        for file_date, iv in results.items():
            if iv is None or iv == UNAVAILABLE_IV:
                self._unavailable.add(file_date)
            else:
                self._ivs[file_date] = float(iv)

    def get_history(self, current_date: date) -> pd.Series:
        """Extract any new snapshots, then return the dated history up to current_date."""
        pending = self.pending_files(current_date)
        if pending:
            logger.info(f"Extracting ATM IV from {len(pending)} files in {self.folder}")
            self.merge(self._extract_all(pending))
        return self.history(current_date)

    def get_ivs(self, current_date: date) -> List[float]:
        """Date ordered ATM IVs in [current_date - window, current_date]."""
        return self.get_history(current_date).tolist()

    def history(self, current_date: date) -> pd.Series:
        series = pd.Series(self._ivs, dtype=float)
        if series.empty:
            return series
        series = series.sort_index()
        start = self.window_start(current_date)
        mask = [start <= d <= current_date for d in series.index]
        return series[mask]
