"""
Universe snapshot files.

One comma separated file per underlying and date, named ``YYYYMMDD.csv``:
row 0 holds the headers, row 1 the underlying and every later row one option
contract. Columns are located by header name.
"""

import os
import shutil
import logging
import tempfile
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from options_iv_repair import config
from options_iv_repair.errors import SnapshotParseError
from options_iv_repair.symbols import ContractSymbol

logger = logging.getLogger(__name__)

SID_HEADER = '#symbol_id'
TICKER_HEADER = 'symbol_value'
PRICE_HEADER = 'close'
IMPLIED_VOL_HEADER = 'implied_volatility'
DELTA_HEADER = 'delta'

# Greeks follow the implied volatility column in this order
GREEK_FIELDS = ('delta', 'gamma', 'vega', 'theta', 'rho')

UNDERLYING_ROW = 1
FIRST_CONTRACT_ROW = 2


def snapshot_date(path) -> Optional[date]:
    """Date encoded in the file name, or None if the stem is not YYYYMMDD."""
    stem = os.path.splitext(os.path.basename(path))[0]
    try:
        return datetime.strptime(stem, config.DATE_FORMAT).date()
    except ValueError:
        return None


def snapshot_path(folder, current_date: date) -> str:
    return os.path.join(folder, f"{current_date.strftime(config.DATE_FORMAT)}{config.SNAPSHOT_EXTENSION}")


@dataclass
class SnapshotLines:
    """Non-blank lines of a snapshot, kept verbatim."""
    path: str
    lines: List[str]
    newline: str = '\n'

    @classmethod
    def read(cls, path) -> 'SnapshotLines':
        with open(path, 'r', newline='') as f:
            raw = f.read()
        newline = '\r\n' if '\r\n' in raw else '\n'
        lines = [line for line in raw.splitlines() if line.strip()]
        return cls(str(path), lines, newline)

    @property
    def headers(self) -> List[str]:
        return self.lines[0].split(',') if self.lines else []

    def locate(self, names: Iterable[str]) -> Optional[Dict[str, int]]:
        """Map each header name to its index, or None if any is missing."""
        headers = self.headers
        indexes = {}
        for name in names:
            if name not in headers:
                logger.debug(f"{self.path} has no '{name}' column")
                return None
            indexes[name] = headers.index(name)
        return indexes

    def rows(self, start: int = FIRST_CONTRACT_ROW):
        """Yield (line number, fields) for every row from ``start`` on."""
        for number in range(start, len(self.lines)):
            yield number, self.lines[number].split(',')

    def parse_float(self, fields: List[str], index: int, line_number: int) -> float:
        try:
            return float(fields[index])
        except (IndexError, ValueError):
            value = fields[index] if index < len(fields) else '<missing>'
            raise SnapshotParseError(self.path, line_number, f"expected a number in column {index}, got {value!r}")

    def parse_symbol(self, fields: List[str], sid_index: int, ticker_index: int, line_number: int) -> ContractSymbol:
        try:
            return ContractSymbol.parse(fields[sid_index], fields[ticker_index])
        except (IndexError, ValueError) as e:
            raise SnapshotParseError(self.path, line_number, f"invalid security identifier: {e}")

    def write(self):
        """Replace the file with the current lines through a temporary file in the same directory."""
        atomic_write(self.path, self.newline.join(self.lines) + self.newline)


def atomic_write(path, content: str):
    folder = os.path.dirname(os.path.abspath(path))
    fd, temp_path = tempfile.mkstemp(prefix='.', suffix='.tmp', dir=folder)
    try:
        with os.fdopen(fd, 'w', newline='') as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if os.path.exists(path):
            shutil.copymode(path, temp_path)
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise
