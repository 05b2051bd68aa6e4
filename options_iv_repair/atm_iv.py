"""
30-day at-the-money implied volatility of one snapshot.

The two expiries bracketing the 30-day tenor are located, the contract with
delta closest to 0.5 stands in for ATM on each, and the two IVs are blended
linearly in calendar days.
"""

import logging
from datetime import timedelta

import pandas as pd

from options_iv_repair import config
from options_iv_repair.data.snapshot import (
    DELTA_HEADER, IMPLIED_VOL_HEADER, SID_HEADER, TICKER_HEADER, snapshot_date,
)
from options_iv_repair.errors import NoAtmBracketError, SnapshotParseError
from options_iv_repair.symbols import SecurityIdentifier

# Set up logger
logger = logging.getLogger(__name__)

# Returned when the file cannot provide an ATM IV; never a valid volatility
UNAVAILABLE_IV = -1.0

REQUIRED_COLUMNS = (DELTA_HEADER, IMPLIED_VOL_HEADER, SID_HEADER, TICKER_HEADER)
ATM_DELTA = 0.5


def read_contracts(csv_path) -> pd.DataFrame:
    """Contract rows of a snapshot as strings; the underlying row is dropped."""
    try:
        frame = pd.read_csv(csv_path, dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.ParserError as e:
        raise SnapshotParseError(csv_path, 0, str(e))
    return frame.iloc[1:]


def _to_float(frame, column, csv_path) -> pd.Series:
    try:
        return frame[column].astype(float)
    except ValueError as e:
        raise SnapshotParseError(csv_path, 0, f"column '{column}': {e}")


def _expiry(sid, csv_path):
    try:
        return SecurityIdentifier.parse(sid).expiry
    except ValueError as e:
        raise SnapshotParseError(csv_path, 0, f"invalid security identifier: {e}")


def atm_iv_for_expiry(contracts: pd.DataFrame, expiry) -> float:
    """IV of the first contract on expiry whose delta is nearest 0.5."""
    chain = contracts[contracts['expiry'] == expiry]
    return float(chain.loc[(chain['delta'] - ATM_DELTA).abs().idxmin(), 'iv'])


def get_atm_iv(csv_path, tenor_days: int = None) -> float:
    """
    Args:
        csv_path: Snapshot named YYYYMMDD.csv
        tenor_days: Target tenor, 30 days by default

    Returns:
        The blended ATM IV, or UNAVAILABLE_IV when the columns are missing or no
        contract has a non-zero IV

    Raises:
        NoAtmBracketError: no expiry on one side of the target tenor
        SnapshotParseError: malformed numbers or identifiers
    """
    tenor_days = config.ATM_TENOR_DAYS if tenor_days is None else tenor_days
    current_date = snapshot_date(csv_path)
    if current_date is None:
        raise ValueError(f"Cannot read a date from the file name {csv_path}")

    frame = read_contracts(csv_path)
    if any(column not in frame.columns for column in REQUIRED_COLUMNS):
        logger.debug(f"{csv_path} lacks columns for ATM IV")
        return UNAVAILABLE_IV

    contracts = pd.DataFrame({
        'delta': _to_float(frame, DELTA_HEADER, csv_path),
        'iv': _to_float(frame, IMPLIED_VOL_HEADER, csv_path),
        'sid': frame[SID_HEADER],
    })
    contracts = contracts[contracts['iv'] != 0]
    if contracts.empty:
        return UNAVAILABLE_IV

    expiries = {sid: _expiry(sid, csv_path) for sid in contracts['sid'].unique()}
    contracts = contracts.assign(expiry=contracts['sid'].map(expiries))

    target = current_date + timedelta(days=tenor_days)
    distinct = sorted(set(expiries.values()))
    near = [expiry for expiry in distinct if expiry <= target]
    far = [expiry for expiry in distinct if expiry >= target]
    if not near:
        raise NoAtmBracketError(csv_path, target, 'near')
    if not far:
        raise NoAtmBracketError(csv_path, target, 'far')
    near_expiry, far_expiry = near[-1], far[0]

    near_iv = atm_iv_for_expiry(contracts, near_expiry)
    if near_expiry == far_expiry:
        return near_iv
    far_iv = atm_iv_for_expiry(contracts, far_expiry)

    # Linear interpolation
    far_to_target = (far_expiry - target).days
    target_to_near = (target - near_expiry).days
    far_to_near = (far_expiry - near_expiry).days
    return (near_iv * far_to_target + far_iv * target_to_near) / far_to_near
