"""
Tests for zero-IV repair of snapshot files.
"""
import os
from datetime import date

import pytest
from options_iv_repair.corrector import SnapshotCorrector
from options_iv_repair.data.market_data import ConstantDividendYieldProvider, ConstantRateProvider
from options_iv_repair.errors import SnapshotParseError
from options_iv_repair.symbols import EUROPEAN

CURRENT_DATE = date(2024, 1, 2)
EXPIRY = date(2025, 1, 1)


@pytest.fixture
def corrector():
    return SnapshotCorrector(CURRENT_DATE, ConstantRateProvider(0.05), ConstantDividendYieldProvider(0.0),
                             tree_steps=50)


def read_lines(path):
    with open(path) as f:
        return f.read().splitlines()


def read_bytes(path):
    with open(path, 'rb') as f:
        return f.read()


def test_zero_iv_row_is_repaired(temp_dir, make_contract, write_snapshot, corrector):
    """Test that a zero IV is replaced from the curve and its Greeks recomputed."""
    _, _, low = make_contract(90, EXPIRY, iv=0.30)
    _, _, high = make_contract(110, EXPIRY, iv=0.20)
    _, _, zero = make_contract(100, EXPIRY, iv=0, delta=0)
    path = write_snapshot(os.path.join(temp_dir, 'spy'), CURRENT_DATE, [low, zero, high])

    assert corrector.clean_iv(path) == 1

    lines = read_lines(path)
    fields = lines[3].split(',')
    iv, delta, gamma, vega, theta, rho = map(float, fields[8:14])
    assert 0.20 < iv < 0.30
    assert 0 < delta < 1
    assert gamma > 0
    assert vega >= 0
    assert theta <= 0
    assert rho >= 0
    # Everything before the IV column is kept
    assert fields[:8] == zero.split(',')[:8]


def test_untouched_rows_are_verbatim(temp_dir, make_contract, write_snapshot, corrector):
    _, _, low = make_contract(90, EXPIRY, iv=0.30)
    _, _, high = make_contract(110, EXPIRY, iv=0.20)
    _, _, zero = make_contract(100, EXPIRY, 'put', iv=0)
    path = write_snapshot(os.path.join(temp_dir, 'spy'), CURRENT_DATE, [low, zero, high])
    before = read_lines(path)

    corrector.clean_iv(path)

    after = read_lines(path)
    assert len(after) == len(before)
    for number in (0, 1, 2, 4):
        assert after[number] == before[number]
    assert after[3] != before[3]


def test_european_row_matches_closed_form(temp_dir, make_contract, write_snapshot, corrector):
    """Test that a European zero row at the curve's own point gets its IV back."""
    _, _, low = make_contract(90, EXPIRY, style=EUROPEAN, iv=0.30)
    _, _, high = make_contract(110, EXPIRY, style=EUROPEAN, iv=0.20)
    _, _, zero = make_contract(110, EXPIRY, 'put', style=EUROPEAN, iv=0)
    path = write_snapshot(os.path.join(temp_dir, 'spy'), CURRENT_DATE, [low, high, zero])

    corrector.clean_iv(path)

    fields = read_lines(path)[4].split(',')
    assert float(fields[8]) == pytest.approx(0.20)
    assert float(fields[9]) < 0


def test_no_zero_rows_leaves_file_untouched(temp_dir, make_contract, write_snapshot, corrector):
    _, _, low = make_contract(90, EXPIRY, iv=0.30)
    _, _, high = make_contract(110, EXPIRY, iv=0.20)
    path = write_snapshot(os.path.join(temp_dir, 'spy'), CURRENT_DATE, [low, high])
    before = read_bytes(path)

    assert corrector.clean_iv(path) == 0
    assert read_bytes(path) == before


def test_second_run_is_a_no_op(temp_dir, make_contract, write_snapshot, corrector):
    """Test that repairing an already repaired file changes nothing."""
    _, _, low = make_contract(90, EXPIRY, iv=0.30)
    _, _, high = make_contract(110, EXPIRY, iv=0.20)
    _, _, zero = make_contract(100, EXPIRY, iv=0)
    path = write_snapshot(os.path.join(temp_dir, 'spy'), CURRENT_DATE, [low, zero, high])

    corrector.clean_iv(path)
    repaired = read_bytes(path)
    assert corrector.clean_iv(path) == 0
    assert read_bytes(path) == repaired


def test_missing_iv_column_is_skipped(temp_dir, make_contract, write_snapshot, corrector):
    _, _, low = make_contract(90, EXPIRY, iv=0.30)
    header = "#symbol_id,symbol_value,open,high,low,close,volume,open_interest,iv,delta,gamma,vega,theta,rho"
    path = write_snapshot(os.path.join(temp_dir, 'spy'), CURRENT_DATE, [low], header=header)
    before = read_bytes(path)

    assert corrector.clean_iv(path) == 0
    assert read_bytes(path) == before


def test_insufficient_surface_leaves_file_untouched(temp_dir, make_contract, write_snapshot, corrector):
    _, _, only = make_contract(90, EXPIRY, iv=0.30)
    _, _, zero = make_contract(100, EXPIRY, iv=0)
    path = write_snapshot(os.path.join(temp_dir, 'spy'), CURRENT_DATE, [only, zero])
    before = read_bytes(path)

    assert corrector.clean_iv(path) == 0
    assert read_bytes(path) == before


def test_malformed_number_raises(temp_dir, make_contract, write_snapshot, corrector):
    _, _, low = make_contract(90, EXPIRY, iv='abc')
    path = write_snapshot(os.path.join(temp_dir, 'spy'), CURRENT_DATE, [low])

    with pytest.raises(SnapshotParseError) as excinfo:
        corrector.clean_iv(path)
    assert excinfo.value.line_number == 2


def test_windows_line_endings_are_kept(temp_dir, make_contract, write_snapshot, corrector):
    _, _, low = make_contract(90, EXPIRY, iv=0.30)
    _, _, high = make_contract(110, EXPIRY, iv=0.20)
    _, _, zero = make_contract(100, EXPIRY, iv=0)
    path = write_snapshot(os.path.join(temp_dir, 'spy'), CURRENT_DATE, [low, zero, high])
    with open(path, 'rb') as f:
        content = f.read().replace(b'\n', b'\r\n')
    with open(path, 'wb') as f:
        f.write(content)

    corrector.clean_iv(path)

    repaired = read_bytes(path)
    assert repaired.count(b'\r\n') == 5
    assert b'\n' not in repaired.replace(b'\r\n', b'')
    assert not [name for name in os.listdir(os.path.dirname(path)) if name.endswith('.tmp')]
