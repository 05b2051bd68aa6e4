"""
Pytest configuration file with fixtures for testing.
"""
import os
import sys
import shutil
import tempfile
from datetime import date

import pytest

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from options_iv_repair.symbols import SecurityIdentifier, AMERICAN

HEADER = "#symbol_id,symbol_value,open,high,low,close,volume,open_interest,implied_volatility,delta,gamma,vega,theta,rho"


def osi_ticker(root, expiry, right, strike):
    return f"{root:<6}{expiry:%y%m%d}{'C' if right == 'call' else 'P'}{int(round(strike * 1000)):08d}"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for snapshot files."""
    path = tempfile.mkdtemp()
    yield path
    shutil.rmtree(path)


@pytest.fixture
def make_contract():
    """Factory for contract rows: returns (sid, ticker, line)."""
    def _make(strike, expiry, right='call', style=AMERICAN, iv=0.2, delta=0.5, close=1.0, underlying='SPY'):
        equity = SecurityIdentifier.generate_equity(underlying)
        sid = SecurityIdentifier.generate_option(underlying, equity, expiry, strike, right, style)
        ticker = osi_ticker(underlying, expiry, right, strike)
        line = f"{sid},{ticker},{close},{close},{close},{close},10,100,{iv},{delta},0.01,0.1,-0.01,0.05"
        return str(sid), ticker, line
    return _make


@pytest.fixture
def underlying_line():
    """Factory for the underlying row of a snapshot."""
    def _make(close=100.0, underlying='SPY'):
        sid = SecurityIdentifier.generate_equity(underlying)
        return f"{sid},{underlying},{close},{close},{close},{close},1000000,,,,,,,"
    return _make


@pytest.fixture
def write_snapshot(underlying_line):
    """Write a snapshot file made of the header, the underlying row and contract lines."""
    def _write(folder, current_date: date, contract_lines, close=100.0, header=HEADER, underlying='SPY'):
        os.makedirs(folder, exist_ok=True)
        path = os.path.join(folder, f"{current_date:%Y%m%d}.csv")
        lines = [header, underlying_line(close, underlying)] + list(contract_lines)
        with open(path, 'w', newline='') as f:
            f.write('\n'.join(lines) + '\n')
        return path
    return _write
