"""
Configuration

Settings for the IV repair job. Every value can be overridden through the
environment.
"""

import os
from pathlib import Path

# Base directories
BASE_DIR = Path(__file__).resolve().parent
PROJECT_DIR = BASE_DIR.parent

# Data settings
DATA_ROOT = os.environ.get('OPTIONS_DATA_ROOT', str(PROJECT_DIR / 'data' / 'option' / 'usa' / 'universes'))
SNAPSHOT_EXTENSION = '.csv'
DATE_FORMAT = '%Y%m%d'

# Logging settings
LOG_DIR = os.environ.get('LOG_DIR', str(PROJECT_DIR / 'logs'))
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

# Thread pool settings
MAX_WORKERS = min(32, int(os.environ.get('MAX_WORKERS', 0)) or (os.cpu_count() or 4) * 2)

# Market data settings
MARKET_DATA_SOURCE = os.environ.get('MARKET_DATA_SOURCE', 'constant')  # 'constant' or 'yahoo'
RISK_FREE_RATE = float(os.environ.get('RISK_FREE_RATE', 0.04))  # 4%
DIVIDEND_YIELD = float(os.environ.get('DIVIDEND_YIELD', 0.0))
TREASURY_TICKER = os.environ.get('TREASURY_TICKER', '^IRX')

# Pricing settings
TREE_STEPS = int(os.environ.get('TREE_STEPS', 200))
MIN_TTM_DAYS = 1

# Surface settings
SURFACE_METHOD = os.environ.get('SURFACE_METHOD', 'akima')  # 'akima' or 'pchip'
SURFACE_EXTRAPOLATION = os.environ.get('SURFACE_EXTRAPOLATION', 'clamp')  # 'clamp' or 'extrapolate'

# ATM IV history settings
ATM_TENOR_DAYS = 30
HISTORY_WINDOW_DAYS = 365
