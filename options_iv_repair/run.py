#!/usr/bin/env python3
"""
IV Repair Runner

Repairs zero implied volatilities and writes IV rank/percentile for every
underlying folder under the universe root, for one date or a range of dates.
"""

import os
import sys
import argparse
import logging
from datetime import date, datetime, timedelta
from typing import Dict, Optional

from options_iv_repair import config
from options_iv_repair.additional_fields import OptionAdditionalFields, write_additional_fields
from options_iv_repair.corrector import SnapshotCorrector
from options_iv_repair.data.market_data import create_providers
from options_iv_repair.data.snapshot import snapshot_path
from options_iv_repair.errors import MissingSnapshotError
from options_iv_repair.iv_history import IvHistoryCache
from options_iv_repair.utils.logging_utils import LoggerSetup

logger = logging.getLogger(__name__)


class RunController:
    """Drives the repair of one universe root, one underlying at a time."""

    def __init__(self, root_path, rate_provider=None, dividend_provider=None, max_workers=None,
                 tree_steps=None, method=None, extrapolation=None):
        self.root_path = root_path
        if rate_provider is None or dividend_provider is None:
            default_rate, default_dividend = create_providers()
            rate_provider = rate_provider or default_rate
            dividend_provider = dividend_provider or default_dividend
        self.rate_provider = rate_provider
        self.dividend_provider = dividend_provider
        self.max_workers = max_workers
        self.tree_steps = tree_steps
        self.method = method
        self.extrapolation = extrapolation
        self._histories: Dict[str, IvHistoryCache] = {}

    def underlying_folders(self):
        return sorted(
            os.path.join(self.root_path, name) for name in os.listdir(self.root_path)
            if os.path.isdir(os.path.join(self.root_path, name))
        )

    def history_for(self, folder) -> IvHistoryCache:
        if folder not in self._histories:
            self._histories[folder] = IvHistoryCache(folder, max_workers=self.max_workers)
        return self._histories[folder]

    def process_underlying(self, folder, processing_date: date):
        symbol = os.path.basename(folder).upper()
        date_file = snapshot_path(folder, processing_date)
        if not os.path.exists(date_file):
            raise MissingSnapshotError(symbol, date_file)

        corrector = SnapshotCorrector(processing_date, self.rate_provider, self.dividend_provider,
                                      self.tree_steps, self.method, self.extrapolation)
        corrector.clean_iv(date_file)

        history = self.history_for(folder).get_history(processing_date)
        additional_fields = OptionAdditionalFields()
        if not additional_fields.update_from_history(history, processing_date):
            logger.warning(f"No ATM IV for {symbol} on {processing_date:%Y-%m-%d}, leaving IV rank and percentile empty")
        write_additional_fields(date_file, additional_fields)

    def run(self, processing_date: date) -> bool:
        logger.info(f"Processing additional fields for date {processing_date:%Y-%m-%d}")
        try:
            for folder in self.underlying_folders():
                self.process_underlying(folder, processing_date)
        except MissingSnapshotError as e:
            logger.error(str(e))
            return False
        except Exception:
            logger.exception(f"Error processing additional fields for date {processing_date:%Y-%m-%d}")
            return False
        return True

    def run_range(self, start: date, end: date) -> bool:
        current = start
        while current <= end:
            if not self.run(current):
                return False
            current += timedelta(days=1)
        return True


def parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, config.DATE_FORMAT).date()
    except ValueError:
        return datetime.strptime(value, '%Y-%m-%d').date()


def build_parser():
    parser = argparse.ArgumentParser(description="Repair zero implied volatilities in option universe files")
    parser.add_argument("--root", "-r", default=config.DATA_ROOT, help="Universe root with one folder per underlying")
    parser.add_argument("--date", "-d", type=parse_date, help="Processing date (YYYYMMDD or YYYY-MM-DD)")
    parser.add_argument("--start", type=parse_date, help="First date of a range")
    parser.add_argument("--end", type=parse_date, help="Last date of a range (inclusive)")
    parser.add_argument("--workers", "-w", type=int, default=config.MAX_WORKERS, help="Threads for history extraction")
    parser.add_argument("--market-data", choices=["constant", "yahoo"], default=config.MARKET_DATA_SOURCE,
                        help="Source of interest rates and dividend yields")
    parser.add_argument("--extrapolation", choices=["clamp", "extrapolate"], default=config.SURFACE_EXTRAPOLATION,
                        help="IV curve behaviour outside the fitted moneyness range")
    parser.add_argument("--method", choices=["akima", "pchip"], default=config.SURFACE_METHOD,
                        help="Interpolation used for the IV curve")
    parser.add_argument("--tree-steps", type=int, default=config.TREE_STEPS,
                        help="Binomial tree steps for American contracts")
    parser.add_argument("--log-dir", default=config.LOG_DIR, help="Directory for the rotating log file")
    return parser


def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    LoggerSetup(log_dir=args.log_dir)

    if args.date:
        start = end = args.date
    elif args.start and args.end:
        start, end = args.start, args.end
    else:
        parser.error("either --date or both --start and --end are required")

    rate_provider, dividend_provider = create_providers(args.market_data)
    controller = RunController(args.root, rate_provider, dividend_provider, max_workers=args.workers,
                               tree_steps=args.tree_steps, method=args.method,
                               extrapolation=args.extrapolation)
    success = controller.run_range(start, end)

    if success:
        logger.info("IV repair completed successfully")
        return 0
    logger.error("IV repair failed")
    return 1


if __name__ == "__main__":
    sys.exit(main())
