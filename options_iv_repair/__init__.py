"""
Options IV Repair

Repairs zero implied volatilities in daily option universe snapshots and
derives a trailing 30-day ATM IV history per underlying.
"""

__version__ = "0.1.0"
