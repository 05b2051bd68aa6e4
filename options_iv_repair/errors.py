"""Exceptions raised while repairing snapshot files."""


class OptionsIvRepairError(Exception):
    """Base class for all errors raised by this package."""


class MissingSnapshotError(OptionsIvRepairError):
    """The snapshot for an underlying/date does not exist."""

    def __init__(self, ticker, path):
        super().__init__(f"No universe file found for {ticker} at {path}")
        self.ticker = ticker
        self.path = path


class SnapshotParseError(OptionsIvRepairError, ValueError):
    """A field that should be numeric (or an identifier) could not be parsed."""

    def __init__(self, path, line_number, message):
        super().__init__(f"{path}:{line_number}: {message}")
        self.path = path
        self.line_number = line_number


class NoAtmBracketError(OptionsIvRepairError):
    """No expiry exists on one side of the 30-day target tenor."""

    def __init__(self, path, target, side):
        super().__init__(f"No {side} expiry around {target:%Y-%m-%d} in {path}")
        self.path = path
        self.target = target
        self.side = side


class InsufficientSurfaceError(OptionsIvRepairError):
    """Too few valid points to fit an IV curve."""
