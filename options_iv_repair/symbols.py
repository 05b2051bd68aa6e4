"""
Security identifiers for option contracts.

The ``#symbol_id`` column of a universe file holds a packed identifier of the
form ``"<SYMBOL> <PROPS>|<UNDERLYING SYMBOL> <UNDERLYING PROPS>"`` where PROPS is
a base-36 encoded integer. The decimal digits of that integer carry, from the
least significant end:

    security type (2), market (3), strike scale (2), strike (6),
    option style (1), days since 1899-12-30 (5), option right (1)
"""

import re
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Optional


BASE36_DIGITS = '0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ'
EPOCH_DATE = date(1899, 12, 30)

SECURITY_TYPE_OFFSET = 1
SECURITY_TYPE_WIDTH = 100
MARKET_OFFSET = SECURITY_TYPE_OFFSET * SECURITY_TYPE_WIDTH
MARKET_WIDTH = 1000
STRIKE_DEFAULT_SCALE = 4
STRIKE_SCALE_OFFSET = MARKET_OFFSET * MARKET_WIDTH
STRIKE_SCALE_WIDTH = 100
STRIKE_OFFSET = STRIKE_SCALE_OFFSET * STRIKE_SCALE_WIDTH
STRIKE_WIDTH = 1000000
OPTION_STYLE_OFFSET = STRIKE_OFFSET * STRIKE_WIDTH
OPTION_STYLE_WIDTH = 10
DAYS_OFFSET = OPTION_STYLE_OFFSET * OPTION_STYLE_WIDTH
DAYS_WIDTH = 100000
PUT_CALL_OFFSET = DAYS_OFFSET * DAYS_WIDTH
PUT_CALL_WIDTH = 10

NEGATIVE_STRIKE_BIT = 1 << 19

CALL = 'call'
PUT = 'put'
AMERICAN = 'american'
EUROPEAN = 'european'

OPTION_RIGHTS = (CALL, PUT)
OPTION_STYLES = (AMERICAN, EUROPEAN)

# OCC/OSI style ticker: root, YYMMDD, C or P, strike * 1000 on 8 digits
OSI_TICKER = re.compile(r'^(?P<root>.+?)(?P<expiry>\d{6})(?P<right>[CP])(?P<strike>\d{8})$')


def decode_base36(text: str) -> int:
    value = 0
    for char in text.upper():
        digit = BASE36_DIGITS.find(char)
        if digit < 0:
            raise ValueError(f"Invalid base-36 character {char!r} in {text!r}")
        value = value * 36 + digit
    return value


def encode_base36(value: int) -> str:
    if value < 0:
        raise ValueError("Cannot encode a negative value")
    if value == 0:
        return '0'
    chars = []
    while value:
        value, digit = divmod(value, 36)
        chars.append(BASE36_DIGITS[digit])
    return ''.join(reversed(chars))


def _extract(properties, offset, width):
    return (properties // offset) % width


def _normalize_strike(strike):
    """Return (digits, scale) such that digits * 10**(scale - 4) == strike."""
    text = format(float(strike), 'f').rstrip('0').rstrip('.')
    if '.' in text:
        whole, fraction = text.split('.')
        digits = int(whole + fraction)
        scale = -len(fraction)
    else:
        digits = int(text)
        scale = 0
    while digits and digits % 10 == 0:
        digits //= 10
        scale += 1
    if digits >= NEGATIVE_STRIKE_BIT:
        raise ValueError(f"Strike {strike} has too many significant digits to encode")
    return digits, scale + STRIKE_DEFAULT_SCALE


@dataclass(frozen=True)
class SecurityIdentifier:
    """Decoded form of a packed security identifier."""
    symbol: str
    properties: int
    underlying: Optional['SecurityIdentifier'] = None

    @classmethod
    def parse(cls, value: str) -> 'SecurityIdentifier':
        """Parse ``"SYM PROPS|UNDERLYING PROPS"``; the chain is read right to left."""
        parts = value.strip().split('|')
        underlying = None
        for part in reversed(parts):
            tokens = part.strip().split(' ')
            if len(tokens) != 2 or not tokens[0] or not tokens[1]:
                raise ValueError(f"Malformed security identifier: {value!r}")
            underlying = cls(tokens[0], decode_base36(tokens[1]), underlying)
        return underlying

    @classmethod
    def generate_option(cls, symbol: str, underlying: 'SecurityIdentifier', expiry: date,
                        strike: float, right: str, style: str = AMERICAN,
                        market: int = 1, security_type: int = 2) -> 'SecurityIdentifier':
        digits, scale = _normalize_strike(strike)
        properties = (
            security_type * SECURITY_TYPE_OFFSET
            + market * MARKET_OFFSET
            + scale * STRIKE_SCALE_OFFSET
            + digits * STRIKE_OFFSET
            + OPTION_STYLES.index(style) * OPTION_STYLE_OFFSET
            + (expiry - EPOCH_DATE).days * DAYS_OFFSET
            + OPTION_RIGHTS.index(right) * PUT_CALL_OFFSET
        )
        return cls(symbol, properties, underlying)

    @classmethod
    def generate_equity(cls, symbol: str, market: int = 1) -> 'SecurityIdentifier':
        return cls(symbol, 1 * SECURITY_TYPE_OFFSET + market * MARKET_OFFSET)

    @property
    def security_type(self) -> int:
        return _extract(self.properties, SECURITY_TYPE_OFFSET, SECURITY_TYPE_WIDTH)

    @property
    def market(self) -> int:
        return _extract(self.properties, MARKET_OFFSET, MARKET_WIDTH)

    @property
    def strike(self) -> float:
        scale = _extract(self.properties, STRIKE_SCALE_OFFSET, STRIKE_SCALE_WIDTH)
        unscaled = _extract(self.properties, STRIKE_OFFSET, STRIKE_WIDTH)
        sign = 1
        if unscaled & NEGATIVE_STRIKE_BIT:
            unscaled ^= NEGATIVE_STRIKE_BIT
            sign = -1
        exponent = int(scale) - STRIKE_DEFAULT_SCALE
        if exponent >= 0:
            return float(sign * unscaled * 10 ** exponent)
        return sign * unscaled / 10 ** -exponent

    @property
    def option_style(self) -> str:
        return OPTION_STYLES[_extract(self.properties, OPTION_STYLE_OFFSET, OPTION_STYLE_WIDTH)]

    @property
    def expiry(self) -> date:
        return EPOCH_DATE + timedelta(days=_extract(self.properties, DAYS_OFFSET, DAYS_WIDTH))

    @property
    def option_right(self) -> str:
        return OPTION_RIGHTS[_extract(self.properties, PUT_CALL_OFFSET, PUT_CALL_WIDTH)]

    def with_right(self, right: str) -> 'SecurityIdentifier':
        current = _extract(self.properties, PUT_CALL_OFFSET, PUT_CALL_WIDTH)
        properties = self.properties + (OPTION_RIGHTS.index(right) - current) * PUT_CALL_OFFSET
        return replace(self, properties=properties)

    def __str__(self):
        text = f"{self.symbol} {encode_base36(self.properties)}"
        if self.underlying is not None:
            text += f"|{self.underlying}"
        return text


@dataclass(frozen=True)
class ContractSymbol:
    """An option contract as it appears on a universe row."""
    id: SecurityIdentifier
    ticker: str

    @classmethod
    def parse(cls, sid: str, ticker: str) -> 'ContractSymbol':
        return cls(SecurityIdentifier.parse(sid), ticker.strip())

    @property
    def strike(self) -> float:
        return self.id.strike

    @property
    def expiry(self) -> date:
        return self.id.expiry

    @property
    def right(self) -> str:
        return self.id.option_right

    @property
    def style(self) -> str:
        return self.id.option_style

    @property
    def underlying_symbol(self) -> str:
        return self.id.underlying.symbol if self.id.underlying is not None else self.id.symbol

    def __str__(self):
        return self.ticker


def opposite_right(right: str) -> str:
    return PUT if right == CALL else CALL


def mirror_ticker(ticker: str) -> str:
    match = OSI_TICKER.match(ticker)
    if not match:
        return ticker
    flipped = 'P' if match.group('right') == 'C' else 'C'
    return f"{match.group('root')}{match.group('expiry')}{flipped}{match.group('strike')}"


def get_mirror_option_symbol(symbol: ContractSymbol) -> ContractSymbol:
    """Opposite-right contract with the same underlying, strike and expiry."""
    return ContractSymbol(symbol.id.with_right(opposite_right(symbol.right)), mirror_ticker(symbol.ticker))
