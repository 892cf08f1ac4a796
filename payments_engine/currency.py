"""
Fixed-Point Amount Module

Exact signed monetary values stored as an integer count of 2^-14 units
(14 fractional bits, 50 integer bits, 64-bit signed backing range).
NEVER uses float for monetary values: addition, subtraction and comparison
are plain integer operations, so balances cannot drift. Only parsing a
decimal string rounds, to the nearest representable unit with ties to even.
"""

from decimal import Decimal, ROUND_HALF_EVEN, localcontext
from dataclasses import dataclass
import re

from .exceptions import AmountParseError, AmountOverflowError

# Bit layout of the backing integer
FRACTIONAL_BITS = 14
INTEGER_BITS = 50

SCALE = 1 << FRACTIONAL_BITS
MAX_UNITS = (1 << (INTEGER_BITS + FRACTIONAL_BITS - 1)) - 1
MIN_UNITS = -(1 << (INTEGER_BITS + FRACTIONAL_BITS - 1))

# Optional sign, digits, optional fraction. No exponents, no separators.
_AMOUNT_PATTERN = re.compile(r'^[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)$')

# Enough digits to hold any unit count divided by SCALE exactly
_FORMAT_PRECISION = 40


@dataclass(frozen=True)
class Amount:
    """
    Immutable fixed-point amount.
    All monetary values in the engine MUST use this class.
    """
    units: int

    def __post_init__(self):
        if isinstance(self.units, bool) or not isinstance(self.units, int):
            raise TypeError(f"Amount units must be an int, got {type(self.units).__name__}")
        if not MIN_UNITS <= self.units <= MAX_UNITS:
            raise AmountOverflowError("construct", self.units)

    @classmethod
    def parse(cls, value: str) -> 'Amount':
        """
        Parse a decimal string into an Amount

        Fractional digits beyond the 14-bit resolution are rounded to the
        nearest unit; exact halves round to the even unit.

        Args:
            value: Decimal string such as "1.9999", "-3", ".5"

        Returns:
            Amount value

        Raises:
            AmountParseError: If the string is not a plain decimal number
            AmountOverflowError: If the value is outside the fixed-point range
        """
        if not isinstance(value, str):
            raise AmountParseError(value)

        clean_value = value.strip()
        if not _AMOUNT_PATTERN.match(clean_value):
            raise AmountParseError(value)

        with localcontext() as ctx:
            # Wide enough that the multiplication itself never rounds
            ctx.prec = len(clean_value) + 8
            scaled = Decimal(clean_value) * SCALE
            units = int(scaled.to_integral_value(rounding=ROUND_HALF_EVEN))

        return cls._checked(units, "parse")

    @classmethod
    def zero(cls) -> 'Amount':
        return cls(0)

    @classmethod
    def _checked(cls, units: int, operation: str) -> 'Amount':
        if not MIN_UNITS <= units <= MAX_UNITS:
            raise AmountOverflowError(operation, units)
        return cls(units)

    def __add__(self, other: 'Amount') -> 'Amount':
        if not isinstance(other, Amount):
            return NotImplemented
        return self._checked(self.units + other.units, "add")

    def __sub__(self, other: 'Amount') -> 'Amount':
        if not isinstance(other, Amount):
            return NotImplemented
        return self._checked(self.units - other.units, "subtract")

    def __lt__(self, other: 'Amount') -> bool:
        if not isinstance(other, Amount):
            return NotImplemented
        return self.units < other.units

    def __le__(self, other: 'Amount') -> bool:
        if not isinstance(other, Amount):
            return NotImplemented
        return self.units <= other.units

    def __gt__(self, other: 'Amount') -> bool:
        if not isinstance(other, Amount):
            return NotImplemented
        return self.units > other.units

    def __ge__(self, other: 'Amount') -> bool:
        if not isinstance(other, Amount):
            return NotImplemented
        return self.units >= other.units

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.units == 0

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.units > 0

    def is_negative(self) -> bool:
        """Check if amount is negative"""
        return self.units < 0

    def to_decimal(self) -> Decimal:
        """Exact decimal value (every 2^-14 multiple has a finite expansion)"""
        with localcontext() as ctx:
            ctx.prec = _FORMAT_PRECISION
            return Decimal(self.units) / SCALE

    def to_string(self) -> str:
        """
        Format as the shortest decimal string that parses back to this amount

        "1.9999" is stored as 32766 units (1.9998779296875) and formats back
        to "1.9999"; whole values have no fractional part ("2", not "2.0000").
        """
        exact = self.to_decimal()
        with localcontext() as ctx:
            ctx.prec = _FORMAT_PRECISION
            for places in range(FRACTIONAL_BITS + 1):
                candidate = format(
                    exact.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_EVEN), 'f'
                )
                try:
                    if Amount.parse(candidate).units == self.units:
                        return candidate
                except AmountOverflowError:
                    # Rounding near the range edge can step outside it
                    continue
        # 14 decimal places always represent a 2^-14 multiple exactly
        return format(exact, 'f')

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Amount('{self.to_string()}')"
