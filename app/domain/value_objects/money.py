"""Value Object Money - an amount expressed in integer minor units."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


@dataclass(frozen=True)
class Money:
    """
    Immutable monetary amount.

    Amounts are kept in cents so totals never drift; ``major`` exposes the
    float value that is persisted next to the integer one.
    """

    cents: int
    currency: str = "eur"

    def __post_init__(self) -> None:
        if not isinstance(self.cents, int):
            raise ValueError(f"cents must be an integer: {self.cents!r}")
        if self.cents < 0:
            raise ValueError(f"amount cannot be negative: {self.cents}")
        if len(self.currency) != 3:
            raise ValueError(f"currency must be a 3-letter code: {self.currency}")
        object.__setattr__(self, "currency", self.currency.lower())

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            raise TypeError(f"Cannot add Money and {type(other)}")
        if self.currency != other.currency:
            raise ValueError(f"Currency mismatch: {self.currency} vs {other.currency}")
        return Money(cents=self.cents + other.cents, currency=self.currency)

    def __mul__(self, quantity: int) -> "Money":
        if not isinstance(quantity, int):
            raise TypeError("Money can only be multiplied by an integer quantity")
        return Money(cents=self.cents * quantity, currency=self.currency)

    @property
    def major(self) -> float:
        return float(Decimal(self.cents) / 100)

    def __str__(self) -> str:
        return f"{Decimal(self.cents) / 100:.2f} {self.currency.upper()}"

    @classmethod
    def zero(cls, currency: str = "eur") -> "Money":
        return cls(cents=0, currency=currency)

    @classmethod
    def from_major(cls, amount: Decimal | float | str, currency: str = "eur") -> "Money":
        """Build from a major-unit amount such as a catalog price (12.50 -> 1250)."""
        quantized = (Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return cls(cents=int(quantized), currency=currency)
