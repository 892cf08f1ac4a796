"""
Transaction Record Module

Typed, validated, immutable transaction records. A record is built once per
input row and consumed exactly once by the account ledger.
"""

from dataclasses import dataclass
from typing import Optional
from enum import Enum

from .currency import Amount


class TransactionType(Enum):
    """Kinds of transaction records in the input feed"""
    DEPOSIT = "deposit"        # Credit to the client's available funds
    WITHDRAWAL = "withdrawal"  # Debit from the client's available funds
    DISPUTE = "dispute"        # Claim against a previous deposit/withdrawal
    RESOLVE = "resolve"        # Dispute settled in the client's favour
    CHARGEBACK = "chargeback"  # Dispute settled by reversing the funds

    @property
    def carries_amount(self) -> bool:
        """Only deposits and withdrawals mint a transaction with an amount"""
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)

    @property
    def references_history(self) -> bool:
        """Dispute-family records point back at an earlier transaction"""
        return not self.carries_amount


@dataclass(frozen=True)
class Transaction:
    """
    A single transaction record

    For deposits and withdrawals ``tx_id`` is the id minted by the feed and
    ``amount`` the value moved (``None`` when the row omitted it). For
    disputes, resolves and chargebacks ``tx_id`` references an earlier
    record and any supplied amount is dropped.
    """
    tx_type: TransactionType
    client_id: int
    tx_id: int
    amount: Optional[Amount] = None

    def __post_init__(self):
        if not isinstance(self.tx_type, TransactionType):
            raise TypeError(f"tx_type must be a TransactionType, got {self.tx_type!r}")

        for name in ('client_id', 'tx_id'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{name} must be an int, got {value!r}")
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")

        if self.amount is not None and not isinstance(self.amount, Amount):
            raise TypeError(f"amount must be an Amount, got {self.amount!r}")

        # Amounts on dispute-family records are ignored, not an error
        if self.tx_type.references_history and self.amount is not None:
            object.__setattr__(self, 'amount', None)

    @property
    def has_amount(self) -> bool:
        return self.amount is not None

    def describe(self) -> dict:
        """Context fields used in diagnostics"""
        return {
            "type": self.tx_type.value,
            "client": self.client_id,
            "tx": self.tx_id,
            "amount": self.amount.to_string() if self.amount is not None else None,
        }
