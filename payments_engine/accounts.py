"""
Account Module

Per-client account state: available funds, funds held by open disputes, and
the lock flag set by a chargeback. The total is always derived from the two
balances and never stored separately.
"""

from dataclasses import dataclass, field

from .currency import Amount
from .exceptions import LedgerInvariantError


@dataclass(frozen=True)
class AccountSnapshot:
    """Read-only view of an account handed to the report builder"""
    client_id: int
    available: Amount
    held: Amount
    total: Amount
    locked: bool


@dataclass
class Account:
    """
    Client account

    Mutated only by the account ledger, which keeps both balances
    non-negative through per-operation preconditions.
    """
    client_id: int
    available: Amount = field(default_factory=Amount.zero)
    held: Amount = field(default_factory=Amount.zero)
    locked: bool = False

    @property
    def total(self) -> Amount:
        """Available plus held funds"""
        return self.available + self.held

    def can_transact(self) -> bool:
        """Locked accounts accept no further transactions"""
        return not self.locked

    def validate_balances(self, available: Amount, held: Amount) -> Amount:
        """
        Check proposed balances before they are assigned

        Args:
            available: Proposed available funds
            held: Proposed held funds

        Returns:
            The total the account would report

        Raises:
            LedgerInvariantError: If a balance would be negative
            AmountOverflowError: If the total would not be representable
        """
        if available.is_negative():
            raise LedgerInvariantError(self.client_id, f"available funds negative ({available})")
        if held.is_negative():
            raise LedgerInvariantError(self.client_id, f"held funds negative ({held})")
        total = available + held
        if total.is_negative():
            raise LedgerInvariantError(self.client_id, f"total funds negative ({total})")
        return total

    def check_invariants(self) -> None:
        """Raise if the current balances break the account invariants"""
        self.validate_balances(self.available, self.held)

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            client_id=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked
        )
