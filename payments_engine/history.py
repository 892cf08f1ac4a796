"""
Transaction History Module

Remembers every deposit and withdrawal that was successfully applied so that
later disputes, resolves and chargebacks can find the original amount and
owning client. Entries are never deleted during a run.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, Optional
from enum import Enum

from .currency import Amount
from .exceptions import DuplicateTransactionError
from .transactions import TransactionType


class DisputeState(Enum):
    """Dispute lifecycle of a history entry"""
    NONE = "none"                  # Not under dispute
    DISPUTED = "disputed"          # Funds moved from available to held
    CHARGED_BACK = "charged_back"  # Reversed; terminal


@dataclass
class HistoryEntry:
    """Original deposit/withdrawal as needed by the dispute lifecycle"""
    tx_id: int
    client_id: int
    amount: Amount
    tx_type: TransactionType
    state: DisputeState = DisputeState.NONE

    @property
    def is_disputed(self) -> bool:
        return self.state == DisputeState.DISPUTED

    @property
    def is_charged_back(self) -> bool:
        return self.state == DisputeState.CHARGED_BACK

    def mark_disputed(self) -> None:
        """NONE -> DISPUTED"""
        if self.state != DisputeState.NONE:
            raise ValueError(f"Cannot dispute transaction {self.tx_id} in {self.state.value} state")
        self.state = DisputeState.DISPUTED

    def mark_resolved(self) -> None:
        """DISPUTED -> NONE"""
        if self.state != DisputeState.DISPUTED:
            raise ValueError(f"Cannot resolve transaction {self.tx_id} in {self.state.value} state")
        self.state = DisputeState.NONE

    def mark_charged_back(self) -> None:
        """DISPUTED -> CHARGED_BACK"""
        if self.state != DisputeState.DISPUTED:
            raise ValueError(f"Cannot charge back transaction {self.tx_id} in {self.state.value} state")
        self.state = DisputeState.CHARGED_BACK


class TransactionHistory:
    """
    Mapping from transaction id to history entry

    Only enforces the representation (unique ids, legal state transitions);
    the account ledger decides when a transition is allowed.
    """

    def __init__(self):
        self._entries: Dict[int, HistoryEntry] = {}

    def record_initial(
        self,
        tx_id: int,
        client_id: int,
        amount: Amount,
        tx_type: TransactionType
    ) -> HistoryEntry:
        """
        Record a successfully applied deposit or withdrawal

        Raises:
            DuplicateTransactionError: If the id is already recorded
        """
        if tx_id in self._entries:
            raise DuplicateTransactionError(tx_id)

        entry = HistoryEntry(
            tx_id=tx_id,
            client_id=client_id,
            amount=amount,
            tx_type=tx_type
        )
        self._entries[tx_id] = entry
        return entry

    def lookup(self, tx_id: int) -> Optional[HistoryEntry]:
        """Get a history entry by transaction id"""
        return self._entries.get(tx_id)

    def mark_disputed(self, tx_id: int) -> HistoryEntry:
        entry = self._require(tx_id)
        entry.mark_disputed()
        return entry

    def mark_resolved(self, tx_id: int) -> HistoryEntry:
        entry = self._require(tx_id)
        entry.mark_resolved()
        return entry

    def mark_charged_back(self, tx_id: int) -> HistoryEntry:
        entry = self._require(tx_id)
        entry.mark_charged_back()
        return entry

    def _require(self, tx_id: int) -> HistoryEntry:
        entry = self._entries.get(tx_id)
        if entry is None:
            raise KeyError(f"Transaction {tx_id} not found in history")
        return entry

    def __contains__(self, tx_id: int) -> bool:
        return tx_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries.values())
