"""
Account Ledger Engine

State machine that applies transaction records, one at a time and strictly in
input order, to per-client accounts. The ledger owns the transaction history
used by the dispute lifecycle:

    NONE --dispute--> DISPUTED --resolve--> NONE
                               --chargeback--> CHARGED_BACK (terminal)

Records that fail a precondition are skipped and reported as diagnostics;
conditions that mean the feed or numeric range is corrupt raise a
FatalProcessingError and end the run.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple
from enum import Enum

from .accounts import Account, AccountSnapshot
from .currency import Amount
from .exceptions import DuplicateTransactionError, LedgerInvariantError
from .history import DisputeState, HistoryEntry, TransactionHistory
from .transactions import Transaction, TransactionType
from .logging_config import get_logger, log_action


class SkipReason(Enum):
    """Why a record was skipped without touching any state"""
    MISSING_AMOUNT = "missing_amount"
    INVALID_AMOUNT = "invalid_amount"
    ACCOUNT_NOT_FOUND = "account_not_found"
    ACCOUNT_LOCKED = "account_locked"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    CLIENT_MISMATCH = "client_mismatch"
    ALREADY_DISPUTED = "already_disputed"
    NOT_DISPUTED = "not_disputed"
    ALREADY_CHARGED_BACK = "already_charged_back"


@dataclass
class ProcessingSummary:
    """Counts collected while processing a stream of records"""
    applied: int = 0
    skipped: int = 0
    skip_reasons: Dict[SkipReason, int] = field(default_factory=dict)

    @property
    def processed(self) -> int:
        return self.applied + self.skipped

    def record(self, reason: Optional[SkipReason]) -> None:
        if reason is None:
            self.applied += 1
        else:
            self.skipped += 1
            self.skip_reasons[reason] = self.skip_reasons.get(reason, 0) + 1


class AccountLedger:
    """
    Mapping from client id to account, plus the rules that mutate it

    Each ledger is an independent object; create one per run.
    """

    def __init__(self):
        self._accounts: Dict[int, Account] = {}
        self._history = TransactionHistory()
        self.logger = get_logger("payments.ledger")

        self._handlers: Dict[TransactionType, Callable[[Transaction, Optional[Account]], Optional[SkipReason]]] = {
            TransactionType.DEPOSIT: self._deposit,
            TransactionType.WITHDRAWAL: self._withdraw,
            TransactionType.DISPUTE: self._dispute,
            TransactionType.RESOLVE: self._resolve,
            TransactionType.CHARGEBACK: self._chargeback,
        }

    @property
    def history(self) -> TransactionHistory:
        return self._history

    def apply(self, transaction: Transaction) -> Optional[SkipReason]:
        """
        Apply a single transaction record

        Args:
            transaction: Record to apply

        Returns:
            None if the record took effect, otherwise the reason it was skipped

        Raises:
            DuplicateTransactionError: If a deposit/withdrawal reuses a known id
            AmountOverflowError: If a balance leaves the fixed-point range
            LedgerInvariantError: If a balance would become negative
        """
        # A reused id means the feed itself is corrupt, whatever the record's fate
        if transaction.tx_type.carries_amount and transaction.tx_id in self._history:
            raise DuplicateTransactionError(transaction.tx_id)

        account = self._accounts.get(transaction.client_id)
        if account is not None and not account.can_transact():
            reason = SkipReason.ACCOUNT_LOCKED
        else:
            reason = self._handlers[transaction.tx_type](transaction, account)

        if reason is None:
            if self.logger.isEnabledFor(logging.DEBUG):
                log_action(
                    self.logger, "debug", f"Applied {transaction.tx_type.value}",
                    action="apply_transaction", resource=f"client:{transaction.client_id}",
                    extra=transaction.describe()
                )
        else:
            log_action(
                self.logger, "info", f"Skipped {transaction.tx_type.value}: {reason.value}",
                action="skip_transaction", resource=f"client:{transaction.client_id}",
                extra={"reason": reason.value, **transaction.describe()}
            )

        return reason

    def process(self, transactions: Iterable[Transaction]) -> ProcessingSummary:
        """Apply every record in order; fatal errors propagate immediately"""
        summary = ProcessingSummary()
        for transaction in transactions:
            summary.record(self.apply(transaction))
        return summary

    def get_account(self, client_id: int) -> Optional[AccountSnapshot]:
        """Get a read-only view of an account"""
        account = self._accounts.get(client_id)
        if account is None:
            return None
        return account.snapshot()

    def accounts(self) -> Iterator[AccountSnapshot]:
        """Iterate over all accounts in ascending client id order"""
        for client_id in sorted(self._accounts):
            yield self._accounts[client_id].snapshot()

    def snapshot(self) -> List[AccountSnapshot]:
        return list(self.accounts())

    def __len__(self) -> int:
        return len(self._accounts)

    def __contains__(self, client_id: int) -> bool:
        return client_id in self._accounts

    # Per-kind rules. Each returns None on success or a SkipReason, and
    # computes every new balance before mutating anything.

    def _deposit(self, transaction: Transaction, account: Optional[Account]) -> Optional[SkipReason]:
        amount = transaction.amount
        if amount is None:
            return SkipReason.MISSING_AMOUNT
        if amount.is_negative():
            return SkipReason.INVALID_AMOUNT

        opened = account is None
        if opened:
            account = Account(client_id=transaction.client_id)
        new_available = account.available + amount
        account.validate_balances(new_available, account.held)

        self._history.record_initial(
            transaction.tx_id, transaction.client_id, amount, transaction.tx_type
        )
        if opened:
            self._accounts[account.client_id] = account
        account.available = new_available
        return None

    def _withdraw(self, transaction: Transaction, account: Optional[Account]) -> Optional[SkipReason]:
        amount = transaction.amount
        if amount is None:
            return SkipReason.MISSING_AMOUNT
        if amount.is_negative():
            return SkipReason.INVALID_AMOUNT
        # Withdrawals never open an account
        if account is None:
            return SkipReason.ACCOUNT_NOT_FOUND
        if account.available < amount:
            return SkipReason.INSUFFICIENT_FUNDS

        new_available = account.available - amount
        account.validate_balances(new_available, account.held)

        self._history.record_initial(
            transaction.tx_id, transaction.client_id, amount, transaction.tx_type
        )
        account.available = new_available
        return None

    def _dispute(self, transaction: Transaction, account: Optional[Account]) -> Optional[SkipReason]:
        entry, reason = self._find_disputable(transaction, DisputeState.NONE)
        if reason is not None:
            return reason

        account = self._owning_account(entry)
        # Deposits and withdrawals alike: the contested sum moves to held
        if account.available < entry.amount:
            return SkipReason.INSUFFICIENT_FUNDS

        new_available = account.available - entry.amount
        new_held = account.held + entry.amount
        account.validate_balances(new_available, new_held)

        self._history.mark_disputed(entry.tx_id)
        account.available = new_available
        account.held = new_held
        return None

    def _resolve(self, transaction: Transaction, account: Optional[Account]) -> Optional[SkipReason]:
        entry, reason = self._find_disputable(transaction, DisputeState.DISPUTED)
        if reason is not None:
            return reason

        account = self._owning_account(entry)
        new_held = self._release_held(account, entry)
        new_available = account.available + entry.amount
        account.validate_balances(new_available, new_held)

        self._history.mark_resolved(entry.tx_id)
        account.held = new_held
        account.available = new_available
        return None

    def _chargeback(self, transaction: Transaction, account: Optional[Account]) -> Optional[SkipReason]:
        entry, reason = self._find_disputable(transaction, DisputeState.DISPUTED)
        if reason is not None:
            return reason

        account = self._owning_account(entry)
        new_held = self._release_held(account, entry)
        account.validate_balances(account.available, new_held)

        self._history.mark_charged_back(entry.tx_id)
        account.held = new_held
        account.locked = True
        return None

    def _find_disputable(
        self,
        transaction: Transaction,
        expected: DisputeState
    ) -> Tuple[Optional[HistoryEntry], Optional[SkipReason]]:
        """Look up the referenced entry and check it is in the expected state"""
        entry = self._history.lookup(transaction.tx_id)
        if entry is None:
            return None, SkipReason.TRANSACTION_NOT_FOUND
        # Another client's transaction is treated as unknown
        if entry.client_id != transaction.client_id:
            return None, SkipReason.CLIENT_MISMATCH
        if entry.state == expected:
            return entry, None
        if entry.state == DisputeState.CHARGED_BACK:
            return None, SkipReason.ALREADY_CHARGED_BACK
        if entry.state == DisputeState.DISPUTED:
            return None, SkipReason.ALREADY_DISPUTED
        return None, SkipReason.NOT_DISPUTED

    def _owning_account(self, entry: HistoryEntry) -> Account:
        account = self._accounts.get(entry.client_id)
        if account is None:
            raise LedgerInvariantError(
                entry.client_id, f"history entry {entry.tx_id} has no owning account"
            )
        return account

    def _release_held(self, account: Account, entry: HistoryEntry) -> Amount:
        new_held = account.held - entry.amount
        if new_held.is_negative():
            raise LedgerInvariantError(
                account.client_id,
                f"releasing {entry.amount} for transaction {entry.tx_id} exceeds held funds ({account.held})"
            )
        return new_held
