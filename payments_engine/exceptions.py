"""
Typed Exception Hierarchy

Every fatal condition in the payments engine has its own exception class with
a machine-readable ``code`` and the structured data needed to report it.
Recoverable conditions (insufficient funds, unknown transaction, locked
account...) are NOT exceptions: the ledger reports them as skip reasons.

    PaymentsEngineError
    |
    +-- FatalProcessingError
        +-- RecordParseError
        +-- AmountParseError
        +-- AmountOverflowError
        +-- DuplicateTransactionError
        +-- LedgerInvariantError
"""

from typing import Any, Optional


class PaymentsEngineError(Exception):
    """Base class for all payments engine errors"""

    code: str = "PAYMENTS_ENGINE_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class FatalProcessingError(PaymentsEngineError):
    """An error that halts the whole run; no report is produced"""

    code = "FATAL_PROCESSING_ERROR"


class RecordParseError(FatalProcessingError):
    """A required field of an input row is missing or not a valid value"""

    code = "RECORD_PARSE_ERROR"

    def __init__(self, field: str, value: Any, reason: str, line: Optional[int] = None):
        self.field = field
        self.value = value
        self.reason = reason
        self.line = line
        location = f"line {line}: " if line is not None else ""
        super().__init__(f"{location}invalid {field} {value!r}: {reason}")


class AmountParseError(FatalProcessingError, ValueError):
    """Decimal string cannot be converted to a fixed-point amount"""

    code = "AMOUNT_PARSE_ERROR"

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Cannot convert {value!r} to a fixed-point amount")


class AmountOverflowError(FatalProcessingError, OverflowError):
    """Fixed-point value left the representable range"""

    code = "AMOUNT_OVERFLOW"

    def __init__(self, operation: str, units: int):
        self.operation = operation
        self.units = units
        super().__init__(f"Fixed-point overflow in {operation}: {units} units out of range")


class DuplicateTransactionError(FatalProcessingError):
    """A deposit or withdrawal reused a transaction id already in the history"""

    code = "DUPLICATE_TRANSACTION"

    def __init__(self, tx_id: int):
        self.tx_id = tx_id
        super().__init__(f"Transaction {tx_id} already exists in the history")


class LedgerInvariantError(FatalProcessingError):
    """Account balances reached a state the ledger rules must never produce"""

    code = "LEDGER_INVARIANT_VIOLATION"

    def __init__(self, client_id: int, message: str):
        self.client_id = client_id
        super().__init__(f"Account {client_id}: {message}")
