"""
Payments Engine Runner

Wires the record reader, the account ledger and the report builder together
for a single run. The report is written only after every record has been
applied, so a fatal error never produces a partial account table.
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TextIO, Union

from .ingest import read_transactions
from .ledger import AccountLedger, ProcessingSummary
from .reporting import write_report
from .logging_config import get_logger, log_action


@dataclass
class RunResult:
    """Outcome of a completed run"""
    ledger: AccountLedger
    summary: ProcessingSummary
    accounts_reported: int


def run(source: Union[str, Path, TextIO], output: Optional[TextIO] = None) -> RunResult:
    """
    Process a CSV transaction feed and write the final account table

    Args:
        source: CSV file path or open text stream
        output: Stream for the report, stdout by default

    Returns:
        RunResult with the final ledger and processing counts

    Raises:
        FatalProcessingError: On malformed rows, duplicate ids or overflow
        OSError: If the input file cannot be read
    """
    logger = get_logger("payments.engine")

    ledger = AccountLedger()
    summary = ledger.process(read_transactions(source))

    accounts_reported = write_report(ledger.accounts(), output if output is not None else sys.stdout)

    log_action(
        logger, "info", "Run completed",
        action="complete_run",
        extra={
            "processed": summary.processed,
            "applied": summary.applied,
            "skipped": summary.skipped,
            "accounts": accounts_reported
        }
    )

    return RunResult(ledger=ledger, summary=summary, accounts_reported=accounts_reported)
