"""
Account Reporting Module

Renders the finalized ledger as a CSV account table. Amounts keep the full
fixed-point resolution; the order of rows carries no meaning.
"""

import csv
from typing import Dict, Iterable, List, TextIO

from .accounts import AccountSnapshot

REPORT_COLUMNS = ["client", "available", "held", "total", "locked"]


def build_report_rows(snapshots: Iterable[AccountSnapshot]) -> List[Dict[str, str]]:
    """Convert account snapshots into report rows keyed by column name"""
    rows = []
    for snapshot in snapshots:
        rows.append({
            "client": str(snapshot.client_id),
            "available": snapshot.available.to_string(),
            "held": snapshot.held.to_string(),
            "total": snapshot.total.to_string(),
            "locked": "true" if snapshot.locked else "false",
        })
    return rows


def write_report(snapshots: Iterable[AccountSnapshot], output: TextIO) -> int:
    """
    Write the account table as CSV with a header row

    Args:
        snapshots: Accounts to render
        output: Text stream to write to

    Returns:
        Number of account rows written
    """
    rows = build_report_rows(snapshots)

    writer = csv.DictWriter(output, fieldnames=REPORT_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)

    output.flush()
    return len(rows)
