"""
Transaction Record Reader

Turns CSV rows (``type, client, tx, amount``) into typed Transaction records.
Whitespace around headers and values is ignored and rows of dispute-family
records may omit the trailing amount column. A required field that is not a
valid number raises RecordParseError, which ends the run.
"""

import csv
import re
from pathlib import Path
from typing import Iterator, Mapping, Optional, TextIO, Union

from .currency import Amount
from .exceptions import AmountParseError, RecordParseError
from .transactions import Transaction, TransactionType

# Identifier widths used by the source feed
MAX_CLIENT_ID = (1 << 16) - 1
MAX_TX_ID = (1 << 32) - 1

_TYPE_ALIASES = {
    "deposit": TransactionType.DEPOSIT,
    "withdrawal": TransactionType.WITHDRAWAL,
    "withdraw": TransactionType.WITHDRAWAL,
    "dispute": TransactionType.DISPUTE,
    "resolve": TransactionType.RESOLVE,
    "chargeback": TransactionType.CHARGEBACK,
}

_INTEGER_PATTERN = re.compile(r'^\+?[0-9]+$')


def _clean(value: Optional[str]) -> str:
    return value.strip() if value else ""


def _parse_identifier(value: str, field: str, maximum: int, line: Optional[int]) -> int:
    if not value:
        raise RecordParseError(field, value, "required field is missing", line)
    if not _INTEGER_PATTERN.match(value):
        raise RecordParseError(field, value, "not a non-negative integer", line)
    number = int(value)
    if number > maximum:
        raise RecordParseError(field, value, f"exceeds maximum {maximum}", line)
    return number


def parse_record(row: Mapping[Optional[str], Optional[str]], line: Optional[int] = None) -> Transaction:
    """
    Build a Transaction from one row of raw string fields

    Args:
        row: Mapping with "type", "client", "tx" and optionally "amount"
        line: Source line number, used in error messages

    Returns:
        Validated Transaction

    Raises:
        RecordParseError: If the type is unknown or a numeric field is malformed
    """
    fields = {
        key.lstrip("\ufeff").strip().lower(): _clean(value)
        for key, value in row.items() if key is not None
    }

    raw_type = fields.get("type", "")
    tx_type = _TYPE_ALIASES.get(raw_type.lower())
    if tx_type is None:
        raise RecordParseError("type", raw_type, "unknown transaction type", line)

    client_id = _parse_identifier(fields.get("client", ""), "client", MAX_CLIENT_ID, line)
    tx_id = _parse_identifier(fields.get("tx", ""), "tx", MAX_TX_ID, line)

    amount = None
    raw_amount = fields.get("amount", "")
    # Amounts of dispute-family rows are ignored unparsed
    if tx_type.carries_amount and raw_amount:
        try:
            amount = Amount.parse(raw_amount)
        except AmountParseError as exc:
            raise RecordParseError("amount", raw_amount, "not a decimal number", line) from exc

    return Transaction(
        tx_type=tx_type,
        client_id=client_id,
        tx_id=tx_id,
        amount=amount
    )


def iter_records(stream: TextIO) -> Iterator[Transaction]:
    """
    Lazily parse records from an open CSV text stream with a header row

    Raises:
        RecordParseError: If a row is malformed or the input cannot be decoded
    """
    reader = csv.DictReader(stream, skipinitialspace=True)
    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except UnicodeDecodeError as exc:
            # Decoding runs ahead of the csv reader, so the line is approximate
            raise RecordParseError(
                "row", exc.object[exc.start:exc.end],
                f"not valid UTF-8 text (after line {reader.line_num})"
            ) from exc
        except csv.Error as exc:
            raise RecordParseError("row", None, f"malformed CSV ({exc})", reader.line_num) from exc
        yield parse_record(row, line=reader.line_num)


def read_transactions(source: Union[str, Path, TextIO]) -> Iterator[Transaction]:
    """
    Lazily read transaction records from a CSV file path or text stream

    Records are yielded in file order; nothing is buffered beyond one row.
    A leading byte order mark on a file is ignored.
    """
    if isinstance(source, (str, Path)):
        with open(source, newline="", encoding="utf-8-sig") as stream:
            yield from iter_records(stream)
    else:
        yield from iter_records(source)
