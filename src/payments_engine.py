import csv
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from models import (
    Transaction,
    TransactionType,
    ClientAccount,
    Diagnostic,
    RejectionReason,
    ProcessingStats,
    TransactionParseError,
    UnknownTransactionTypeError,
)
from ledger import Ledger
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1


def _is_ascii_digits(value: str) -> bool:
    return value.isascii() and value.isdigit()


def _parse_id(value: str, column: str, maximum: int, line_number: Optional[int]) -> int:
    # int() alone would also take "+1", "1_0" and non-ASCII digits.
    if not _is_ascii_digits(value):
        raise TransactionParseError(f"{column} {value!r} is not an unsigned integer", line_number)
    parsed = int(value)
    if parsed > maximum:
        raise TransactionParseError(f"{column} {parsed} is outside 0..{maximum}", line_number)
    return parsed


def _parse_amount(value: str, line_number: Optional[int]) -> Decimal:
    whole, _, fraction = value.partition(".")
    if not (whole or fraction) or not all(_is_ascii_digits(part) for part in (whole, fraction) if part):
        raise TransactionParseError(f"amount {value!r} is not a non-negative decimal", line_number)
    return Decimal(value)


def parse_csv_row(row: Mapping[str, Optional[str]], line_number: Optional[int] = None) -> Transaction:
    """
    Parse CSV row into Transaction.

    Raises TransactionParseError for malformed rows, and its subclass
    UnknownTransactionTypeError when only the type token is unrecognised.
    """
    # DictReader keys extra columns under None and fills missing ones with None.
    normalized = {k.strip(): (v or "").strip() for k, v in row.items() if isinstance(k, str)}

    for column in ("type", "client", "tx"):
        if not normalized.get(column):
            raise TransactionParseError(f"missing {column!r} column", line_number)

    client_id = _parse_id(normalized["client"], "client", MAX_CLIENT_ID, line_number)
    transaction_id = _parse_id(normalized["tx"], "tx", MAX_TRANSACTION_ID, line_number)

    type_token = normalized["type"].lower()
    try:
        transaction_type = TransactionType(type_token)
    except ValueError:
        raise UnknownTransactionTypeError(type_token, client_id, transaction_id, line_number) from None

    amount = None
    amount_str = normalized.get("amount", "")
    if amount_str:
        amount = _parse_amount(amount_str, line_number)

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


class PaymentsEngine:
    """
    Folds a feed of transactions, in order, into a single ledger.
    Business-rule rejections are collected as diagnostics; parse errors abort the run.
    """

    def __init__(self, ledger: Optional[Ledger] = None):
        self._ledger = ledger if ledger is not None else Ledger()
        self._processor = TransactionProcessor(self._ledger)
        self._stats = ProcessingStats()
        self._diagnostics: List[Diagnostic] = []

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """Process CSV file and return final account states."""
        logger.info(f"Processing {filepath}")
        with open(filepath, "r", newline="") as f:
            accounts = self.process_rows(csv.DictReader(f, skipinitialspace=True))
        logger.info(f"Finished {filepath}: {self._stats}")
        return accounts

    def process_rows(self, rows: Iterable[Mapping[str, Optional[str]]]) -> Dict[int, ClientAccount]:
        """
        Decode CSV dict rows and fold them into the ledger.
        When `rows` is a csv reader, errors report its physical line number,
        otherwise the row's position counting the header as line 1.
        """
        for position, row in enumerate(rows, start=2):
            line_number = getattr(rows, "line_num", position)
            try:
                transaction = parse_csv_row(row, line_number)
            except UnknownTransactionTypeError as e:
                diagnostic = Diagnostic(
                    reason=RejectionReason.UNKNOWN_TRANSACTION_TYPE,
                    client_id=e.client_id,
                    transaction_id=e.transaction_id,
                    message=str(e),
                )
                logger.warning(str(diagnostic))
                self._record(diagnostic)
                continue
            self.process_transaction(transaction)
        return self._ledger.get_all_clients()

    def process_transactions(self, transactions: Iterable[Transaction]) -> Dict[int, ClientAccount]:
        for transaction in transactions:
            self.process_transaction(transaction)
        return self._ledger.get_all_clients()

    def process_transaction(self, transaction: Transaction) -> Optional[Diagnostic]:
        diagnostic = self._processor.process_transaction(transaction)
        if diagnostic is None:
            self._stats.record_applied()
        else:
            self._record(diagnostic)
        return diagnostic

    def _record(self, diagnostic: Diagnostic) -> None:
        self._diagnostics.append(diagnostic)
        self._stats.record_rejection(diagnostic.reason)
