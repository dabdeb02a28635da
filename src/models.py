from collections import Counter
from dataclasses import dataclass, field
from decimal import Context, Decimal, MAX_EMAX, MAX_PREC, MIN_EMIN
from enum import Enum
from typing import Optional, Set

# Balances are added and subtracted without rounding, whatever their size.
BALANCE_CONTEXT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN)


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class RejectionReason(Enum):
    ACCOUNT_LOCKED = "account_locked"
    MISSING_AMOUNT = "missing_amount"
    INVALID_AMOUNT = "invalid_amount"
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    CLIENT_MISMATCH = "client_mismatch"
    ALREADY_DISPUTED = "already_disputed"
    NOT_DISPUTED = "not_disputed"
    UNKNOWN_TRANSACTION_TYPE = "unknown_transaction_type"


class PaymentsEngineError(Exception):
    """Base class for errors that abort a run."""


class TransactionParseError(PaymentsEngineError):
    """A record could not be decoded into a Transaction."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class UnknownTransactionTypeError(TransactionParseError):
    """The record's type column is not one of the known transaction types."""

    def __init__(self, type_token: str, client_id: Optional[int] = None,
                 transaction_id: Optional[int] = None, line_number: Optional[int] = None):
        self.type_token = type_token
        self.client_id = client_id
        self.transaction_id = transaction_id
        super().__init__(f"unknown transaction type {type_token!r}", line_number)


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False
    disputed: Set[int] = field(default_factory=set)

    @property
    def total(self) -> Decimal:
        return BALANCE_CONTEXT.add(self.available, self.held)

    def credit(self, amount: Decimal) -> None:
        self.available = BALANCE_CONTEXT.add(self.available, amount)

    def debit(self, amount: Decimal) -> None:
        self.available = BALANCE_CONTEXT.subtract(self.available, amount)

    def hold(self, transaction_id: int, amount: Decimal) -> None:
        self.available = BALANCE_CONTEXT.subtract(self.available, amount)
        self.held = BALANCE_CONTEXT.add(self.held, amount)
        self.disputed.add(transaction_id)

    def release_hold(self, transaction_id: int, amount: Decimal) -> None:
        self.held = BALANCE_CONTEXT.subtract(self.held, amount)
        self.available = BALANCE_CONTEXT.add(self.available, amount)
        self.disputed.discard(transaction_id)

    def charge_back(self, amount: Decimal) -> None:
        # The charged-back id stays in `disputed`; the account is frozen from here on.
        self.held = BALANCE_CONTEXT.subtract(self.held, amount)
        self.locked = True


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal rejection of a single transaction."""

    reason: RejectionReason
    client_id: Optional[int]
    transaction_id: Optional[int]
    message: str

    def __str__(self) -> str:
        return f"[{self.reason.value}] client={self.client_id} tx={self.transaction_id}: {self.message}"


class ProcessingStats:
    """Counters for the end-of-run processing report."""

    def __init__(self):
        self.applied = 0
        self.rejected = 0
        self.rejections_by_reason: Counter = Counter()

    def record_applied(self):
        self.applied += 1

    def record_rejection(self, reason: RejectionReason):
        self.rejected += 1
        self.rejections_by_reason[reason] += 1

    @property
    def total(self) -> int:
        return self.applied + self.rejected

    def __str__(self) -> str:
        summary = f"Applied: {self.applied}, Rejected: {self.rejected}"
        if self.rejections_by_reason:
            details = ", ".join(
                f"{reason.value}={count}"
                for reason, count in sorted(self.rejections_by_reason.items(), key=lambda item: item[0].value)
            )
            summary += f" ({details})"
        return summary
