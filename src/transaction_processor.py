import logging
from typing import Optional, Tuple

from models import Transaction, TransactionType, ClientAccount, Diagnostic, RejectionReason
from ledger import Ledger

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions to a ledger, one at a time.
    Returns None when a transaction is applied, or a Diagnostic when it is rejected.
    A rejected transaction leaves the ledger unchanged.
    """

    def __init__(self, ledger: Ledger):
        self._ledger = ledger

    def process_transaction(self, transaction: Transaction) -> Optional[Diagnostic]:
        """
        Process a single transaction.

        Returns:
            None: Transaction applied
            Diagnostic: Transaction rejected (locked account, insufficient funds,
                unknown or foreign referenced transaction, ...)
        """
        account = self._ledger.get_or_create_client(transaction.client_id)

        if account.locked:
            return self._reject(RejectionReason.ACCOUNT_LOCKED, transaction,
                                f"client {transaction.client_id} is locked, ignoring {transaction.transaction_type.value}")

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(account, transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(account, transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(account, transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(account, transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(account, transaction)

    def _reject(self, reason: RejectionReason, transaction: Transaction, message: str) -> Diagnostic:
        diagnostic = Diagnostic(
            reason=reason,
            client_id=transaction.client_id,
            transaction_id=transaction.transaction_id,
            message=message,
        )
        logger.warning(str(diagnostic))
        return diagnostic

    def _check_funding(self, transaction: Transaction) -> Optional[Diagnostic]:
        """Validation shared by deposits and withdrawals."""
        kind = transaction.transaction_type.value
        if transaction.amount is None:
            return self._reject(RejectionReason.MISSING_AMOUNT, transaction, f"{kind} has no amount")
        if transaction.amount < 0:
            return self._reject(RejectionReason.INVALID_AMOUNT, transaction,
                                f"{kind} has negative amount {transaction.amount}")
        if self._ledger.lookup_transaction(transaction.transaction_id) is not None:
            return self._reject(RejectionReason.DUPLICATE_TRANSACTION, transaction,
                                f"{kind} reuses transaction id {transaction.transaction_id}")
        return None

    def _handle_deposit(self, account: ClientAccount, transaction: Transaction) -> Optional[Diagnostic]:
        diagnostic = self._check_funding(transaction)
        if diagnostic is not None:
            return diagnostic

        account.credit(transaction.amount)
        self._ledger.record_transaction(transaction)
        return None

    def _handle_withdrawal(self, account: ClientAccount, transaction: Transaction) -> Optional[Diagnostic]:
        diagnostic = self._check_funding(transaction)
        if diagnostic is not None:
            return diagnostic

        if account.available < transaction.amount:
            return self._reject(RejectionReason.INSUFFICIENT_FUNDS, transaction,
                                f"insufficient funds: available {account.available}, requested {transaction.amount}")

        account.debit(transaction.amount)
        self._ledger.record_transaction(transaction)
        return None

    def _find_referenced(self, transaction: Transaction) -> Tuple[Optional[Transaction], Optional[Diagnostic]]:
        """Look up the deposit/withdrawal a dispute-family transaction points at and check its owner."""
        kind = transaction.transaction_type.value
        original = self._ledger.lookup_transaction(transaction.transaction_id)

        if original is None or original.amount is None:
            return None, self._reject(RejectionReason.TRANSACTION_NOT_FOUND, transaction,
                                      f"{kind} references unknown transaction {transaction.transaction_id}")

        if original.client_id != transaction.client_id:
            return None, self._reject(RejectionReason.CLIENT_MISMATCH, transaction,
                                      f"{kind} references transaction {transaction.transaction_id} "
                                      f"owned by client {original.client_id}")

        return original, None

    def _handle_dispute(self, account: ClientAccount, transaction: Transaction) -> Optional[Diagnostic]:
        original, diagnostic = self._find_referenced(transaction)
        if diagnostic is not None:
            return diagnostic

        if transaction.transaction_id in account.disputed:
            return self._reject(RejectionReason.ALREADY_DISPUTED, transaction,
                                f"transaction {transaction.transaction_id} is already disputed")

        account.hold(transaction.transaction_id, original.amount)
        return None

    def _handle_resolve(self, account: ClientAccount, transaction: Transaction) -> Optional[Diagnostic]:
        original, diagnostic = self._find_referenced(transaction)
        if diagnostic is not None:
            return diagnostic

        if transaction.transaction_id not in account.disputed:
            return self._reject(RejectionReason.NOT_DISPUTED, transaction,
                                f"resolve references transaction {transaction.transaction_id} which is not disputed")

        account.release_hold(transaction.transaction_id, original.amount)
        return None

    def _handle_chargeback(self, account: ClientAccount, transaction: Transaction) -> Optional[Diagnostic]:
        original, diagnostic = self._find_referenced(transaction)
        if diagnostic is not None:
            return diagnostic

        if transaction.transaction_id not in account.disputed:
            return self._reject(RejectionReason.NOT_DISPUTED, transaction,
                                f"chargeback references transaction {transaction.transaction_id} which is not disputed")

        account.charge_back(original.amount)
        return None


def apply_transaction(ledger: Ledger, transaction: Transaction) -> Optional[Diagnostic]:
    """Single fold step: apply `transaction` to `ledger`, returning a Diagnostic if it was rejected."""
    return TransactionProcessor(ledger).process_transaction(transaction)
