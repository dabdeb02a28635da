from typing import Dict, Optional

from models import Transaction, ClientAccount


class Ledger:
    """
    Storage for client accounts and accepted deposits/withdrawals.
    Owned by a single fold loop; holds no behavior beyond storage and lookup.
    """

    def __init__(self):
        self._clients: Dict[int, ClientAccount] = {}
        self._transactions: Dict[int, Transaction] = {}

    def get_or_create_client(self, client_id: int) -> ClientAccount:
        """Get existing account or create a default one."""
        if client_id not in self._clients:
            self._clients[client_id] = ClientAccount(client_id=client_id)
        return self._clients[client_id]

    def get_client(self, client_id: int) -> Optional[ClientAccount]:
        """Look up an account without creating it."""
        return self._clients.get(client_id)

    def record_transaction(self, transaction: Transaction) -> None:
        """
        Store a deposit or withdrawal for future dispute lookups.
        Uniqueness of transaction ids is not checked here; a second write replaces the first.
        """
        self._transactions[transaction.transaction_id] = transaction

    def lookup_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Retrieve stored transaction by ID."""
        return self._transactions.get(transaction_id)

    @property
    def transaction_count(self) -> int:
        return len(self._transactions)

    def get_all_clients(self) -> Dict[int, ClientAccount]:
        """Return all accounts (for final output)."""
        return dict(self._clients)
