import sys
import os
import random
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models import RejectionReason
from payments_engine import PaymentsEngine


class TestPaymentsEngineLargeScale:
    def test_1000_accounts_6000_transactions(self, tmp_path):
        """Test with 1000 accounts and 6000 transactions."""
        num_clients = 1000
        rows = ["type, client, tx, amount"]
        tx_id = 1

        # Each client: deposits 100, 200, 300, withdrawals 50, 100, then one more deposit of 50
        for client_id in range(1, num_clients + 1):
            for kind, amount in (("deposit", 100), ("deposit", 200), ("deposit", 300),
                                 ("withdrawal", 50), ("withdrawal", 100)):
                rows.append(f"{kind}, {client_id}, {tx_id}, {amount}")
                tx_id += 1

        for client_id in range(1, num_clients + 1):
            rows.append(f"deposit, {client_id}, {tx_id}, 50")
            tx_id += 1

        expected_balance = Decimal("500")

        csv_file = tmp_path / "large_test.csv"
        csv_file.write_text('\n'.join(rows))

        engine = PaymentsEngine()
        accounts = engine.process_file(str(csv_file))

        assert len(accounts) == num_clients
        assert engine.ledger.transaction_count == num_clients * 6
        assert engine.diagnostics == []

        for client_id in range(1, num_clients + 1):
            assert accounts[client_id].available == expected_balance, \
                f"Client {client_id}: expected {expected_balance}, got {accounts[client_id].available}"
            assert accounts[client_id].held == Decimal("0")
            assert accounts[client_id].locked is False

    def test_with_disputes_resolves_chargebacks(self, tmp_path):
        """Disputes, resolves and chargebacks across 50 accounts."""
        rows = ["type, client, tx, amount"]

        # Client 1-10: deposits only, 500 each
        for client_id in range(1, 11):
            rows.append(f"deposit, {client_id}, {client_id * 100 + 1}, 100")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 2}, 150")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 3}, 250")

        # Client 11-20: deposit -> dispute -> resolve, 500 each
        for client_id in range(11, 21):
            rows.append(f"deposit, {client_id}, {client_id * 100 + 1}, 100")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 2}, 150")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 3}, 250")
        for client_id in range(11, 21):
            rows.append(f"dispute, {client_id}, {client_id * 100 + 1},")
        for client_id in range(11, 21):
            rows.append(f"resolve, {client_id}, {client_id * 100 + 1},")

        # Client 21-30: deposit -> dispute -> chargeback, then a rejected deposit; 400 each, locked
        for client_id in range(21, 31):
            rows.append(f"deposit, {client_id}, {client_id * 100 + 1}, 100")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 2}, 150")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 3}, 250")
        for client_id in range(21, 31):
            rows.append(f"dispute, {client_id}, {client_id * 100 + 1},")
        for client_id in range(21, 31):
            rows.append(f"chargeback, {client_id}, {client_id * 100 + 1},")
        for client_id in range(21, 31):
            rows.append(f"deposit, {client_id}, {client_id * 100 + 4}, 1000")

        # Client 31-40: deposit -> withdrawal -> dispute on deposit; available=150, held=150
        for client_id in range(31, 41):
            rows.append(f"deposit, {client_id}, {client_id * 100 + 1}, 150")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 2}, 250")
            rows.append(f"withdrawal, {client_id}, {client_id * 100 + 3}, 100")
        for client_id in range(31, 41):
            rows.append(f"dispute, {client_id}, {client_id * 100 + 1},")

        # Client 41-50: dispute the middle deposit of three, then resolve; 600 each
        for client_id in range(41, 51):
            rows.append(f"deposit, {client_id}, {client_id * 100 + 1}, 100")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 2}, 200")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 3}, 300")
        for client_id in range(41, 51):
            rows.append(f"dispute, {client_id}, {client_id * 100 + 2},")
        for client_id in range(41, 51):
            rows.append(f"resolve, {client_id}, {client_id * 100 + 2},")

        csv_file = tmp_path / "disputes_test.csv"
        csv_file.write_text('\n'.join(rows))

        engine = PaymentsEngine()
        accounts = engine.process_file(str(csv_file))

        for client_id in range(1, 11):
            assert accounts[client_id].available == Decimal("500"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("0")
            assert accounts[client_id].locked is False

        for client_id in range(11, 21):
            assert accounts[client_id].available == Decimal("500"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("0")
            assert accounts[client_id].locked is False
            assert accounts[client_id].disputed == set()

        for client_id in range(21, 31):
            assert accounts[client_id].available == Decimal("400"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("0")
            assert accounts[client_id].total == Decimal("400")
            assert accounts[client_id].locked is True

        for client_id in range(31, 41):
            assert accounts[client_id].available == Decimal("150"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("150")
            assert accounts[client_id].total == Decimal("300")
            assert accounts[client_id].locked is False

        for client_id in range(41, 51):
            assert accounts[client_id].available == Decimal("600"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("0")
            assert accounts[client_id].locked is False

        assert engine.stats.rejected == 10
        assert engine.stats.rejections_by_reason[RejectionReason.ACCOUNT_LOCKED] == 10

    def test_single_client_at_id_limits(self, tmp_path):
        """Max u16 client, u32 transaction ids counting down from the top of the range."""
        rng = random.Random(7)
        client_id = 65535
        tx_id = 4294967295
        rows = ["type, client, tx, amount"]

        available = Decimal("0")
        held = Decimal("0")
        deposited = {}
        disputes = {}

        for _ in range(2000):
            amount = Decimal(rng.randint(1, 10000)) / 10000
            deposited[tx_id] = amount
            available += amount
            rows.append(f"deposit,{client_id},{tx_id},{amount}")
            tx_id -= 1

        for _ in range(200):
            amount = Decimal(rng.randint(1, 5000)) / 10000
            available -= amount
            rows.append(f"withdrawal,{client_id},{tx_id},{amount}")
            tx_id -= 1

        for _ in range(200):
            disputed_id, amount = deposited.popitem()
            disputes[disputed_id] = amount
            available -= amount
            held += amount
            rows.append(f"dispute,{client_id},{disputed_id},")

        for _ in range(100):
            resolved_id, amount = disputes.popitem()
            available += amount
            held -= amount
            rows.append(f"resolve,{client_id},{resolved_id},")

        csv_file = tmp_path / "limits.csv"
        csv_file.write_text('\n'.join(rows))

        engine = PaymentsEngine()
        accounts = engine.process_file(str(csv_file))

        account = accounts[client_id]
        assert engine.diagnostics == []
        assert account.available == available
        assert account.held == held
        assert account.disputed == set(disputes)
