import sys
import logging
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Dict, List, Optional, TextIO

from models import BALANCE_CONTEXT, ClientAccount, PaymentsEngineError
from payments_engine import PaymentsEngine

logger = logging.getLogger(__name__)

FOUR_PLACES = Decimal("0.0001")


def format_decimal(value: Decimal) -> str:
    """Format decimal with exactly 4 decimal places."""
    return f"{value.quantize(FOUR_PLACES, rounding=ROUND_HALF_EVEN, context=BALANCE_CONTEXT):f}"


def write_accounts(accounts: Dict[int, ClientAccount], out: TextIO) -> None:
    out.write("client,available,held,total,locked\n")
    for client_id in sorted(accounts.keys()):
        account = accounts[client_id]
        out.write(
            f"{client_id},"
            f"{format_decimal(account.available)},"
            f"{format_decimal(account.held)},"
            f"{format_decimal(account.total)},"
            f"{str(account.locked).lower()}\n"
        )


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("Usage: payments-ledger <input.csv>", file=sys.stderr)
        return 1

    filepath = args[0]
    engine = PaymentsEngine()
    try:
        accounts = engine.process_file(filepath)
    except (PaymentsEngineError, OSError) as e:
        logger.error(f"Aborting run on {filepath}: {e}")
        return 1

    write_accounts(accounts, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
