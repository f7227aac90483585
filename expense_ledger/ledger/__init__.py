"""The ledger: accounts, their expense lists, and aggregates over them."""

from expense_ledger.ledger.keys import DEFAULT_ACCOUNT
from expense_ledger.ledger.store import InvalidArgument, LedgerStore

__all__ = ["DEFAULT_ACCOUNT", "InvalidArgument", "LedgerStore"]
