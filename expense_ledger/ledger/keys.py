"""Key space of the ledger inside the key-value store."""

from typing import Optional


DEFAULT_ACCOUNT = "Default"

CURRENT_ACCOUNT_KEY = "current_account"
ACCOUNT_PREFIX = "account:"
EXPENSE_PREFIX = "expense:"


def account_key(name: str) -> str:
    return f"{ACCOUNT_PREFIX}{name}"


def expense_key(expense_id: str) -> str:
    return f"{EXPENSE_PREFIX}{expense_id}"


def account_name_from_key(key: str) -> Optional[str]:
    """Account name for an account key, None for any other key."""
    if key.startswith(ACCOUNT_PREFIX) and len(key) > len(ACCOUNT_PREFIX):
        return key[len(ACCOUNT_PREFIX):]
    return None


def expense_id_from_key(key: str) -> Optional[str]:
    """Expense id for an expense key, None for any other key."""
    if key.startswith(EXPENSE_PREFIX) and len(key) > len(EXPENSE_PREFIX):
        return key[len(EXPENSE_PREFIX):]
    return None
