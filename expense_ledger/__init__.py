"""
Expense Ledger - Source Package

A personal expense ledger: named accounts, each owning an ordered list
of expense records, kept on a swappable key-value store.

DESIGN PRINCIPLES:
1. The ledger is the sole authority over accounts and records
2. No dangling ids, no record owned by two accounts
3. "Default" always exists and is never deleted
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Ledger Team"
