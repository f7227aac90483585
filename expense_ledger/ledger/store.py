"""
Ledger Store

DESIGN DECISION: The LedgerStore is the ONLY component that touches the
ledger's keys. The presentation layer calls into it and renders what
comes back; it never reads or writes the key-value store itself.

GUARANTEES (after every operation, including failed ones):
- Every id in an account's list resolves, or is skipped on read
- No record is owned by two accounts
- "Default" always exists and is never deleted
- The current account always exists

The key-value store has no cross-key transactions, so multi-key writes
are ordered so that a crash between them leaves at worst a dangling id
(skipped on read) or an orphaned record (invisible, removed by repair()).

Mutations are serialized by one asyncio.Lock; reads are lock-free.
"""

import asyncio
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, Optional, Union
from uuid import uuid4

from expense_ledger.audit import AuditLogger, create_correlation_id
from expense_ledger.ledger.keys import (
    CURRENT_ACCOUNT_KEY,
    DEFAULT_ACCOUNT,
    account_key,
    account_name_from_key,
    expense_id_from_key,
    expense_key,
)
from expense_ledger.models.audit import AuditEventBuilder
from expense_ledger.models.expense import (
    Account,
    AccountSummary,
    ExpenseRecord,
    ExpenseRecordInput,
    RepairReport,
    utc_now,
)
from expense_ledger.services.storage import (
    PersistentKeyValueStore,
    RecordSchemaError,
    StorageUnavailable,
)


ZERO = Decimal("0.00")


class InvalidArgument(ValueError):
    """A malformed argument was rejected before any write happened."""
    pass


def _check_account_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidArgument("Account name must be a non-empty string")
    return name


class LedgerStore:
    """
    Sole authority over accounts, their expense lists and the expense table.

    Lifecycle:
        ledger = LedgerStore(store)
        await ledger.initialize()
        ...
        await ledger.shutdown()

    or `async with LedgerStore(store) as ledger: ...`
    """

    def __init__(
        self,
        store: PersistentKeyValueStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._lock = asyncio.Lock()
        self._current: Optional[str] = None
        self._closed = False

    async def __aenter__(self) -> "LedgerStore":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()

    @property
    def current_account(self) -> str:
        """Name of the selected account."""
        self._require_ready()
        return self._current

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit

    # ==================== Internals ====================

    def _require_ready(self) -> None:
        if self._closed:
            raise RuntimeError("LedgerStore has been shut down")
        if self._current is None:
            raise RuntimeError("LedgerStore.initialize() must be awaited first")

    @asynccontextmanager
    async def _mutation(self, operation: str, account_name: Optional[str] = None) -> AsyncIterator[None]:
        """Serialize a mutation and audit storage failures."""
        async with self._lock:
            try:
                yield
            except StorageUnavailable as e:
                self._audit.log(AuditEventBuilder.storage_error(
                    operation=operation,
                    error_message=str(e),
                    account_name=account_name,
                ))
                raise

    # Collaborator calls. Anything a backend raises that isn't already
    # StorageUnavailable is reported as StorageUnavailable.

    async def _get(self, key: str) -> Optional[Any]:
        try:
            return await self._store.get(key)
        except StorageUnavailable:
            raise
        except Exception as e:
            raise StorageUnavailable(f"Failed to read {key!r}: {e}") from e

    async def _put(self, key: str, value: Any) -> None:
        try:
            await self._store.put(key, value)
        except StorageUnavailable:
            raise
        except Exception as e:
            raise StorageUnavailable(f"Failed to write {key!r}: {e}") from e

    async def _delete(self, key: str) -> None:
        try:
            await self._store.delete(key)
        except StorageUnavailable:
            raise
        except Exception as e:
            raise StorageUnavailable(f"Failed to delete {key!r}: {e}") from e

    async def _keys(self) -> set[str]:
        try:
            return set(await self._store.keys())
        except StorageUnavailable:
            raise
        except Exception as e:
            raise StorageUnavailable(f"Failed to list keys: {e}") from e

    async def _account_exists(self, name: str) -> bool:
        return await self._get(account_key(name)) is not None

    async def _read_ids(self, name: str) -> Optional[list[str]]:
        """
        The account's id list, or None if the account doesn't exist.

        Raises:
            RecordSchemaError: If the stored value isn't a list of strings
        """
        value = await self._get(account_key(name))
        if value is None:
            return None
        if not isinstance(value, list) or not all(isinstance(i, str) for i in value):
            raise RecordSchemaError(f"Account {name!r} does not hold a list of expense ids")
        return list(value)

    async def _resolve(self, name: str, expense_ids: list[str]) -> list[ExpenseRecord]:
        """Load records in list order, skipping dangling and malformed ones."""
        records = []
        for expense_id in expense_ids:
            payload = await self._get(expense_key(expense_id))
            if payload is None:
                self._audit.log(AuditEventBuilder.dangling_id_skipped(name, expense_id))
                continue
            try:
                records.append(ExpenseRecord.from_storage(expense_id, payload))
            except RecordSchemaError as e:
                self._audit.log(AuditEventBuilder.malformed_record_skipped(name, expense_id, str(e)))
        return records

    async def _rollback_record(self, name: str, expense_id: str) -> None:
        try:
            await self._delete(expense_key(expense_id))
        except StorageUnavailable as e:
            # The orphan is invisible to reads; repair() removes it
            self._audit.log(AuditEventBuilder.rollback_failed(name, expense_id, str(e)))

    # ==================== Lifecycle ====================

    async def initialize(self) -> None:
        """
        Load or create the ledger.

        Creates "Default" if absent, loads the current-account pointer
        (defaulting to "Default") and creates the account it names if it
        is missing. Safe to call more than once.

        Raises:
            StorageUnavailable: If the key-value store doesn't respond
        """
        async with self._mutation("initialize", DEFAULT_ACCOUNT):
            if self._closed:
                raise RuntimeError("LedgerStore has been shut down")

            created = []
            if not await self._account_exists(DEFAULT_ACCOUNT):
                await self._put(account_key(DEFAULT_ACCOUNT), [])
                created.append(DEFAULT_ACCOUNT)

            current = await self._get(CURRENT_ACCOUNT_KEY)
            if not isinstance(current, str) or not current.strip():
                current = DEFAULT_ACCOUNT
                await self._put(CURRENT_ACCOUNT_KEY, current)

            if not await self._account_exists(current):
                await self._put(account_key(current), [])
                created.append(current)

            self._current = current
            self._audit.log(AuditEventBuilder.ledger_initialized(current, created))

    async def shutdown(self) -> None:
        """Close the key-value store. The ledger can't be used afterwards."""
        async with self._lock:
            if self._closed:
                return
            self._closed = True
            self._current = None
            await self._store.close()

    # ==================== Expenses ====================

    async def get_current_account_expenses(self) -> list[ExpenseRecord]:
        """
        Records of the current account, most recent first.

        Ids that don't resolve are skipped, not raised.
        """
        self._require_ready()
        return await self.get_account_expenses(self._current)

    async def get_account_expenses(self, account_name: str) -> list[ExpenseRecord]:
        """Records of any account, most recent first. Unknown account: []."""
        self._require_ready()
        expense_ids = await self._read_ids(account_name)
        if not expense_ids:
            return []
        return await self._resolve(account_name, expense_ids)

    async def add_expense(
        self,
        record: Union[ExpenseRecordInput, dict[str, Any]],
    ) -> ExpenseRecord:
        """
        Add an expense to the front of the current account.

        The record is written first, then the account list. If the list
        write fails the record is deleted again, so the expense is either
        fully added or not added at all.

        Raises:
            pydantic.ValidationError: If a dict input doesn't validate
            StorageUnavailable: If the expense could not be added
        """
        if not isinstance(record, ExpenseRecordInput):
            record = ExpenseRecordInput.model_validate(record)

        async with self._mutation("add_expense", self._current):
            self._require_ready()
            name = self._current

            expense = ExpenseRecord(
                id=uuid4().hex,
                title=record.title,
                amount=record.amount,
                category=record.category,
                created_at=record.created_at or utc_now(),
            )

            expense_ids = await self._read_ids(name) or []
            await self._put(expense_key(expense.id), expense.to_storage())
            try:
                await self._put(account_key(name), [expense.id] + expense_ids)
            except StorageUnavailable:
                await self._rollback_record(name, expense.id)
                raise

            self._audit.log(AuditEventBuilder.expense_added(
                account_name=name,
                expense_id=expense.id,
                amount=str(expense.amount),
                category=expense.category,
            ))
            return expense

    async def remove_expense(self, index: int) -> Optional[ExpenseRecord]:
        """
        Remove the expense at a position of the current account's list.

        The index counts over get_current_account_expenses() (front = 0).
        An out-of-range index, negative included, is a silent no-op.

        Returns:
            The removed record, or None if nothing was removed

        Raises:
            InvalidArgument: If index is not an integer
        """
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidArgument(f"Expense index must be an integer, got {index!r}")

        async with self._mutation("remove_expense", self._current):
            self._require_ready()
            name = self._current

            expense_ids = await self._read_ids(name) or []
            records = await self._resolve(name, expense_ids)
            if index < 0 or index >= len(records):
                self._audit.log(AuditEventBuilder.expense_remove_ignored(
                    name, reason=f"index out of range ({len(records)} expenses)", index=index,
                ))
                return None

            removed = records[index]
            await self._delete(expense_key(removed.id))
            expense_ids.remove(removed.id)
            await self._put(account_key(name), expense_ids)

            self._audit.log(AuditEventBuilder.expense_removed(name, removed.id, index))
            return removed

    async def remove_expense_by_id(self, expense_id: str) -> bool:
        """
        Remove an expense of the current account by id.

        Prefer this over remove_expense(): an id can't shift between the
        read that showed it and the write that removes it.

        Returns:
            True if removed, False if the current account doesn't own the id
        """
        async with self._mutation("remove_expense_by_id", self._current):
            self._require_ready()
            name = self._current

            expense_ids = await self._read_ids(name) or []
            if expense_id not in expense_ids:
                self._audit.log(AuditEventBuilder.expense_remove_ignored(
                    name, reason="expense not owned by account", expense_id=expense_id,
                ))
                return False

            await self._delete(expense_key(expense_id))
            expense_ids.remove(expense_id)
            await self._put(account_key(name), expense_ids)

            self._audit.log(AuditEventBuilder.expense_removed(name, expense_id, None))
            return True

    async def delete_all_expenses(self, account_name: Optional[str] = None) -> int:
        """
        Delete every expense of an account (the current one by default).

        Returns:
            How many ids were cleared. 0 (no-op) for an empty or unknown account.
        """
        if account_name is not None:
            _check_account_name(account_name)

        async with self._mutation("delete_all_expenses", account_name):
            self._require_ready()
            name = account_name if account_name is not None else self._current

            expense_ids = await self._read_ids(name)
            if not expense_ids:
                return 0

            for expense_id in expense_ids:
                await self._delete(expense_key(expense_id))
            await self._put(account_key(name), [])

            self._audit.log(AuditEventBuilder.expenses_cleared(name, len(expense_ids)))
            return len(expense_ids)

    # ==================== Accounts ====================

    async def switch_account(self, name: str) -> None:
        """
        Make an account current, creating it empty if needed.

        The selection is persisted before this returns.

        Raises:
            InvalidArgument: If name is empty
        """
        _check_account_name(name)

        async with self._mutation("switch_account", name):
            self._require_ready()

            if not await self._account_exists(name):
                await self._put(account_key(name), [])
                self._audit.log(AuditEventBuilder.account_created(name))

            await self._put(CURRENT_ACCOUNT_KEY, name)
            previous, self._current = self._current, name
            self._audit.log(AuditEventBuilder.account_switched(previous, name))

    async def create_account(self, name: str) -> bool:
        """
        Create an empty account.

        Returns:
            True if created, False if the name was already taken

        Raises:
            InvalidArgument: If name is empty
        """
        _check_account_name(name)

        async with self._mutation("create_account", name):
            self._require_ready()

            if await self._account_exists(name):
                return False
            await self._put(account_key(name), [])
            self._audit.log(AuditEventBuilder.account_created(name))
            return True

    async def delete_account(self, name: str) -> bool:
        """
        Delete an account and every expense it owns.

        "Default" is never deleted. If the account is current, the
        selection moves to "Default" first, so the pointer never names a
        deleted account even if the cascade fails part way.

        Returns:
            True if the account was deleted, False for "Default" or an
            unknown name

        Raises:
            InvalidArgument: If name is empty
        """
        _check_account_name(name)
        self._require_ready()

        if name == DEFAULT_ACCOUNT:
            self._audit.log(AuditEventBuilder.account_delete_rejected(
                name, reason="the default account cannot be deleted",
            ))
            return False

        async with self._mutation("delete_account", name):
            self._require_ready()

            expense_ids = await self._read_ids(name)
            if expense_ids is None:
                return False

            correlation_id = create_correlation_id()
            was_current = name == self._current

            if was_current:
                if not await self._account_exists(DEFAULT_ACCOUNT):
                    await self._put(account_key(DEFAULT_ACCOUNT), [])
                await self._put(CURRENT_ACCOUNT_KEY, DEFAULT_ACCOUNT)
                self._current = DEFAULT_ACCOUNT

            for expense_id in expense_ids:
                await self._delete(expense_key(expense_id))
            await self._delete(account_key(name))

            self._audit.log(AuditEventBuilder.account_deleted(
                name,
                removed_count=len(expense_ids),
                was_current=was_current,
                correlation_id=correlation_id,
            ))
            if was_current:
                self._audit.log(AuditEventBuilder.account_switched(name, DEFAULT_ACCOUNT))
            return True

    async def list_account_names(self) -> list[str]:
        """All account names, ascending."""
        self._require_ready()
        names = []
        for key in await self._keys():
            name = account_name_from_key(key)
            if name is not None:
                names.append(name)
        return sorted(names)

    async def get_account(self, name: str) -> Optional[Account]:
        self._require_ready()
        expense_ids = await self._read_ids(name)
        if expense_ids is None:
            return None
        return Account(name=name, expense_ids=expense_ids)

    # ==================== Aggregates ====================

    async def total_for(self, account_name: str) -> Decimal:
        """Sum of all resolvable amounts; 0.00 for an empty or unknown account."""
        records = await self.get_account_expenses(account_name)
        return sum((record.amount for record in records), ZERO)

    async def category_totals(self, account_name: str) -> dict[str, Decimal]:
        """
        Amount spent per category.

        Iteration order is not meaningful; sort explicitly for display
        (see top_categories).
        """
        totals: dict[str, Decimal] = {}
        for record in await self.get_account_expenses(account_name):
            totals[record.category] = totals.get(record.category, ZERO) + record.amount
        return totals

    async def top_categories(self, account_name: str, limit: int = 3) -> list[tuple[str, Decimal]]:
        """Biggest categories first; ties broken by category name."""
        totals = await self.category_totals(account_name)
        ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
        return ranked[:limit]

    async def account_summary(self, name: str) -> Optional[AccountSummary]:
        self._require_ready()
        expense_ids = await self._read_ids(name)
        if expense_ids is None:
            return None
        records = await self._resolve(name, expense_ids)
        return AccountSummary(
            name=name,
            expense_count=len(records),
            total=sum((record.amount for record in records), ZERO),
            is_current=name == self._current,
        )

    async def list_account_summaries(self) -> list[AccountSummary]:
        """One summary per account, in name order; unreadable accounts are skipped."""
        summaries = []
        for name in await self.list_account_names():
            try:
                summary = await self.account_summary(name)
            except RecordSchemaError as e:
                self._audit.log(AuditEventBuilder.corrupt_account_skipped(name, str(e)))
                continue
            if summary is not None:
                summaries.append(summary)
        return summaries

    # ==================== Maintenance ====================

    async def repair(self) -> RepairReport:
        """
        Sweep up what interrupted multi-key writes can leave behind.

        - ids with no record are dropped from account lists
        - an id listed by several accounts stays with the first one
          ("Default", then name order)
        - an account value that isn't a list of ids is reset to the
          string ids it still holds
        - records no account lists are deleted
        - a missing "Default" or current account is recreated empty
        """
        async with self._mutation("repair"):
            self._require_ready()
            report = RepairReport()

            keys = await self._keys()
            record_ids = set()
            names = []
            for key in keys:
                expense_id = expense_id_from_key(key)
                if expense_id is not None:
                    record_ids.add(expense_id)
                name = account_name_from_key(key)
                if name is not None:
                    names.append(name)
            names.sort(key=lambda n: (n != DEFAULT_ACCOUNT, n))

            owned: set[str] = set()
            for name in names:
                try:
                    expense_ids = await self._read_ids(name) or []
                    corrupt = False
                except RecordSchemaError:
                    value = await self._get(account_key(name))
                    expense_ids = []
                    if isinstance(value, list):
                        expense_ids = [i for i in value if isinstance(i, str)]
                    corrupt = True
                    report.corrupt_accounts.append(name)
                kept, dangling, duplicates = [], [], []
                for expense_id in expense_ids:
                    if expense_id not in record_ids:
                        dangling.append(expense_id)
                    elif expense_id in owned:
                        duplicates.append(expense_id)
                    else:
                        kept.append(expense_id)
                        owned.add(expense_id)
                if corrupt or dangling or duplicates:
                    await self._put(account_key(name), kept)
                if dangling:
                    report.dangling_ids[name] = dangling
                if duplicates:
                    report.duplicate_ids[name] = duplicates

            for expense_id in sorted(record_ids - owned):
                await self._delete(expense_key(expense_id))
                report.orphaned_records.append(expense_id)

            for name in (DEFAULT_ACCOUNT, self._current):
                if name not in names and not await self._account_exists(name):
                    await self._put(account_key(name), [])
                    names.append(name)
                    report.current_account_healed = True

            self._audit.log(AuditEventBuilder.ledger_repaired(
                dangling=sum(len(v) for v in report.dangling_ids.values()),
                duplicates=sum(len(v) for v in report.duplicate_ids.values()),
                orphans=len(report.orphaned_records),
                corrupt=len(report.corrupt_accounts),
                pointer_healed=report.current_account_healed,
            ))
            return report
