"""
Core Data Models for Expense Ledger

These models define the strict schemas for everything the ledger
persists or returns. They are designed to:
1. Enforce type safety at runtime
2. Fix the serialization contract (field names and types)
3. Reject stored payloads that don't match instead of trusting casts

DESIGN DECISION: Display attributes (icon, color) are NOT part of an
expense. They are derived from the category at read time
(see expense_ledger.display), so they can never drift out of sync.
"""

from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from expense_ledger.services.storage.interface import RecordSchemaError


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
TWO_PLACES = Decimal("0.01")
# 15 significant digits: the largest two-place amount a stored float64 gives back exactly
MAX_AMOUNT = Decimal("9999999999999.99")

# Fields older clients persisted next to the category
LEGACY_DISPLAY_FIELDS = frozenset({"icon", "color"})
STORAGE_FIELDS = frozenset({"title", "amount", "category", "createdAt"})


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Known expense categories.

    The ledger groups by any non-empty category string; these are the
    ones the display table knows how to draw.
    """
    FOOD = "Food"
    TRAVEL = "Travel"
    SHOPPING = "Shopping"
    BILLS = "Bills"
    OTHERS = "Others"


# =============================================================================
# TIMESTAMP HELPERS
# =============================================================================

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_timestamp(value: datetime) -> datetime:
    """UTC, truncated to whole milliseconds (the precision we store)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def to_epoch_millis(value: datetime) -> int:
    return (normalize_timestamp(value) - EPOCH) // timedelta(milliseconds=1)


def from_epoch_millis(millis: int) -> datetime:
    return EPOCH + timedelta(milliseconds=millis)


# =============================================================================
# EXPENSE MODELS
# =============================================================================

class _ExpenseFields(BaseModel):
    """Fields and normalization shared by expense input and stored records."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the money was spent on"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        le=MAX_AMOUNT,
        description="Amount spent, in currency units"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Grouping key, usually an ExpenseCategory value"
    )

    @field_validator('category', mode='before')
    @classmethod
    def unwrap_category(cls, v: Any) -> Any:
        if isinstance(v, Enum):
            return v.value
        return v

    @field_validator('amount')
    @classmethod
    def quantize_amount(cls, v: Decimal) -> Decimal:
        """Amounts are kept at two decimal places."""
        try:
            quantized = v.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        except InvalidOperation as e:
            raise ValueError(f"Amount {v} cannot be kept at two decimal places") from e
        if quantized <= 0:
            raise ValueError("Amount must be at least 0.01")
        return quantized


class ExpenseRecordInput(_ExpenseFields):
    """
    What a caller supplies when adding an expense.

    The ledger assigns the id; created_at defaults to now.
    """

    created_at: Optional[datetime] = Field(
        default=None,
        description="When the money was spent (defaults to now)"
    )

    @field_validator('created_at')
    @classmethod
    def normalize_created_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return normalize_timestamp(v) if v is not None else None


class ExpenseRecord(_ExpenseFields):
    """
    A persisted expense.

    CRITICAL: Records are immutable. The id is assigned once by the
    ledger and never changes.
    """

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque id assigned by the ledger"
    )
    created_at: datetime = Field(
        ...,
        description="When the money was spent (UTC)"
    )

    @field_validator('created_at')
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return normalize_timestamp(v)

    def to_storage(self) -> dict[str, Any]:
        """
        Serialize for the key-value store.

        The id is not part of the payload; it lives in the key.
        """
        return {
            "title": self.title,
            "amount": float(self.amount),
            "category": self.category,
            "createdAt": to_epoch_millis(self.created_at),
        }

    @classmethod
    def from_storage(cls, expense_id: str, payload: Any) -> "ExpenseRecord":
        """
        Rebuild a record from its stored payload.

        Legacy payloads carrying icon/color are migrated by dropping them.
        Anything else that doesn't match the schema is rejected.

        Raises:
            RecordSchemaError: If the payload doesn't match
        """
        if not isinstance(payload, dict):
            raise RecordSchemaError(
                f"Expense {expense_id}: expected an object, got {type(payload).__name__}"
            )

        data = {k: v for k, v in payload.items() if k not in LEGACY_DISPLAY_FIELDS}
        unknown = set(data) - STORAGE_FIELDS
        missing = STORAGE_FIELDS - set(data)
        if unknown or missing:
            raise RecordSchemaError(
                f"Expense {expense_id}: unknown fields {sorted(unknown)}, "
                f"missing fields {sorted(missing)}"
            )

        amount = data["amount"]
        created_at = data["createdAt"]
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise RecordSchemaError(f"Expense {expense_id}: amount must be a number")
        if isinstance(created_at, bool) or not isinstance(created_at, int):
            raise RecordSchemaError(f"Expense {expense_id}: createdAt must be integer milliseconds")

        try:
            return cls(
                id=expense_id,
                title=data["title"],
                amount=Decimal(str(amount)),
                category=data["category"],
                created_at=from_epoch_millis(created_at),
            )
        except (ValidationError, OverflowError, InvalidOperation) as e:
            raise RecordSchemaError(f"Expense {expense_id}: {e}") from e


# =============================================================================
# ACCOUNT MODELS
# =============================================================================

class Account(BaseModel):
    """
    A named partition of expenses.

    expense_ids are ordered most recent first.
    """

    name: str = Field(
        ...,
        min_length=1,
        description="Unique, case-sensitive account name"
    )
    expense_ids: list[str] = Field(
        default_factory=list,
        description="Owned expense ids, most recent first"
    )


class AccountSummary(BaseModel):
    """One line of the account manager: how much lives in an account."""

    name: str
    expense_count: int = Field(ge=0)
    total: Decimal = Field(
        ...,
        description="Sum of resolvable expense amounts"
    )
    is_current: bool = False


class RepairReport(BaseModel):
    """What a consistency sweep changed."""

    dangling_ids: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Ids removed from an account because no record exists"
    )
    duplicate_ids: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Ids removed because another account already owns them"
    )
    orphaned_records: list[str] = Field(
        default_factory=list,
        description="Records deleted because no account references them"
    )
    corrupt_accounts: list[str] = Field(
        default_factory=list,
        description="Accounts whose stored value was not a list of ids, reset to what could be salvaged"
    )
    current_account_healed: bool = False

    @property
    def changed(self) -> bool:
        return bool(
            self.dangling_ids
            or self.duplicate_ids
            or self.orphaned_records
            or self.corrupt_accounts
            or self.current_account_healed
        )
