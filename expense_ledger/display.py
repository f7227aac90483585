"""
Display helpers for the presentation layer.

Static configuration only: the ledger never stores any of this.
Icon names are Material icon names; colors are hex strings.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import NamedTuple, Optional, Union

from expense_ledger.config import get_settings
from expense_ledger.models.expense import ExpenseCategory


class CategoryStyle(NamedTuple):
    icon: str
    color: str


CATEGORY_STYLES: dict[ExpenseCategory, CategoryStyle] = {
    ExpenseCategory.FOOD: CategoryStyle("fastfood", "#FF9800"),
    ExpenseCategory.TRAVEL: CategoryStyle("airplanemode_active", "#2196F3"),
    ExpenseCategory.SHOPPING: CategoryStyle("shopping_bag", "#9C27B0"),
    ExpenseCategory.BILLS: CategoryStyle("receipt_long", "#F44336"),
    ExpenseCategory.OTHERS: CategoryStyle("miscellaneous_services", "#9E9E9E"),
}


def category_style(category: Union[str, ExpenseCategory]) -> CategoryStyle:
    """Icon and color for a category; unknown categories draw as Others."""
    try:
        return CATEGORY_STYLES[ExpenseCategory(category)]
    except ValueError:
        return CATEGORY_STYLES[ExpenseCategory.OTHERS]


def format_amount(amount: Union[Decimal, float, int], symbol: Optional[str] = None) -> str:
    """Currency format with thousands separators, e.g. $1,234.56"""
    if symbol is None:
        symbol = get_settings().app.currency_symbol
    return f"{symbol}{Decimal(str(amount)):,.2f}"


def format_time_ago(when: datetime, now: Optional[datetime] = None) -> str:
    """
    Relative time as shown in the expense list.

    "45m ago" and "3h ago" within a day, then "Yesterday", then "4d ago".
    Timestamps in the future read as "0m ago".
    """
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    diff = now - when
    if diff.total_seconds() < 0:
        return "0m ago"

    if diff.days == 0:
        hours = diff.seconds // 3600
        if hours == 0:
            return f"{diff.seconds // 60}m ago"
        return f"{hours}h ago"
    if diff.days == 1:
        return "Yesterday"
    return f"{diff.days}d ago"
