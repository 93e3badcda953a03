"""
Whole-ledger state and the backup snapshot document.

LedgerState is the in-memory value the store swaps atomically.
Snapshot is the export/import file format.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from pydantic import Field

from mywallet.models.ledger import (
    DEFAULT_CATEGORIES,
    AppSettings,
    BudgetConfig,
    Category,
    Goal,
    LedgerRecord,
    Notification,
    Person,
    RecurringTransaction,
    Transaction,
    default_settings,
)
from mywallet.models.migration import default_budget, normalize_budget

SNAPSHOT_VERSION = "2.0"


@dataclass(frozen=True)
class LedgerState:
    """Every aggregate the store owns, as immutable values."""

    transactions: tuple[Transaction, ...] = ()
    people: tuple[Person, ...] = ()
    goals: tuple[Goal, ...] = ()
    budget: BudgetConfig = field(default_factory=default_budget)
    settings: AppSettings = field(default_factory=default_settings)
    categories: tuple[Category, ...] = DEFAULT_CATEGORIES
    recurring: tuple[RecurringTransaction, ...] = ()
    notifications: tuple[Notification, ...] = ()

    @classmethod
    def defaults(cls) -> "LedgerState":
        return cls()

    def evolve(self, **changes: Any) -> "LedgerState":
        return replace(self, **changes)


class Snapshot(LedgerRecord):
    """
    The backup document.

    Every aggregate field is optional on import: an absent (or null) field
    resets that aggregate to its default. budget is kept raw here so the
    legacy migration can see the original shape.
    """

    transactions: Optional[list[Transaction]] = None
    people: Optional[list[Person]] = None
    goals: Optional[list[Goal]] = None
    budget: Optional[Any] = None
    settings: Optional[AppSettings] = None
    categories: Optional[list[Category]] = None
    recurring_transactions: Optional[list[RecurringTransaction]] = None
    version: str = Field(default=SNAPSHOT_VERSION)

    @classmethod
    def from_state(cls, state: LedgerState) -> "Snapshot":
        return cls(
            transactions=list(state.transactions),
            people=list(state.people),
            goals=list(state.goals),
            budget=state.budget.to_json_dict(),
            settings=state.settings,
            categories=list(state.categories),
            recurring_transactions=list(state.recurring),
            version=SNAPSHOT_VERSION,
        )

    def to_state(self, notifications: tuple[Notification, ...] = ()) -> LedgerState:
        """
        Build the state an import would install.

        Notifications are not part of the backup format and are carried
        over from the caller.
        """
        return LedgerState(
            transactions=tuple(self.transactions or ()),
            people=tuple(self.people or ()),
            goals=tuple(self.goals or ()),
            budget=normalize_budget(self.budget),
            settings=self.settings or default_settings(),
            categories=tuple(self.categories) if self.categories is not None else DEFAULT_CATEGORIES,
            recurring=tuple(self.recurring_transactions or ()),
            notifications=notifications,
        )
