"""
Read Models

DESIGN DECISION: Reports are DETERMINISTIC functions of the ledger state.
They never mutate anything and never estimate: every figure is a sum or
ratio over stored records. The advisor builds its context from these same
reports, so the numbers it sees are the numbers the user sees.

Month boundaries are taken in UTC, the zone every stored instant is in.
"""

from datetime import date, datetime
from typing import Iterable, Optional, Protocol

from pydantic import BaseModel, Field

from mywallet.models.ledger import (
    BudgetConfig,
    Category,
    DebtStatus,
    RelationType,
    Transaction,
    TransactionType,
    utc_now,
)
from mywallet.models.snapshot import LedgerState

# Slice colour for expenses whose label matches no category
FALLBACK_CATEGORY_COLOR = "#94a3b8"


class StateSource(Protocol):
    @property
    def state(self) -> LedgerState: ...


# =============================================================================
# RESULT MODELS
# =============================================================================

class Totals(BaseModel):
    income: float = 0.0
    expense: float = 0.0

    @property
    def balance(self) -> float:
        return self.income - self.expense

    @property
    def savings_rate(self) -> float:
        """Percent of income kept; 0 when there is no income."""
        if self.income <= 0:
            return 0.0
        return (self.income - self.expense) / self.income * 100


class MonthlySpending(BaseModel):
    expenses: float
    monthly_income: float

    @property
    def budget_progress(self) -> float:
        """Expenses as a percent of the budgeted income (may exceed 100)."""
        if self.monthly_income <= 0:
            return 0.0
        return self.expenses / self.monthly_income * 100


class CategorySlice(BaseModel):
    name: str
    value: float
    color: str


class DaySummary(BaseModel):
    day: date
    income: float = 0.0
    expense: float = 0.0
    transactions: list[Transaction] = Field(default_factory=list)


class DebtSummary(BaseModel):
    owed_to_me: float = 0.0
    i_owe: float = 0.0
    open_debts: int = 0

    @property
    def net(self) -> float:
        return self.owed_to_me - self.i_owe


class GoalProgress(BaseModel):
    goal_id: str
    name: str
    current_amount: float
    target_amount: float
    progress: float = Field(..., ge=0, le=1)


class SegmentAllocation(BaseModel):
    segment_id: str
    name: str
    ratio: float
    amount: float
    color: str


# =============================================================================
# PURE HELPERS
# =============================================================================

def _month_key(value: datetime) -> tuple[int, int]:
    return value.year, value.month


def in_month(transactions: Iterable[Transaction], year: int, month: int) -> list[Transaction]:
    return [t for t in transactions if _month_key(t.date) == (year, month)]


def totals(transactions: Iterable[Transaction]) -> Totals:
    income = expense = 0.0
    for t in transactions:
        if t.type == TransactionType.INCOME:
            income += t.amount
        else:
            expense += t.amount
    return Totals(income=income, expense=expense)


def category_breakdown(
    transactions: Iterable[Transaction],
    categories: Iterable[Category],
) -> list[CategorySlice]:
    """Expenses grouped by category label, largest first."""
    colors = {c.label: c.color for c in categories}
    sums: dict[str, float] = {}
    for t in transactions:
        if t.type != TransactionType.EXPENSE:
            continue
        sums[t.category] = sums.get(t.category, 0.0) + t.amount

    slices = [
        CategorySlice(name=name, value=value, color=colors.get(name, FALLBACK_CATEGORY_COLOR))
        for name, value in sums.items()
    ]
    # Stable sort keeps first-seen order among equal values
    slices.sort(key=lambda s: s.value, reverse=True)
    return slices


def budget_allocation(budget: BudgetConfig) -> list[SegmentAllocation]:
    return [
        SegmentAllocation(
            segment_id=s.id,
            name=s.name,
            ratio=s.ratio,
            amount=budget.allocation(s),
            color=s.color,
        )
        for s in budget.segments
    ]


# =============================================================================
# REPORTS OVER A LIVE STORE
# =============================================================================

class LedgerReports:
    """
    Read models over whatever the source's current state is.

    The source is usually the FinanceStore; anything with a `state`
    attribute works.
    """

    def __init__(self, source: StateSource, clock=utc_now):
        self._source = source
        self._clock = clock

    @property
    def _state(self) -> LedgerState:
        return self._source.state

    def _transactions(self, current_month: bool, now: Optional[datetime]) -> list[Transaction]:
        txs = list(self._state.transactions)
        if not current_month:
            return txs
        now = now or self._clock()
        return in_month(txs, now.year, now.month)

    def totals(self, current_month: bool = False, now: Optional[datetime] = None) -> Totals:
        """Income, expense, balance and savings rate; all time or this month."""
        return totals(self._transactions(current_month, now))

    def monthly_spending(self, now: Optional[datetime] = None) -> MonthlySpending:
        """This month's expenses against the budgeted monthly income."""
        month = totals(self._transactions(True, now))
        return MonthlySpending(expenses=month.expense, monthly_income=self._state.budget.monthly_income)

    def category_breakdown(self, current_month: bool = False, now: Optional[datetime] = None) -> list[CategorySlice]:
        return category_breakdown(self._transactions(current_month, now), self._state.categories)

    def top_categories(
        self,
        limit: int = 3,
        current_month: bool = False,
        now: Optional[datetime] = None,
    ) -> list[CategorySlice]:
        return self.category_breakdown(current_month, now)[:limit]

    def calendar_month(self, year: int, month: int) -> dict[date, DaySummary]:
        """Transactions of one calendar month keyed by day; empty days are omitted."""
        days: dict[date, DaySummary] = {}
        for t in in_month(self._state.transactions, year, month):
            day = t.date.date()
            summary = days.get(day) or DaySummary(day=day)
            if t.type == TransactionType.INCOME:
                summary.income += t.amount
            else:
                summary.expense += t.amount
            summary.transactions.append(t)
            days[day] = summary
        return dict(sorted(days.items()))

    def debt_summary(self) -> DebtSummary:
        summary = DebtSummary()
        for person in self._state.people:
            remaining = sum(d.remaining for d in person.debts if d.status != DebtStatus.PAID)
            if person.relation_type == RelationType.OWES_ME:
                summary.owed_to_me += remaining
            else:
                summary.i_owe += remaining
            summary.open_debts += sum(1 for d in person.debts if d.status != DebtStatus.PAID)
        return summary

    def goal_progress(self) -> list[GoalProgress]:
        return [
            GoalProgress(
                goal_id=g.id,
                name=g.name,
                current_amount=g.current_amount,
                target_amount=g.target_amount,
                progress=g.progress,
            )
            for g in self._state.goals
        ]

    def budget_allocation(self) -> list[SegmentAllocation]:
        return budget_allocation(self._state.budget)

    def unread_count(self) -> int:
        return sum(1 for n in self._state.notifications if not n.read)
