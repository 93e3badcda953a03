"""Read models over the ledger state."""

from mywallet.queries.reports import (
    FALLBACK_CATEGORY_COLOR,
    CategorySlice,
    DaySummary,
    DebtSummary,
    GoalProgress,
    LedgerReports,
    MonthlySpending,
    SegmentAllocation,
    Totals,
    budget_allocation,
    category_breakdown,
    totals,
)

__all__ = [
    "FALLBACK_CATEGORY_COLOR",
    "CategorySlice",
    "DaySummary",
    "DebtSummary",
    "GoalProgress",
    "LedgerReports",
    "MonthlySpending",
    "SegmentAllocation",
    "Totals",
    "budget_allocation",
    "category_breakdown",
    "totals",
]
