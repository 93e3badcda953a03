"""
Recurring Transaction Scheduler

Turns due recurring templates into concrete transactions.

RULES (per active template, per pass):
1. Due iff next_run_date <= now, or falls on the same UTC calendar day
   as now (a run scheduled for later today is due today).
2. A due template materializes exactly ONE transaction dated at the
   scheduled next_run_date, not at "now".
3. next_run_date advances one period from its previous value, never
   from now. A template several periods behind catches up one period
   per pass; the backlog is never collapsed or fast-forwarded.
4. If anything was materialized, one aggregate info notification
   summarizes the count.

The pass is pure. The store commits its result in one atomic update.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from mywallet.models.ledger import (
    Notification,
    NotificationType,
    RecurringFrequency,
    RecurringTransaction,
    Transaction,
    TransactionType,
)

AUTO_NOTE_PREFIX = "Auto: "


def advance_run_date(current: datetime, frequency: RecurringFrequency) -> datetime:
    """
    One period after current.

    Calendar arithmetic for months and years: Jan 31 + 1 month is Feb 28/29.
    """
    if frequency == RecurringFrequency.DAILY:
        return current + timedelta(days=1)
    if frequency == RecurringFrequency.WEEKLY:
        return current + timedelta(weeks=1)
    if frequency == RecurringFrequency.MONTHLY:
        return current + relativedelta(months=1)
    if frequency == RecurringFrequency.YEARLY:
        return current + relativedelta(years=1)
    raise ValueError(f"Unknown frequency: {frequency}")


def is_due(template: RecurringTransaction, now: datetime) -> bool:
    if not template.active:
        return False
    run = template.next_run_date
    return run <= now or run.date() == now.astimezone(timezone.utc).date()


def materialize(template: RecurringTransaction) -> Transaction:
    """The transaction a due template produces."""
    return Transaction(
        amount=template.amount,
        type=template.type,
        category=template.category,
        date=template.next_run_date,
        notes=f"{AUTO_NOTE_PREFIX}{template.notes or template.category}",
        is_recurring=True,
    )


def new_template(
    amount: float,
    type: TransactionType,
    category: str,
    frequency: RecurringFrequency,
    start_date: datetime,
    notes: Optional[str] = None,
) -> RecurringTransaction:
    """A fresh template first runs on its start date."""
    return RecurringTransaction(
        amount=amount,
        type=type,
        category=category,
        notes=notes,
        frequency=frequency,
        start_date=start_date,
        next_run_date=start_date,
        active=True,
    )


@dataclass
class RecurringPassResult:
    """Everything one scheduler pass wants committed."""

    transactions: list[Transaction] = field(default_factory=list)
    templates: list[RecurringTransaction] = field(default_factory=list)
    advanced_ids: list[str] = field(default_factory=list)
    notification: Optional[Notification] = None

    @property
    def has_changes(self) -> bool:
        return bool(self.transactions)


def run_recurring_pass(
    templates: Iterable[RecurringTransaction],
    now: datetime,
) -> RecurringPassResult:
    """
    Run one scheduler pass over every template.

    Args:
        templates: Current recurring templates (order is preserved)
        now: The pass instant

    Returns:
        RecurringPassResult with the new transactions (in template order),
        the full template list with due ones advanced, and the optional
        summary notification.
    """
    result = RecurringPassResult()

    for template in templates:
        if not is_due(template, now):
            result.templates.append(template)
            continue

        result.transactions.append(materialize(template))
        result.templates.append(
            template.model_copy(
                update={"next_run_date": advance_run_date(template.next_run_date, template.frequency)}
            )
        )
        result.advanced_ids.append(template.id)

    if result.transactions:
        count = len(result.transactions)
        result.notification = Notification(
            title="Recurring transactions",
            message=f"{count} recurring transaction{'s' if count != 1 else ''} processed successfully",
            date=now,
            type=NotificationType.INFO,
        )

    return result
