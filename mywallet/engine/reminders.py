"""
Notification/Reminder Engine

Derives debt payment reminders from debt state.

A debt is eligible when it has a reminder anchor (last_payment_date) and
is not paid. Its reminder becomes due one calendar month after the anchor.

DEDUP BY CONSTRUCTION: the reminder id is
    debt-payment-reminder-{person_id}-{debt_id}-{last_payment_date}
so at most one reminder exists per anchor value. Running the engine twice
on unchanged state emits nothing the second time. A new reminder is only
possible after a later payment moves the anchor.
"""

from datetime import datetime
from typing import Iterable

from dateutil.relativedelta import relativedelta

from mywallet.models.ledger import (
    AppSettings,
    DebtItem,
    DebtStatus,
    Notification,
    NotificationType,
    Person,
    format_currency,
)

REMINDER_ID_PREFIX = "debt-payment-reminder"


def reminder_key(person_id: str, debt_id: str, last_payment_date: datetime) -> str:
    """Deterministic dedup key for one reminder anchor."""
    return f"{REMINDER_ID_PREFIX}-{person_id}-{debt_id}-{last_payment_date.isoformat()}"


def reminder_date(debt: DebtItem, offset_months: int = 1) -> datetime:
    return debt.last_payment_date + relativedelta(months=offset_months)


def needs_reminder(debt: DebtItem, now: datetime, offset_months: int = 1) -> bool:
    if debt.last_payment_date is None or debt.status == DebtStatus.PAID:
        return False
    return now > reminder_date(debt, offset_months)


def build_reminder(person: Person, debt: DebtItem, currency: str, now: datetime) -> Notification:
    remaining = format_currency(debt.amount - debt.paid_amount, currency)
    return Notification(
        id=reminder_key(person.id, debt.id, debt.last_payment_date),
        title="Payment reminder",
        message=(
            f"A month has passed since the last payment on the debt with {person.name}. "
            f"Remaining balance: {remaining}"
        ),
        date=now,
        read=False,
        type=NotificationType.WARNING,
    )


def run_reminder_pass(
    people: Iterable[Person],
    notifications: Iterable[Notification],
    settings: AppSettings,
    now: datetime,
    offset_months: int = 1,
) -> list[Notification]:
    """
    Compute the reminders that should be added now.

    Args:
        people: Current people (with their debts)
        notifications: Existing notifications, used for dedup
        settings: Reminders are only produced if notifications are enabled
        now: The pass instant
        offset_months: Months after the anchor before a reminder is due

    Returns:
        New notifications only. Empty when nothing is due.
    """
    if not settings.notifications_enabled:
        return []

    seen = {n.id for n in notifications}
    new: list[Notification] = []

    for person in people:
        for debt in person.debts:
            if not needs_reminder(debt, now, offset_months):
                continue
            key = reminder_key(person.id, debt.id, debt.last_payment_date)
            if key in seen:
                continue
            seen.add(key)
            new.append(build_reminder(person, debt, settings.currency, now))

    return new
