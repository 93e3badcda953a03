"""
Pure mutations for the flat aggregates.

Each function maps (prior collection, arguments) to the next collection.
Collections are tuples; nothing is modified in place.
"""

from typing import Iterable

from mywallet.engine.errors import (
    GoalNotFoundError,
    NotificationNotFoundError,
    NotFoundError,
)
from mywallet.models.ledger import (
    AppSettings,
    Category,
    Goal,
    Notification,
    RecurringTransaction,
    Transaction,
)


# --- Transactions (newest first) ---

def add_transaction(trans: tuple[Transaction, ...], t: Transaction) -> tuple[Transaction, ...]:
    return (t,) + trans


def prepend_transactions(
    trans: tuple[Transaction, ...],
    new: Iterable[Transaction],
) -> tuple[Transaction, ...]:
    return tuple(new) + trans


def delete_transaction(trans: tuple[Transaction, ...], transaction_id: str) -> tuple[Transaction, ...]:
    if not any(t.id == transaction_id for t in trans):
        raise NotFoundError(f"Transaction {transaction_id} does not exist")
    return tuple(t for t in trans if t.id != transaction_id)


# --- Goals (insertion order) ---

def add_goal(goals: tuple[Goal, ...], goal: Goal) -> tuple[Goal, ...]:
    return goals + (goal,)


def update_goal_amount(goals: tuple[Goal, ...], goal_id: str, amount: float) -> tuple[Goal, ...]:
    """Set current_amount. Not clamped to the target."""
    if not any(g.id == goal_id for g in goals):
        raise GoalNotFoundError(f"Goal {goal_id} does not exist")
    return tuple(
        Goal.model_validate({**g.model_dump(), "current_amount": amount}) if g.id == goal_id else g
        for g in goals
    )


def delete_goal(goals: tuple[Goal, ...], goal_id: str) -> tuple[Goal, ...]:
    if not any(g.id == goal_id for g in goals):
        raise GoalNotFoundError(f"Goal {goal_id} does not exist")
    return tuple(g for g in goals if g.id != goal_id)


# --- Categories ---

def add_category(cats: tuple[Category, ...], category: Category) -> tuple[Category, ...]:
    """
    Append a user-defined category.

    Labels are the display key transactions point at, so duplicates
    are rejected.
    """
    label = category.label.casefold()
    if any(c.label.casefold() == label for c in cats):
        raise ValueError(f"A category labelled '{category.label}' already exists")
    return cats + (category.model_copy(update={"is_custom": True}),)


def delete_category(cats: tuple[Category, ...], category_id: str) -> tuple[Category, ...]:
    """Existing transactions keep their category label untouched."""
    if not any(c.id == category_id for c in cats):
        raise NotFoundError(f"Category {category_id} does not exist")
    return tuple(c for c in cats if c.id != category_id)


# --- Recurring templates ---

def add_recurring(
    templates: tuple[RecurringTransaction, ...],
    template: RecurringTransaction,
) -> tuple[RecurringTransaction, ...]:
    return templates + (template,)


def delete_recurring(
    templates: tuple[RecurringTransaction, ...],
    template_id: str,
) -> tuple[RecurringTransaction, ...]:
    if not any(r.id == template_id for r in templates):
        raise NotFoundError(f"Recurring template {template_id} does not exist")
    return tuple(r for r in templates if r.id != template_id)


def set_recurring_active(
    templates: tuple[RecurringTransaction, ...],
    template_id: str,
    active: bool,
) -> tuple[RecurringTransaction, ...]:
    if not any(r.id == template_id for r in templates):
        raise NotFoundError(f"Recurring template {template_id} does not exist")
    return tuple(
        r.model_copy(update={"active": active}) if r.id == template_id else r
        for r in templates
    )


# --- Notifications (newest first) ---

def prepend_notifications(
    notes: tuple[Notification, ...],
    new: Iterable[Notification],
) -> tuple[Notification, ...]:
    return tuple(new) + notes


def mark_notification_read(notes: tuple[Notification, ...], notification_id: str) -> tuple[Notification, ...]:
    if not any(n.id == notification_id for n in notes):
        raise NotificationNotFoundError(f"Notification {notification_id} does not exist")
    return tuple(
        n.model_copy(update={"read": True}) if n.id == notification_id else n
        for n in notes
    )


def mark_all_read(notes: tuple[Notification, ...]) -> tuple[Notification, ...]:
    return tuple(n if n.read else n.model_copy(update={"read": True}) for n in notes)


# --- Settings ---

def update_settings(current: AppSettings, changes: dict) -> AppSettings:
    """Partial update; the result is re-validated (currency must be supported)."""
    return AppSettings.model_validate({**current.model_dump(), **changes})
