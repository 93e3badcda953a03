"""Domain engines: debts, recurring scheduler, reminders, collection mutations."""

from mywallet.engine.debts import (
    apply_debt_update,
    apply_payment,
    derive_status,
    first_open_debt,
    new_debt,
    settlement_transaction,
)
from mywallet.engine.errors import (
    DebtNotFoundError,
    GoalNotFoundError,
    InvalidPaymentError,
    LedgerError,
    NotFoundError,
    NotificationNotFoundError,
    PersonNotFoundError,
)
from mywallet.engine.recurring import (
    RecurringPassResult,
    advance_run_date,
    run_recurring_pass,
)
from mywallet.engine.reminders import (
    reminder_key,
    run_reminder_pass,
)

__all__ = [
    # Debts
    "apply_debt_update",
    "apply_payment",
    "derive_status",
    "first_open_debt",
    "new_debt",
    "settlement_transaction",
    # Recurring
    "RecurringPassResult",
    "advance_run_date",
    "run_recurring_pass",
    # Reminders
    "reminder_key",
    "run_reminder_pass",
    # Errors
    "DebtNotFoundError",
    "GoalNotFoundError",
    "InvalidPaymentError",
    "LedgerError",
    "NotFoundError",
    "NotificationNotFoundError",
    "PersonNotFoundError",
]
