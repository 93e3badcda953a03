"""
Debt Lifecycle Engine

State machine per DebtItem with states {unpaid, partial, paid}.

INVARIANTS:
- status is a pure function of paid_amount vs amount (debt_status, applied
  by DebtItem itself on every validation).
  A caller-supplied status is never accepted.
- last_payment_date (the reminder anchor) is set exactly when an update
  strictly increases paid_amount AND leaves the debt open. The payment
  that settles a debt leaves the previous anchor in place; reminders for
  paid debts are suppressed separately by the reminder engine.
- A person owns its debts. Deleting the person deletes them.

Every function here is pure: it takes records and returns new records.
"""

from datetime import datetime, time, timedelta, timezone
from typing import Any, Iterable, Optional

from mywallet.engine.errors import (
    DebtNotFoundError,
    InvalidPaymentError,
    PersonNotFoundError,
)
from mywallet.models.ledger import (
    DEBT_REPAYMENT_CATEGORY,
    DebtItem,
    DebtStatus,
    Person,
    RelationType,
    Transaction,
    TransactionType,
    debt_status,
)

PAYMENT_DUE_EXTENSION = timedelta(days=30)

# Fields a generic update may touch. status and last_payment_date are derived.
UPDATABLE_DEBT_FIELDS = frozenset({"amount", "paid_amount", "due_date", "notes", "date"})

_CAMEL_TO_FIELD = {
    "paidAmount": "paid_amount",
    "dueDate": "due_date",
    "lastPaymentDate": "last_payment_date",
}


def derive_status(amount: float, paid_amount: float) -> DebtStatus:
    """Status for the given amounts; DebtItem applies the same rule on validation."""
    return debt_status(amount, paid_amount)


def new_debt(
    amount: float,
    due_date: datetime,
    notes: Optional[str] = None,
    date: Optional[datetime] = None,
    debt_id: Optional[str] = None,
) -> DebtItem:
    """A freshly recorded debt: nothing paid yet, no reminder anchor."""
    fields: dict[str, Any] = {"amount": amount, "due_date": due_date, "date": date, "notes": notes}
    if debt_id is not None:
        fields["id"] = debt_id
    return DebtItem(paid_amount=0.0, last_payment_date=None, **fields)


def apply_debt_update(debt: DebtItem, updates: dict[str, Any], now: datetime) -> DebtItem:
    """
    Apply a generic field update and re-derive status.

    Args:
        debt: Current debt
        updates: Field -> value; snake_case or camelCase keys. Unknown
                 keys, status and last_payment_date are ignored.
        now: Instant recorded as the reminder anchor if a payment is made

    Returns:
        The updated debt (validated)
    """
    clean: dict[str, Any] = {}
    for key, value in updates.items():
        field = _CAMEL_TO_FIELD.get(key, key)
        if field in UPDATABLE_DEBT_FIELDS:
            clean[field] = value

    # Validate first so status and the anchor are decided on coerced values
    updated = DebtItem.model_validate({**debt.model_dump(), **clean})

    payment_made = updated.paid_amount > debt.paid_amount
    if payment_made and updated.status != DebtStatus.PAID:
        anchor = now
    else:
        anchor = debt.last_payment_date
    return DebtItem.model_validate({**updated.model_dump(), "last_payment_date": anchor})


def apply_payment(
    debt: DebtItem,
    requested: float,
    now: datetime,
    due_extension: timedelta = PAYMENT_DUE_EXTENSION,
) -> tuple[DebtItem, float]:
    """
    Apply a user payment.

    The payment is clamped to the remaining balance. Any non-zero applied
    payment resets the due date to now + due_extension (30 days by default),
    whether or not it settles the debt.

    Returns:
        (updated debt, amount actually applied)

    Raises:
        InvalidPaymentError: If requested is not positive
    """
    if requested is None or not requested > 0:
        raise InvalidPaymentError(f"Payment amount must be positive, got {requested!r}")

    remaining = debt.amount - debt.paid_amount
    applied = min(requested, remaining)
    if applied <= 0:
        return debt, 0.0

    updated = apply_debt_update(
        debt,
        {
            "paid_amount": debt.paid_amount + applied,
            "due_date": now + due_extension,
        },
        now,
    )
    return updated, applied


def settlement_transaction(person: Person, amount: float, now: datetime) -> Transaction:
    """
    The ledger transaction recorded alongside a debt payment.

    Money received from someone who owes me is income; money I pay back
    is an expense. Dated today at noon UTC.
    """
    is_income = person.relation_type == RelationType.OWES_ME
    noon = datetime.combine(now.astimezone(timezone.utc).date(), time(12, 0), tzinfo=timezone.utc)
    return Transaction(
        amount=amount,
        type=TransactionType.INCOME if is_income else TransactionType.EXPENSE,
        category=DEBT_REPAYMENT_CATEGORY,
        date=noon,
        notes=f"Payment {'from' if is_income else 'to'} {person.name}",
    )


# =============================================================================
# PERSON COLLECTION OPERATIONS
# =============================================================================

def find_person(people: Iterable[Person], person_id: str) -> Person:
    for person in people:
        if person.id == person_id:
            return person
    raise PersonNotFoundError(f"Person {person_id} does not exist")


def find_debt(person: Person, debt_id: str) -> DebtItem:
    for debt in person.debts:
        if debt.id == debt_id:
            return debt
    raise DebtNotFoundError(f"Debt {debt_id} does not exist for person {person.id}")


def first_open_debt(person: Person) -> Optional[DebtItem]:
    """The debt a quick-pay action targets: the first one not fully paid."""
    return next((d for d in person.debts if d.status != DebtStatus.PAID), None)


def add_person(people: tuple[Person, ...], person: Person) -> tuple[Person, ...]:
    """New people go to the front of the list."""
    return (person.model_copy(update={"debts": []}),) + people


def delete_person(people: tuple[Person, ...], person_id: str) -> tuple[Person, ...]:
    """Remove a person; their debts go with them."""
    find_person(people, person_id)
    return tuple(p for p in people if p.id != person_id)


def replace_debt(
    people: tuple[Person, ...],
    person_id: str,
    debt: DebtItem,
) -> tuple[Person, ...]:
    """Swap one debt inside its owning person."""
    person = find_person(people, person_id)
    find_debt(person, debt.id)
    debts = [debt if d.id == debt.id else d for d in person.debts]
    updated = person.model_copy(update={"debts": debts})
    return tuple(updated if p.id == person_id else p for p in people)


def add_debt(people: tuple[Person, ...], person_id: str, debt: DebtItem) -> tuple[Person, ...]:
    person = find_person(people, person_id)
    updated = person.model_copy(update={"debts": [*person.debts, debt]})
    return tuple(updated if p.id == person_id else p for p in people)


def update_debt(
    people: tuple[Person, ...],
    person_id: str,
    debt_id: str,
    updates: dict[str, Any],
    now: datetime,
) -> tuple[tuple[Person, ...], DebtItem]:
    person = find_person(people, person_id)
    debt = apply_debt_update(find_debt(person, debt_id), updates, now)
    return replace_debt(people, person_id, debt), debt


def record_payment(
    people: tuple[Person, ...],
    person_id: str,
    debt_id: str,
    requested: float,
    now: datetime,
    due_extension: timedelta = PAYMENT_DUE_EXTENSION,
) -> tuple[tuple[Person, ...], DebtItem, float]:
    """
    Apply a payment to one debt of one person.

    Returns:
        (new people tuple, updated debt, applied amount)
    """
    person = find_person(people, person_id)
    debt, applied = apply_payment(find_debt(person, debt_id), requested, now, due_extension)
    if applied == 0:
        return people, debt, 0.0
    return replace_debt(people, person_id, debt), debt, applied
