"""
Finance Store

The single source of truth for every aggregate of the ledger.

DESIGN DECISION: The store is an explicit object, constructed once and
injected into consumers (orchestrator, advisor, reports). There is no
module-level singleton.

Every named mutation follows the same steps:
1. Compute the next aggregate value with a pure engine function
   (this is where validation errors are raised, before anything changes)
2. Swap the new value into the immutable LedgerState in one assignment
3. Hand the changed aggregates to the persistence coordinator
4. Record an audit event
5. Notify change listeners with the set of changed storage keys

Mutations are synchronous and never interleave.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from mywallet.audit import AuditLogger, get_logger
from mywallet.config import Settings, get_settings
from mywallet.engine import aggregates, debts
from mywallet.engine.recurring import RecurringPassResult, run_recurring_pass
from mywallet.engine.reminders import run_reminder_pass
from mywallet.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from mywallet.models.ledger import (
    AppSettings,
    BudgetConfig,
    Category,
    DebtItem,
    Goal,
    Notification,
    Person,
    RecurringTransaction,
    Transaction,
    utc_now,
)
from mywallet.models.snapshot import LedgerState
from mywallet.services.persistence import (
    STATE_FIELDS,
    ImportResult,
    PersistenceCoordinator,
    SnapshotImportError,
    export_filename,
    export_snapshot,
    parse_snapshot,
)
from mywallet.services.scheduling import TaskScheduler
from mywallet.services.storage import (
    ALL_KEYS,
    BUDGET_KEY,
    CATEGORIES_KEY,
    GOALS_KEY,
    NOTIFICATIONS_KEY,
    PEOPLE_KEY,
    RECURRING_KEY,
    SETTINGS_KEY,
    TRANSACTIONS_KEY,
    InMemoryStorage,
    JsonFileStorage,
    KeyValueStorageInterface,
)
from mywallet.validation import BudgetValidationError, BudgetValidator

logger = get_logger(__name__)

ChangeListener = Callable[[frozenset[str]], None]

# Import replaces everything the backup carries; notifications are kept
SNAPSHOT_KEYS = tuple(k for k in ALL_KEYS if k != NOTIFICATIONS_KEY)


class FinanceStore:
    """
    Owns the ledger state and exposes reads and named mutations.

    Usage:
        store = FinanceStore(storage=InMemoryStorage())
        store.add_transaction(Transaction(amount=25, type="expense", category="Food", date=utc_now()))
        store.balance  # see mywallet.queries for read models
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorageInterface] = None,
        persistence: Optional[PersistenceCoordinator] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[BudgetValidator] = None,
        clock: Callable[[], datetime] = utc_now,
        payment_due_extension: timedelta = debts.PAYMENT_DUE_EXTENSION,
        reminder_offset_months: int = 1,
    ):
        self._audit = audit_logger or AuditLogger()
        self._persistence = persistence or PersistenceCoordinator(
            storage or InMemoryStorage(),
            audit_logger=self._audit,
        )
        self._validator = validator or BudgetValidator()
        self._clock = clock
        self._due_extension = payment_due_extension
        self._reminder_offset_months = reminder_offset_months
        self._listeners: list[ChangeListener] = []

        self._state = self._persistence.load_state()
        logger.info(
            "store_loaded",
            transactions=len(self._state.transactions),
            people=len(self._state.people),
            recurring=len(self._state.recurring),
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        scheduler: Optional[TaskScheduler] = None,
        audit_logger: Optional[AuditLogger] = None,
    ) -> "FinanceStore":
        """Build a store wired to the configured storage backend."""
        settings = settings or get_settings()
        audit_logger = audit_logger or AuditLogger(trail_size=settings.engine.audit_trail_size)

        if settings.storage.backend == "memory":
            storage: KeyValueStorageInterface = InMemoryStorage()
        else:
            storage = JsonFileStorage(settings.storage.data_dir)

        persistence = PersistenceCoordinator(
            storage,
            scheduler=scheduler,
            debounce_seconds=settings.storage.debounce_seconds,
            audit_logger=audit_logger,
        )
        return cls(
            persistence=persistence,
            audit_logger=audit_logger,
            payment_due_extension=timedelta(days=settings.scheduler.payment_due_extension_days),
            reminder_offset_months=settings.scheduler.reminder_offset_months,
        )

    # =========================================================================
    # READS
    # =========================================================================

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._state.transactions

    @property
    def people(self) -> tuple[Person, ...]:
        return self._state.people

    @property
    def goals(self) -> tuple[Goal, ...]:
        return self._state.goals

    @property
    def budget(self) -> BudgetConfig:
        return self._state.budget

    @property
    def settings(self) -> AppSettings:
        return self._state.settings

    @property
    def categories(self) -> tuple[Category, ...]:
        return self._state.categories

    @property
    def recurring(self) -> tuple[RecurringTransaction, ...]:
        return self._state.recurring

    @property
    def notifications(self) -> tuple[Notification, ...]:
        return self._state.notifications

    @property
    def persistence(self) -> PersistenceCoordinator:
        return self._persistence

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit

    # =========================================================================
    # CHANGE LISTENERS
    # =========================================================================

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Register a listener called with the changed storage keys after
        every committed mutation. Returns an unsubscribe callable.
        """
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, keys: frozenset[str]) -> None:
        for listener in list(self._listeners):
            try:
                listener(keys)
            except Exception as e:
                logger.error("change_listener_failed", keys=sorted(keys), error=str(e), exc_info=True)

    # =========================================================================
    # COMMIT
    # =========================================================================

    def _commit(self, changes: dict[str, Any], event: Optional[AuditEvent]) -> None:
        """Swap in the changed aggregates, persist, audit, notify."""
        self._state = self._state.evolve(**{STATE_FIELDS[k]: v for k, v in changes.items()})
        for key, value in changes.items():
            self._persistence.save(key, value)
        if event is not None:
            self._audit.log(event)
        self._notify(frozenset(changes))

    def _now(self) -> datetime:
        return self._clock()

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def add_transaction(self, transaction: Transaction) -> Transaction:
        self._commit(
            {TRANSACTIONS_KEY: aggregates.add_transaction(self.transactions, transaction)},
            AuditEventBuilder.mutation(
                AuditEventType.TRANSACTION_ADDED,
                TRANSACTIONS_KEY,
                transaction.id,
                f"{transaction.type.value.capitalize()} of {transaction.amount:g} in '{transaction.category}'",
            ),
        )
        return transaction

    def delete_transaction(self, transaction_id: str) -> None:
        self._commit(
            {TRANSACTIONS_KEY: aggregates.delete_transaction(self.transactions, transaction_id)},
            AuditEventBuilder.mutation(
                AuditEventType.TRANSACTION_DELETED, TRANSACTIONS_KEY, transaction_id, "Transaction deleted"
            ),
        )

    # =========================================================================
    # PEOPLE & DEBTS
    # =========================================================================

    def add_person(self, person: Person) -> Person:
        people = debts.add_person(self.people, person)
        added = people[0]
        self._commit(
            {PEOPLE_KEY: people},
            AuditEventBuilder.mutation(
                AuditEventType.PERSON_ADDED, PEOPLE_KEY, added.id, f"Person '{added.name}' added",
                {"relation_type": added.relation_type.value},
            ),
        )
        return added

    def delete_person(self, person_id: str) -> None:
        """Remove a person together with every debt they own."""
        person = debts.find_person(self.people, person_id)
        self._commit(
            {PEOPLE_KEY: debts.delete_person(self.people, person_id)},
            AuditEventBuilder.mutation(
                AuditEventType.PERSON_DELETED, PEOPLE_KEY, person_id, f"Person '{person.name}' deleted",
                {"debts_removed": len(person.debts)},
            ),
        )

    def add_debt(self, person_id: str, debt: DebtItem) -> DebtItem:
        """Record a new debt. Only amount, due date, date and notes are taken from the caller."""
        debt = debts.new_debt(debt.amount, debt.due_date, notes=debt.notes, date=debt.date, debt_id=debt.id)
        self._commit(
            {PEOPLE_KEY: debts.add_debt(self.people, person_id, debt)},
            AuditEventBuilder.mutation(
                AuditEventType.DEBT_ADDED, PEOPLE_KEY, debt.id, f"Debt of {debt.amount:g} added",
                {"person_id": person_id},
            ),
        )
        return debt

    def update_debt(self, person_id: str, debt_id: str, updates: dict[str, Any]) -> DebtItem:
        """Generic field update; status and the reminder anchor are re-derived."""
        people, debt = debts.update_debt(self.people, person_id, debt_id, updates, self._now())
        self._commit(
            {PEOPLE_KEY: people},
            AuditEventBuilder.mutation(
                AuditEventType.DEBT_UPDATED, PEOPLE_KEY, debt_id, "Debt updated",
                {"person_id": person_id, "fields": sorted(updates), "status": debt.status.value},
            ),
        )
        return debt

    def record_debt_payment(self, person_id: str, debt_id: str, amount: float) -> float:
        """
        Apply a payment to a debt and record the matching ledger transaction.

        Returns:
            The amount actually applied (clamped to the remaining balance).
            0.0 when the debt was already settled; nothing changes then.

        Raises:
            InvalidPaymentError: If amount is not positive
            PersonNotFoundError, DebtNotFoundError
        """
        now = self._now()
        people, debt, applied = debts.record_payment(
            self.people, person_id, debt_id, amount, now, self._due_extension
        )
        if applied == 0:
            return 0.0

        person = debts.find_person(people, person_id)
        settlement = debts.settlement_transaction(person, applied, now)
        self._commit(
            {
                PEOPLE_KEY: people,
                TRANSACTIONS_KEY: aggregates.add_transaction(self.transactions, settlement),
            },
            AuditEventBuilder.debt_payment_recorded(person_id, debt_id, amount, applied, debt.status.value),
        )
        return applied

    # =========================================================================
    # GOALS
    # =========================================================================

    def add_goal(self, goal: Goal) -> Goal:
        self._commit(
            {GOALS_KEY: aggregates.add_goal(self.goals, goal)},
            AuditEventBuilder.mutation(AuditEventType.GOAL_ADDED, GOALS_KEY, goal.id, f"Goal '{goal.name}' added"),
        )
        return goal

    def update_goal(self, goal_id: str, current_amount: float) -> None:
        self._commit(
            {GOALS_KEY: aggregates.update_goal_amount(self.goals, goal_id, current_amount)},
            AuditEventBuilder.mutation(
                AuditEventType.GOAL_UPDATED, GOALS_KEY, goal_id, "Goal amount updated",
                {"current_amount": current_amount},
            ),
        )

    def delete_goal(self, goal_id: str) -> None:
        self._commit(
            {GOALS_KEY: aggregates.delete_goal(self.goals, goal_id)},
            AuditEventBuilder.mutation(AuditEventType.GOAL_DELETED, GOALS_KEY, goal_id, "Goal deleted"),
        )

    # =========================================================================
    # BUDGET & SETTINGS
    # =========================================================================

    def update_budget(self, draft: BudgetConfig) -> BudgetConfig:
        """
        Commit a budget edit.

        Raises:
            BudgetValidationError: If the draft's ratios do not add up to
                                   100 (or it is otherwise invalid). The
                                   stored budget is unchanged.
        """
        try:
            result = self._validator.ensure_valid(draft)
        except BudgetValidationError as e:
            self._audit.log(AuditEventBuilder.budget_rejected(draft.ratio_total, e.result.messages))
            raise

        self._commit(
            {BUDGET_KEY: draft},
            AuditEventBuilder.mutation(
                AuditEventType.BUDGET_UPDATED, BUDGET_KEY, None, "Budget updated",
                {"segments": len(draft.segments), "warnings": result.messages},
            ),
        )
        return draft

    def update_settings(self, **changes: Any) -> AppSettings:
        """Partial settings update, e.g. update_settings(currency="USD")."""
        updated = aggregates.update_settings(self.settings, changes)
        self._commit(
            {SETTINGS_KEY: updated},
            AuditEventBuilder.mutation(
                AuditEventType.SETTINGS_UPDATED, SETTINGS_KEY, None, "Settings updated",
                {"fields": sorted(changes)},
            ),
        )
        return updated

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    def mark_notification_read(self, notification_id: str) -> None:
        self._commit(
            {NOTIFICATIONS_KEY: aggregates.mark_notification_read(self.notifications, notification_id)},
            AuditEventBuilder.mutation(
                AuditEventType.NOTIFICATION_READ, NOTIFICATIONS_KEY, notification_id, "Notification read"
            ),
        )

    def mark_all_notifications_read(self) -> None:
        self._commit(
            {NOTIFICATIONS_KEY: aggregates.mark_all_read(self.notifications)},
            AuditEventBuilder.mutation(
                AuditEventType.NOTIFICATION_READ, NOTIFICATIONS_KEY, None, "All notifications read"
            ),
        )

    def add_notifications(self, notifications: Iterable[Notification]) -> None:
        new = list(notifications)
        if not new:
            return
        self._commit(
            {NOTIFICATIONS_KEY: aggregates.prepend_notifications(self.notifications, new)},
            AuditEventBuilder.mutation(
                AuditEventType.NOTIFICATIONS_ADDED, NOTIFICATIONS_KEY, None,
                f"{len(new)} notification(s) added",
                {"notification_ids": [n.id for n in new]},
            ),
        )

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    def add_category(self, category: Category) -> Category:
        categories = aggregates.add_category(self.categories, category)
        added = categories[-1]
        self._commit(
            {CATEGORIES_KEY: categories},
            AuditEventBuilder.mutation(
                AuditEventType.CATEGORY_ADDED, CATEGORIES_KEY, added.id, f"Category '{added.label}' added"
            ),
        )
        return added

    def delete_category(self, category_id: str) -> None:
        self._commit(
            {CATEGORIES_KEY: aggregates.delete_category(self.categories, category_id)},
            AuditEventBuilder.mutation(
                AuditEventType.CATEGORY_DELETED, CATEGORIES_KEY, category_id, "Category deleted"
            ),
        )

    # =========================================================================
    # RECURRING TEMPLATES
    # =========================================================================

    def add_recurring(self, template: RecurringTransaction) -> RecurringTransaction:
        self._commit(
            {RECURRING_KEY: aggregates.add_recurring(self.recurring, template)},
            AuditEventBuilder.mutation(
                AuditEventType.RECURRING_ADDED, RECURRING_KEY, template.id,
                f"Recurring {template.frequency.value} {template.type.value} added",
            ),
        )
        return template

    def delete_recurring(self, template_id: str) -> None:
        self._commit(
            {RECURRING_KEY: aggregates.delete_recurring(self.recurring, template_id)},
            AuditEventBuilder.mutation(
                AuditEventType.RECURRING_DELETED, RECURRING_KEY, template_id, "Recurring template deleted"
            ),
        )

    def set_recurring_active(self, template_id: str, active: bool) -> None:
        self._commit(
            {RECURRING_KEY: aggregates.set_recurring_active(self.recurring, template_id, active)},
            AuditEventBuilder.mutation(
                AuditEventType.RECURRING_TOGGLED, RECURRING_KEY, template_id,
                "Recurring template resumed" if active else "Recurring template paused",
                {"active": active},
            ),
        )

    # =========================================================================
    # BACKGROUND PASSES
    # =========================================================================

    def apply_recurring_pass(self, now: Optional[datetime] = None) -> RecurringPassResult:
        """
        Materialize every due template and commit the result atomically.

        Transactions, advanced templates and the summary notification land
        in a single commit.
        """
        result = run_recurring_pass(self.recurring, now or self._now())
        if not result.has_changes:
            return result

        changes: dict[str, Any] = {
            TRANSACTIONS_KEY: aggregates.prepend_transactions(self.transactions, result.transactions),
            RECURRING_KEY: tuple(result.templates),
        }
        if result.notification is not None:
            changes[NOTIFICATIONS_KEY] = aggregates.prepend_notifications(
                self.notifications, [result.notification]
            )

        self._commit(
            changes,
            AuditEventBuilder.recurring_materialized(
                [t.id for t in result.transactions], result.advanced_ids
            ),
        )
        logger.info("recurring_pass_committed", materialized=len(result.transactions))
        return result

    def apply_reminder_pass(self, now: Optional[datetime] = None) -> list[Notification]:
        """Add any due debt reminders. Returns the notifications added."""
        new = run_reminder_pass(
            self.people,
            self.notifications,
            self.settings,
            now or self._now(),
            self._reminder_offset_months,
        )
        if not new:
            return []

        self._commit(
            {NOTIFICATIONS_KEY: aggregates.prepend_notifications(self.notifications, new)},
            AuditEventBuilder.reminders_issued([n.id for n in new]),
        )
        return new

    # =========================================================================
    # DATA MANAGEMENT
    # =========================================================================

    def export_data(self, now: Optional[datetime] = None) -> tuple[str, str]:
        """
        Build the backup document.

        Returns:
            (JSON text, suggested filename)
        """
        content = export_snapshot(self._state)
        filename = export_filename(now or self._now())
        self._audit.log(AuditEventBuilder.mutation(
            AuditEventType.DATA_EXPORTED, None, None, f"Data exported to {filename}",
        ))
        return content, filename

    def import_data(self, content: str | bytes) -> ImportResult:
        """
        Replace the ledger with a backup document.

        All-or-nothing: the document is fully validated before any
        aggregate is replaced. Notifications are kept.
        """
        try:
            snapshot = parse_snapshot(content)
        except SnapshotImportError as e:
            logger.warning("import_rejected", error=str(e))
            self._audit.log(AuditEventBuilder.import_failed(str(e)))
            return ImportResult(success=False, error=str(e))

        self._state = snapshot.to_state(self._state.notifications)
        self._persistence.write_now(self._state, SNAPSHOT_KEYS)
        self._audit.log(AuditEventBuilder.mutation(
            AuditEventType.DATA_IMPORTED, None, None, "Data imported",
            {"version": snapshot.version, "transactions": len(self._state.transactions)},
        ))
        self._notify(frozenset(SNAPSHOT_KEYS))
        return ImportResult(success=True)

    def reset_data(self) -> None:
        """Wipe storage and return every aggregate to its default."""
        self._persistence.clear_storage()
        self._state = LedgerState.defaults()
        self._audit.log(AuditEventBuilder.mutation(
            AuditEventType.DATA_RESET, None, None, "All data reset",
        ))
        self._notify(frozenset(ALL_KEYS))
