"""
Tests for MyWallet models

Test strategy:
1. Unit tests for individual components (models, migration, engines)
2. Integration tests for the store (with in-memory storage)
3. No real API calls in tests (use fakes)
"""

from datetime import datetime, timedelta, timezone

import pytest

from mywallet.models import (
    DEFAULT_CATEGORIES,
    AppSettings,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    BudgetConfig,
    BudgetSegment,
    Category,
    CategoryIcon,
    DebtItem,
    DebtStatus,
    Goal,
    Notification,
    Person,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    format_currency,
    icon_glyph,
    normalize_budget,
)
from mywallet.models.migration import LEGACY_SEGMENT_SLOTS, default_budget, is_legacy_budget


class TestLedgerModels:
    """Tests for the ledger record models."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        t = Transaction(
            amount=250,
            type=TransactionType.EXPENSE,
            category="Transport",
            date=datetime(2024, 1, 5, 12, tzinfo=timezone.utc),
        )
        assert t.amount == 250
        assert t.signed_amount == -250
        assert len(t.id) == 32

    def test_transaction_rejects_non_positive_amount(self):
        """Test that zero and negative amounts are rejected."""
        with pytest.raises(ValueError):
            Transaction(amount=0, type="income", category="Salary", date=datetime.now(timezone.utc))
        with pytest.raises(ValueError):
            Transaction(amount=-5, type="income", category="Salary", date=datetime.now(timezone.utc))

    def test_naive_dates_are_utc(self):
        """Test that naive instants from older exports are read as UTC."""
        t = Transaction(amount=1, type="income", category="Salary", date=datetime(2024, 1, 1, 8))
        assert t.date.tzinfo == timezone.utc
        assert t.date.hour == 8

    def test_offset_dates_are_converted_to_utc(self):
        """Test that aware instants are normalized to UTC."""
        plus_three = timezone(timedelta(hours=3))
        t = Transaction(amount=1, type="income", category="Salary", date=datetime(2024, 1, 1, 12, tzinfo=plus_three))
        assert t.date == datetime(2024, 1, 1, 9, tzinfo=timezone.utc)

    def test_records_are_frozen(self):
        """Test that records cannot be modified in place."""
        goal = Goal(name="Car", target_amount=5000)
        with pytest.raises(ValueError):
            goal.current_amount = 10

    def test_camel_case_round_trip(self):
        """Test that records serialize with camelCase keys and load them back."""
        debt = DebtItem(amount=100, paid_amount=40, due_date=datetime(2024, 5, 1, tzinfo=timezone.utc))
        data = debt.to_json_dict()
        assert "paidAmount" in data
        assert "dueDate" in data
        assert "lastPaymentDate" not in data
        assert DebtItem.model_validate(data) == debt

    def test_whitespace_is_stripped(self):
        """Test that whitespace is stripped from names."""
        person = Person(name="  Sara  ", relation_type="i_owe")
        assert person.name == "Sara"

    def test_person_totals(self):
        """Test Person aggregate amounts."""
        due = datetime(2024, 5, 1, tzinfo=timezone.utc)
        person = Person(
            name="Omar",
            relation_type="owes_me",
            debts=[
                DebtItem(amount=100, paid_amount=30, due_date=due),
                DebtItem(amount=50, due_date=due),
            ],
        )
        assert person.total_amount == 150
        assert person.total_paid == 30
        assert person.remaining == 120

    def test_goal_progress_is_clamped_for_display_only(self):
        """Test that progress clamps but current_amount does not."""
        goal = Goal(name="Trip", target_amount=1000, current_amount=1500)
        assert goal.progress == 1.0
        assert goal.current_amount == 1500

    def test_category_accepts_legacy_icon_name_key(self):
        """Test that iconName from older category blobs is accepted."""
        cat = Category.model_validate({"id": "x", "label": "Pets", "iconName": "Gift", "color": "#fff"})
        assert cat.icon_ref == CategoryIcon.GIFT
        assert cat.to_json_dict()["iconRef"] == "Gift"

    def test_category_unknown_icon_falls_back(self):
        """Test that an unknown icon resolves to the generic icon."""
        cat = Category.model_validate({"label": "Pets", "iconRef": "Dog"})
        assert cat.icon_ref == CategoryIcon.COFFEE
        assert icon_glyph(cat.icon_ref) == "☕"

    def test_default_categories(self):
        """Test the built-in category set."""
        labels = [c.label for c in DEFAULT_CATEGORIES]
        assert len(labels) == 13
        assert len(set(labels)) == len(labels)
        assert all(not c.is_custom for c in DEFAULT_CATEGORIES)

    def test_settings_defaults(self):
        """Test AppSettings defaults."""
        settings = AppSettings()
        assert settings.currency == "IQD"
        assert settings.dark_mode is False
        assert settings.notifications_enabled is True

    def test_settings_reject_unknown_currency(self):
        """Test that only supported currencies are accepted."""
        with pytest.raises(ValueError):
            AppSettings(currency="XYZ")

    def test_notification_defaults(self):
        """Test Notification defaults."""
        n = Notification(title="Hi", message="There")
        assert n.read is False
        assert n.type.value == "info"
        assert n.date.tzinfo == timezone.utc

    def test_format_currency(self):
        """Test whole-unit currency formatting."""
        assert format_currency(1250.4, "IQD") == "1,250 IQD"
        assert format_currency(float("nan"), "USD") == "0 USD"


class TestBudgetMigration:
    """Tests for legacy budget normalization."""

    def test_legacy_budget_is_migrated(self):
        """Test the three-ratio shape becomes three segments."""
        raw = {"monthlyIncome": 1000, "needsRatio": 60, "wantsRatio": 25, "savingsRatio": 15}
        assert is_legacy_budget(raw)

        budget = normalize_budget(raw)
        assert budget.monthly_income == 1000
        assert [s.ratio for s in budget.segments] == [60, 25, 15]
        assert [s.name for s in budget.segments] == ["Essentials", "Discretionary", "Savings"]
        assert [s.color for s in budget.segments] == [slot[3] for slot in LEGACY_SEGMENT_SLOTS]

    def test_migration_is_idempotent_on_its_output(self):
        """Test that re-normalizing migrated output returns it unchanged."""
        migrated = normalize_budget({"monthlyIncome": 1000, "needsRatio": 60, "wantsRatio": 25, "savingsRatio": 15})
        again = normalize_budget(migrated.to_json_dict())
        assert again == migrated

    def test_two_migrations_differ_only_in_ids(self):
        """Test that identical legacy input gives identical segments apart from ids."""
        raw = {"monthlyIncome": 500, "needsRatio": 50}
        first, second = normalize_budget(raw), normalize_budget(raw)

        def shape(b):
            return [(s.name, s.ratio, s.color) for s in b.segments]

        assert shape(first) == shape(second)
        assert first.segments[0].id != second.segments[0].id

    def test_missing_legacy_ratios_use_defaults(self):
        """Test that absent legacy ratios default to 50/30/20."""
        budget = normalize_budget({"monthlyIncome": 10, "needsRatio": 70})
        assert [s.ratio for s in budget.segments] == [70, 30, 20]

    def test_segmented_budget_passes_through_even_if_unbalanced(self):
        """Test that loaded budgets are not forced to sum to 100."""
        raw = {
            "monthlyIncome": 2000,
            "segments": [{"id": "a", "name": "Rent", "ratio": 80, "color": "#000"}],
        }
        budget = normalize_budget(raw)
        assert budget.ratio_total == 80
        assert budget.segments[0].id == "a"

    @pytest.mark.parametrize("raw", [None, "garbage", 42, [], {}, {"segments": [{"ratio": "x"}]}])
    def test_unrecognizable_input_gives_default(self, raw):
        """Test that anything else becomes the default budget."""
        budget = normalize_budget(raw)
        expected = default_budget()
        assert budget.monthly_income == 0
        assert [(s.name, s.ratio) for s in budget.segments] == [(s.name, s.ratio) for s in expected.segments]

    def test_budget_allocation(self):
        """Test per-segment allocation amounts."""
        budget = BudgetConfig(
            monthly_income=2000,
            segments=[BudgetSegment(name="A", ratio=25, color="#111")],
        )
        assert budget.allocation(budget.segments[0]) == 500


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.GOAL_ADDED,
            description="Goal added",
        )
        assert event.severity == AuditSeverity.INFO
        assert event.is_user_action is True
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.mutation(AuditEventType.PERSON_ADDED, "people", "p1", "Person added")
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "person_added"
        assert log_dict["entity_type"] == "people"
        assert log_dict["entity_id"] == "p1"
        assert isinstance(log_dict["event_id"], str)

    def test_audit_event_builder_debt_payment(self):
        """Test the debt payment builder."""
        event = AuditEventBuilder.debt_payment_recorded("p1", "d1", 700, 600, "paid")
        assert event.entity_id == "d1"
        assert event.details["applied_amount"] == 600
        assert event.details["requested_amount"] == 700

    def test_background_events_are_not_user_actions(self):
        """Test that pass events are flagged as system events."""
        event = AuditEventBuilder.recurring_materialized(["t1"], ["r1"])
        assert event.is_user_action is False
        assert AuditEventBuilder.reminders_issued(["n1"]).is_user_action is False

    def test_storage_write_failure_is_error(self):
        """Test storage write failure severity."""
        event = AuditEventBuilder.storage_write_failed("people", "disk full")
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "disk full"


class TestValidationResult:
    """Tests for ValidationResult."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(issues=[
            ValidationIssue(field="segments", issue_type="ratio_total", message="Bad", severity="error"),
            ValidationIssue(field="monthly_income", issue_type="missing", message="Warn", severity="warning"),
        ])
        assert result.has_errors
        assert not result.is_valid
        assert result.error_count == 1
        assert result.messages == ["Bad", "Warn"]

    def test_validation_result_warnings_only(self):
        """Test result with only warnings."""
        result = ValidationResult(issues=[
            ValidationIssue(field="x", issue_type="zero_ratio", message="Warn", severity="warning"),
        ])
        assert not result.has_errors
        assert result.is_valid

    def test_issue_rejects_unknown_severity(self):
        """Test severity pattern."""
        with pytest.raises(ValueError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")
