"""
Data Models Package

This package contains all Pydantic models used by the MyWallet ledger.
All data flowing through the store must conform to these schemas.
"""

from mywallet.models.ledger import (
    COLORS,
    CURRENCIES,
    DEBT_REPAYMENT_CATEGORY,
    DEFAULT_CATEGORIES,
    ICON_GLYPHS,
    AppSettings,
    BudgetConfig,
    BudgetSegment,
    Category,
    CategoryIcon,
    DebtItem,
    DebtStatus,
    Goal,
    Notification,
    NotificationType,
    Person,
    RecurringFrequency,
    RecurringTransaction,
    RelationType,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    debt_status,
    default_settings,
    format_currency,
    generate_id,
    icon_glyph,
    utc_now,
)
from mywallet.models.migration import (
    default_budget,
    is_legacy_budget,
    load_budget,
    normalize_budget,
)
from mywallet.models.snapshot import (
    SNAPSHOT_VERSION,
    LedgerState,
    Snapshot,
)
from mywallet.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "AppSettings",
    "BudgetConfig",
    "BudgetSegment",
    "Category",
    "CategoryIcon",
    "DebtItem",
    "DebtStatus",
    "Goal",
    "Notification",
    "NotificationType",
    "Person",
    "RecurringFrequency",
    "RecurringTransaction",
    "RelationType",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    # Constants & helpers
    "COLORS",
    "CURRENCIES",
    "DEBT_REPAYMENT_CATEGORY",
    "DEFAULT_CATEGORIES",
    "ICON_GLYPHS",
    "debt_status",
    "default_settings",
    "format_currency",
    "generate_id",
    "icon_glyph",
    "utc_now",
    # Migration
    "default_budget",
    "is_legacy_budget",
    "load_budget",
    "normalize_budget",
    # Snapshot
    "SNAPSHOT_VERSION",
    "LedgerState",
    "Snapshot",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
