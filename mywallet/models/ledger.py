"""
Core Data Models for the MyWallet ledger

These models define the record shapes for every aggregate the store owns.
They are designed to:
1. Enforce type safety and value ranges at runtime
2. Serialize to the exact JSON shape used in storage blobs and backups
3. Be treated as immutable values (updates go through model_copy)

DESIGN DECISION: Attributes are snake_case in Python but serialize with
camelCase aliases (paidAmount, nextRunDate, ...). Existing storage blobs and
backup files written by older clients keep loading unchanged.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import uuid4

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def generate_id() -> str:
    """Collision-free identifier for new records."""
    return uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_utc(value: datetime) -> datetime:
    # Naive instants come from older exports; they were always UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


Instant = Annotated[datetime, AfterValidator(_ensure_utc)]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class RelationType(str, Enum):
    """Direction of the debts recorded against a person."""
    OWES_ME = "owes_me"
    I_OWE = "i_owe"


class DebtStatus(str, Enum):
    """
    Debt settlement status.

    CRITICAL: Never set directly. Always derived from paid_amount vs amount
    by debt_status(); a stored or imported status is ignored.
    """
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


def debt_status(amount: float, paid_amount: float) -> DebtStatus:
    """The only place a debt status is decided."""
    if paid_amount >= amount:
        return DebtStatus.PAID
    if paid_amount > 0:
        return DebtStatus.PARTIAL
    return DebtStatus.UNPAID


class RecurringFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class NotificationType(str, Enum):
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


class CategoryIcon(str, Enum):
    """
    Closed set of icon references a category may carry.

    Values match the icon names older clients stored, so existing
    category blobs resolve without translation.
    """
    UTENSILS = "Utensils"
    CAR = "Car"
    SHOPPING_BAG = "ShoppingBag"
    HOME = "Home"
    ZAP = "Zap"
    HEART_PULSE = "HeartPulse"
    GRADUATION_CAP = "GraduationCap"
    PLANE = "Plane"
    GAMEPAD = "Gamepad2"
    BRIEFCASE = "Briefcase"
    GIFT = "Gift"
    SMARTPHONE = "Smartphone"
    COFFEE = "Coffee"
    WALLET = "Wallet"
    TARGET = "Target"
    REPEAT = "Repeat"
    BELL = "Bell"


# Static lookup table used by any text surface that renders a category.
ICON_GLYPHS: dict[CategoryIcon, str] = {
    CategoryIcon.UTENSILS: "🍽️",
    CategoryIcon.CAR: "🚗",
    CategoryIcon.SHOPPING_BAG: "🛍️",
    CategoryIcon.HOME: "🏠",
    CategoryIcon.ZAP: "⚡",
    CategoryIcon.HEART_PULSE: "❤️",
    CategoryIcon.GRADUATION_CAP: "🎓",
    CategoryIcon.PLANE: "✈️",
    CategoryIcon.GAMEPAD: "🎮",
    CategoryIcon.BRIEFCASE: "💼",
    CategoryIcon.GIFT: "🎁",
    CategoryIcon.SMARTPHONE: "📱",
    CategoryIcon.COFFEE: "☕",
    CategoryIcon.WALLET: "👛",
    CategoryIcon.TARGET: "🎯",
    CategoryIcon.REPEAT: "🔁",
    CategoryIcon.BELL: "🔔",
}

GENERIC_ICON = CategoryIcon.COFFEE

CURRENCIES = ["IQD", "SAR", "USD", "EGP", "AED", "KWD", "EUR"]

COLORS = ["#10b981", "#3b82f6", "#f59e0b", "#ef4444", "#8b5cf6", "#ec4899", "#06b6d4", "#84cc16"]

DEBT_REPAYMENT_CATEGORY = "Debt Repayment"


def icon_glyph(icon: CategoryIcon) -> str:
    return ICON_GLYPHS.get(icon, ICON_GLYPHS[GENERIC_ICON])


def format_currency(amount: float, currency: str) -> str:
    """
    Render an amount in whole currency units, e.g. "1,250 IQD".

    NaN renders as zero rather than leaking into user-facing text.
    """
    safe_amount = 0.0 if amount is None or math.isnan(amount) else amount
    return f"{safe_amount:,.0f} {currency}"


# =============================================================================
# BASE RECORD
# =============================================================================

class LedgerRecord(BaseModel):
    """Shared configuration for every persisted record."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize to the on-disk camelCase shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(LedgerRecord):
    """
    A realized income or expense.

    Immutable once created; the only way to change one is to delete it.
    """

    id: str = Field(default_factory=generate_id)
    amount: float = Field(..., gt=0, description="Always positive; type gives the sign")
    type: TransactionType
    category: str = Field(..., description="Category label (not id)")
    date: Instant
    notes: Optional[str] = None
    is_recurring: Optional[bool] = None

    @property
    def signed_amount(self) -> float:
        return self.amount if self.type == TransactionType.INCOME else -self.amount


class RecurringTransaction(LedgerRecord):
    """
    A template the scheduler materializes into transactions.

    next_run_date is advanced one period per scheduler pass;
    start_date never changes after creation.
    """

    id: str = Field(default_factory=generate_id)
    amount: float = Field(..., gt=0)
    type: TransactionType
    category: str
    notes: Optional[str] = None
    frequency: RecurringFrequency
    start_date: Instant
    next_run_date: Instant
    active: bool = True


# =============================================================================
# PEOPLE & DEBTS
# =============================================================================

class DebtItem(LedgerRecord):
    """A single debt owed between the user and a person."""

    id: str = Field(default_factory=generate_id)
    amount: float = Field(..., gt=0)
    paid_amount: float = Field(default=0.0, ge=0)
    date: Optional[Instant] = Field(default=None, description="When the debt was recorded")
    due_date: Instant
    status: DebtStatus = DebtStatus.UNPAID
    notes: Optional[str] = None
    last_payment_date: Optional[Instant] = Field(
        default=None,
        description="Reminder anchor: last payment that left the debt open",
    )

    @model_validator(mode="after")
    def sync_status(self) -> "DebtItem":
        # Frozen model: status is written once, during validation
        object.__setattr__(self, "status", debt_status(self.amount, self.paid_amount))
        return self

    @property
    def remaining(self) -> float:
        return max(self.amount - self.paid_amount, 0.0)


class Person(LedgerRecord):
    """A counterparty. Owns its debts exclusively."""

    id: str = Field(default_factory=generate_id)
    name: str = Field(..., min_length=1, max_length=200)
    relation_type: RelationType
    debts: list[DebtItem] = Field(default_factory=list)
    phone: Optional[str] = Field(default=None, max_length=50)

    @property
    def total_amount(self) -> float:
        return sum(d.amount for d in self.debts)

    @property
    def total_paid(self) -> float:
        return sum(d.paid_amount for d in self.debts)

    @property
    def remaining(self) -> float:
        return self.total_amount - self.total_paid


# =============================================================================
# GOALS, CATEGORIES, BUDGET
# =============================================================================

class Goal(LedgerRecord):
    """A savings goal."""

    id: str = Field(default_factory=generate_id)
    name: str = Field(..., min_length=1, max_length=200)
    target_amount: float = Field(..., gt=0)
    current_amount: float = Field(default=0.0, ge=0)
    deadline: Optional[Instant] = None
    color: str = COLORS[0]

    @property
    def progress(self) -> float:
        """Display progress clamped to [0, 1]; current_amount itself is not clamped."""
        return min(max(self.current_amount / self.target_amount, 0.0), 1.0)


class Category(LedgerRecord):
    """
    A transaction category.

    Transactions reference categories by label, so the label is the
    unique display key.
    """

    id: str = Field(default_factory=generate_id)
    label: str = Field(..., min_length=1, max_length=100)
    icon_ref: CategoryIcon = Field(
        default=GENERIC_ICON,
        validation_alias=AliasChoices("iconRef", "iconName", "icon_ref"),
        serialization_alias="iconRef",
    )
    color: str = "#9ca3af"
    is_custom: Optional[bool] = None

    @field_validator("icon_ref", mode="before")
    @classmethod
    def fallback_unknown_icon(cls, v: Any) -> Any:
        """Unknown icon names resolve to the generic icon instead of failing the load."""
        if isinstance(v, CategoryIcon):
            return v
        try:
            return CategoryIcon(v)
        except ValueError:
            return GENERIC_ICON


class BudgetSegment(LedgerRecord):
    """One named slice of the percentage-based budget plan."""

    id: str = Field(default_factory=generate_id)
    name: str = Field(..., min_length=1, max_length=100)
    ratio: float = Field(..., ge=0, le=100)
    color: str


class BudgetConfig(LedgerRecord):
    """
    Monthly income and its split into segments.

    sum(ratio) == 100 is only required when a user edit is committed;
    loaded or imported budgets are accepted as-is.
    """

    monthly_income: float = Field(default=0.0, ge=0)
    segments: list[BudgetSegment] = Field(default_factory=list)

    @property
    def ratio_total(self) -> float:
        return sum(s.ratio for s in self.segments)

    def allocation(self, segment: BudgetSegment) -> float:
        return self.monthly_income * segment.ratio / 100


# =============================================================================
# NOTIFICATIONS & SETTINGS
# =============================================================================

class Notification(LedgerRecord):
    """
    A user-visible notice.

    System-generated debt reminders use a deterministic id (see the
    reminder engine); that id doubles as the dedup key.
    """

    id: str = Field(default_factory=generate_id)
    title: str
    message: str
    date: Instant = Field(default_factory=utc_now)
    read: bool = False
    type: NotificationType = NotificationType.INFO


class AppSettings(LedgerRecord):
    """User preferences consumed by the engines."""

    currency: str = "IQD"
    dark_mode: bool = False
    notifications_enabled: bool = True

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        if v not in CURRENCIES:
            raise ValueError(f"Unsupported currency: {v}. Allowed: {CURRENCIES}")
        return v


# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="food", label="Food & Drinks", icon_ref=CategoryIcon.UTENSILS, color="#f59e0b"),
    Category(id="transport", label="Transport", icon_ref=CategoryIcon.CAR, color="#3b82f6"),
    Category(id="shopping", label="Shopping", icon_ref=CategoryIcon.SHOPPING_BAG, color="#ec4899"),
    Category(id="housing", label="Housing & Bills", icon_ref=CategoryIcon.HOME, color="#6366f1"),
    Category(id="bills", label="Electricity & Internet", icon_ref=CategoryIcon.ZAP, color="#eab308"),
    Category(id="health", label="Health", icon_ref=CategoryIcon.HEART_PULSE, color="#ef4444"),
    Category(id="education", label="Education", icon_ref=CategoryIcon.GRADUATION_CAP, color="#8b5cf6"),
    Category(id="travel", label="Travel", icon_ref=CategoryIcon.PLANE, color="#06b6d4"),
    Category(id="entertainment", label="Entertainment", icon_ref=CategoryIcon.GAMEPAD, color="#10b981"),
    Category(id="salary", label="Salary & Income", icon_ref=CategoryIcon.BRIEFCASE, color="#059669"),
    Category(id="gift", label="Gifts", icon_ref=CategoryIcon.GIFT, color="#f43f5e"),
    Category(id="mobile", label="Mobile", icon_ref=CategoryIcon.SMARTPHONE, color="#64748b"),
    Category(id="other", label="Other", icon_ref=CategoryIcon.COFFEE, color="#9ca3af"),
)


def default_settings() -> AppSettings:
    return AppSettings()


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found in a user edit."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'ratio_total', 'duplicate_name')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of validating a draft before it is committed."""

    validated_at: datetime = Field(default_factory=utc_now)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def messages(self) -> list[str]:
        return [issue.message for issue in self.issues]
