"""
Budget configuration migration

Older clients stored the budget as three discrete ratios
(needsRatio / wantsRatio / savingsRatio). The current shape is a list of
named segments. normalize_budget() upgrades whatever it is given into a
BudgetConfig and is the single entry point used both at initial load and
at snapshot import.

DESIGN DECISION: Migration never fails. Anything unrecognizable becomes
the default budget, because a broken budget blob must not block the app.
load_budget() returns None for such values so callers can report the loss.
"""

from collections.abc import Mapping
from typing import Any, Optional

from pydantic import ValidationError

from mywallet.models.ledger import BudgetConfig, BudgetSegment

LEGACY_RATIO_FIELDS = ("needsRatio", "wantsRatio", "savingsRatio")

# (segment name, legacy field, default ratio, slot colour)
LEGACY_SEGMENT_SLOTS = (
    ("Essentials", "needsRatio", 50.0, "#3b82f6"),
    ("Discretionary", "wantsRatio", 30.0, "#f59e0b"),
    ("Savings", "savingsRatio", 20.0, "#10b981"),
)


def default_segments() -> list[BudgetSegment]:
    return [
        BudgetSegment(name=name, ratio=ratio, color=color)
        for name, _, ratio, color in LEGACY_SEGMENT_SLOTS
    ]


def default_budget() -> BudgetConfig:
    """The budget used for fresh installs and unreadable data."""
    return BudgetConfig(monthly_income=0.0, segments=default_segments())


def is_legacy_budget(raw: Any) -> bool:
    """Discrete ratio fields present and no segments list."""
    if not isinstance(raw, Mapping):
        return False
    if isinstance(raw.get("segments"), list):
        return False
    return any(field in raw for field in LEGACY_RATIO_FIELDS)


def _ratio(raw: Mapping, field: str, default: float) -> float:
    value = raw.get(field)
    if value is None:
        return default
    return float(value)


def migrate_legacy_budget(raw: Mapping) -> BudgetConfig:
    """
    Convert a legacy three-ratio budget into the segmented shape.

    Every call generates fresh segment ids; names, ratios, colours and
    order are deterministic.
    """
    segments = [
        BudgetSegment(name=name, ratio=_ratio(raw, field, default), color=color)
        for name, field, default, color in LEGACY_SEGMENT_SLOTS
    ]
    income = raw.get("monthlyIncome", raw.get("monthly_income")) or 0.0
    return BudgetConfig(monthly_income=float(income), segments=segments)


def load_budget(raw: Any) -> Optional[BudgetConfig]:
    """
    Interpret a stored or imported budget value.

    Returns:
        A BudgetConfig for a segmented budget (passed through even if its
        ratios do not sum to 100) or a legacy one (migrated); None when
        raw is missing or unusable, including a segments list holding an
        invalid segment.
    """
    if isinstance(raw, BudgetConfig):
        return raw
    if not isinstance(raw, Mapping):
        return None

    try:
        if is_legacy_budget(raw):
            return migrate_legacy_budget(raw)
        if isinstance(raw.get("segments"), list):
            return BudgetConfig.model_validate(raw)
    except (ValidationError, TypeError, ValueError):
        return None

    return None


def normalize_budget(raw: Any) -> BudgetConfig:
    """
    Normalize any stored or imported budget value.

    Anything load_budget() cannot interpret becomes the default budget.
    Callers that must report the lost value check load_budget() first.
    """
    return load_budget(raw) or default_budget()
