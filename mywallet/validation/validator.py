"""
Budget Save Validation

DESIGN DECISION: The budget invariant sum(ratio) == 100 is enforced only
when a user edit is committed, never on load. Legacy or imported budgets
that violate it are displayed as-is.

IMPORTANT: Validation NEVER silently fixes issues. A rejected draft is
returned to the caller untouched so the user can correct it.
"""

from mywallet.models.ledger import (
    BudgetConfig,
    ValidationIssue,
    ValidationResult,
)

REQUIRED_RATIO_TOTAL = 100.0

# Float tolerance for ratios entered as decimals (e.g. 33.3 + 33.3 + 33.4)
RATIO_TOLERANCE = 1e-6


class BudgetValidationError(ValueError):
    """A budget draft failed commit-time validation."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__("; ".join(result.messages) or "Budget is invalid")


class BudgetValidator:
    """
    Validates a budget draft before it replaces the stored budget.

    Checks:
    - Segment ratios sum to 100 (error)
    - At least one segment (error)
    - Segment names are unique (error)
    - Zero-ratio segments (warning)
    - Monthly income not set (warning)
    """

    def validate(self, draft: BudgetConfig) -> ValidationResult:
        issues: list[ValidationIssue] = []

        if not draft.segments:
            issues.append(ValidationIssue(
                field="segments",
                issue_type="missing",
                message="The budget needs at least one segment",
                severity="error",
            ))

        total = draft.ratio_total
        if draft.segments and abs(total - REQUIRED_RATIO_TOTAL) > RATIO_TOLERANCE:
            issues.append(ValidationIssue(
                field="segments",
                issue_type="ratio_total",
                message=f"Segment ratios must add up to 100% (currently {total:g}%)",
                severity="error",
            ))

        names = [s.name.casefold() for s in draft.segments]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            issues.append(ValidationIssue(
                field="segments",
                issue_type="duplicate_name",
                message=f"Segment names must be unique: {', '.join(duplicates)}",
                severity="error",
            ))

        for segment in draft.segments:
            if segment.ratio == 0:
                issues.append(ValidationIssue(
                    field=f"segments.{segment.id}",
                    issue_type="zero_ratio",
                    message=f"Segment '{segment.name}' receives nothing",
                    severity="warning",
                ))

        if draft.monthly_income == 0:
            issues.append(ValidationIssue(
                field="monthly_income",
                issue_type="missing",
                message="Monthly income is not set; allocations will show as zero",
                severity="warning",
            ))

        return ValidationResult(issues=issues)

    def ensure_valid(self, draft: BudgetConfig) -> ValidationResult:
        """
        Validate and raise on errors.

        Raises:
            BudgetValidationError: If any error-level issue was found
        """
        result = self.validate(draft)
        if result.has_errors:
            raise BudgetValidationError(result)
        return result
