"""
Audit Models for the MyWallet ledger

Every store mutation and every background pass is recorded as an audit
event. This provides:
1. Traceability of what changed which aggregate, and when
2. Debugging information when a scheduler or reminder pass misbehaves
3. Visibility into silent fallbacks (corrupt storage, failed imports)

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    One event type per named mutation, plus background passes and
    persistence edge cases.
    """
    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_DELETED = "transaction_deleted"

    # People & debts
    PERSON_ADDED = "person_added"
    PERSON_DELETED = "person_deleted"
    DEBT_ADDED = "debt_added"
    DEBT_UPDATED = "debt_updated"
    DEBT_PAYMENT_RECORDED = "debt_payment_recorded"

    # Goals
    GOAL_ADDED = "goal_added"
    GOAL_UPDATED = "goal_updated"
    GOAL_DELETED = "goal_deleted"

    # Budget & settings
    BUDGET_UPDATED = "budget_updated"
    BUDGET_REJECTED = "budget_rejected"
    SETTINGS_UPDATED = "settings_updated"

    # Categories & recurring templates
    CATEGORY_ADDED = "category_added"
    CATEGORY_DELETED = "category_deleted"
    RECURRING_ADDED = "recurring_added"
    RECURRING_DELETED = "recurring_deleted"
    RECURRING_TOGGLED = "recurring_toggled"

    # Notifications
    NOTIFICATION_READ = "notification_read"
    NOTIFICATIONS_ADDED = "notifications_added"

    # Background passes
    RECURRING_MATERIALIZED = "recurring_materialized"
    REMINDER_ISSUED = "reminder_issued"

    # Data management
    DATA_EXPORTED = "data_exported"
    DATA_IMPORTED = "data_imported"
    IMPORT_FAILED = "import_failed"
    DATA_RESET = "data_reset"

    # System events
    STORAGE_FALLBACK = "storage_fallback"
    STORAGE_WRITE_FAILED = "storage_write_failed"
    ADVISOR_FAILED = "advisor_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every mutation creates one of these.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which aggregate / record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Aggregate key (e.g., 'transactions', 'people')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the record this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=True,
        description="Was this triggered by a user action (vs. a background pass)?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.mutation(AuditEventType.GOAL_ADDED, "goals", goal.id, "Goal added")
        event = AuditEventBuilder.import_failed("not a JSON object")
    """

    @staticmethod
    def mutation(
        event_type: AuditEventType,
        entity_type: Optional[str],
        entity_id: Optional[str],
        description: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details or {},
        )

    @staticmethod
    def debt_payment_recorded(
        person_id: str,
        debt_id: str,
        requested: float,
        applied: float,
        status: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBT_PAYMENT_RECORDED,
            entity_type="people",
            entity_id=debt_id,
            description=f"Payment of {applied:g} applied to debt {debt_id}",
            details={
                "person_id": person_id,
                "requested_amount": requested,
                "applied_amount": applied,
                "status": status,
            },
        )

    @staticmethod
    def budget_rejected(ratio_total: float, issues: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="budget",
            description=f"Budget edit rejected (ratios sum to {ratio_total:g})",
            details={"ratio_total": ratio_total, "issues": issues},
        )

    @staticmethod
    def recurring_materialized(transaction_ids: list[str], template_ids: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_MATERIALIZED,
            entity_type="recurring",
            description=f"{len(transaction_ids)} recurring transaction(s) materialized",
            details={
                "transaction_ids": transaction_ids,
                "template_ids": template_ids,
            },
            is_user_action=False,
        )

    @staticmethod
    def reminders_issued(notification_ids: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_ISSUED,
            entity_type="notifications",
            description=f"{len(notification_ids)} debt reminder(s) issued",
            details={"notification_ids": notification_ids},
            is_user_action=False,
        )

    @staticmethod
    def import_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.WARNING,
            description="Snapshot import rejected; state left untouched",
            error_message=error_message,
        )

    @staticmethod
    def storage_fallback(key: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_FALLBACK,
            severity=AuditSeverity.WARNING,
            entity_type=key,
            description=f"Stored value for '{key}' unreadable; using default",
            error_message=reason,
            is_user_action=False,
        )

    @staticmethod
    def storage_write_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=key,
            description=f"Failed to persist '{key}'",
            error_message=error_message,
            is_user_action=False,
        )

    @staticmethod
    def advisor_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVISOR_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="advisor",
            description="Advisor service call failed; fallback reply used",
            error_message=error_message,
        )
