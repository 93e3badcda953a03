"""
Audit Logger

DESIGN DECISION: Every store mutation and background pass is logged.
This provides:
1. Complete traceability of state changes
2. Debugging capability for scheduler and reminder passes
3. Visibility into silent fallbacks that are never shown to the user

The audit logger:
- Is synchronous, because store mutations are synchronous
- Gracefully handles failures (a logging problem never fails a mutation)
- Keeps a bounded in-memory trail of recent events
"""

from collections import deque
from typing import Optional

import structlog

from mywallet.models.audit import AuditEvent, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def get_logger(name: Optional[str] = None):
    """Module-level structured logger."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An in-memory trail (for inspection and tests)
    """

    def __init__(self, trail_size: int = 500):
        """
        Initialize audit logger.

        Args:
            trail_size: How many recent events to keep in memory.
        """
        self._trail: deque[AuditEvent] = deque(maxlen=trail_size)
        self._logger = structlog.get_logger("mywallet.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the event reached the structured log.
        """
        self._trail.append(event)
        log_dict = event.to_log_dict()

        try:
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            # Never let logging break a mutation
            return False

        return True

    def recent(self, limit: int = 50) -> list[AuditEvent]:
        """Most recent events, newest first."""
        events = list(self._trail)
        events.reverse()
        return events[:limit]

    def clear(self) -> None:
        self._trail.clear()
