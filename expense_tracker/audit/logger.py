"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability of a wizard session
2. Debugging capability
3. The context needed to reconcile the external mirror by hand

The audit logger:
- Is synchronous so wizard navigation stays free of I/O
- Never raises into the caller (logging must not break the main flow)
- Supports correlation IDs to trace related events
"""

from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder


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


class AuditLogger:
    """
    Central audit logging service.

    Events are written as structured JSON lines through structlog.
    The most recent events are also kept in memory so the UI and
    tests can inspect what happened in a session.
    """

    def __init__(self, history_size: int = 200):
        self._logger = structlog.get_logger("expense_tracker.audit")
        self._history: deque[AuditEvent] = deque(maxlen=history_size)

    @property
    def recent_events(self) -> list[AuditEvent]:
        return list(self._history)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        self._history.append(event)

        log_dict = event.to_log_dict()
        try:
            if event.severity.value in ("error", "critical"):
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # A broken log handler must not fail a submission
            self._logger.error(
                "audit_log_failed",
                error=str(e),
                event_id=str(event.event_id),
            )

    def log_step_advanced(self, from_step: int, to_step: int, correlation_id: Optional[UUID]) -> None:
        self.log(AuditEventBuilder.step_advanced(from_step, to_step, correlation_id))

    def log_step_retreated(self, from_step: int, to_step: int, correlation_id: Optional[UUID]) -> None:
        self.log(AuditEventBuilder.step_retreated(from_step, to_step, correlation_id))

    def log_step_blocked(self, step: int, issues: list[dict], correlation_id: Optional[UUID]) -> None:
        self.log(AuditEventBuilder.step_blocked(step, issues, correlation_id))

    def log_category_changed(
        self,
        old_category: str,
        new_category: str,
        correlation_id: Optional[UUID],
    ) -> None:
        self.log(AuditEventBuilder.category_changed(old_category, new_category, correlation_id))

    def log_wizard_reset(self, reason: str, correlation_id: Optional[UUID]) -> None:
        self.log(AuditEventBuilder.wizard_reset(reason, correlation_id))

    def log_submission_started(
        self,
        user: str,
        amount: str,
        has_attachment: bool,
        correlation_id: Optional[UUID],
    ) -> None:
        self.log(AuditEventBuilder.submission_started(user, amount, has_attachment, correlation_id))

    def log_record_validation_failed(self, issues: list[dict], correlation_id: Optional[UUID]) -> None:
        self.log(AuditEventBuilder.record_validation_failed(issues, correlation_id))

    def log_receipt_uploaded(
        self,
        upload_id: UUID,
        filename: str,
        receipt_url: str,
        correlation_id: Optional[UUID],
    ) -> None:
        self.log(AuditEventBuilder.receipt_uploaded(upload_id, filename, receipt_url, correlation_id))

    def log_receipt_upload_failed(
        self,
        upload_id: UUID,
        filename: str,
        error_message: str,
        fatal: bool,
        correlation_id: Optional[UUID],
    ) -> None:
        self.log(AuditEventBuilder.receipt_upload_failed(
            upload_id, filename, error_message, fatal, correlation_id,
        ))

    def log_expense_saved(
        self,
        expense_id: int,
        user: str,
        amount: str,
        correlation_id: Optional[UUID],
    ) -> None:
        self.log(AuditEventBuilder.expense_saved(expense_id, user, amount, correlation_id))

    def log_save_failed(self, error_message: str, correlation_id: Optional[UUID]) -> None:
        self.log(AuditEventBuilder.save_failed(error_message, correlation_id))

    def log_external_sync_completed(
        self,
        expense_id: int,
        external_id: str,
        correlation_id: Optional[UUID],
    ) -> None:
        self.log(AuditEventBuilder.external_sync_completed(expense_id, external_id, correlation_id))

    def log_external_sync_failed(
        self,
        expense_id: int,
        error_kind: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        self.log(AuditEventBuilder.external_sync_failed(
            expense_id, error_kind, error_message, correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new wizard session.
    Pass it through all subsequent operations.
    """
    return uuid4()
