"""
Audit Models for Expense Tracker

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of each wizard session from first step to saved expense
2. Debugging information when things go wrong
3. Enough context to reconcile the external mirror offline

DESIGN DECISION: Audit events are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every stage of the wizard and of the dual write has its own event type.
    """
    # Wizard navigation
    STEP_ADVANCED = "step_advanced"
    STEP_RETREATED = "step_retreated"
    STEP_BLOCKED = "step_blocked"
    CATEGORY_CHANGED = "category_changed"
    WIZARD_RESET = "wizard_reset"

    # Submission
    SUBMISSION_STARTED = "submission_started"
    RECORD_VALIDATION_FAILED = "record_validation_failed"

    # Receipts
    RECEIPT_UPLOADED = "receipt_uploaded"
    RECEIPT_UPLOAD_FAILED = "receipt_upload_failed"

    # Persistence
    EXPENSE_SAVED = "expense_saved"
    SAVE_FAILED = "save_failed"
    EXTERNAL_SYNC_COMPLETED = "external_sync_completed"
    EXTERNAL_SYNC_FAILED = "external_sync_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'receipt', 'wizard')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one wizard session)"
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

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
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
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.step_advanced(from_step, to_step, correlation_id)
        event = AuditEventBuilder.expense_saved(expense_id, amount, correlation_id)
    """

    @staticmethod
    def step_advanced(
        from_step: int,
        to_step: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STEP_ADVANCED,
            severity=AuditSeverity.DEBUG,
            entity_type="wizard",
            correlation_id=correlation_id,
            description=f"Wizard advanced from step {from_step} to {to_step}",
            details={"from_step": from_step, "to_step": to_step},
            is_user_action=True,
        )

    @staticmethod
    def step_retreated(
        from_step: int,
        to_step: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STEP_RETREATED,
            severity=AuditSeverity.DEBUG,
            entity_type="wizard",
            correlation_id=correlation_id,
            description=f"Wizard went back from step {from_step} to {to_step}",
            details={"from_step": from_step, "to_step": to_step},
            is_user_action=True,
        )

    @staticmethod
    def step_blocked(
        step: int,
        issues: list[dict],
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STEP_BLOCKED,
            severity=AuditSeverity.INFO,
            entity_type="wizard",
            correlation_id=correlation_id,
            description=f"Step {step} is incomplete, advance refused",
            details={"step": step, "issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def category_changed(
        old_category: str,
        new_category: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_CHANGED,
            severity=AuditSeverity.DEBUG,
            entity_type="wizard",
            correlation_id=correlation_id,
            description="Category changed, sub-category cleared",
            details={"old_category": old_category, "new_category": new_category},
            is_user_action=True,
        )

    @staticmethod
    def wizard_reset(
        reason: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WIZARD_RESET,
            entity_type="wizard",
            correlation_id=correlation_id,
            description=f"Wizard reset ({reason})",
            details={"reason": reason},
        )

    @staticmethod
    def submission_started(
        user: str,
        amount: str,
        has_attachment: bool,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBMISSION_STARTED,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Submitting expense of {amount} for {user}",
            details={"user": user, "amount": amount, "has_attachment": has_attachment},
            is_user_action=True,
        )

    @staticmethod
    def record_validation_failed(
        issues: list[dict],
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Expense rejected by validation ({len(issues)} issue(s))",
            details={"issues": issues},
        )

    @staticmethod
    def receipt_uploaded(
        upload_id: UUID,
        filename: str,
        receipt_url: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_UPLOADED,
            entity_type="receipt",
            entity_id=str(upload_id),
            correlation_id=correlation_id,
            description=f"Receipt uploaded: {filename}",
            details={"filename": filename, "receipt_url": receipt_url},
        )

    @staticmethod
    def receipt_upload_failed(
        upload_id: UUID,
        filename: str,
        error_message: str,
        fatal: bool,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_UPLOAD_FAILED,
            severity=AuditSeverity.ERROR if fatal else AuditSeverity.WARNING,
            entity_type="receipt",
            entity_id=str(upload_id),
            correlation_id=correlation_id,
            description=f"Receipt upload failed: {filename}",
            details={"filename": filename, "continuing_without_receipt": not fatal},
            error_message=error_message,
        )

    @staticmethod
    def expense_saved(
        expense_id: int,
        user: str,
        amount: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_SAVED,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description=f"Expense saved: {amount} for {user}",
            details={"user": user, "amount": amount},
        )

    @staticmethod
    def save_failed(
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="expense",
            correlation_id=correlation_id,
            description="Primary store rejected the expense",
            error_message=error_message,
        )

    @staticmethod
    def external_sync_completed(
        expense_id: int,
        external_id: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SYNC_COMPLETED,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description="Expense mirrored to external store",
            details={"external_id": external_id},
        )

    @staticmethod
    def external_sync_failed(
        expense_id: int,
        error_kind: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SYNC_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description=f"External mirror failed ({error_kind}); primary copy kept",
            details={"error_kind": error_kind},
            error_code=error_kind,
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_code=error_type,
            error_message=error_message,
        )
