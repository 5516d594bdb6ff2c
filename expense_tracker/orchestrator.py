"""
Persistence Orchestrator for Expense Tracker

This module ties together the stores, the receipt uploader and the audit
trail, and defines the end-to-end save of one expense:

    validate → resolve receipt → primary write → external mirror → result

DESIGN DECISION: The two writes are deliberately asymmetric.
- The primary store is required. If it fails, the whole save fails with
  PersistenceFailure and nothing is reported as saved.
- The external mirror is best-effort. Whatever goes wrong there (auth,
  schema, network, timeout) is logged with the expense id and error kind,
  reported in PersistResult, and never raised or rolled back.

The user only ever sees "saved" or "please try again"; which of the two
destinations got the data is an operational concern, not theirs.
"""

import asyncio
from typing import Optional
from uuid import UUID

import structlog

from expense_tracker.audit import AuditLogger
from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.expense import (
    ExpenseRecord,
    PersistResult,
    ReceiptAttachment,
    StoredExpense,
    ValidationIssue,
)
from expense_tracker.services.image import (
    AttachmentResolutionFailure,
    CloudinaryReceiptService,
)
from expense_tracker.services.storage import (
    ExpenseStorageInterface,
    ExpenseSyncInterface,
    GoogleSheetsExpenseSync,
    InMemoryExpenseStorage,
    PersistenceFailure,
    SyncFailure,
)
from expense_tracker.validation import ExpenseValidator, RecordValidationError


logger = structlog.get_logger(__name__)


class ExpensePersistenceCoordinator:
    """
    Saves one expense to the primary store and mirrors it externally.

    Flow:
    1. Re-validate the record (nothing reaches storage unvalidated)
    2. Upload the receipt, if one is attached
    3. Write the primary store (must succeed)
    4. Mirror to the external service (may fail, bounded by a timeout)
    5. Return both outcomes
    """

    def __init__(
        self,
        primary_storage: ExpenseStorageInterface,
        sync_service: Optional[ExpenseSyncInterface] = None,
        receipt_service: Optional[CloudinaryReceiptService] = None,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._primary = primary_storage
        self._sync = sync_service
        self._receipts = receipt_service
        self._settings = settings or get_settings().app
        self._validator = validator or ExpenseValidator(settings=self._settings)
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def primary_storage(self) -> ExpenseStorageInterface:
        return self._primary

    @property
    def validator(self) -> ExpenseValidator:
        return self._validator

    async def persist(
        self,
        record: ExpenseRecord,
        attachment: Optional[ReceiptAttachment] = None,
        correlation_id: Optional[UUID] = None,
    ) -> PersistResult:
        """
        Save an expense to both destinations.

        Args:
            record: The expense to save
            attachment: Receipt file to upload first, if any
            correlation_id: Ties the audit events of one session together

        Returns:
            PersistResult with the primary id and the mirror outcome

        Raises:
            RecordValidationError: The record (or a required receipt) is invalid
            PersistenceFailure: The primary store could not save the expense
        """
        result = self._validator.validate(record)
        if not result.is_valid:
            self._audit_logger.log_record_validation_failed(
                issues=[
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                ],
                correlation_id=correlation_id,
            )
        record = self._validator.raise_if_invalid(result)

        if attachment is not None:
            receipt_url = await self._resolve_receipt(attachment, correlation_id)
            if receipt_url:
                record = record.model_copy(update={"receipt_url": receipt_url})

        try:
            stored = await self._primary.create_expense(record)
        except PersistenceFailure as e:
            self._audit_logger.log_save_failed(str(e), correlation_id)
            raise
        except Exception as e:
            self._audit_logger.log_save_failed(str(e), correlation_id)
            raise PersistenceFailure(f"Failed to save expense: {e}") from e

        self._audit_logger.log_expense_saved(
            expense_id=stored.id,
            user=stored.user,
            amount=stored.amount,
            correlation_id=correlation_id,
        )

        external_ok, external_id, sync_error = await self._mirror(stored, correlation_id)

        return PersistResult(
            primary_id=stored.id,
            expense=stored,
            external_sync_ok=external_ok,
            external_id=external_id,
            sync_error=sync_error,
        )

    async def _resolve_receipt(
        self,
        attachment: ReceiptAttachment,
        correlation_id: Optional[UUID],
    ) -> str:
        """
        Upload the receipt; returns "" when it failed and is optional.

        Raises:
            RecordValidationError: Upload failed and receipts are required
        """
        if self._receipts is None:
            error = AttachmentResolutionFailure("Receipt uploads are not configured")
        else:
            try:
                url = await self._receipts.resolve(attachment)
            except AttachmentResolutionFailure as e:
                error = e
            else:
                self._audit_logger.log_receipt_uploaded(
                    upload_id=attachment.upload_id,
                    filename=attachment.filename,
                    receipt_url=url,
                    correlation_id=correlation_id,
                )
                return url

        fatal = self._settings.receipt_required
        self._audit_logger.log_receipt_upload_failed(
            upload_id=attachment.upload_id,
            filename=attachment.filename,
            error_message=str(error),
            fatal=fatal,
            correlation_id=correlation_id,
        )
        if fatal:
            raise RecordValidationError([ValidationIssue(
                field="receipt_url",
                issue_type="upload_failed",
                message=f"The receipt could not be uploaded: {error}",
                severity="error",
                suggested_fix="Attach the receipt again or try a different file",
            )]) from error
        return ""

    async def _mirror(
        self,
        stored: StoredExpense,
        correlation_id: Optional[UUID],
    ) -> tuple[bool, Optional[str], Optional[str]]:
        """
        Copy the stored expense to the external service.

        Returns:
            (ok, external_id, error_kind); never raises
        """
        if self._sync is None or not self._settings.external_sync_enabled:
            return False, None, "disabled"

        timeout = self._settings.external_sync_timeout_seconds
        try:
            external_id = await asyncio.wait_for(
                asyncio.to_thread(self._sync.sync_expense, stored),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            error_kind = "timeout"
            error_message = f"No response from {self._sync.name} within {timeout}s"
        except SyncFailure as e:
            error_kind = e.kind
            error_message = str(e)
        except Exception as e:
            error_kind = "unexpected"
            error_message = f"{type(e).__name__}: {e}"
        else:
            self._audit_logger.log_external_sync_completed(
                expense_id=stored.id,
                external_id=external_id,
                correlation_id=correlation_id,
            )
            return True, external_id, None

        self._audit_logger.log_external_sync_failed(
            expense_id=stored.id,
            error_kind=error_kind,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        return False, None, error_kind


def create_app_components(
    use_external_sync: bool = True,
    use_receipt_uploads: bool = True,
) -> tuple[ExpensePersistenceCoordinator, ExpenseStorageInterface, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        use_external_sync: Whether to set up the Google Sheets mirror.
        use_receipt_uploads: Whether to set up Cloudinary receipt uploads.
            Either service is skipped (and logged) when not configured.

    Returns:
        (coordinator, primary_storage, audit_logger)
    """
    audit_logger = AuditLogger()
    primary_storage = InMemoryExpenseStorage()
    sync_service = None
    receipt_service = None

    if use_external_sync:
        try:
            sync_service = GoogleSheetsExpenseSync()
        except Exception as e:
            # Mirror not configured - continue without it
            logger.warning("external_sync_not_configured", error=str(e))

    if use_receipt_uploads:
        try:
            receipt_service = CloudinaryReceiptService()
        except Exception as e:
            logger.warning("receipt_uploads_not_configured", error=str(e))

    coordinator = ExpensePersistenceCoordinator(
        primary_storage=primary_storage,
        sync_service=sync_service,
        receipt_service=receipt_service,
        audit_logger=audit_logger,
    )

    return coordinator, primary_storage, audit_logger
