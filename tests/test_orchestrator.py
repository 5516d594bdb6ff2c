"""
Tests for the persistence coordinator.

The primary store must succeed; the external mirror may fail in any way
without the save being lost or an exception escaping.
"""

import asyncio
import pytest
from datetime import date

from expense_tracker.config import AppSettings
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.expense import ExpenseRecord, ReceiptAttachment
from expense_tracker.orchestrator import ExpensePersistenceCoordinator, create_app_components
from expense_tracker.services.storage import (
    InMemoryExpenseStorage,
    PersistenceFailure,
    SyncAuthError,
    SyncNetworkError,
    SyncSchemaError,
)
from expense_tracker.validation import RecordValidationError
from tests.fakes import FailingStorage, FakeReceiptService, FakeSync


def make_record(**overrides) -> ExpenseRecord:
    fields = {
        "user": "Tyler",
        "category": "Home",
        "sub_category": "Cleaner",
        "amount": "45.00",
        "date": date(2024, 5, 1),
    }
    fields.update(overrides)
    return ExpenseRecord(**fields)


def make_coordinator(validator, audit_logger, settings, storage=None, sync=None, receipts=None):
    return ExpensePersistenceCoordinator(
        primary_storage=storage if storage is not None else InMemoryExpenseStorage(),
        sync_service=sync,
        receipt_service=receipts,
        validator=validator,
        audit_logger=audit_logger,
        settings=settings,
    )


class TestPersist:

    def test_both_writes_succeed(self, coordinator, storage, fake_sync, audit_logger):
        result = asyncio.run(coordinator.persist(make_record()))

        assert result.primary_id == 1
        assert result.external_sync_ok is True
        assert result.external_id == "row-1"
        assert result.sync_error is None
        assert fake_sync.synced[0] == result.expense

        stored = asyncio.run(storage.get_expense(1))
        assert stored == result.expense
        types = [event.event_type for event in audit_logger.recent_events]
        assert AuditEventType.EXPENSE_SAVED in types
        assert AuditEventType.EXTERNAL_SYNC_COMPLETED in types

    def test_network_failure_keeps_primary_copy(self, validator, audit_logger, app_settings):
        sync = FakeSync(error=SyncNetworkError("connection reset"))
        coordinator = make_coordinator(validator, audit_logger, app_settings, sync=sync)

        result = asyncio.run(coordinator.persist(make_record()))

        assert result.external_sync_ok is False
        assert result.primary_id >= 1
        assert result.sync_error == "network"

        failed = audit_logger.recent_events[-1]
        assert failed.event_type == AuditEventType.EXTERNAL_SYNC_FAILED
        assert failed.entity_id == str(result.primary_id)
        assert failed.error_code == "network"

    @pytest.mark.parametrize("error,kind", [
        (SyncAuthError("401"), "auth"),
        (SyncSchemaError("bad header"), "schema"),
        (RuntimeError("surprise"), "unexpected"),
    ])
    def test_every_sync_error_is_contained(self, validator, audit_logger, app_settings, error, kind):
        coordinator = make_coordinator(validator, audit_logger, app_settings, sync=FakeSync(error=error))
        result = asyncio.run(coordinator.persist(make_record()))
        assert result.external_sync_ok is False
        assert result.sync_error == kind

    def test_always_failing_sync_never_loses_expenses(self, validator, audit_logger, app_settings):
        storage = InMemoryExpenseStorage()
        sync = FakeSync(error=SyncNetworkError("down"))
        coordinator = make_coordinator(validator, audit_logger, app_settings, storage=storage, sync=sync)

        ids = [asyncio.run(coordinator.persist(make_record(amount=str(n)))).primary_id for n in range(1, 6)]

        assert ids == [1, 2, 3, 4, 5]
        assert len(storage) == 5
        assert sync.calls == 5

    def test_slow_sync_times_out(self, validator, audit_logger):
        settings = AppSettings(_env_file=None, external_sync_timeout_seconds=0.05)
        sync = FakeSync(delay=0.3)
        coordinator = make_coordinator(validator, audit_logger, settings, sync=sync)

        result = asyncio.run(coordinator.persist(make_record()))

        assert result.external_sync_ok is False
        assert result.sync_error == "timeout"
        assert result.primary_id == 1

    def test_sync_disabled_by_settings(self, validator, audit_logger, fake_sync):
        settings = AppSettings(_env_file=None, external_sync_enabled=False)
        coordinator = make_coordinator(validator, audit_logger, settings, sync=fake_sync)

        result = asyncio.run(coordinator.persist(make_record()))

        assert result.sync_error == "disabled"
        assert fake_sync.calls == 0

    def test_primary_failure_raises_and_skips_sync(self, validator, audit_logger, app_settings, fake_sync):
        coordinator = make_coordinator(
            validator, audit_logger, app_settings, storage=FailingStorage(), sync=fake_sync,
        )
        with pytest.raises(PersistenceFailure):
            asyncio.run(coordinator.persist(make_record()))
        assert fake_sync.calls == 0

    def test_invalid_record_never_reaches_storage(self, coordinator, storage, audit_logger):
        with pytest.raises(RecordValidationError) as exc_info:
            asyncio.run(coordinator.persist(make_record(user="Bob")))

        assert exc_info.value.issues[0].field == "user"
        assert len(storage) == 0
        assert audit_logger.recent_events[-1].event_type == AuditEventType.RECORD_VALIDATION_FAILED


class TestReceiptResolution:

    attachment = ReceiptAttachment(filename="receipt.png", content=b"\x89PNG", mime_type="image/png")

    def test_optional_receipt_failure_saves_without_url(self, validator, audit_logger, app_settings):
        coordinator = make_coordinator(
            validator, audit_logger, app_settings, receipts=FakeReceiptService(fail=True),
        )
        result = asyncio.run(coordinator.persist(make_record(), attachment=self.attachment))

        assert result.primary_id == 1
        assert result.expense.receipt_url == ""
        types = [event.event_type for event in audit_logger.recent_events]
        assert AuditEventType.RECEIPT_UPLOAD_FAILED in types

    def test_missing_receipt_service_is_a_failed_upload(self, validator, audit_logger, app_settings):
        coordinator = make_coordinator(validator, audit_logger, app_settings)
        result = asyncio.run(coordinator.persist(make_record(), attachment=self.attachment))
        assert result.expense.receipt_url == ""

    def test_uploaded_receipt_url_is_stored(self, validator, audit_logger, app_settings, fake_sync):
        receipts = FakeReceiptService()
        coordinator = make_coordinator(validator, audit_logger, app_settings, sync=fake_sync, receipts=receipts)

        result = asyncio.run(coordinator.persist(make_record(), attachment=self.attachment))

        assert result.expense.receipt_url == receipts.url
        assert fake_sync.synced[0].receipt_url == receipts.url
        assert receipts.resolved == [self.attachment]


class TestCreateAppComponents:

    def test_runs_without_external_services(self):
        coordinator, primary_storage, audit_logger = create_app_components(
            use_external_sync=False,
            use_receipt_uploads=False,
        )
        assert coordinator.primary_storage is primary_storage
        assert len(primary_storage) == 0
