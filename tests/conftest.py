"""Shared fixtures for the expense tracker tests."""

import pytest

from expense_tracker.audit import AuditLogger
from expense_tracker.config import AppSettings
from expense_tracker.orchestrator import ExpensePersistenceCoordinator
from expense_tracker.services.storage import InMemoryExpenseStorage
from expense_tracker.validation import ExpenseValidator
from expense_tracker.wizard import ExpenseWizard
from tests.fakes import FakeSync


@pytest.fixture
def app_settings():
    return AppSettings(
        _env_file=None,
        known_users="Tyler,Alexa",
        description_visibility="misc_only",
        description_required=False,
        receipt_required=False,
        external_sync_enabled=True,
        external_sync_timeout_seconds=5.0,
    )


@pytest.fixture
def validator(app_settings):
    return ExpenseValidator(settings=app_settings)


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def fake_sync():
    return FakeSync()


@pytest.fixture
def storage():
    return InMemoryExpenseStorage()


@pytest.fixture
def coordinator(storage, fake_sync, validator, audit_logger, app_settings):
    return ExpensePersistenceCoordinator(
        primary_storage=storage,
        sync_service=fake_sync,
        validator=validator,
        audit_logger=audit_logger,
        settings=app_settings,
    )


@pytest.fixture
def wizard(coordinator, audit_logger):
    return ExpenseWizard(coordinator, audit_logger=audit_logger)
