"""Tests for expense validation."""

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal

from expense_tracker.config import AppSettings
from expense_tracker.models.catalog import MISC_CATEGORY
from expense_tracker.models.expense import ExpenseDraft, ExpenseRecord
from expense_tracker.validation import ExpenseValidator, RecordValidationError


def valid_candidate(**overrides) -> dict:
    candidate = {
        "user": "Tyler",
        "category": "Home",
        "sub_category": "Cleaner",
        "amount": "45.00",
        "date": date.today() - timedelta(days=3),
    }
    candidate.update(overrides)
    return candidate


class TestExpenseValidator:

    def test_valid_candidate_produces_canonical_record(self, validator):
        result = validator.validate(valid_candidate(amount=45, date=datetime(2024, 5, 1, 9, 15)))
        assert result.is_valid
        assert result.record.amount == "45.00"
        assert result.record.date == date(2024, 5, 1)
        assert result.record.receipt_url == ""

    def test_accepts_draft_and_record(self, validator):
        draft = ExpenseDraft(**valid_candidate())
        assert validator.validate(draft).is_valid
        record = ExpenseRecord(**valid_candidate())
        assert validator.validate(record).record == record

    def test_missing_fields_are_reported(self, validator):
        result = validator.validate({"date": None})
        assert not result.is_valid
        missing = {issue.field for issue in result.issues if issue.issue_type == "missing"}
        assert missing == {"user", "category", "sub_category", "amount", "date"}

    def test_unknown_user(self, validator):
        result = validator.validate(valid_candidate(user="Bob"))
        assert result.errors_for("user")[0].issue_type == "invalid_value"

    def test_unknown_category(self, validator):
        result = validator.validate(valid_candidate(category="Boats"))
        assert result.errors_for("category")
        assert result.errors_for("sub_category")

    def test_sub_category_must_belong_to_category(self, validator):
        result = validator.validate(valid_candidate(category="Yoshi", sub_category="Cleaner"))
        issue = result.errors_for("sub_category")[0]
        assert issue.issue_type == "invalid_value"
        assert "Food" in issue.suggested_fix

    @pytest.mark.parametrize("amount,issue_type", [
        ("-5", "invalid_value"),
        ("0", "invalid_value"),
        ("abc", "invalid_format"),
        ("1.234", "invalid_format"),
        ("100000000.00", "invalid_value"),
        ("1e30", "invalid_value"),
        ("123456789012345678901234567890", "invalid_value"),
        ("123456789012345678901234567890.123", "invalid_value"),
    ])
    def test_bad_amounts(self, validator, amount, issue_type):
        result = validator.validate(valid_candidate(amount=amount))
        assert not result.is_valid
        assert result.errors_for("amount")[0].issue_type == issue_type

    def test_largest_amount_is_accepted(self, validator):
        assert validator.validate(valid_candidate(amount="99999999.99")).is_valid

    def test_huge_amounts_report_the_limit(self, validator):
        for amount in ("1e30", "9" * 40):
            issue = validator.check_amount(ExpenseDraft(amount=amount))[0]
            assert issue.issue_type == "invalid_value"
            assert "cannot exceed" in issue.message

    def test_trailing_zeros_past_cents_are_accepted(self, validator):
        result = validator.validate(valid_candidate(amount="12.500"))
        assert result.is_valid
        assert result.record.amount == "12.50"

    def test_limit_must_fit_the_canonical_form(self):
        with pytest.raises(ValueError):
            AppSettings(_env_file=None, max_expense_amount=Decimal("1e30"))

    def test_future_date_is_a_warning(self, validator):
        result = validator.validate(valid_candidate(date=date.today() + timedelta(days=30)))
        assert result.is_valid
        assert result.warnings
        assert not result.has_errors

    def test_description_optional_for_misc_by_default(self, validator):
        result = validator.validate(valid_candidate(category=MISC_CATEGORY, sub_category="Other"))
        assert result.is_valid

    def test_description_required_for_misc_when_configured(self):
        settings = AppSettings(_env_file=None, description_required=True)
        validator = ExpenseValidator(settings=settings)

        misc = validator.validate(valid_candidate(category=MISC_CATEGORY, sub_category="Other"))
        assert misc.errors_for("description")

        described = validator.validate(valid_candidate(
            category=MISC_CATEGORY, sub_category="Other", description="Parking fine",
        ))
        assert described.is_valid

        # Never required outside the misc category
        assert validator.validate(valid_candidate()).is_valid

    def test_notes_length_limit(self, validator):
        result = validator.validate(valid_candidate(notes="x" * 1001))
        assert result.errors_for("notes")

    def test_non_web_receipt_link_is_a_warning(self, validator):
        result = validator.validate(valid_candidate(receipt_url="receipt.jpg"))
        assert result.is_valid
        assert result.warnings

    def test_uncoercible_input_is_reported(self, validator):
        result = validator.validate(valid_candidate(date="not-a-date"))
        assert not result.is_valid
        assert result.issues[0].field == "date"

    def test_raise_if_invalid(self, validator):
        valid = validator.validate(valid_candidate())
        assert validator.raise_if_invalid(valid).amount_decimal == Decimal("45.00")

        invalid = validator.validate(valid_candidate(amount="-5"))
        with pytest.raises(RecordValidationError) as exc_info:
            validator.raise_if_invalid(invalid)
        assert exc_info.value.issues[0].field == "amount"

    def test_user_friendly_summary(self, validator):
        ok = validator.validate(valid_candidate())
        assert not ok.warnings
        assert validator.get_user_friendly_summary(ok) == "All details look good."

        bad = validator.validate(valid_candidate(amount="abc"))
        summary = validator.get_user_friendly_summary(bad)
        assert summary.startswith("Please fix the following:")
        assert "'abc' is not a number" in summary
