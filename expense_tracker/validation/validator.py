"""
Expense Record Validation

DESIGN DECISION: Validation is a set of independent per-field checks.

The same check methods serve two callers:
- The wizard, which runs only the checks belonging to the current step
  to decide whether the user may move on
- validate(), which runs every check regardless of step order, once when
  the wizard submits and once more at the persistence boundary

Because both callers share one implementation, the step gate and the
full validation can never disagree about what a valid amount or a
required field is.

Errors block. Warnings (odd dates, unusual receipt links) are reported
but never stop a save.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to correct.
"""

from datetime import date, timedelta
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.catalog import CategoryCatalog, get_default_catalog
from expense_tracker.models.expense import (
    ExpenseDraft,
    ExpenseRecord,
    ValidationIssue,
    ValidationResult,
    canonical_amount,
    has_at_most_cents,
    parse_amount,
)


MAX_TEXT_LENGTH = 1000

Candidate = Union[ExpenseDraft, ExpenseRecord, dict]


class RecordValidationError(Exception):
    """A candidate expense failed validation."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        errors = [issue.message for issue in issues if issue.severity == "error"]
        super().__init__("; ".join(errors) or "Expense failed validation")


class ExpenseValidator:
    """
    Validates expense candidates field by field.

    Each check_* method looks at one field (or one small group of fields)
    of an ExpenseDraft and returns the issues it found.
    """

    def __init__(
        self,
        catalog: Optional[CategoryCatalog] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._catalog = catalog or get_default_catalog()
        self._settings = settings or get_settings().app

    @property
    def catalog(self) -> CategoryCatalog:
        return self._catalog

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def known_users(self) -> list[str]:
        return self._settings.known_users_list

    def description_required(self, draft: ExpenseDraft) -> bool:
        """A description is only ever required for the misc category."""
        return self._settings.description_required and self._catalog.is_misc(draft.category)

    # -------------------------------------------------------------------------
    # Per-field checks
    # -------------------------------------------------------------------------

    def check_user(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        if not draft.user:
            return [ValidationIssue(
                field="user",
                issue_type="missing",
                message="Please choose who made this expense",
                severity="error",
            )]
        if draft.user not in self.known_users:
            return [ValidationIssue(
                field="user",
                issue_type="invalid_value",
                message=f"{draft.user} is not a known user",
                severity="error",
                suggested_fix=f"Choose one of: {', '.join(self.known_users)}",
            )]
        return []

    def check_category(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        if not draft.category:
            return [ValidationIssue(
                field="category",
                issue_type="missing",
                message="Please choose a category",
                severity="error",
            )]
        if not self._catalog.has_category(draft.category):
            return [ValidationIssue(
                field="category",
                issue_type="invalid_value",
                message=f"{draft.category} is not a known category",
                severity="error",
                suggested_fix="Choose a category from the list",
            )]
        return []

    def check_sub_category(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        if not draft.sub_category:
            return [ValidationIssue(
                field="sub_category",
                issue_type="missing",
                message="Please choose a sub-category",
                severity="error",
            )]
        if not self._catalog.has_category(draft.category):
            return [ValidationIssue(
                field="sub_category",
                issue_type="invalid_value",
                message="Choose a valid category before the sub-category",
                severity="error",
            )]
        if not self._catalog.is_valid_sub_category(draft.category, draft.sub_category):
            options = self._catalog.list_sub_categories(draft.category)
            return [ValidationIssue(
                field="sub_category",
                issue_type="invalid_value",
                message=f"{draft.sub_category} is not a sub-category of {draft.category}",
                severity="error",
                suggested_fix=f"Choose one of: {', '.join(options)}",
            )]
        return []

    def check_description(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        issues = []
        if not draft.description and self.description_required(draft):
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Please describe this miscellaneous expense",
                severity="error",
            ))
        if len(draft.description) > MAX_TEXT_LENGTH:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=f"Description is longer than {MAX_TEXT_LENGTH} characters",
                severity="error",
            ))
        return issues

    def check_amount(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        if not draft.amount:
            return [ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Please enter the amount",
                severity="error",
            )]

        amount = parse_amount(draft.amount)
        if amount is None:
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=f"'{draft.amount}' is not a number",
                severity="error",
                suggested_fix="Enter digits only, e.g. 45.00",
            )]
        if amount <= 0:
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be a positive number",
                severity="error",
            )]
        if amount > self._settings.max_expense_amount:
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=f"Amount cannot exceed {self._settings.max_expense_amount:,.2f}",
                severity="error",
                suggested_fix="Check if the amount was typed correctly",
            )]
        if not has_at_most_cents(amount):
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Amount can have at most 2 decimal places",
                severity="error",
            )]
        return []

    def check_date(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        if draft.date is None:
            return [ValidationIssue(
                field="date",
                issue_type="missing",
                message="Please pick the date of the expense",
                severity="error",
            )]

        today = date.today()
        tolerance = timedelta(days=self._settings.future_date_tolerance_days)
        if draft.date > today + tolerance:
            return [ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense date ({draft.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            )]

        # Very old date check (likely a typo in the year)
        if draft.date < today - timedelta(days=365 * 2):
            return [ValidationIssue(
                field="date",
                issue_type="suspicious_date",
                message=f"Expense date ({draft.date}) seems unusually old",
                severity="warning",
                suggested_fix="Please verify the year",
            )]
        return []

    def check_receipt_and_notes(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        issues = []
        if draft.receipt_url and not draft.receipt_url.startswith(("http://", "https://")):
            issues.append(ValidationIssue(
                field="receipt_url",
                issue_type="suspicious_value",
                message="Receipt link does not look like a web address",
                severity="warning",
            ))
        if len(draft.notes) > MAX_TEXT_LENGTH:
            issues.append(ValidationIssue(
                field="notes",
                issue_type="too_long",
                message=f"Notes are longer than {MAX_TEXT_LENGTH} characters",
                severity="error",
            ))
        return issues

    @property
    def field_checks(self) -> list[Callable[[ExpenseDraft], list[ValidationIssue]]]:
        return [
            self.check_user,
            self.check_category,
            self.check_sub_category,
            self.check_description,
            self.check_amount,
            self.check_date,
            self.check_receipt_and_notes,
        ]

    # -------------------------------------------------------------------------
    # Whole-record validation
    # -------------------------------------------------------------------------

    def _coerce(self, candidate: Candidate) -> tuple[Optional[ExpenseDraft], list[ValidationIssue]]:
        """Bring any accepted candidate shape into an ExpenseDraft."""
        if isinstance(candidate, ExpenseDraft):
            return candidate, []

        data: Any = candidate.model_dump() if isinstance(candidate, ExpenseRecord) else candidate
        try:
            return ExpenseDraft.model_validate(data), []
        except PydanticValidationError as e:
            return None, [
                ValidationIssue(
                    field=str(error["loc"][0]) if error["loc"] else "record",
                    issue_type="invalid_format",
                    message=error["msg"],
                    severity="error",
                )
                for error in e.errors()
            ]

    def validate(self, candidate: Candidate) -> ValidationResult:
        """
        Validate every field of a candidate expense.

        Args:
            candidate: An ExpenseDraft, ExpenseRecord or plain dict

        Returns:
            ValidationResult; when valid, .record holds the canonical ExpenseRecord
        """
        draft, issues = self._coerce(candidate)
        if draft is not None:
            for check in self.field_checks:
                issues.extend(check(draft))

        warnings = [issue.message for issue in issues if issue.severity == "warning"]
        if draft is None or any(issue.severity == "error" for issue in issues):
            return ValidationResult(is_valid=False, issues=issues, warnings=warnings)

        record = ExpenseRecord(
            user=draft.user,
            category=draft.category,
            sub_category=draft.sub_category,
            description=draft.description,
            amount=canonical_amount(draft.amount),
            date=draft.date,
            receipt_url=draft.receipt_url,
            notes=draft.notes,
        )
        return ValidationResult(is_valid=True, issues=issues, warnings=warnings, record=record)

    def raise_if_invalid(self, result: ValidationResult) -> ExpenseRecord:
        """Return the validated record or raise RecordValidationError."""
        if not result.is_valid or result.record is None:
            raise RecordValidationError(result.issues)
        return result.record

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is the "please fix X" text shown next to the form.
        """
        if result.is_valid and not result.warnings:
            return "All details look good."

        lines = []

        errors = [issue for issue in result.issues if issue.severity == "error"]
        if errors:
            lines.append("Please fix the following:")
            for issue in errors:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please double-check:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
