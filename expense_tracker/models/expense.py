"""
Core Data Models for Expense Tracker

These models define the schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Keep amounts and dates in one canonical form end to end

DESIGN DECISION: An expense exists in two shapes. ExpenseDraft is the
loose, in-progress form the wizard edits field by field. ExpenseRecord is
the frozen, validated form that is allowed to reach storage.
"""

import datetime as dt
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum, IntEnum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


CENTS = Decimal("0.01")

# Integer digits plus two cents must fit the default 28-digit decimal context
MAX_AMOUNT_INTEGER_DIGITS = 26

ALLOWED_RECEIPT_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "application/pdf",
}


# =============================================================================
# CANONICAL FORMS
# =============================================================================

def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Parse user input into a Decimal.

    Returns None for empty input, non-numeric text, NaN and infinities.
    Floats go through str() so 0.1 stays 0.1 rather than its binary expansion.
    """
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def has_at_most_cents(amount: Decimal) -> bool:
    """
    True when no non-zero digit sits past the second decimal place.

    Works on the digit tuple so arbitrarily large values never hit the
    decimal context precision ("1.500" passes, "1.505" does not).
    """
    sign, digits, exponent = amount.as_tuple()
    extra = -2 - exponent
    if extra <= 0:
        return True
    return all(digit == 0 for digit in digits[-extra:])


def canonical_amount(value: Any) -> str:
    """
    Canonical decimal string for an amount: exactly two fractional digits.

    Raises:
        ValueError: If the value is not a positive number with at most 2 decimals,
            or has more integer digits than MAX_AMOUNT_INTEGER_DIGITS
    """
    amount = parse_amount(value)
    if amount is None:
        raise ValueError(f"Amount is not a number: {value!r}")
    if amount <= 0:
        raise ValueError("Amount must be a positive number")
    if amount.adjusted() >= MAX_AMOUNT_INTEGER_DIGITS:
        raise ValueError("Amount is too large")
    if not has_at_most_cents(amount):
        raise ValueError("Amount can have at most 2 decimal places")
    return str(amount.quantize(CENTS))


def as_calendar_date(value: Any) -> Optional[date]:
    """Drop any time component; ISO strings are parsed."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise ValueError(f"Not a calendar date: {value!r}")


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class WizardStep(IntEnum):
    """
    The ordered steps of the expense wizard.

    Numbering is 1-based and matches the progress shown to the user.
    """
    USER = 1
    CATEGORY = 2
    SUB_CATEGORY = 3
    DESCRIPTION = 4
    AMOUNT = 5
    DATE = 6
    RECEIPT = 7


class SubmitOutcome(str, Enum):
    """What the user sees after pressing submit."""
    SAVED = "saved"
    INVALID = "invalid"      # "please fix X"
    BUSY = "busy"            # a submission is already in flight


# =============================================================================
# EXPENSE MODELS
# =============================================================================

class ExpenseDraft(BaseModel):
    """
    An expense being filled in by the wizard.

    Every field has a default so an empty draft is always valid as a draft.
    Nothing here is trusted - ExpenseValidator decides whether a draft can
    become an ExpenseRecord.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    user: str = ""
    category: str = ""
    sub_category: str = ""
    description: str = ""
    amount: str = Field(
        default="",
        description="Amount exactly as typed by the user"
    )
    date: Optional[dt.date] = Field(
        default_factory=dt.date.today,
        description="Expense date, defaults to today"
    )
    receipt_url: str = ""
    notes: str = ""

    @field_validator("user", "category", "sub_category", "description", "receipt_url", "notes", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("amount", mode="before")
    @classmethod
    def amount_to_text(cls, v: Any) -> Any:
        """Keep the amount as text; numbers from widgets are stringified."""
        if v is None:
            return ""
        if isinstance(v, (Decimal, int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("date", mode="before")
    @classmethod
    def drop_time(cls, v: Any) -> Any:
        if v == "":
            return None
        if isinstance(v, datetime):
            return v.date()
        return v


class ExpenseRecord(BaseModel):
    """
    A validated expense, ready for persistence.

    CRITICAL: Only ExpenseRecord objects are handed to storage.
    Amount and date are always in canonical form, optional text
    fields are empty strings rather than missing.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    user: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=100)
    sub_category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=1000)
    amount: str = Field(
        ...,
        description="Canonical decimal string, e.g. '45.00'"
    )
    date: dt.date
    receipt_url: str = ""
    notes: str = Field(
        default="",
        max_length=1000,
        description="User notes about this expense"
    )

    @field_validator("description", "receipt_url", "notes", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("amount", mode="before")
    @classmethod
    def canonicalize_amount(cls, v: Any) -> str:
        return canonical_amount(v)

    @field_validator("date", mode="before")
    @classmethod
    def canonicalize_date(cls, v: Any) -> Any:
        return as_calendar_date(v)

    @property
    def amount_decimal(self) -> Decimal:
        return Decimal(self.amount)


class StoredExpense(ExpenseRecord):
    """An expense as held by the primary store, with its assigned identity."""

    id: int = Field(..., ge=1, description="Store-assigned identifier")
    created_at: datetime = Field(
        ...,
        description="When the primary store accepted the record (UTC)"
    )


class ReceiptAttachment(BaseModel):
    """
    A receipt file attached in the wizard, before upload.

    The bytes stay outside the expense until submission; only the
    resolved URL ever lands on the record.
    """

    upload_id: UUID = Field(
        default_factory=uuid4,
        description="Unique upload identifier"
    )
    filename: str = Field(..., min_length=1)
    content: bytes = Field(..., repr=False)
    mime_type: str

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """Only allow image and PDF receipts."""
        if v.lower() not in ALLOWED_RECEIPT_TYPES:
            raise ValueError(
                f"Unsupported receipt type: {v}. Allowed: {sorted(ALLOWED_RECEIPT_TYPES)}"
            )
        return v.lower()

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating a candidate expense.

    When is_valid is True, record holds the canonical ExpenseRecord.
    """

    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )
    record: Optional[ExpenseRecord] = None

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    def errors_for(self, field: str) -> list[ValidationIssue]:
        return [
            issue for issue in self.issues
            if issue.field == field and issue.severity == "error"
        ]


# =============================================================================
# RESULT MODELS
# =============================================================================

class PersistResult(BaseModel):
    """
    Outcome of the dual write.

    The primary write either succeeded (and this object exists) or the
    whole operation raised. The external mirror outcome is informational.
    """

    primary_id: int = Field(..., ge=1)
    expense: StoredExpense
    external_sync_ok: bool
    external_id: Optional[str] = None
    sync_error: Optional[str] = Field(
        default=None,
        description="Error kind when the mirror failed or was skipped"
    )


class StepResult(BaseModel):
    """Outcome of a single advance/retreat."""

    moved: bool
    step: WizardStep
    previous_step: WizardStep
    busy: bool = False
    message: Optional[str] = None
    issues: list[ValidationIssue] = Field(default_factory=list)


class SubmitResult(BaseModel):
    """Outcome of a wizard submission as presented to the user."""

    outcome: SubmitOutcome
    message: str
    expense_id: Optional[int] = None
    issues: list[ValidationIssue] = Field(default_factory=list)
    persist_result: Optional[PersistResult] = None

    @property
    def success(self) -> bool:
        return self.outcome == SubmitOutcome.SAVED
