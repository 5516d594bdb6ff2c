"""
Expense Wizard Engine

The state machine behind the expense form: which step the user is on,
what they have entered so far, and when they may move on or submit.

DESIGN DECISION: The engine knows nothing about rendering. A UI reads
current_step/draft, calls set_field/advance/retreat/submit, and shows the
returned StepResult/SubmitResult. Everything here is testable without a
browser.

State:
- current_step: 1..N, always one of the step descriptors
- draft: the in-progress ExpenseDraft
- attachment: receipt file held outside the draft until submission
- is_submitting: set while a submission is in flight; navigation,
  edits and repeat submissions are refused meanwhile

Validation failures never escape this class; they come back as results
carrying ValidationIssues. A PersistenceFailure from the primary store
does escape submit(), with the wizard left on the last step and the
draft intact so the user can retry.
"""

from typing import Any, Optional
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.models.expense import (
    ExpenseDraft,
    ReceiptAttachment,
    StepResult,
    SubmitOutcome,
    SubmitResult,
    ValidationIssue,
    WizardStep,
)
from expense_tracker.orchestrator import ExpensePersistenceCoordinator
from expense_tracker.validation import ExpenseValidator, RecordValidationError
from expense_tracker.wizard.steps import StepDescriptor, build_steps


BUSY_MESSAGE = "Your expense is being saved, please wait."


class WizardBusyError(RuntimeError):
    """The wizard was modified while a submission was in flight."""
    pass


class ExpenseWizard:
    """
    Step-by-step expense entry.

    Args:
        coordinator: Saves the finished expense
        validator: Field checks; defaults to the coordinator's validator
        steps: Ordered step descriptors; defaults to build_steps(validator)
        audit_logger: Where navigation and submission events go
        correlation_id: Session id for the audit trail
    """

    def __init__(
        self,
        coordinator: ExpensePersistenceCoordinator,
        validator: Optional[ExpenseValidator] = None,
        steps: Optional[list[StepDescriptor]] = None,
        audit_logger: Optional[AuditLogger] = None,
        correlation_id: Optional[UUID] = None,
    ):
        self._coordinator = coordinator
        self._validator = validator or coordinator.validator
        self._steps = list(steps) if steps is not None else build_steps(self._validator)
        if not self._steps:
            raise ValueError("A wizard needs at least one step")
        self._by_step = {descriptor.step: descriptor for descriptor in self._steps}
        self._audit_logger = audit_logger or AuditLogger()
        self._correlation_id = correlation_id or create_correlation_id()

        self._current = self._steps[0].step
        self._draft = ExpenseDraft()
        self._attachment: Optional[ReceiptAttachment] = None
        self._submitting = False

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def current_step(self) -> WizardStep:
        return self._current

    @property
    def current_descriptor(self) -> StepDescriptor:
        return self._by_step[self._current]

    @property
    def first_step(self) -> WizardStep:
        return self._steps[0].step

    @property
    def last_step(self) -> WizardStep:
        return self._steps[-1].step

    @property
    def total_steps(self) -> int:
        return len(self._steps)

    @property
    def progress(self) -> float:
        """Fraction of the flow reached, for a progress bar."""
        position = self._steps.index(self.current_descriptor) + 1
        return position / self.total_steps

    @property
    def draft(self) -> ExpenseDraft:
        return self._draft.model_copy()

    @property
    def attachment(self) -> Optional[ReceiptAttachment]:
        return self._attachment

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    @property
    def correlation_id(self) -> UUID:
        return self._correlation_id

    @property
    def validator(self) -> ExpenseValidator:
        return self._validator

    def visible_steps(self) -> list[WizardStep]:
        return [d.step for d in self._steps if d.is_visible(self._draft)]

    def sub_category_options(self) -> list[str]:
        """Sub-categories for the chosen category, or [] before one is chosen."""
        catalog = self._validator.catalog
        if not catalog.has_category(self._draft.category):
            return []
        return catalog.list_sub_categories(self._draft.category)

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------

    def _descriptor(self, step: WizardStep) -> StepDescriptor:
        try:
            return self._by_step[WizardStep(step)]
        except (KeyError, ValueError):
            raise ValueError(f"Unknown wizard step: {step!r}") from None

    def is_step_visible(self, step: WizardStep, draft: Optional[ExpenseDraft] = None) -> bool:
        return self._descriptor(step).is_visible(draft or self._draft)

    def can_advance(self, step: WizardStep, draft: Optional[ExpenseDraft] = None) -> bool:
        return self._descriptor(step).can_advance(draft or self._draft)

    def step_issues(self, step: Optional[WizardStep] = None) -> list[ValidationIssue]:
        """Issues that currently block leaving a step (default: the current one)."""
        return self._descriptor(step or self._current).blocking_issues(self._draft)

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def set_field(self, name: str, value: Any) -> None:
        """
        Set one draft field.

        Setting the category always clears the sub-category in the same
        update, so a stale sub-category is never paired with a new category.

        Raises:
            ValueError: Unknown field, or a value the draft cannot hold
            WizardBusyError: A submission is in flight
        """
        if self._submitting:
            raise WizardBusyError(BUSY_MESSAGE)
        if name not in ExpenseDraft.model_fields:
            raise ValueError(f"Unknown expense field: {name!r}")

        update = {name: value}
        if name == "category":
            update["sub_category"] = ""

        try:
            new_draft = ExpenseDraft.model_validate({**self._draft.model_dump(), **update})
        except PydanticValidationError as e:
            raise ValueError(f"Invalid value for {name}: {e.errors()[0]['msg']}") from e

        old_category = self._draft.category
        self._draft = new_draft
        if name == "category":
            self._audit_logger.log_category_changed(old_category, new_draft.category, self._correlation_id)

    def attach_receipt(self, attachment: Optional[ReceiptAttachment]) -> None:
        """Hold a receipt file for upload at submission; None clears it."""
        if self._submitting:
            raise WizardBusyError(BUSY_MESSAGE)
        self._attachment = attachment

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def _busy_step_result(self) -> StepResult:
        return StepResult(
            moved=False,
            step=self._current,
            previous_step=self._current,
            busy=True,
            message=BUSY_MESSAGE,
        )

    def advance(self) -> StepResult:
        """
        Move to the next visible step if the current one is complete.

        At the last step this is a no-op.
        """
        if self._submitting:
            return self._busy_step_result()

        start = self._current
        issues = self.step_issues(start)
        if issues:
            self._audit_logger.log_step_blocked(
                step=int(start),
                issues=[{"field": i.field, "type": i.issue_type} for i in issues],
                correlation_id=self._correlation_id,
            )
            return StepResult(
                moved=False,
                step=start,
                previous_step=start,
                message=issues[0].message,
                issues=issues,
            )

        index = self._steps.index(self._by_step[start])
        for descriptor in self._steps[index + 1:]:
            if descriptor.is_visible(self._draft):
                self._current = descriptor.step
                self._audit_logger.log_step_advanced(int(start), int(self._current), self._correlation_id)
                return StepResult(moved=True, step=self._current, previous_step=start)

        return StepResult(moved=False, step=start, previous_step=start)

    def retreat(self) -> StepResult:
        """
        Move to the previous visible step. Never validates.

        At the first step this is a no-op.
        """
        if self._submitting:
            return self._busy_step_result()

        start = self._current
        index = self._steps.index(self._by_step[start])
        for descriptor in reversed(self._steps[:index]):
            if descriptor.is_visible(self._draft):
                self._current = descriptor.step
                self._audit_logger.log_step_retreated(int(start), int(self._current), self._correlation_id)
                return StepResult(moved=True, step=self._current, previous_step=start)

        return StepResult(moved=False, step=start, previous_step=start)

    def reset(self, reason: str = "abandoned") -> None:
        """Discard the draft and attachment and go back to the first step."""
        if self._submitting:
            raise WizardBusyError(BUSY_MESSAGE)
        self._current = self.first_step
        self._draft = ExpenseDraft()
        self._attachment = None
        self._audit_logger.log_wizard_reset(reason, self._correlation_id)

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def _invalid(self, issues: list[ValidationIssue], message: Optional[str] = None) -> SubmitResult:
        errors = [issue for issue in issues if issue.severity == "error"]
        if message is None:
            message = f"Please fix: {errors[0].message}" if errors else "Please check the form."
        return SubmitResult(outcome=SubmitOutcome.INVALID, message=message, issues=issues)

    async def submit(self) -> SubmitResult:
        """
        Validate and save the expense.

        Returns:
            SubmitResult: SAVED (wizard reset), INVALID (nothing changed)
            or BUSY (another submission is still running)

        Raises:
            PersistenceFailure: The primary store failed; the wizard stays
                on the last step with the draft intact
        """
        if self._submitting:
            return SubmitResult(outcome=SubmitOutcome.BUSY, message=BUSY_MESSAGE)

        if self._current != self.last_step:
            return self._invalid([], message="Please complete every step before submitting.")

        last_issues = self.step_issues(self.last_step)
        if last_issues:
            return self._invalid(last_issues)

        for descriptor in self._steps:
            if descriptor.is_visible(self._draft):
                issues = descriptor.blocking_issues(self._draft)
                if issues:
                    return self._invalid(issues)

        result = self._validator.validate(self._draft)
        if not result.is_valid:
            return self._invalid(result.issues)
        record = result.record

        self._submitting = True
        try:
            self._audit_logger.log_submission_started(
                user=record.user,
                amount=record.amount,
                has_attachment=self._attachment is not None,
                correlation_id=self._correlation_id,
            )
            persisted = await self._coordinator.persist(
                record,
                attachment=self._attachment,
                correlation_id=self._correlation_id,
            )
        except RecordValidationError as e:
            return self._invalid(e.issues)
        finally:
            self._submitting = False

        self.reset(reason="saved")
        return SubmitResult(
            outcome=SubmitOutcome.SAVED,
            message="Expense saved successfully",
            expense_id=persisted.primary_id,
            issues=[issue for issue in result.issues if issue.severity != "error"],
            persist_result=persisted,
        )
