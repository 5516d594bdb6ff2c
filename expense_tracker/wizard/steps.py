"""
Wizard Step Definitions

Each step of the expense wizard is described by a StepDescriptor:
which fields it edits, when it is shown and what must be true before
the user may leave it. The engine walks this list in order; it never
branches on step numbers itself.

Visibility is configuration. The reference flow shows the description
step only for the misc category; "always" shows it for every category.
"""

from dataclasses import dataclass
from typing import Callable, Literal, Optional

from expense_tracker.models.expense import ExpenseDraft, ValidationIssue, WizardStep
from expense_tracker.validation.validator import ExpenseValidator


DescriptionVisibility = Literal["misc_only", "always"]

Predicate = Callable[[ExpenseDraft], bool]
Check = Callable[[ExpenseDraft], list[ValidationIssue]]


def _always(draft: ExpenseDraft) -> bool:
    return True


@dataclass(frozen=True)
class StepDescriptor:
    """
    One screen of the wizard.

    Attributes:
        step: Position in the flow
        title: Heading shown to the user
        fields: Draft fields edited on this step
        is_visible: Whether the step is shown for a given draft
        check: Issues that block leaving this step
    """

    step: WizardStep
    title: str
    fields: tuple[str, ...]
    is_visible: Predicate
    check: Check

    def blocking_issues(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        return [issue for issue in self.check(draft) if issue.severity == "error"]

    def can_advance(self, draft: ExpenseDraft) -> bool:
        return not self.blocking_issues(draft)


def build_steps(
    validator: ExpenseValidator,
    description_visibility: Optional[DescriptionVisibility] = None,
) -> list[StepDescriptor]:
    """
    Build the ordered step list for the wizard.

    Args:
        validator: Supplies the per-field checks each step gates on
        description_visibility: "misc_only" or "always"; defaults to the
            configured AppSettings.description_visibility
    """
    if description_visibility is None:
        description_visibility = validator.settings.description_visibility

    catalog = validator.catalog
    if description_visibility == "always":
        description_visible: Predicate = _always
    elif description_visibility == "misc_only":
        def description_visible(draft: ExpenseDraft) -> bool:
            return catalog.is_misc(draft.category)
    else:
        raise ValueError(f"Unknown description visibility: {description_visibility!r}")

    return [
        StepDescriptor(
            step=WizardStep.USER,
            title="Who is this expense for?",
            fields=("user",),
            is_visible=_always,
            check=validator.check_user,
        ),
        StepDescriptor(
            step=WizardStep.CATEGORY,
            title="Select Category",
            fields=("category",),
            is_visible=_always,
            check=validator.check_category,
        ),
        StepDescriptor(
            step=WizardStep.SUB_CATEGORY,
            title="Select Sub-Category",
            fields=("sub_category",),
            is_visible=_always,
            check=validator.check_sub_category,
        ),
        StepDescriptor(
            step=WizardStep.DESCRIPTION,
            title="Description",
            fields=("description",),
            is_visible=description_visible,
            check=validator.check_description,
        ),
        StepDescriptor(
            step=WizardStep.AMOUNT,
            title="Enter Amount",
            fields=("amount",),
            is_visible=_always,
            check=validator.check_amount,
        ),
        StepDescriptor(
            step=WizardStep.DATE,
            title="Select Date",
            fields=("date",),
            is_visible=_always,
            check=validator.check_date,
        ),
        StepDescriptor(
            step=WizardStep.RECEIPT,
            title="Upload Receipt (Optional)",
            fields=("receipt_url", "notes"),
            is_visible=_always,
            check=validator.check_receipt_and_notes,
        ),
    ]
