"""
Item Validation

DESIGN DECISION: All field checks run BEFORE the backend is called.
A record that fails here never reaches storage, so there are no partially
written invalid items.

Validation NEVER silently fixes values. Every problem is reported, all at
once, in the raised error's ``issues``.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ledger import dates
from ledger.errors import InvalidCategoryError, ValidationError
from ledger.models.item import Category, ItemDraft, ValidationIssue
from ledger.validation import categories

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def to_decimal(value: Any) -> Decimal:
    """
    Convert a numeric input into a finite Decimal.

    Floats go through ``str`` so 0.1 becomes Decimal("0.1") rather than its
    binary expansion.

    Raises:
        ValueError: For booleans, non-numeric input, NaN and infinities.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


class ItemValidator:
    """Validates the writable fields of a ledger item."""

    def validate(
        self,
        name: Any,
        value: Any,
        category: Any,
        created_at: Any,
    ) -> ItemDraft:
        """
        Check every field and return a draft ready for the backend.

        Raises:
            InvalidCategoryError: If the category is not in the closed set.
            ValidationError: For any other invalid field.
        """
        issues: list[ValidationIssue] = []

        clean_name = name.strip() if isinstance(name, str) else ""
        if not clean_name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Name is required and cannot be blank",
            ))

        amount: Optional[Decimal] = None
        try:
            amount = to_decimal(value)
        except ValueError as e:
            issues.append(ValidationIssue(
                field="value",
                issue_type="invalid_value",
                message=str(e),
            ))

        clean_category: Optional[Category] = None
        try:
            clean_category = categories.normalize(category)
        except InvalidCategoryError as e:
            issues.extend(e.issues)

        timestamp = self._timestamp_text(created_at)
        try:
            dates.parse_timestamp(timestamp)
        except ValueError:
            issues.append(ValidationIssue(
                field="created_at",
                issue_type="invalid_timestamp",
                message=f"Not a valid timestamp: {created_at!r}",
            ))

        if issues:
            raise self._error_for(issues)

        return ItemDraft(
            name=clean_name,
            value=amount,
            category=clean_category,
            created_at=timestamp,
        )

    def validate_budget(self, month: Any, amount: Any) -> tuple[str, Decimal]:
        """Check a YYYY-MM month key and a budget amount."""
        issues: list[ValidationIssue] = []

        month_issue = self._month_issue(month)
        if month_issue:
            issues.append(month_issue)

        clean_amount: Optional[Decimal] = None
        try:
            clean_amount = to_decimal(amount)
        except ValueError as e:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=str(e),
            ))

        if issues:
            raise self._error_for(issues)
        return month, clean_amount

    def validate_month(self, month: Any) -> str:
        issue = self._month_issue(month)
        if issue:
            raise ValidationError(issue.message, [issue])
        return month

    def is_month(self, month: Any) -> bool:
        return self._month_issue(month) is None

    @staticmethod
    def _month_issue(month: Any) -> Optional[ValidationIssue]:
        if isinstance(month, str) and MONTH_PATTERN.match(month):
            return None
        return ValidationIssue(
            field="month",
            issue_type="invalid_format",
            message=f"Month must be YYYY-MM, got {month!r}",
        )

    @staticmethod
    def _timestamp_text(created_at: Any) -> str:
        if hasattr(created_at, "isoformat"):
            return created_at.isoformat()
        if isinstance(created_at, str):
            return created_at.strip()
        return ""

    @staticmethod
    def _error_for(issues: list[ValidationIssue]) -> ValidationError:
        message = "; ".join(issue.message for issue in issues)
        if any(issue.field == "category" for issue in issues):
            return InvalidCategoryError(message, issues)
        return ValidationError(message, issues)
