"""
Two-Stage Entry Validation

DESIGN DECISION: Every new or edited transaction is checked in two stages
before anything is derived or stored, whether it was typed in or came
from a receipt analysis.

STAGE 1 - SCHEMA VALIDATION:
- Amount present, finite and non-zero after taking the absolute value
- Merchant name not just numbers/symbols

STAGE 2 - SEMANTIC VALIDATION:
- Future date detection
- Very old date detection
- Absurd amount detection
- Low receipt-analysis confidence
- Possible duplicate of an existing transaction

Errors refuse the entry. Warnings are returned alongside a successful
result so the host can ask the user to double check.

IMPORTANT: Validation NEVER silently fixes issues.
"""

import math
from datetime import datetime, timedelta
from typing import Iterable, Optional
from uuid import UUID

from ledger_core.config.settings import AppSettings, get_settings
from ledger_core.models.results import ValidationIssue, ValidationResult
from ledger_core.models.transaction import Transaction


class TransactionValidator:
    """
    Validates a transaction entry through a two-stage pipeline.

    Stage 1: Schema validation
    Stage 2: Semantic validation (runs only if stage 1 passes)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        original_amount: Optional[float],
        merchant_name: Optional[str],
    ) -> tuple[bool, list[ValidationIssue]]:
        issues = []

        if original_amount is None:
            issues.append(ValidationIssue(
                field="original_amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
                suggested_fix="Enter the amount you spent or received",
            ))
        elif not math.isfinite(original_amount):
            issues.append(ValidationIssue(
                field="original_amount",
                issue_type="invalid_value",
                message="Amount must be a finite number",
                severity="error",
            ))
        elif abs(original_amount) == 0:
            issues.append(ValidationIssue(
                field="original_amount",
                issue_type="invalid_value",
                message="Amount must not be zero",
                severity="error",
                suggested_fix="Check if the amount was read correctly",
            ))

        if merchant_name:
            alpha_count = sum(1 for c in merchant_name if c.isalpha())
            if alpha_count / len(merchant_name) < 0.3:
                issues.append(ValidationIssue(
                    field="merchant_name",
                    issue_type="suspicious_value",
                    message="Merchant name looks unusual (too many numbers/symbols)",
                    severity="warning",
                    suggested_fix="Please verify the merchant name",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        original_amount: float,
        entry_date: datetime,
        confidence: Optional[float],
    ) -> tuple[bool, list[ValidationIssue]]:
        issues = []
        now = datetime.now(entry_date.tzinfo)

        max_future = now + timedelta(days=self._settings.future_date_tolerance_days)
        if entry_date > max_future:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({entry_date.date()}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        # Likely a misread year
        min_reasonable = now - timedelta(days=365 * 2)
        if entry_date < min_reasonable:
            issues.append(ValidationIssue(
                field="date",
                issue_type="suspicious_date",
                message=f"Date ({entry_date.date()}) seems unusually old",
                severity="warning",
                suggested_fix="Please verify the date was read correctly",
            ))

        if abs(original_amount) > self._settings.max_transaction_amount:
            issues.append(ValidationIssue(
                field="original_amount",
                issue_type="suspicious_value",
                message=f"Amount ({abs(original_amount):,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if confidence is not None and confidence < self._settings.min_receipt_confidence:
            issues.append(ValidationIssue(
                field="confidence",
                issue_type="low_confidence",
                message=f"Receipt analysis confidence is low ({confidence:.0%})",
                severity="warning",
                suggested_fix="Please review all fields carefully",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    @staticmethod
    def _check_duplicates(
        original_amount: float,
        entry_date: datetime,
        merchant_name: Optional[str],
        wallet_id: Optional[UUID],
        existing: Iterable[Transaction],
    ) -> list[ValidationIssue]:
        """Same wallet, merchant, day and amount as something already booked."""
        if not merchant_name or wallet_id is None:
            return []
        for txn in existing:
            if (
                txn.wallet_id == wallet_id
                and txn.merchant_name
                and txn.merchant_name.lower() == merchant_name.lower()
                and txn.date.date() == entry_date.date()
                and math.isclose(txn.original_amount, abs(original_amount))
            ):
                return [ValidationIssue(
                    field="duplicate",
                    issue_type="potential_duplicate",
                    message=(
                        f"A transaction from {merchant_name} on "
                        f"{entry_date.date()} for the same amount already exists"
                    ),
                    severity="warning",
                    suggested_fix="Please verify this isn't a duplicate entry",
                )]
        return []

    def validate(
        self,
        original_amount: Optional[float],
        entry_date: datetime,
        merchant_name: Optional[str] = None,
        confidence: Optional[float] = None,
        wallet_id: Optional[UUID] = None,
        existing: Iterable[Transaction] = (),
    ) -> ValidationResult:
        """
        Run the full pipeline.

        Args:
            original_amount: Amount as entered (sign is ignored)
            entry_date: Transaction date
            merchant_name: Optional merchant, used for sanity and duplicate checks
            confidence: Receipt-analysis confidence, None for manual entries
            wallet_id: Wallet the entry is booked to, for duplicate checks
            existing: Transactions to check for duplicates against

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(original_amount, merchant_name)
        all_issues.extend(schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(
                original_amount, entry_date, confidence
            )
            all_issues.extend(semantic_issues)
            all_issues.extend(self._check_duplicates(
                original_amount, entry_date, merchant_name, wallet_id, existing
            ))

        return ValidationResult(
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=[issue.message for issue in all_issues if issue.severity == "warning"],
        )
