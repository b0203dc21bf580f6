"""Per-transaction and batch validation.

Validation is decoupled from construction: records are built as given and
checked here, so a batch can report every problem instead of stopping at the
first malformed record.
"""

from collections import Counter
from collections.abc import Sequence
from datetime import UTC, datetime

from taxledger.models.enums import IssueSeverity
from taxledger.models.transaction import (
    BaseTransaction,
    LiquidityAdd,
    LiquidityRemove,
    SpotTrade,
    asset_amounts,
)
from taxledger.models.validation import ValidationIssue, ValidationResult


def _error(tx: BaseTransaction, code: str, field: str, message: str) -> ValidationIssue:
    return ValidationIssue(
        code=code, severity=IssueSeverity.ERROR, field=field, message=message, transaction_id=tx.id
    )


def validate_transaction(transaction: BaseTransaction, now: datetime | None = None) -> ValidationResult:
    """Check one transaction. ``now`` drives the future-dated warning."""
    issues: list[ValidationIssue] = []
    now = now or datetime.now(UTC)

    if not transaction.id or not transaction.id.strip():
        issues.append(_error(transaction, "MISSING_ID", "id", "Transaction id is required"))
    if transaction.timestamp is None:
        issues.append(_error(transaction, "MISSING_TIMESTAMP", "timestamp", "Timestamp is required"))
    elif transaction.timestamp > now:
        issues.append(ValidationIssue(
            code="FUTURE_DATED",
            severity=IssueSeverity.WARNING,
            field="timestamp",
            message=f"Timestamp {transaction.timestamp.isoformat()} is in the future",
            transaction_id=transaction.id,
        ))

    if transaction.price is not None and transaction.price < 0:
        issues.append(_error(transaction, "NEGATIVE_PRICE", "price", f"Price must be non-negative, got {transaction.price}"))
    if transaction.fee is not None and transaction.fee.amount < 0:
        issues.append(_error(transaction, "NEGATIVE_FEE", "fee", f"Fee must be non-negative, got {transaction.fee.amount}"))

    for amount in asset_amounts(transaction):
        if not amount.asset:
            issues.append(_error(transaction, "MISSING_ASSET", "asset", "Asset symbol is required"))
        elif amount.amount == 0:
            issues.append(_error(transaction, "ZERO_AMOUNT", amount.asset, f"Amount of {amount.asset} must be non-zero"))

    match transaction:
        case SpotTrade(base=base, quote=quote) if base.asset == quote.asset:
            issues.append(_error(transaction, "SAME_ASSET_TRADE", "quote", f"Cannot trade {base.asset} for itself"))
        case LiquidityAdd(deposited=[]):
            issues.append(_error(transaction, "EMPTY_LIQUIDITY", "deposited", "Liquidity deposit has no assets"))
        case LiquidityRemove(withdrawn=[]):
            issues.append(_error(transaction, "EMPTY_LIQUIDITY", "withdrawn", "Liquidity withdrawal has no assets"))

    return ValidationResult(issues=issues)


def find_duplicate_ids(transactions: Sequence[BaseTransaction]) -> list[str]:
    """Ids that appear more than once, in first-seen order."""
    counts = Counter(tx.id for tx in transactions if tx.id)
    return [tx_id for tx_id, count in counts.items() if count > 1]


def validate_batch(
    transactions: Sequence[BaseTransaction],
    now: datetime | None = None,
) -> dict[int, ValidationResult]:
    """Validate every transaction; returns results keyed by input index."""
    now = now or datetime.now(UTC)
    return {index: validate_transaction(tx, now) for index, tx in enumerate(transactions)}
