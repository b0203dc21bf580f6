"""Custom exceptions for taxledger."""

from datetime import datetime
from decimal import Decimal


class TaxComputationError(Exception):
    """Base exception for tax computation errors."""


class ConfigurationError(TaxComputationError):
    """Raised when the jurisdiction or report options are unusable."""

    def __init__(self, errors: list[str] | str):
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__(f"Invalid configuration: {'; '.join(self.errors)}")


class UnsupportedCostBasisMethodError(ConfigurationError):
    """Raised when a report requests a method the jurisdiction does not allow."""

    def __init__(self, method: str, jurisdiction_code: str, supported: list[str]):
        self.method = method
        self.jurisdiction_code = jurisdiction_code
        self.supported = supported
        super().__init__(
            f"Cost basis method {method} is not supported in {jurisdiction_code} "
            f"(supported: {', '.join(supported)})"
        )


class DuplicateTransactionError(TaxComputationError):
    """Raised when two input transactions share an id."""

    def __init__(self, transaction_ids: list[str]):
        self.transaction_ids = transaction_ids
        super().__init__(f"Duplicate transaction ids: {', '.join(transaction_ids)}")


class TransactionValidationError(TaxComputationError):
    """Raised in strict mode on the first transaction that fails validation."""

    def __init__(self, transaction_id: str | None, field: str | None, message: str):
        self.transaction_id = transaction_id
        self.field = field
        location = f"'{field}' of " if field else ""
        super().__init__(f"Validation error on {location}transaction {transaction_id or '<no id>'}: {message}")


class LedgerError(TaxComputationError):
    """Base exception for lot ledger misuse."""


class LedgerOrderError(LedgerError):
    """Raised when a lot is acquired earlier than the last lot for its asset."""

    def __init__(self, asset: str, timestamp: datetime, last_timestamp: datetime):
        self.asset = asset
        self.timestamp = timestamp
        self.last_timestamp = last_timestamp
        super().__init__(
            f"Out-of-order acquisition for {asset}: "
            f"{timestamp.isoformat()} is before {last_timestamp.isoformat()}"
        )


class InvalidQuantityError(LedgerError):
    """Raised when a ledger operation is given a non-positive quantity."""

    def __init__(self, asset: str, quantity: Decimal):
        self.asset = asset
        self.quantity = quantity
        super().__init__(f"Quantity for {asset} must be positive, got {quantity}")


class LotSelectionError(LedgerError):
    """Raised when specifically identified lots cannot cover a disposal."""

    def __init__(self, asset: str, message: str):
        self.asset = asset
        super().__init__(f"Lot selection for {asset}: {message}")


class TransactionImportError(TaxComputationError):
    """Raised when a transaction file cannot be read at all."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"Import error from {source}: {message}")
