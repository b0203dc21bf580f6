"""JSON adapter for normalized transaction files."""

import json
from decimal import Decimal, InvalidOperation
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from taxledger.exceptions import TransactionImportError
from taxledger.ingestion.base import BaseAdapter, ImportResult
from taxledger.models.transaction import Transaction
from taxledger.normalization.validation import find_duplicate_ids, validate_transaction

TRANSACTION_ADAPTER: TypeAdapter = TypeAdapter(Transaction)


class JsonTransactionAdapter(BaseAdapter):
    """Imports a JSON array of normalized transaction records.

    The file may hold the array itself or an object with a ``transactions``
    key. Records that fail to parse are reported and skipped; the rest of the
    file still loads.
    """

    def parse(self, file_path: Path) -> ImportResult:
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        try:
            raw = json.loads(file_path.read_text())
        except json.JSONDecodeError as exc:
            raise TransactionImportError(str(file_path), f"invalid JSON: {exc}") from exc

        records = raw.get("transactions") if isinstance(raw, dict) else raw
        if not isinstance(records, list):
            raise TransactionImportError(str(file_path), "expected a list of transaction records")

        result = ImportResult(source=str(file_path))
        for index, record in enumerate(records):
            try:
                result.transactions.append(TRANSACTION_ADAPTER.validate_python(record))
            except ValidationError as exc:
                label = record.get("id") if isinstance(record, dict) else None
                problems = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
                )
                result.errors.append(f"Record {index} ({label or 'no id'}): {problems}")
        return result

    def validate(self, data: ImportResult) -> list[str]:
        """Validate imported data for completeness and consistency."""
        errors = list(data.errors)
        duplicates = find_duplicate_ids(data.transactions)
        if duplicates:
            errors.append(f"Duplicate transaction ids: {', '.join(duplicates)}")
        for transaction in data.transactions:
            for issue in validate_transaction(transaction).errors:
                errors.append(f"{transaction.id or 'no id'}: {issue.message}")
        return errors


def load_prices(file_path: Path) -> dict[str, Decimal]:
    """Read an ``{"ASSET": price}`` JSON object of current unit prices."""
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    try:
        raw = json.loads(file_path.read_text())
    except json.JSONDecodeError as exc:
        raise TransactionImportError(str(file_path), f"invalid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise TransactionImportError(str(file_path), "expected an object mapping asset to price")
    prices: dict[str, Decimal] = {}
    for asset, value in raw.items():
        try:
            prices[asset.upper()] = Decimal(str(value))
        except InvalidOperation as exc:
            raise TransactionImportError(str(file_path), f"invalid price for {asset}: {value!r}") from exc
    return prices
