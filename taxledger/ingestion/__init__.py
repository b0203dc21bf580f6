"""Transaction ingestion adapters."""

from taxledger.ingestion.base import BaseAdapter, ImportResult
from taxledger.ingestion.manual import JsonTransactionAdapter, load_prices

__all__ = ["BaseAdapter", "ImportResult", "JsonTransactionAdapter", "load_prices"]
