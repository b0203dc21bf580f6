"""Base adapter interface for transaction ingestion."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from taxledger.models.transaction import BaseTransaction


@dataclass
class ImportResult:
    """Bundles the output from an adapter's parse method."""

    source: str
    transactions: list[BaseTransaction] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class BaseAdapter(ABC):
    """Abstract base class for all ingestion adapters."""

    @abstractmethod
    def parse(self, file_path: Path) -> ImportResult:
        """Parse a file and return an ImportResult with typed transactions."""
        ...

    @abstractmethod
    def validate(self, data: ImportResult) -> list[str]:
        """Validate parsed data. Returns a list of validation error messages."""
        ...
