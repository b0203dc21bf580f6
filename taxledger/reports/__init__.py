"""Report generation, rendering and validation."""

from taxledger.reports.generator import (
    CancellationToken,
    ReportContext,
    ReportGenerator,
    ReportOptions,
)
from taxledger.reports.tax_summary import TaxReportRenderer
from taxledger.reports.validation import validate_report

__all__ = [
    "CancellationToken",
    "ReportContext",
    "ReportGenerator",
    "ReportOptions",
    "TaxReportRenderer",
    "validate_report",
]
