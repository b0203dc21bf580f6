"""Report generator: the end-to-end pipeline for one tax period.

FILTERING -> CLASSIFYING -> CONSUMING_LEDGER -> AGGREGATING -> OPTIMIZING
-> COMPLETE, with CANCELLED and FAILED as the other terminal states.

The synchronous and asyncio drivers share one chunk iterator; the only
suspension points are between chunks.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from uuid import NAMESPACE_URL, uuid5

from pydantic import BaseModel, Field

from taxledger.engines.aggregator import SummaryAggregator
from taxledger.engines.capital_gains import CapitalGainsCalculator
from taxledger.engines.classifier import TransactionClassifier
from taxledger.engines.ledger import LotLedger
from taxledger.engines.optimization import TaxOptimizationEngine
from taxledger.engines.processor import TransactionProcessor
from taxledger.exceptions import (
    ConfigurationError,
    DuplicateTransactionError,
    TaxComputationError,
    TransactionValidationError,
    UnsupportedCostBasisMethodError,
)
from taxledger.models.enums import CostBasisMethod, IssueSeverity, ReportState, RiskTolerance
from taxledger.models.jurisdiction import TaxJurisdiction, TaxPeriod, validate_jurisdiction
from taxledger.models.reports import ReportMetadata, ReportProgress, TaxReport
from taxledger.models.tax import TaxableTransaction, TaxTreatment
from taxledger.models.transaction import BaseTransaction
from taxledger.models.validation import ValidationIssue
from taxledger.normalization.validation import find_duplicate_ids, validate_transaction

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 10_000
LEDGER_METHODS = {CostBasisMethod.FIFO, CostBasisMethod.SPECIFIC_IDENTIFICATION}

ProgressCallback = Callable[[ReportProgress], None]


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class ReportContext:
    """Everything a report run depends on, passed in explicitly."""

    jurisdiction: TaxJurisdiction
    classifier: TransactionClassifier = field(default_factory=TransactionClassifier)
    calculator: CapitalGainsCalculator = field(default_factory=CapitalGainsCalculator)
    optimizer: TaxOptimizationEngine = field(default_factory=TaxOptimizationEngine)
    aggregator: SummaryAggregator = field(default_factory=SummaryAggregator)
    clock: Callable[[], datetime] = _utc_now


class ReportOptions(BaseModel):
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)
    strict: bool = False
    include_optimization: bool = False
    risk_tolerance: RiskTolerance = RiskTolerance.MODERATE
    cost_basis_method: CostBasisMethod = CostBasisMethod.FIFO
    # Transactions before the period seed the ledger without being reported.
    replay_prior_history: bool = True
    current_prices: dict[str, Decimal] = Field(default_factory=dict)
    planned_disposals: dict[str, Decimal] = Field(default_factory=dict)
    # Transaction id -> lot id -> quantity, for SPECIFIC_IDENTIFICATION. Disposals
    # without an entry are consumed FIFO.
    lot_selections: dict[str, dict[str, Decimal]] = Field(default_factory=dict)


class CancellationToken:
    """Cooperative cancellation, checked between chunks."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class _Run:
    """Mutable state of one report invocation."""

    period: TaxPeriod
    options: ReportOptions
    processor: TransactionProcessor
    work: list[tuple[BaseTransaction, bool]]  # (transaction, in_period)
    input_count: int
    skipped: int
    issues: list[ValidationIssue]
    started: float
    taxables: list[TaxableTransaction] = field(default_factory=list)
    processed: int = 0
    chunks: int = 0
    cancelled: bool = False


class ReportGenerator:
    """Generates a TaxReport for one tax year from normalized transactions."""

    def __init__(self, context: ReportContext):
        self.context = context
        self.state = ReportState.INITIALIZED

    def generate(
        self,
        transactions: Sequence[BaseTransaction],
        year: int,
        options: ReportOptions | None = None,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> TaxReport:
        run = self._start(transactions, year, options or ReportOptions())
        try:
            for _ in self._chunks(run, progress, cancel):
                pass
            return self._finish(run)
        except Exception:
            self.state = ReportState.FAILED
            raise

    async def generate_async(
        self,
        transactions: Sequence[BaseTransaction],
        year: int,
        options: ReportOptions | None = None,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> TaxReport:
        """Same as ``generate`` but yields to the event loop between chunks."""
        run = self._start(transactions, year, options or ReportOptions())
        try:
            for _ in self._chunks(run, progress, cancel):
                await asyncio.sleep(0)
            return self._finish(run)
        except Exception:
            self.state = ReportState.FAILED
            raise

    # ------------------------------------------------------------------
    # FILTERING
    # ------------------------------------------------------------------

    def _start(self, transactions: Sequence[BaseTransaction], year: int, options: ReportOptions) -> _Run:
        """Validate configuration and input; nothing touches a ledger before this succeeds."""
        self._transition(ReportState.FILTERING)
        started = time.perf_counter()
        jurisdiction = self.context.jurisdiction
        try:
            errors = validate_jurisdiction(jurisdiction)
            if errors:
                raise ConfigurationError(errors)
            method = options.cost_basis_method
            if not jurisdiction.supports(method) or method not in LEDGER_METHODS:
                supported = [m for m in jurisdiction.supported_methods if m in LEDGER_METHODS]
                raise UnsupportedCostBasisMethodError(method, jurisdiction.code, supported)
            if options.lot_selections and method != CostBasisMethod.SPECIFIC_IDENTIFICATION:
                raise ConfigurationError(f"Lot selections require SPECIFIC_IDENTIFICATION, not {method}")
            if not 1901 <= year <= 9998:
                raise ConfigurationError(f"Tax year {year} is out of range")
            try:
                period = jurisdiction.period_for(year)
            except ValueError as exc:
                raise ConfigurationError(f"Tax year boundary is invalid for {year}: {exc}") from exc

            duplicates = find_duplicate_ids(transactions)
            if duplicates:
                raise DuplicateTransactionError(duplicates)
        except TaxComputationError:
            self.state = ReportState.FAILED
            raise

        now = self.context.clock()
        issues: list[ValidationIssue] = []
        accepted: list[tuple[int, BaseTransaction]] = []
        for index, transaction in enumerate(transactions):
            result = validate_transaction(transaction, now)
            if result.errors and options.strict:
                self.state = ReportState.FAILED
                first = result.errors[0]
                raise TransactionValidationError(first.transaction_id, first.field, first.message)
            issues.extend(result.issues)
            if result.is_valid:
                accepted.append((index, transaction))

        skipped = len(transactions) - len(accepted)
        work: list[tuple[BaseTransaction, bool]] = []
        for _, transaction in sorted(accepted, key=lambda item: (item[1].timestamp, item[0])):
            if transaction.timestamp >= period.end:
                continue
            in_period = transaction.timestamp >= period.start
            if in_period or options.replay_prior_history:
                work.append((transaction, in_period))

        logger.debug(
            "Filtered %d transactions for %s: %d to process, %d invalid",
            len(transactions), period.label, len(work), skipped,
        )
        processor = TransactionProcessor(
            jurisdiction, LotLedger(), self.context.calculator, lot_selections=options.lot_selections,
        )
        return _Run(
            period=period,
            options=options,
            processor=processor,
            work=work,
            input_count=len(transactions),
            skipped=skipped,
            issues=issues,
            started=started,
        )

    # ------------------------------------------------------------------
    # CLASSIFYING / CONSUMING_LEDGER
    # ------------------------------------------------------------------

    def _chunks(
        self,
        run: _Run,
        progress: ProgressCallback | None,
        cancel: CancellationToken | None,
    ) -> Iterator[ReportProgress]:
        total = len(run.work)
        size = run.options.chunk_size
        jurisdiction = self.context.jurisdiction
        for start in range(0, total, size):
            if cancel is not None and cancel.cancelled:
                logger.info("Report cancelled after %d of %d transactions", run.processed, total)
                run.cancelled = True
                return
            chunk = run.work[start:start + size]

            self._transition(ReportState.CLASSIFYING)
            treatments = [self.context.classifier.classify(tx, jurisdiction) for tx, _ in chunk]

            self._transition(ReportState.CONSUMING_LEDGER)
            for (transaction, in_period), treatment in zip(chunk, treatments):
                taxable = self._process_one(run, transaction, treatment)
                if in_period and taxable is not None:
                    run.taxables.append(taxable)

            run.processed += len(chunk)
            run.chunks += 1
            update = ReportProgress(processed=run.processed, total=total, state=self.state, chunk=run.chunks)
            logger.debug("Chunk %d: %d/%d transactions", run.chunks, run.processed, total)
            if progress is not None:
                progress(update)
            yield update

    def _process_one(
        self, run: _Run, transaction: BaseTransaction, treatment: TaxTreatment
    ) -> TaxableTransaction | None:
        try:
            return run.processor.process(transaction, treatment)
        except TaxComputationError as exc:
            if run.options.strict:
                raise TransactionValidationError(transaction.id, None, str(exc)) from exc
            logger.warning("Failed to process %s: %s", transaction.id, exc)
            run.issues.append(ValidationIssue(
                code="PROCESSING_FAILED",
                severity=IssueSeverity.ERROR,
                message=str(exc),
                transaction_id=transaction.id,
            ))
            return None

    # ------------------------------------------------------------------
    # AGGREGATING / OPTIMIZING
    # ------------------------------------------------------------------

    def _finish(self, run: _Run) -> TaxReport:
        jurisdiction = self.context.jurisdiction
        self._transition(ReportState.AGGREGATING)
        summary = self.context.aggregator.summarize(run.taxables, jurisdiction.currency_precision)
        holdings = run.processor.ledger.snapshot()

        issues = list(run.issues)
        for taxable in run.taxables:
            issues.extend(taxable.issues)

        strategies = None
        if run.options.include_optimization and not run.cancelled:
            self._transition(ReportState.OPTIMIZING)
            optimization = self.context.optimizer.analyze(
                run.taxables,
                jurisdiction,
                run.options.risk_tolerance,
                holdings=holdings,
                current_prices=run.options.current_prices,
                period=run.period,
                planned_disposals=run.options.planned_disposals,
            )
            strategies = optimization.strategies
            issues.extend(
                ValidationIssue(code="OPTIMIZATION_SKIPPED", severity=IssueSeverity.WARNING, message=warning)
                for warning in optimization.warnings
            )

        final_state = ReportState.CANCELLED if run.cancelled else ReportState.COMPLETE
        metadata = ReportMetadata(
            total_transactions=len(run.taxables),
            input_transactions=run.input_count,
            prior_history_transactions=sum(1 for _, in_period in run.work if not in_period),
            skipped_transactions=run.skipped,
            processed_sources=sorted({t.source for t in run.taxables}),
            generation_time_ms=(time.perf_counter() - run.started) * 1000,
            chunk_size=run.options.chunk_size,
            chunks_processed=run.chunks,
            cost_basis_method=run.options.cost_basis_method,
            complete=not run.cancelled,
        )
        report = TaxReport(
            id=self._report_id(run),
            jurisdiction=jurisdiction,
            period=run.period,
            generated_at=self.context.clock(),
            transactions=run.taxables,
            summary=summary,
            strategies=strategies,
            metadata=metadata,
            issues=issues,
            holdings=holdings,
            state=final_state,
        )
        self._transition(final_state)
        return report

    def _report_id(self, run: _Run) -> str:
        ids = ",".join(tx.id for tx, _ in run.work)
        return str(uuid5(NAMESPACE_URL, f"{self.context.jurisdiction.code}:{run.period.label}:{ids}"))

    def _transition(self, state: ReportState) -> None:
        if state != self.state:
            logger.debug("Report state %s -> %s", self.state, state)
        self.state = state
