"""Tax computation engines."""

from taxledger.engines.aggregator import SummaryAggregator
from taxledger.engines.capital_gains import CapitalGainsCalculator
from taxledger.engines.classifier import DEFAULT_RULES, ClassificationRule, TransactionClassifier
from taxledger.engines.ledger import LotLedger, draw_from
from taxledger.engines.optimization import OptimizationResult, TaxOptimizationEngine
from taxledger.engines.processor import TransactionProcessor

__all__ = [
    "CapitalGainsCalculator",
    "ClassificationRule",
    "DEFAULT_RULES",
    "LotLedger",
    "OptimizationResult",
    "SummaryAggregator",
    "TaxOptimizationEngine",
    "TransactionClassifier",
    "TransactionProcessor",
    "draw_from",
]
