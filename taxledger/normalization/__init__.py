"""Transaction validation and flow resolution."""

from taxledger.normalization.flows import AssetFlows, Leg, disposal_proceeds, resolve_flows, value_of
from taxledger.normalization.validation import find_duplicate_ids, validate_batch, validate_transaction

__all__ = [
    "AssetFlows",
    "Leg",
    "disposal_proceeds",
    "find_duplicate_ids",
    "resolve_flows",
    "validate_batch",
    "validate_transaction",
    "value_of",
]
