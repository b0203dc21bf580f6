"""taxledger: jurisdiction-aware crypto tax computation."""

__version__ = "0.1.0"
