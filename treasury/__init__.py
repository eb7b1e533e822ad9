"""Community treasury ledger: dues, payments and arrears reconciliation."""

__version__ = "0.1.0"
