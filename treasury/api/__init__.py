"""HTTP JSON surface of the ledger engine."""
