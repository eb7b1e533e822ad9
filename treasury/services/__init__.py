"""Ledger engine services: classification, grids, arrears, bulk mutations, summaries."""
