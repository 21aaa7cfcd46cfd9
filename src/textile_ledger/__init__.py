"""Textile Ledger: a local production ledger for daily weaving batches."""

__version__ = "0.1.0"
