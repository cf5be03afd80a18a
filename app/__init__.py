"""Routine Ledger application package."""
