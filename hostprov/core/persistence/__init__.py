"""Persistence — host state file and audit ledger."""
