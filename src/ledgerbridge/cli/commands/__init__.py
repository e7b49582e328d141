"""Command groups for the ledgerbridge CLI."""
