"""Shared helpers (environment flags, logging setup, log context)."""
