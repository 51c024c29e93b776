"""Shared helpers: run-scoped working storage."""
