"""Shared helpers for logging, timestamps and tolerant value access."""
