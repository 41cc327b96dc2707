"""Immutable lookup tables and deterministic key synthesis."""
