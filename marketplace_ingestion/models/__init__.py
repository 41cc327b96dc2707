"""Canonical entities and pass results."""
