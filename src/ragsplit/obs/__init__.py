"""Observability events."""
