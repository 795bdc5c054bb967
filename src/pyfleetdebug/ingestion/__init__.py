"""Ingestion layer.

This package turns raw, inconsistently shaped fleet log records into the
normalized, chronologically ordered event stream every analysis consumes.
"""

__all__: list[str] = []
