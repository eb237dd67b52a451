"""Launchpad backend: token market-cap ingestion and reconciliation."""

__version__ = "1.0.0"
