"""Market cap ingestion and reconciliation."""
