"""Recurring jobs and the market cap update scheduler."""
