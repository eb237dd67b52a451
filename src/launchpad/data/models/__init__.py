"""Pydantic models for persisted rows."""

from launchpad.data.models.token import CreatedToken, MarketCapStats

__all__ = ["CreatedToken", "MarketCapStats"]
