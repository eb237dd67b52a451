"""Pricing service package."""

from launchpad.services.pricing.price_oracle import SolPrice, SolPriceOracle

__all__ = ["SolPrice", "SolPriceOracle"]
