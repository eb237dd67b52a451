"""Jupiter quote API client."""

from launchpad.services.jupiter.client import JupiterClient
from launchpad.services.jupiter.models import JupiterQuote

__all__ = ["JupiterClient", "JupiterQuote"]
