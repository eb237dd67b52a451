"""PumpPortal real-time trade feed."""
