"""Core building blocks: exception hierarchy and service wiring."""
