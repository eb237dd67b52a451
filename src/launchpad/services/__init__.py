"""External service clients and the market cap pipeline."""
