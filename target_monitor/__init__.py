"""Target-hit monitor: quote caching and price-target hit detection."""

__version__ = "1.0.0"
