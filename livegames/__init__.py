"""Live games aggregator: prediction markets correlated with live scoreboards."""

__version__ = "1.0.0"
