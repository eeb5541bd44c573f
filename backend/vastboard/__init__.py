"""Aggregation backend for the VAST Challenge city dashboard."""

__version__ = "0.1.0"
