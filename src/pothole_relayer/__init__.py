"""Pothole Relayer - gasless meta-transaction relayer for pothole reports."""

__version__ = "0.1.0"
