"""Larmex Hub password recovery service."""

__version__ = "1.0.0"
