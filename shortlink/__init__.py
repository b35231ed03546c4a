"""Expiring, optionally password-protected short links."""

__version__ = "0.1.0"
