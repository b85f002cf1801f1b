"""
Frigorifero & Dispensa household inventory tracker.

The package exposes the HTTP API server, the key-value persistence helpers, and the
client-side dashboard used by the command line interface.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
