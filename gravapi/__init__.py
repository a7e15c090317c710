"""gravapi - command-line client for a single authenticated API."""

__version__ = "0.3.0"
