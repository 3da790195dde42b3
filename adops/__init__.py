"""AdOps Analytics backend: refresh coordination and mock analytics API."""

__version__ = "0.3.0"
