"""Health-context retrieval for wellness chat."""

__version__ = "0.1.0"
