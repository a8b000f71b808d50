"""docrag - incremental semantic index and retrieval for a local note corpus."""

__version__ = "0.1.0"
