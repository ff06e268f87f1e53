"""Indexarr: a Torznab proxy driven by declarative indexer definitions."""

__version__ = "0.1.0"
