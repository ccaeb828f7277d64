"""Parallel vanity address search for EVM chains."""

__version__ = "1.0.0"
