"""Email synchronization and normalization core."""

__version__ = "0.1.0"
