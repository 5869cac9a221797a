"""repodex - deterministic, paged rebuilds of artifact repository indexes."""

__version__ = "0.1.0"
