"""Core: configuration."""
