"""Performance review module."""
