"""End-of-day report module."""
