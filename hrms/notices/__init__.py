"""Notice board module."""
