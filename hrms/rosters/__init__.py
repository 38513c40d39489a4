"""Weekly roster module."""
