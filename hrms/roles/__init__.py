"""Role hierarchy module."""
