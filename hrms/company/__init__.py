"""Company profile and settings module."""
