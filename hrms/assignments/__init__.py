"""Supervisor assignment module with change history."""
