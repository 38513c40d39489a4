"""Country and state reference data module."""
