"""Holiday calendar module."""
