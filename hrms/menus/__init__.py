"""Navigation menu tree module."""
