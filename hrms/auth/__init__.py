"""Auth module — login, JWT sessions, permission checks."""
