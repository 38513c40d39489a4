"""Leave module — leave types, requests, overlap checks and balances."""
