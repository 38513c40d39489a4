"""Rate limiting configuration using slowapi.

Provides a module-level Limiter instance that routers import for
per-endpoint limits (login, payroll generation); main.py wires it into
the FastAPI app.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# 60 requests/minute per client IP unless a route overrides it
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["60/minute"],
)
