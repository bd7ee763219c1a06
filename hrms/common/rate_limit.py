"""Rate limiting configuration using slowapi.

Provides a module-level Limiter instance that routers import for
per-endpoint limits (login, registration, password reset), wired into
the FastAPI app in main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Routes opt in with @limiter.limit("N/period"); the default applies
# only where the slowapi middleware is installed.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["120/minute"],
)
