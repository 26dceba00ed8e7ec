"""Shared slowapi limiter, keyed by client IP address.

Routers decorate individual endpoints with ``@limiter.limit(...)``; the
application registers the instance on ``app.state.limiter``.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
