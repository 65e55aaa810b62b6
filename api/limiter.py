"""
api/limiter.py -- The one slowapi Limiter shared by every rate-limited route.

api/main.py mounts it (app.state.limiter + SlowAPIMiddleware); the public
sign-in routes in api/routes/v1/auth.py decorate themselves with
@limiter.limit(). Counters live in process memory, keyed by client address,
so the instance must be shared: a second Limiter would keep its own counters.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
