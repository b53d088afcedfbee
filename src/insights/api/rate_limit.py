"""Request rate limiting.

Only the public tracker is exposed to anonymous traffic, so its limit is
also the default for any route decorated without an explicit one.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from insights.settings import settings

# Enforced in production only; tests and local runs are unthrottled
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.track_visit_rate_limit],
    storage_uri="memory://",
    enabled=settings.env == "production",
)
