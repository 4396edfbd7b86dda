from slowapi import Limiter
from slowapi.util import get_remote_address
from haulage.config import settings

# Per-route limits are attached with @limiter.limit(...); the decorated
# endpoint must accept a ``request: Request`` argument.
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.RATE_LIMIT_ENABLED and not settings.is_testing,
)
