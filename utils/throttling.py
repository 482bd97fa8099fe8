# ==================== UTILS/THROTTLING.PY ====================
import logging
import math

from django.conf import settings
from rest_framework.throttling import BaseThrottle

from .exceptions import RateLimitedError
from .ratelimit import get_rate_limiter, retry_after_seconds

logger = logging.getLogger(__name__)


class FixedWindowThrottle(BaseThrottle):
    """DRF throttle backed by the shared rate limiter.

    Subclasses set ``scope``; the limit and window come from
    ``settings.ONDEMAND_RATE_LIMITS[scope]``. DRF turns a refusal into a 429
    response carrying ``Retry-After`` from ``wait()``.
    """
    scope = None

    def __init__(self):
        self.result = None

    def get_identifier(self, request):
        if request.user and request.user.is_authenticated:
            return f"{self.scope}:user-{request.user.pk}"
        return f"{self.scope}:{self.get_ident(request)}"

    def allow_request(self, request, view):
        limit, window_seconds = settings.ONDEMAND_RATE_LIMITS[self.scope]
        identifier = self.get_identifier(request)
        self.result = get_rate_limiter().hit(identifier, limit, window_seconds)

        if not self.result.success:
            logger.warning(f"Rate limit exceeded for {identifier}")
        return self.result.success

    def wait(self):
        if self.result is None:
            return None
        return retry_after_seconds(self.result)


class RateLimitedViewMixin:
    """Report throttled calls as ``RateLimitedError`` instead of DRF's ``Throttled``"""

    def throttled(self, request, wait):
        retry_after = None if wait is None else max(0, math.ceil(wait))
        raise RateLimitedError(retry_after=retry_after)


class SessionPrepareThrottle(FixedWindowThrottle):
    scope = 'session-prepare'


class SessionStartThrottle(FixedWindowThrottle):
    scope = 'session-start'


class SessionStopThrottle(FixedWindowThrottle):
    scope = 'session-stop'


class PaymentStatusThrottle(FixedWindowThrottle):
    scope = 'payment-status'


class PaymentOrderThrottle(FixedWindowThrottle):
    scope = 'payment-intent'
