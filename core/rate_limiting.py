"""
Redis-based throttling of login attempts.
Implements a fixed window counter keyed by endpoint and client IP.
"""
import logging
from functools import wraps

import redis
from django.conf import settings
from rest_framework import status
from rest_framework.response import Response

logger = logging.getLogger(__name__)

_redis_client = None


def get_redis_client():
    """Return a shared Redis client, or None if Redis cannot be reached."""
    global _redis_client
    if _redis_client is None:
        try:
            client = redis.Redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            client.ping()
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning(f"Redis connection failed: {e}. Login throttling is disabled.")
            return None
        _redis_client = client
    return _redis_client


def get_client_ip(request):
    """Extract client IP address from request."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', 'unknown')


def _limit_exceeded_response(max_requests: int, window_seconds: int, ttl: int) -> Response:
    return Response(
        {
            'error': 'RateLimitExceeded',
            'detail': f'Maximum {max_requests} login attempts per {window_seconds} seconds allowed.',
            'retry_after': ttl
        },
        status=status.HTTP_429_TOO_MANY_REQUESTS,
        headers={'Retry-After': str(ttl)}
    )


def throttle_logins(max_requests: int = None, window_seconds: int = None):
    """
    Limit login attempts per client IP for a DRF view method.

    Fails open: if throttling is disabled or Redis errors, the view runs.

    Usage:
        @throttle_logins()
        def post(self, request):
            ...
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(self, request, *args, **kwargs):
            if not getattr(settings, 'RATE_LIMIT_ENABLED', True):
                return view_func(self, request, *args, **kwargs)

            client = get_redis_client()
            if client is None:
                return view_func(self, request, *args, **kwargs)

            limit = max_requests or settings.LOGIN_RATE_LIMIT
            window = window_seconds or settings.LOGIN_RATE_WINDOW_SECONDS
            key = f"login_throttle:{self.__class__.__name__}:{get_client_ip(request)}"

            try:
                current_count = client.incr(key)
                if current_count == 1:
                    client.expire(key, window)
                ttl = client.ttl(key)
            except redis.RedisError as e:
                logger.error(f"Redis error in login throttling: {e}")
                return view_func(self, request, *args, **kwargs)

            if current_count > limit:
                logger.warning(f"Login throttled for {key}")
                return _limit_exceeded_response(limit, window, ttl)

            response = view_func(self, request, *args, **kwargs)
            response['X-RateLimit-Limit'] = str(limit)
            response['X-RateLimit-Remaining'] = str(max(0, limit - current_count))
            return response

        return wrapper
    return decorator
