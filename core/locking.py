"""
Bounded lock waits for service-layer mutations.

The database gives up on a lock after DB_LOCK_TIMEOUT_MS and raises
OperationalError. Decorated operations re-raise it as LockTimeout so the API
answers 503 with Retry-After instead of a server error.
"""
import logging
from functools import wraps

from django.db import OperationalError

from .exceptions import LockTimeout

logger = logging.getLogger(__name__)


def bounded_lock_wait(entity: str):
    """
    Map lock timeouts of the decorated operation to LockTimeout.

    The first positional argument identifies the target: an id, or a model
    instance whose pk is used.

    Usage:
        @bounded_lock_wait('cart')
        def delete_cart(cart_id):
            ...
    """
    def decorator(func):
        action = func.__name__.replace('_', ' ')

        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except OperationalError as e:
                target = args[0] if args else None
                identifier = getattr(target, 'pk', target)
                logger.warning(f"'{action}' on {entity} {identifier} aborted on lock timeout: {e}")
                raise LockTimeout(entity, identifier, action) from e

        return wrapper
    return decorator
