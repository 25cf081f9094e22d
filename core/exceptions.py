"""
Domain exceptions shared by the sales apps.

Raised by the service layer when a business rule rejects an operation.
The API layer translates them into HTTP responses (see core.exception_handler).
Every error carries the entity kind, its identifier and the attempted action.
"""


class SalesError(Exception):
    """Base class for recoverable business-rule violations."""
    default_message = "Operation rejected"

    def __init__(self, entity: str, identifier=None, action: str = '', message: str = None):
        self.entity = entity
        self.identifier = identifier
        self.action = action
        super().__init__(message or self.build_message())

    def build_message(self) -> str:
        target = self.entity if self.identifier is None else f"{self.entity} {self.identifier}"
        if self.action:
            return f"{self.default_message}: {self.action} on {target}"
        return f"{self.default_message}: {target}"

    def as_dict(self) -> dict:
        return {
            'error': self.__class__.__name__,
            'detail': str(self),
            'entity': self.entity,
            'id': self.identifier,
            'action': self.action,
        }


class NotFound(SalesError):
    """The referenced entity has no record."""

    def build_message(self) -> str:
        return f"{self.entity.capitalize()} {self.identifier} not found"


class OutOfStock(SalesError):
    """Requested quantity exceeds the units available at validation time."""

    def __init__(self, product_id: int, requested: int, available: int, action: str = ''):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__('product', product_id, action)

    def build_message(self) -> str:
        return f"Not enough units of product {self.product_id} for a quantity of {self.requested}"


class CartAlreadyPurchased(SalesError):
    """Mutation attempted on a cart that has already been purchased."""

    def __init__(self, cart_id: int, action: str = ''):
        super().__init__('cart', cart_id, action)

    def build_message(self) -> str:
        if self.action:
            return f"Cart {self.identifier} has already been purchased; cannot {self.action}"
        return f"Cart {self.identifier} has already been purchased"


# Name used by the checkout state machine for the terminal-state rejection.
AlreadyPurchased = CartAlreadyPurchased


class CartNotPurchased(SalesError):
    """Order creation attempted on a cart that is still open."""

    def __init__(self, cart_id: int, action: str = 'record order'):
        super().__init__('cart', cart_id, action)

    def build_message(self) -> str:
        return f"Cart {self.identifier} must be purchased before an order can be recorded"


class InvalidCredential(SalesError):
    """Password mismatch during authentication or password change."""

    def build_message(self) -> str:
        return "Invalid username or password"


class InvalidArgument(SalesError):
    """A value failed validation, e.g. an unknown enumeration member."""
    default_message = "Invalid value"


class TransientError(SalesError):
    """A bounded-time failure the caller may retry."""
    default_message = "Temporarily unavailable"


class LockTimeout(TransientError):
    """Row locks were not acquired in time; the operation changed nothing."""

    def build_message(self) -> str:
        target = self.entity if self.identifier is None else f"{self.entity} {self.identifier}"
        return f"Timed out waiting for locks: {self.action or 'update'} on {target}; retry later"


class ConcurrentUpdate(TransientError):
    """The row changed between lookup and lock; the operation changed nothing."""

    def build_message(self) -> str:
        return f"{self.entity.capitalize()} {self.identifier} changed concurrently; retry later"


class CheckoutUnavailable(TransientError):
    """Checkout could not acquire its locks in time; nothing was changed."""

    def __init__(self, cart_id: int):
        super().__init__('cart', cart_id, 'purchase')

    def build_message(self) -> str:
        return f"Checkout of cart {self.identifier} timed out waiting for locks; retry later"
