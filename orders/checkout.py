"""
Checkout Engine - the one-way OPEN -> PURCHASED transition of a cart.

Implements an all-or-nothing purchase inside a single transaction:
1. Lock the cart row with select_for_update()
2. Reject carts that are already purchased (checked under the same lock)
3. Lock every product in the cart, ordered by id to prevent deadlocks
4. Re-validate stock for ALL products before any deduction
5. Mark the cart purchased and record the Order snapshot
6. Deduct stock, then trigger the confirmation task after commit

Any failure rolls the whole transition back: no order, no deduction.
"""
import logging
from collections import defaultdict

from django.db import transaction, OperationalError

from catalog import services as catalog
from catalog.models import Product
from carts.models import Cart
from core.exceptions import NotFound, AlreadyPurchased, OutOfStock, CheckoutUnavailable
from .models import Order
from .services import record_order

logger = logging.getLogger(__name__)


def _queue_confirmation(order_id: int) -> None:
    try:
        from .tasks import send_order_confirmation
        send_order_confirmation.delay(order_id)
        logger.info(f"Triggered confirmation task for order #{order_id}")
    except Exception as e:
        # The purchase is already committed; a lost notification must not undo it.
        logger.error(f"Failed to queue confirmation task for order #{order_id}: {e}")


def purchase(cart_id: int) -> Order:
    """
    Purchase a cart exactly once.

    Returns:
        The Order recorded for the cart

    Raises:
        NotFound: The cart does not exist
        AlreadyPurchased: The cart was purchased before; stock is untouched
        OutOfStock: Some product no longer has enough units; nothing changes
        CheckoutUnavailable: Locks could not be acquired in time; safe to retry
    """
    try:
        with transaction.atomic():
            order = _purchase_locked(cart_id)
    except OperationalError as e:
        logger.warning(f"Checkout of cart #{cart_id} aborted on lock timeout: {e}")
        raise CheckoutUnavailable(cart_id) from e

    transaction.on_commit(lambda: _queue_confirmation(order.id))
    return order


def _purchase_locked(cart_id: int) -> Order:
    try:
        cart = Cart.objects.select_for_update().get(id=cart_id)
    except Cart.DoesNotExist:
        raise NotFound('cart', cart_id, 'purchase')

    if cart.purchased:
        logger.warning(f"Cart #{cart.id} purchase rejected: already purchased")
        raise AlreadyPurchased(cart.id, 'purchase')

    # Several line items may select the same product.
    demand = defaultdict(int)
    for product_id, quantity in cart.items.values_list('product_id', 'quantity'):
        demand[product_id] += quantity

    products = {
        p.id: p
        for p in Product.objects.select_for_update().filter(id__in=demand).order_by('id')
    }

    # FAIL-FAST: check all stock BEFORE any deductions
    for product_id in sorted(demand):
        product = products[product_id]
        if not catalog.reserve_check(product, demand[product_id]):
            logger.warning(
                f"Cart #{cart.id} purchase rejected: product #{product_id} lacks stock"
            )
            raise OutOfStock(product_id, demand[product_id], product.available_units, 'purchase')

    cart.purchased = True
    cart.save(update_fields=['purchased', 'updated_at'])

    order = record_order(cart)

    for product_id in sorted(demand):
        catalog.decrement(products[product_id], demand[product_id])

    logger.info(
        f"Cart #{cart.id} purchased as order #{order.id}: "
        f"{len(demand)} products, total ${order.total}"
    )
    return order
