"""
Order Ledger - write-once order snapshots and read-only ledger queries.
"""
import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List

from carts.models import Cart
from core.exceptions import NotFound, CartNotPurchased, InvalidArgument
from .models import Order

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


def format_amount(value) -> str:
    """Two-decimal string for a money amount; SQL aggregates may come back unscaled."""
    return str(Decimal(str(value or 0)).quantize(CENTS, rounding=ROUND_HALF_UP))


def record_order(cart: Cart) -> Order:
    """
    Create the Order snapshot for a purchased cart.

    Raises:
        CartNotPurchased: If the cart is still open
    """
    if not cart.purchased:
        logger.warning(f"Refused to record an order for open cart #{cart.id}")
        raise CartNotPurchased(cart.id)

    order = Order.objects.create(
        cart=cart,
        customer_name=cart.customer.full_name,
        total=cart.total,
    )
    logger.info(f"Recorded order #{order.id} for cart #{cart.id}: total ${order.total}")
    return order


def get_order(order_id: int) -> Order:
    try:
        return Order.objects.select_related('cart__customer').get(id=order_id)
    except Order.DoesNotExist:
        raise NotFound('order', order_id)


def find_by_customer(customer_id: int) -> List[Order]:
    return list(
        Order.objects.select_related('cart')
        .filter(cart__customer_id=customer_id)
        .order_by('-created_at', '-id')
    )


def find_by_date_range(start: date, end: date) -> List[Order]:
    """Orders created between ``start`` and ``end``, both days inclusive."""
    if start > end:
        raise InvalidArgument('order', None, 'find by date range',
                              message=f"Start date {start} is after end date {end}")
    return list(
        Order.objects.select_related('cart')
        .filter(created_at__date__gte=start, created_at__date__lte=end)
        .order_by('created_at', 'id')
    )


def get_order_summary(order_id: int) -> Dict:
    """
    Get detailed order summary with optimized queries.

    Line items are read from the purchased cart, which is frozen at checkout.
    """
    try:
        order = Order.objects.select_related('cart__customer').prefetch_related(
            'cart__items__product'
        ).get(id=order_id)
    except Order.DoesNotExist:
        raise NotFound('order', order_id)

    items = order.cart.items.all()
    return {
        'id': order.id,
        'cart_id': order.cart_id,
        'customer_id': order.cart.customer_id,
        'customer_name': order.customer_name,
        'total': format_amount(order.total),
        'item_count': len(items),
        'items': [
            {
                'product_id': item.product_id,
                'product_name': item.product.name,
                'quantity': item.quantity,
                'subtotal': format_amount(item.subtotal),
            }
            for item in items
        ],
        'created_at': order.created_at.isoformat(),
    }
