"""
Cart Service Layer - line item bookkeeping for open carts.

Every mutation:
1. Opens a transaction
2. Locks the affected cart rows with select_for_update(), ascending by id
3. Rejects the change if any affected cart is already purchased
4. Validates stock with the catalog's point-in-time check
5. Recomputes subtotals and re-sums cart totals from scratch
"""
import logging
from typing import Dict, List, Optional

from django.db import transaction

from accounts.services import get_customer
from catalog import services as catalog
from catalog.models import Product
from core.exceptions import (
    NotFound,
    OutOfStock,
    CartAlreadyPurchased,
    InvalidArgument,
    ConcurrentUpdate,
)
from core.locking import bounded_lock_wait
from .models import Cart, LineItem

logger = logging.getLogger(__name__)


def _lock_carts(cart_ids, action: str) -> Dict[int, Cart]:
    """Lock carts in ascending id order to avoid lock-ordering deadlocks."""
    wanted = sorted(set(cart_ids))
    carts = {
        cart.id: cart
        for cart in Cart.objects.select_for_update().filter(id__in=wanted).order_by('id')
    }
    for cart_id in wanted:
        if cart_id not in carts:
            raise NotFound('cart', cart_id, action)
    return carts


def _lock_cart(cart_id: int, action: str) -> Cart:
    return _lock_carts([cart_id], action)[cart_id]


def _ensure_open(cart: Cart, action: str) -> None:
    if cart.purchased:
        logger.warning(f"Rejected '{action}' on purchased cart #{cart.id}")
        raise CartAlreadyPurchased(cart.id, action)


def _validate_quantity(quantity, action: str, item_id=None) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidArgument('line item', item_id, action,
                              message="Quantity must be a positive integer")
    return quantity


def _check_stock(product: Product, quantity: int, action: str) -> None:
    if not catalog.reserve_check(product, quantity):
        logger.warning(f"Rejected '{action}': product #{product.id} lacks stock")
        raise OutOfStock(product.id, quantity, product.available_units, action)


# =============================================================================
# Carts
# =============================================================================

def create_cart(customer_id: int) -> Cart:
    customer = get_customer(customer_id)
    cart = Cart.objects.create(customer=customer)
    logger.info(f"Created cart #{cart.id} for customer #{customer.id}")
    return cart


def get_cart(cart_id: int) -> Cart:
    try:
        return Cart.objects.select_related('customer__credential').get(id=cart_id)
    except Cart.DoesNotExist:
        raise NotFound('cart', cart_id)


def find_carts_by_customer(customer_id: int) -> List[Cart]:
    return list(Cart.objects.filter(customer_id=customer_id).order_by('-created_at', '-id'))


@bounded_lock_wait('cart')
def reassign_customer(cart_id: int, customer_id: int) -> Cart:
    """Move an open cart to another customer. Purchased carts keep their owner."""
    customer = get_customer(customer_id)
    with transaction.atomic():
        cart = _lock_cart(cart_id, 'reassign customer')
        _ensure_open(cart, 'reassign customer')
        cart.customer = customer
        cart.save(update_fields=['customer', 'updated_at'])
    logger.info(f"Cart #{cart.id} reassigned to customer #{customer.id}")
    return cart


@bounded_lock_wait('cart')
def delete_cart(cart_id: int) -> None:
    """Delete an open cart and its line items."""
    with transaction.atomic():
        cart = _lock_cart(cart_id, 'delete cart')
        _ensure_open(cart, 'delete cart')
        cart.delete()
    logger.info(f"Deleted cart #{cart_id}")


# =============================================================================
# Line items
# =============================================================================

def get_line_item(item_id: int) -> LineItem:
    try:
        return LineItem.objects.select_related('product', 'cart').get(id=item_id)
    except LineItem.DoesNotExist:
        raise NotFound('line item', item_id)


def find_line_items(cart_id: Optional[int] = None, product_id: Optional[int] = None) -> List[LineItem]:
    queryset = LineItem.objects.select_related('product')
    if cart_id is not None:
        queryset = queryset.filter(cart_id=cart_id)
    if product_id is not None:
        queryset = queryset.filter(product_id=product_id)
    return list(queryset.order_by('id'))


@bounded_lock_wait('cart')
def add_line_item(cart_id: int, product_id: int, quantity: int) -> LineItem:
    """
    Add a product selection to an open cart.

    Raises:
        NotFound: Cart or product does not exist
        OutOfStock: quantity exceeds the product's available units right now
        CartAlreadyPurchased: The cart is terminal
        InvalidArgument: quantity is not a positive integer
    """
    action = 'add line item'
    _validate_quantity(quantity, action)

    with transaction.atomic():
        cart = _lock_cart(cart_id, action)
        product = catalog.get_product(product_id)
        _check_stock(product, quantity, action)
        _ensure_open(cart, action)

        item = LineItem(cart=cart, product=product, quantity=quantity)
        item.subtotal = item.compute_subtotal()
        item.save()
        cart.recalculate_total()

    logger.info(
        f"Cart #{cart.id}: added {quantity}x product #{product.id}, total ${cart.total}"
    )
    return item


@bounded_lock_wait('line item')
def update_line_item(item_id: int, quantity: int, product_id: int, cart_id: int) -> LineItem:
    """
    Replace a line item's quantity, product and owning cart.

    Stock is validated as in add_line_item. Both the current and the new
    owning cart must be open, and both totals are re-summed.
    """
    action = 'update line item'
    _validate_quantity(quantity, action, item_id)

    current_cart_id = get_line_item(item_id).cart_id
    with transaction.atomic():
        carts = _lock_carts([current_cart_id, cart_id], action)
        try:
            item = LineItem.objects.select_for_update().get(id=item_id)
        except LineItem.DoesNotExist:
            raise NotFound('line item', item_id, action)
        # The item may have been moved before its cart was locked.
        if item.cart_id != current_cart_id:
            logger.warning(f"Line item #{item_id} moved to cart #{item.cart_id} during '{action}'")
            raise ConcurrentUpdate('line item', item_id, action)

        product = catalog.get_product(product_id)
        _check_stock(product, quantity, action)
        for cart in carts.values():
            _ensure_open(cart, action)

        item.product = product
        item.cart = carts[cart_id]
        item.quantity = quantity
        item.subtotal = item.compute_subtotal()
        item.save()

        for cart in carts.values():
            cart.recalculate_total()

    logger.info(f"Line item #{item.id} updated: {quantity}x product #{product.id} in cart #{cart_id}")
    return item


@bounded_lock_wait('line item')
def remove_line_item(item_id: int) -> Cart:
    """Delete a line item from its open cart and re-sum the cart."""
    action = 'remove line item'
    cart_id = get_line_item(item_id).cart_id

    with transaction.atomic():
        cart = _lock_cart(cart_id, action)
        _ensure_open(cart, action)
        deleted, _ = LineItem.objects.filter(id=item_id, cart_id=cart.id).delete()
        if not deleted:
            if LineItem.objects.filter(id=item_id).exists():
                raise ConcurrentUpdate('line item', item_id, action)
            raise NotFound('line item', item_id, action)
        cart.recalculate_total()

    logger.info(f"Cart #{cart.id}: removed line item #{item_id}, total ${cart.total}")
    return cart


# =============================================================================
# Price changes
# =============================================================================

def lock_open_carts_with_product(product_id: int) -> List[int]:
    """
    Lock every open cart holding the product. Must run inside a transaction,
    before the product row itself is locked (carts are always locked first).
    """
    cart_ids = LineItem.objects.filter(
        product_id=product_id, cart__purchased=False
    ).values_list('cart_id', flat=True).distinct()
    return sorted(_lock_carts(list(cart_ids), 'reprice').keys())


def reprice_open_items(product: Product) -> int:
    """Recompute subtotals of the product's line items in open carts, then their totals."""
    items = list(
        LineItem.objects.select_related('cart').filter(product=product, cart__purchased=False)
    )
    touched = {}
    for item in items:
        item.product = product
        item.subtotal = item.compute_subtotal()
        item.save(update_fields=['subtotal', 'updated_at'])
        touched[item.cart_id] = item.cart

    for cart in touched.values():
        cart.recalculate_total()

    if items:
        logger.info(
            f"Product #{product.id}: re-priced {len(items)} line items in {len(touched)} open carts"
        )
    return len(items)
