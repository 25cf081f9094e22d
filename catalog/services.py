"""
Catalog Service Layer - product lookup, stock checks and stock decrement.

Stock checks here are advisory point-in-time reads. The only code allowed to
decrement stock is the checkout, which holds the product row locks and
re-validates before calling decrement().
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from django.db import transaction
from django.db.models import F, ProtectedError

from core.choices import parse_choice
from core.exceptions import NotFound, InvalidArgument
from core.locking import bounded_lock_wait
from .models import Product, Category, Gender, Size

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = (
    'name', 'description', 'image', 'price', 'available_units',
    'category', 'gender', 'size', 'brand',
)


def is_available(product: Product) -> bool:
    return product.available_units > 0


def reserve_check(product: Product, quantity: int) -> bool:
    """True iff the product has stock and ``quantity`` fits in it. Not a hold."""
    return is_available(product) and quantity <= product.available_units


def decrement(product: Product, quantity: int) -> Product:
    """
    Subtract ``quantity`` from the product's available units.

    Unconditional: no re-validation, no clamping. The caller must hold the
    product row lock and have checked sufficiency.
    """
    Product.objects.filter(pk=product.pk).update(
        available_units=F('available_units') - quantity
    )
    product.refresh_from_db(fields=['available_units', 'updated_at'])
    logger.debug(
        f"Product #{product.pk}: decremented by {quantity}, "
        f"remaining units: {product.available_units}"
    )
    return product


def _clean_fields(fields: dict, product_id=None) -> dict:
    unknown = set(fields) - set(PRODUCT_FIELDS)
    if unknown:
        raise InvalidArgument('product', product_id, 'update',
                              message=f"Unknown product fields: {sorted(unknown)}")

    cleaned = dict(fields)
    if 'category' in cleaned:
        cleaned['category'] = parse_choice(Category, cleaned['category'])
    if 'gender' in cleaned:
        cleaned['gender'] = parse_choice(Gender, cleaned['gender'])
    if 'size' in cleaned:
        cleaned['size'] = parse_choice(Size, cleaned['size'], prefix='T')
    if 'price' in cleaned:
        try:
            cleaned['price'] = Decimal(str(cleaned['price']))
        except InvalidOperation:
            raise InvalidArgument('product', product_id, 'set price',
                                  message=f"Invalid price: {cleaned['price']!r}")
        if cleaned['price'] < 0:
            raise InvalidArgument('product', product_id, 'set price',
                                  message="Price must not be negative")
    if 'available_units' in cleaned:
        if not isinstance(cleaned['available_units'], int) or cleaned['available_units'] < 0:
            raise InvalidArgument('product', product_id, 'set available units',
                                  message="Available units must be a non-negative integer")
    return cleaned


def create_product(**fields) -> Product:
    for required in ('name', 'price', 'category', 'gender', 'size'):
        if fields.get(required) in (None, ''):
            raise InvalidArgument('product', None, 'create', message=f"Missing field: {required}")

    product = Product.objects.create(**_clean_fields(fields))
    logger.info(f"Created product #{product.id}: {product.name}")
    return product


def get_product(product_id: int) -> Product:
    try:
        return Product.objects.get(id=product_id)
    except Product.DoesNotExist:
        raise NotFound('product', product_id)


@bounded_lock_wait('product')
def update_product(product_id: int, **fields) -> Product:
    """
    Update product fields under a row lock.

    A price change re-prices every line item in open carts so their
    subtotals and cart totals stay exact. Purchased carts keep their prices.
    """
    from carts.services import lock_open_carts_with_product, reprice_open_items

    cleaned = _clean_fields(fields, product_id)
    with transaction.atomic():
        if 'price' in cleaned:
            lock_open_carts_with_product(product_id)
        try:
            product = Product.objects.select_for_update().get(id=product_id)
        except Product.DoesNotExist:
            raise NotFound('product', product_id, 'update')

        price_changed = 'price' in cleaned and cleaned['price'] != product.price
        for field, value in cleaned.items():
            setattr(product, field, value)
        product.save()

        if price_changed:
            reprice_open_items(product)

    logger.info(f"Updated product #{product.id}")
    return product


def delete_product(product_id: int) -> None:
    """Delete a product; refused by the database while any line item references it."""
    product = get_product(product_id)
    try:
        product.delete()
    except ProtectedError:
        raise InvalidArgument('product', product_id, 'delete',
                              message=f"Product {product_id} is referenced by cart line items")
    logger.info(f"Deleted product #{product_id}")


def find_products(name: Optional[str] = None, category=None, gender=None, size=None) -> List[Product]:
    """Filter products; enumeration filters are parsed and rejected if unknown."""
    queryset = Product.objects.all()
    if name:
        queryset = queryset.filter(name=name)
    if category:
        queryset = queryset.filter(category=parse_choice(Category, category))
    if gender:
        queryset = queryset.filter(gender=parse_choice(Gender, gender))
    if size:
        queryset = queryset.filter(size=parse_choice(Size, size, prefix='T'))
    return list(queryset.order_by('name', 'id'))
