"""
Cart Models - Cart and LineItem entities.

Cart Status Flow:
    OPEN (purchased=False) -> PURCHASED (purchased=True, terminal)

A purchased cart has exactly one Order (reverse one-to-one ``cart.order``).
"""
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from accounts.models import Customer
from catalog.models import Product


class Cart(models.Model):
    """
    Cart entity: one customer's selection of priced line items.

    total is always the full re-sum of the line item subtotals.
    """
    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name='carts',
        help_text="Customer owning this cart"
    )
    total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Sum of line item subtotals"
    )
    purchased = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Set once, at checkout"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Cart'
        verbose_name_plural = 'Carts'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['customer', 'purchased'], name='cart_customer_purchased_idx'),
        ]

    def __str__(self):
        state = 'purchased' if self.purchased else 'open'
        return f"Cart #{self.id} - customer {self.customer_id} ({state})"

    @property
    def is_open(self) -> bool:
        return not self.purchased

    def compute_total(self) -> Decimal:
        return sum((item.subtotal for item in self.items.all()), Decimal('0.00'))

    def recalculate_total(self) -> Decimal:
        """Re-sum every current line item and persist the result."""
        self.total = self.compute_total()
        self.save(update_fields=['total', 'updated_at'])
        return self.total


class LineItem(models.Model):
    """
    LineItem entity: one product selection within a cart.

    subtotal == quantity * product.price, kept in sync by the cart services.
    """
    cart = models.ForeignKey(
        Cart,
        on_delete=models.CASCADE,
        related_name='items',
        help_text="Owning cart"
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name='line_items',
        help_text="Selected product"
    )
    quantity = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Requested units"
    )
    subtotal = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="quantity x product price"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Line Item'
        verbose_name_plural = 'Line Items'
        ordering = ['id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name='line_item_quantity_positive'
            ),
        ]

    def __str__(self):
        return f"{self.quantity}x {self.product.name} = ${self.subtotal}"

    def compute_subtotal(self) -> Decimal:
        return self.product.price * self.quantity
