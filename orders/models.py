"""
Order Models - immutable purchase snapshots.

An Order is written exactly once, at checkout, for a cart that is already
marked purchased. Its customer name and total are copied from the cart at
that instant and never recomputed.
"""
from decimal import Decimal

from django.db import models
from django.utils import timezone

from carts.models import Cart


class Order(models.Model):
    """
    Order entity recording a completed checkout.
    """
    cart = models.OneToOneField(
        Cart,
        on_delete=models.PROTECT,
        related_name='order',
        help_text="Purchased cart this order was taken from"
    )
    created_at = models.DateTimeField(
        default=timezone.now,
        editable=False,
        db_index=True,
        help_text="Moment of purchase"
    )
    customer_name = models.CharField(
        max_length=301,
        help_text="Customer full name at the moment of purchase"
    )
    total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Cart total at the moment of purchase"
    )

    class Meta:
        verbose_name = 'Order'
        verbose_name_plural = 'Orders'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"Order #{self.id} - {self.customer_name} (${self.total})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError(f"Order #{self.pk} is immutable once recorded")
        super().save(*args, **kwargs)

    @property
    def item_count(self) -> int:
        return self.cart.items.count()
