"""
Catalog Models - Products and their descriptive enumerations.

Models:
    - Product: Items available for sale, each carrying its own stock counter

Enumerations (stored by value):
    - Category, Gender, Size
"""
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class Category(models.TextChoices):
    DEPORTIVO = 'DEPORTIVO', 'Deportivo'
    CASUAL = 'CASUAL', 'Casual'
    RUNNING = 'RUNNING', 'Running'
    FUTBOL = 'FUTBOL', 'Fútbol'
    FORMAL = 'FORMAL', 'Formal'


class Gender(models.TextChoices):
    M = 'M', 'Masculino'
    F = 'F', 'Femenino'
    U = 'U', 'Unisex'


class Size(models.TextChoices):
    T35 = 'T35', '35'
    T36 = 'T36', '36'
    T37 = 'T37', '37'
    T38 = 'T38', '38'
    T39 = 'T39', '39'
    T40 = 'T40', '40'
    T41 = 'T41', '41'
    T42 = 'T42', '42'
    T43 = 'T43', '43'


class Product(models.Model):
    """
    Product entity representing items available for sale.

    available_units is the only stock counter shared between carts; the
    check constraint keeps it from ever going negative.
    """
    name = models.CharField(
        max_length=200,
        db_index=True,
        help_text="Product name for display and search"
    )
    description = models.TextField(
        blank=True,
        default='',
        help_text="Optional product description"
    )
    image = models.CharField(
        max_length=500,
        blank=True,
        default='',
        help_text="Image URL or path"
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Unit price (non-negative)"
    )
    available_units = models.PositiveIntegerField(
        default=0,
        help_text="Units currently available for purchase"
    )
    category = models.CharField(max_length=20, choices=Category.choices, db_index=True)
    gender = models.CharField(max_length=1, choices=Gender.choices, db_index=True)
    size = models.CharField(max_length=3, choices=Size.choices, db_index=True)
    brand = models.CharField(max_length=100, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Product'
        verbose_name_plural = 'Products'
        ordering = ['name']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(available_units__gte=0),
                name='product_available_units_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name='product_price_non_negative'
            ),
        ]
        indexes = [
            models.Index(fields=['category', 'gender'], name='product_category_gender_idx'),
            models.Index(fields=['price'], name='product_price_idx'),
        ]

    def __str__(self):
        return f"{self.name} (${self.price})"

    @property
    def is_out_of_stock(self) -> bool:
        return self.available_units == 0
