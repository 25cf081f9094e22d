"""
Account Models - Principals and their credentials.

Models:
    - Credential: username + password hash, tagged with the principal kind
    - Customer: shopper profile owning one CUSTOMER credential
    - Administrator: back-office principal owning one ADMINISTRATOR credential
"""
from django.db import models


class DocumentType(models.TextChoices):
    TI = 'TI', 'Tarjeta de identidad'
    CC = 'CC', 'Cédula de ciudadanía'
    TE = 'TE', 'Tarjeta de extranjería'
    CE = 'CE', 'Cédula de extranjería'
    NIT = 'NIT', 'Número de identificación tributaria'
    PP = 'PP', 'Pasaporte'


class Credential(models.Model):
    """
    Credential holder shared by every principal kind.

    password_hash always holds an encoded Django password hash, never plaintext.
    Usernames are unique within a kind and matched case-sensitively.
    """

    class Kind(models.TextChoices):
        CUSTOMER = 'CUSTOMER', 'Customer'
        ADMINISTRATOR = 'ADMINISTRATOR', 'Administrator'

    kind = models.CharField(
        max_length=20,
        choices=Kind.choices,
        db_index=True,
        help_text="Principal kind this credential authenticates"
    )
    username = models.CharField(
        max_length=150,
        help_text="Login name, unique per principal kind"
    )
    password_hash = models.CharField(
        max_length=255,
        help_text="Salted one-way password hash"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Credential'
        verbose_name_plural = 'Credentials'
        ordering = ['kind', 'username']
        constraints = [
            models.UniqueConstraint(
                fields=['kind', 'username'],
                name='unique_username_per_kind'
            )
        ]

    def __str__(self):
        return f"{self.username} ({self.kind})"


class Customer(models.Model):
    """
    Customer entity: owns carts and, through them, orders.
    """
    credential = models.OneToOneField(
        Credential,
        on_delete=models.CASCADE,
        related_name='customer',
        limit_choices_to={'kind': Credential.Kind.CUSTOMER}
    )
    first_names = models.CharField(max_length=150)
    last_names = models.CharField(max_length=150)
    document_type = models.CharField(
        max_length=5,
        choices=DocumentType.choices,
        help_text="Identity document type"
    )
    document_number = models.CharField(max_length=50, blank=True, default='')
    birth_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Customer'
        verbose_name_plural = 'Customers'
        ordering = ['last_names', 'first_names']

    def __str__(self):
        return f"{self.full_name} <{self.credential.username}>"

    @property
    def full_name(self) -> str:
        return f"{self.first_names} {self.last_names}"

    @property
    def username(self) -> str:
        return self.credential.username


class Administrator(models.Model):
    """Back-office principal allowed to manage the catalog and read the ledger."""
    credential = models.OneToOneField(
        Credential,
        on_delete=models.CASCADE,
        related_name='administrator',
        limit_choices_to={'kind': Credential.Kind.ADMINISTRATOR}
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Administrator'
        verbose_name_plural = 'Administrators'
        ordering = ['credential__username']

    def __str__(self):
        return self.credential.username

    @property
    def username(self) -> str:
        return self.credential.username
