"""
Credential Store - password hashing, verification and principal lookup.

Passwords are hashed with Django's configured PASSWORD_HASHERS (salted,
one-way) and verified with check_password, which compares in constant time.
Plaintext passwords are never stored or logged.
"""
import logging
from typing import List, Optional

from django.contrib.auth.hashers import make_password, check_password
from django.db import transaction, IntegrityError
from django.db.models import ProtectedError

from core.choices import parse_choice
from core.exceptions import NotFound, InvalidCredential, InvalidArgument
from core.locking import bounded_lock_wait
from .models import Credential, Customer, Administrator, DocumentType

logger = logging.getLogger(__name__)


@bounded_lock_wait('credential')
def set_password(credential: Credential, plaintext: str) -> Credential:
    """Replace the stored hash with a fresh salted hash of ``plaintext``."""
    if not plaintext:
        raise InvalidArgument('credential', credential.pk, 'set password',
                              message="Password must not be empty")

    credential.password_hash = make_password(plaintext)
    if credential.pk is None:
        credential.save()
        return credential

    with transaction.atomic():
        Credential.objects.select_for_update().filter(pk=credential.pk).first()
        credential.save(update_fields=['password_hash', 'updated_at'])

    logger.info(f"Password replaced for {credential.kind.lower()} credential #{credential.pk}")
    return credential


def verify(credential: Credential, plaintext: str) -> bool:
    if not credential.password_hash or plaintext is None:
        return False
    return check_password(plaintext, credential.password_hash)


def change_password(credential: Credential, old_plaintext: str, new_plaintext: str) -> Credential:
    """
    Replace the password after verifying the current one.

    Raises:
        InvalidCredential: If ``old_plaintext`` does not verify; the hash is left unchanged.
    """
    if not verify(credential, old_plaintext):
        logger.warning(f"Rejected password change for credential #{credential.pk}")
        raise InvalidCredential('credential', credential.pk, 'change password')
    return set_password(credential, new_plaintext)


def authenticate(kind: str, username: str, plaintext: str) -> Credential:
    """
    Look up a credential by exact username within ``kind`` and verify the password.

    Raises:
        NotFound: No credential of that kind has the username.
        InvalidCredential: The password does not verify.
    """
    try:
        credential = Credential.objects.get(kind=kind, username=username)
    except Credential.DoesNotExist:
        # Hash anyway so a missing user costs the same as a wrong password.
        make_password(plaintext)
        logger.warning(f"Login attempt for unknown {kind.lower()} username")
        raise NotFound(kind.lower(), username, 'authenticate')

    if not verify(credential, plaintext):
        logger.warning(f"Failed login for {kind.lower()} credential #{credential.pk}")
        raise InvalidCredential(kind.lower(), username, 'authenticate')

    return credential


def _create_credential(kind: str, username: str, password: str) -> Credential:
    if not username:
        raise InvalidArgument(kind.lower(), None, 'register', message="Username must not be empty")
    credential = Credential(kind=kind, username=username)
    try:
        with transaction.atomic():
            set_password(credential, password)
    except IntegrityError:
        raise InvalidArgument(kind.lower(), username, 'register',
                              message=f"Username {username!r} is already taken")
    return credential


# =============================================================================
# Customers
# =============================================================================

def register_customer(username: str, password: str, first_names: str, last_names: str,
                      document_type, document_number: str = '', birth_date=None) -> Customer:
    doc_type = parse_choice(DocumentType, document_type)
    with transaction.atomic():
        credential = _create_credential(Credential.Kind.CUSTOMER, username, password)
        customer = Customer.objects.create(
            credential=credential,
            first_names=first_names,
            last_names=last_names,
            document_type=doc_type,
            document_number=document_number or '',
            birth_date=birth_date,
        )
    logger.info(f"Registered customer #{customer.id}")
    return customer


def get_customer(customer_id: int) -> Customer:
    try:
        return Customer.objects.select_related('credential').get(id=customer_id)
    except Customer.DoesNotExist:
        raise NotFound('customer', customer_id)


def find_customers_by_username(username: str) -> List[Customer]:
    return list(
        Customer.objects.select_related('credential').filter(credential__username=username)
    )


def update_customer(customer_id: int, username: Optional[str] = None, first_names: Optional[str] = None,
                    last_names: Optional[str] = None, document_type=None,
                    document_number: Optional[str] = None, birth_date=None) -> Customer:
    """Update profile fields; ``None`` leaves a field untouched."""
    with transaction.atomic():
        customer = get_customer(customer_id)
        if document_type is not None:
            customer.document_type = parse_choice(DocumentType, document_type)
        for field, value in (('first_names', first_names), ('last_names', last_names),
                             ('document_number', document_number), ('birth_date', birth_date)):
            if value is not None:
                setattr(customer, field, value)
        customer.save()

        if username is not None and username != customer.credential.username:
            customer.credential.username = username
            try:
                with transaction.atomic():
                    customer.credential.save(update_fields=['username', 'updated_at'])
            except IntegrityError:
                raise InvalidArgument('customer', customer_id, 'update',
                                      message=f"Username {username!r} is already taken")
    return customer


def delete_customer(customer_id: int) -> None:
    customer = get_customer(customer_id)
    try:
        with transaction.atomic():
            # Deleting the credential cascades to the profile.
            customer.credential.delete()
    except ProtectedError:
        raise InvalidArgument('customer', customer_id, 'delete',
                              message=f"Customer {customer_id} still owns carts")
    logger.info(f"Deleted customer #{customer_id}")


def login_customer(username: str, password: str) -> Customer:
    credential = authenticate(Credential.Kind.CUSTOMER, username, password)
    return credential.customer


# =============================================================================
# Administrators
# =============================================================================

def register_administrator(username: str, password: str) -> Administrator:
    with transaction.atomic():
        credential = _create_credential(Credential.Kind.ADMINISTRATOR, username, password)
        administrator = Administrator.objects.create(credential=credential)
    logger.info(f"Registered administrator #{administrator.id}")
    return administrator


def get_administrator(administrator_id: int) -> Administrator:
    try:
        return Administrator.objects.select_related('credential').get(id=administrator_id)
    except Administrator.DoesNotExist:
        raise NotFound('administrator', administrator_id)


def delete_administrator(administrator_id: int) -> None:
    administrator = get_administrator(administrator_id)
    administrator.credential.delete()
    logger.info(f"Deleted administrator #{administrator_id}")


def login_administrator(username: str, password: str) -> Administrator:
    credential = authenticate(Credential.Kind.ADMINISTRATOR, username, password)
    return credential.administrator
