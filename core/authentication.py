"""
HTTP Basic authentication against the Credential Store.

The X-Principal-Kind header selects which kind of principal the credentials
belong to: "customer" (default) or "administrator".
"""
import logging

from rest_framework import exceptions
from rest_framework.authentication import BasicAuthentication

from accounts import services as accounts
from accounts.models import Credential
from .exceptions import NotFound, InvalidCredential

logger = logging.getLogger(__name__)

PRINCIPAL_KIND_HEADER = 'HTTP_X_PRINCIPAL_KIND'


class AuthenticatedPrincipal:
    """request.user for requests carrying valid credentials."""
    is_authenticated = True
    is_anonymous = False

    def __init__(self, credential: Credential):
        self.credential = credential
        self.kind = credential.kind
        self.username = credential.username

    def __str__(self):
        return f"{self.username} ({self.kind})"

    @property
    def is_customer(self) -> bool:
        return self.kind == Credential.Kind.CUSTOMER

    @property
    def is_administrator(self) -> bool:
        return self.kind == Credential.Kind.ADMINISTRATOR

    @property
    def customer(self):
        return self.credential.customer if self.is_customer else None

    @property
    def administrator(self):
        return self.credential.administrator if self.is_administrator else None


class PrincipalBasicAuthentication(BasicAuthentication):
    www_authenticate_realm = 'sales'

    def authenticate_credentials(self, userid, password, request=None):
        raw_kind = request.META.get(PRINCIPAL_KIND_HEADER, 'customer') if request is not None else 'customer'
        kind = raw_kind.strip().upper()
        if kind not in Credential.Kind.values:
            raise exceptions.AuthenticationFailed('Unknown principal kind.')

        try:
            credential = accounts.authenticate(kind, userid, password)
        except (NotFound, InvalidCredential):
            raise exceptions.AuthenticationFailed('Invalid username/password.')

        return AuthenticatedPrincipal(credential), None
