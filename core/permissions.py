"""
DRF permission classes for customers and administrators.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS


def _principal(request):
    user = getattr(request, 'user', None)
    if user is None or not getattr(user, 'is_authenticated', False):
        return None
    return user


class IsCustomer(BasePermission):
    message = 'Customer credentials required.'

    def has_permission(self, request, view):
        principal = _principal(request)
        return principal is not None and principal.is_customer


class IsAdministrator(BasePermission):
    message = 'Administrator credentials required.'

    def has_permission(self, request, view):
        principal = _principal(request)
        return principal is not None and principal.is_administrator


class IsAdministratorOrReadOnly(BasePermission):
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        principal = _principal(request)
        return principal is not None and principal.is_administrator


class IsAuthenticatedPrincipal(BasePermission):
    def has_permission(self, request, view):
        return _principal(request) is not None


def owns_customer(request, customer_id) -> bool:
    """True for administrators, or for the customer whose id is ``customer_id``."""
    principal = _principal(request)
    if principal is None:
        return False
    if principal.is_administrator:
        return True
    return principal.customer is not None and principal.customer.id == int(customer_id)
