"""
Account API Views.

Implements:
- POST /customers/ - Register a customer
- POST /customers/login/ - Authenticate a customer (throttled)
- GET/PUT/DELETE /customers/{id}/ - Profile access for the customer or an administrator
- PUT /customers/{id}/password/ - Change password given the current one (throttled)
- POST /administrators/ - Register an administrator (administrators only)
- POST /administrators/login/ - Authenticate an administrator (throttled)
- PUT /administrators/{id}/password/ - Change password given the current one (throttled)
"""
import logging

from rest_framework import status
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsAdministrator, owns_customer
from core.rate_limiting import throttle_logins
from . import services
from .serializers import (
    CustomerSerializer,
    CustomerRegistrationSerializer,
    CustomerUpdateSerializer,
    AdministratorSerializer,
    CredentialsSerializer,
    PasswordChangeSerializer,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Customer Views
# =============================================================================

class CustomerRegisterView(APIView):
    """
    POST: Register a customer.

    Request Body:
    {
        "username": "jdoe",
        "password": "secret",
        "first_names": "Jane",
        "last_names": "Doe",
        "document_type": "CC",
        "document_number": "1020304050",
        "birth_date": "1990-05-17"
    }
    """

    def post(self, request):
        serializer = CustomerRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        customer = services.register_customer(**serializer.validated_data)
        return Response(CustomerSerializer(customer).data, status=status.HTTP_201_CREATED)


class CustomerLoginView(APIView):
    """POST: Verify customer credentials and return the customer."""

    @throttle_logins()
    def post(self, request):
        serializer = CredentialsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        customer = services.login_customer(**serializer.validated_data)
        return Response(CustomerSerializer(customer).data)


class CustomerDetailView(APIView):
    """
    GET: Retrieve a customer
    PUT/PATCH: Update profile fields
    DELETE: Delete the customer and its credential
    """

    def check_owner(self, request, pk):
        if not owns_customer(request, pk):
            raise PermissionDenied('Only the customer or an administrator may access this profile.')

    def get(self, request, pk):
        self.check_owner(request, pk)
        return Response(CustomerSerializer(services.get_customer(pk)).data)

    def put(self, request, pk):
        self.check_owner(request, pk)
        serializer = CustomerUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        customer = services.update_customer(pk, **serializer.validated_data)
        return Response(CustomerSerializer(customer).data)

    patch = put

    def delete(self, request, pk):
        self.check_owner(request, pk)
        services.delete_customer(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CustomerPasswordView(APIView):
    """PUT: Replace the password after verifying the current one."""

    @throttle_logins()
    def put(self, request, pk):
        serializer = PasswordChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        customer = services.get_customer(pk)
        services.change_password(
            customer.credential,
            serializer.validated_data['password'],
            serializer.validated_data['new_password'],
        )
        return Response(CustomerSerializer(customer).data)


# =============================================================================
# Administrator Views
# =============================================================================

class AdministratorRegisterView(APIView):
    """POST: Register an administrator. Requires administrator credentials."""
    permission_classes = [IsAdministrator]

    def post(self, request):
        serializer = CredentialsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        administrator = services.register_administrator(**serializer.validated_data)
        return Response(AdministratorSerializer(administrator).data, status=status.HTTP_201_CREATED)


class AdministratorLoginView(APIView):
    """POST: Verify administrator credentials."""

    @throttle_logins()
    def post(self, request):
        serializer = CredentialsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        administrator = services.login_administrator(**serializer.validated_data)
        return Response(AdministratorSerializer(administrator).data)


class AdministratorPasswordView(APIView):
    """PUT: Replace the password after verifying the current one."""

    @throttle_logins()
    def put(self, request, pk):
        serializer = PasswordChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        administrator = services.get_administrator(pk)
        services.change_password(
            administrator.credential,
            serializer.validated_data['password'],
            serializer.validated_data['new_password'],
        )
        return Response(AdministratorSerializer(administrator).data)
