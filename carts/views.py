"""
Cart API Views.

Implements:
- GET /carts/ - List the caller's carts (administrators may pass customer_id)
- POST /carts/ - Create an empty cart for the calling customer
- GET/PATCH/DELETE /carts/{id}/ - Read, reassign or delete a cart
- POST /carts/{id}/items/ - Add a line item
- PUT/DELETE /items/{id}/ - Update or remove a line item
"""
import logging

from rest_framework import status
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsAuthenticatedPrincipal, IsCustomer, owns_customer
from . import services
from .serializers import (
    CartSerializer,
    CartListSerializer,
    CartReassignSerializer,
    LineItemSerializer,
    LineItemCreateSerializer,
    LineItemUpdateSerializer,
)

logger = logging.getLogger(__name__)


def check_cart_owner(request, cart_id):
    """Load a cart and ensure the caller is its customer or an administrator."""
    cart = services.get_cart(cart_id)
    if not owns_customer(request, cart.customer_id):
        raise PermissionDenied('Only the cart owner or an administrator may access this cart.')
    return cart


class CartListCreateView(APIView):
    """
    GET: List carts, newest first
    POST: Create a new empty cart for the calling customer
    """

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsCustomer()]
        return [IsAuthenticatedPrincipal()]

    def get(self, request):
        if request.user.is_administrator:
            customer_id = request.query_params.get('customer_id')
            if not customer_id:
                raise ValidationError({'customer_id': 'This query parameter is required.'})
            try:
                customer_id = int(customer_id)
            except ValueError:
                raise ValidationError({'customer_id': 'Must be an integer.'})
        else:
            customer_id = request.user.customer.id

        carts = services.find_carts_by_customer(customer_id)
        return Response(CartListSerializer(carts, many=True).data)

    def post(self, request):
        cart = services.create_cart(request.user.customer.id)
        return Response(CartSerializer(cart).data, status=status.HTTP_201_CREATED)


class CartDetailView(APIView):
    """
    GET: Retrieve a cart with its line items
    PATCH: Reassign the cart to another customer (open carts only)
    DELETE: Delete an open cart
    """
    permission_classes = [IsAuthenticatedPrincipal]

    def get(self, request, pk):
        cart = check_cart_owner(request, pk)
        return Response(CartSerializer(cart).data)

    def patch(self, request, pk):
        check_cart_owner(request, pk)
        serializer = CartReassignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = services.reassign_customer(pk, serializer.validated_data['customer_id'])
        return Response(CartSerializer(cart).data)

    def delete(self, request, pk):
        check_cart_owner(request, pk)
        services.delete_cart(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class LineItemCreateView(APIView):
    """
    POST: Add a product to a cart.

    Request Body:
    {"product_id": 1, "quantity": 2}

    Returns:
        - 201: Line item created
        - 404: Cart or product not found
        - 409: Out of stock, or cart already purchased
    """
    permission_classes = [IsAuthenticatedPrincipal]

    def post(self, request, pk):
        check_cart_owner(request, pk)
        serializer = LineItemCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = services.add_line_item(
            pk,
            serializer.validated_data['product_id'],
            serializer.validated_data['quantity'],
        )
        return Response(LineItemSerializer(item).data, status=status.HTTP_201_CREATED)


class LineItemDetailView(APIView):
    """
    PUT: Replace quantity, product and owning cart of a line item
    DELETE: Remove a line item from its cart
    """
    permission_classes = [IsAuthenticatedPrincipal]

    def put(self, request, pk):
        item = services.get_line_item(pk)
        check_cart_owner(request, item.cart_id)
        serializer = LineItemUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        check_cart_owner(request, data['cart_id'])
        item = services.update_line_item(pk, data['quantity'], data['product_id'], data['cart_id'])
        return Response(LineItemSerializer(item).data)

    def delete(self, request, pk):
        item = services.get_line_item(pk)
        check_cart_owner(request, item.cart_id)
        services.remove_line_item(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
