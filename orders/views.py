"""
Order API Views.

Implements:
- POST /carts/{id}/purchase/ - Checkout a cart atomically
- GET /orders/ - Ledger queries by customer and/or date range
- GET /orders/{id}/ - Order detail with purchased items
- GET /orders/stats/ - Order statistics (administrators)
"""
import logging

from django.db.models import Sum, Count, Avg
from rest_framework import status
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from rest_framework.views import APIView

from carts.views import check_cart_owner
from core.permissions import IsAdministrator, IsAuthenticatedPrincipal, owns_customer
from . import services
from .checkout import purchase
from .models import Order
from .serializers import OrderSerializer, OrderFilterSerializer

logger = logging.getLogger(__name__)


class CartPurchaseView(APIView):
    """
    POST: Purchase a cart.

    Returns:
        - 201: Order recorded, stock decremented
        - 404: Cart not found
        - 409: Cart already purchased, or a product ran out of stock
        - 503: Locks not acquired in time; nothing changed, safe to retry
    """
    permission_classes = [IsAuthenticatedPrincipal]

    def post(self, request, pk):
        check_cart_owner(request, pk)
        order = purchase(pk)
        return Response(services.get_order_summary(order.id), status=status.HTTP_201_CREATED)


class OrderListView(APIView):
    """
    GET: List orders.

    Query Parameters:
        - customer_id: Orders of one customer (customers always see only their own)
        - start, end: Inclusive creation date range (YYYY-MM-DD)
    """
    permission_classes = [IsAuthenticatedPrincipal]

    def get(self, request):
        serializer = OrderFilterSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        filters = serializer.validated_data

        customer_id = filters.get('customer_id')
        if request.user.is_customer:
            customer_id = request.user.customer.id

        if 'start' in filters:
            orders = services.find_by_date_range(filters['start'], filters['end'])
            if customer_id is not None:
                orders = [o for o in orders if o.cart.customer_id == customer_id]
        elif customer_id is not None:
            orders = services.find_by_customer(customer_id)
        else:
            orders = Order.objects.select_related('cart').order_by('-created_at', '-id')

        return Response(OrderSerializer(orders, many=True).data)


class OrderDetailView(APIView):
    """GET: Retrieve an order with the items of its purchased cart."""
    permission_classes = [IsAuthenticatedPrincipal]

    def get(self, request, pk):
        order = services.get_order(pk)
        if not owns_customer(request, order.cart.customer_id):
            raise PermissionDenied('Only the order owner or an administrator may view this order.')
        return Response(services.get_order_summary(pk))


class OrderStatsView(APIView):
    """
    GET: Order count and revenue, optionally for one customer.

    Query Parameters:
        - customer_id: Filter stats by customer (optional)
    """
    permission_classes = [IsAdministrator]

    def get(self, request):
        queryset = Order.objects.all()

        customer_id = request.query_params.get('customer_id')
        if customer_id:
            queryset = queryset.filter(cart__customer_id=customer_id)

        stats = queryset.aggregate(
            total_orders=Count('id'),
            total_revenue=Sum('total'),
            avg_order_value=Avg('total'),
        )

        stats['total_revenue'] = services.format_amount(stats['total_revenue'])
        stats['avg_order_value'] = services.format_amount(stats['avg_order_value'])

        return Response(stats)
