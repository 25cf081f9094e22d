"""
Serializers for carts and line items.
"""
from rest_framework import serializers

from catalog.serializers import ProductMinimalSerializer
from .models import Cart, LineItem


class LineItemSerializer(serializers.ModelSerializer):
    """Serializer for LineItem with product details."""
    product = ProductMinimalSerializer(read_only=True)

    class Meta:
        model = LineItem
        fields = ['id', 'cart', 'product', 'quantity', 'subtotal']
        read_only_fields = fields


class CartSerializer(serializers.ModelSerializer):
    """Serializer for Cart with nested items and the order id once purchased."""
    items = LineItemSerializer(many=True, read_only=True)
    order_id = serializers.SerializerMethodField()

    class Meta:
        model = Cart
        fields = [
            'id', 'customer', 'items', 'total', 'purchased', 'order_id',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_order_id(self, obj):
        order = getattr(obj, 'order', None) if obj.purchased else None
        return order.id if order else None


class CartListSerializer(serializers.ModelSerializer):
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Cart
        fields = ['id', 'customer', 'total', 'purchased', 'item_count', 'created_at']

    def get_item_count(self, obj):
        return obj.items.count()


class CartReassignSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField(min_value=1)


class LineItemCreateSerializer(serializers.Serializer):
    """Serializer for adding a line item to a cart."""
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class LineItemUpdateSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    cart_id = serializers.IntegerField(min_value=1)
