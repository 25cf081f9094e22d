"""
Serializers for order models.
"""
from rest_framework import serializers

from .models import Order


class OrderSerializer(serializers.ModelSerializer):
    """Serializer for the immutable Order snapshot."""
    customer_id = serializers.IntegerField(source='cart.customer_id', read_only=True)

    class Meta:
        model = Order
        fields = ['id', 'cart', 'customer_id', 'customer_name', 'total', 'created_at']
        read_only_fields = fields


class OrderFilterSerializer(serializers.Serializer):
    """Query parameters for GET /orders/."""
    customer_id = serializers.IntegerField(min_value=1, required=False)
    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)

    def validate(self, attrs):
        if ('start' in attrs) != ('end' in attrs):
            raise serializers.ValidationError("Both 'start' and 'end' are required for a date range")
        return attrs
