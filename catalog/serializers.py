"""
Serializers for catalog models.
Provides data validation and JSON conversion for API endpoints.
"""
from rest_framework import serializers

from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    """Serializer for Product model."""
    is_out_of_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'image', 'price', 'available_units',
            'category', 'gender', 'size', 'brand', 'is_out_of_stock',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


class ProductMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for nested representations."""
    class Meta:
        model = Product
        fields = ['id', 'name', 'price']


class ProductWriteSerializer(serializers.Serializer):
    """
    Input for product create/update. Enumerations stay plain strings so the
    service layer can parse sizes given as bare numbers ("38").
    """
    name = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True)
    image = serializers.CharField(max_length=500, required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    available_units = serializers.IntegerField(min_value=0, required=False)
    category = serializers.CharField(max_length=20)
    gender = serializers.CharField(max_length=1)
    size = serializers.CharField(max_length=3)
    brand = serializers.CharField(max_length=100, required=False, allow_blank=True)
