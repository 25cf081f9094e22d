"""
Serializers for customers and administrators.
Password hashes are never serialized.
"""
from rest_framework import serializers

from .models import Customer, Administrator


class CustomerSerializer(serializers.ModelSerializer):
    """Read serializer for Customer."""
    username = serializers.CharField(source='credential.username', read_only=True)
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = Customer
        fields = [
            'id', 'username', 'first_names', 'last_names', 'full_name',
            'document_type', 'document_number', 'birth_date',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class CustomerRegistrationSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    first_names = serializers.CharField(max_length=150)
    last_names = serializers.CharField(max_length=150)
    # Parsed by the service layer so unknown values report the enumeration.
    document_type = serializers.CharField(max_length=5)
    document_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    birth_date = serializers.DateField(required=False, allow_null=True)


class CustomerUpdateSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150, required=False)
    first_names = serializers.CharField(max_length=150, required=False)
    last_names = serializers.CharField(max_length=150, required=False)
    document_type = serializers.CharField(max_length=5, required=False)
    document_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    birth_date = serializers.DateField(required=False)


class AdministratorSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='credential.username', read_only=True)

    class Meta:
        model = Administrator
        fields = ['id', 'username', 'created_at']
        read_only_fields = fields


class CredentialsSerializer(serializers.Serializer):
    """Username/password pair for registration and login."""
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class PasswordChangeSerializer(serializers.Serializer):
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    new_password = serializers.CharField(write_only=True, trim_whitespace=False)
