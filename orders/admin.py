"""
Django Admin configuration for order models.
"""
from django.contrib import admin
from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'cart', 'customer_name', 'total', 'created_at']
    list_filter = ['created_at']
    search_fields = ['id', 'customer_name']
    ordering = ['-created_at']
    readonly_fields = ['cart', 'customer_name', 'total', 'created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
