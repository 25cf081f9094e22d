"""
Django Admin configuration for catalog models.
"""
from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'price', 'available_units', 'category', 'gender', 'size', 'brand']
    list_filter = ['category', 'gender', 'size']
    search_fields = ['name', 'brand', 'description']
    ordering = ['name']
