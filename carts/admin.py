"""
Django Admin configuration for cart models.
"""
from django.contrib import admin
from .models import Cart, LineItem


class LineItemInline(admin.TabularInline):
    model = LineItem
    extra = 0
    readonly_fields = ['product', 'quantity', 'subtotal']
    can_delete = False


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ['id', 'customer', 'total', 'purchased', 'item_count', 'created_at']
    list_filter = ['purchased', 'created_at']
    search_fields = ['id', 'customer__credential__username']
    ordering = ['-created_at']
    readonly_fields = ['total', 'purchased', 'created_at', 'updated_at']
    raw_id_fields = ['customer']
    inlines = [LineItemInline]

    def item_count(self, obj):
        return obj.items.count()
    item_count.short_description = 'Items'
