"""
Django Admin configuration for account models.
"""
from django.contrib import admin
from .models import Credential, Customer, Administrator


@admin.register(Credential)
class CredentialAdmin(admin.ModelAdmin):
    list_display = ['id', 'username', 'kind', 'created_at']
    list_filter = ['kind']
    search_fields = ['username']
    ordering = ['kind', 'username']
    # The hash is only ever replaced through the password services.
    exclude = ['password_hash']


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['id', 'username', 'full_name', 'document_type', 'document_number', 'created_at']
    list_filter = ['document_type']
    search_fields = ['credential__username', 'first_names', 'last_names', 'document_number']
    ordering = ['last_names', 'first_names']
    raw_id_fields = ['credential']


@admin.register(Administrator)
class AdministratorAdmin(admin.ModelAdmin):
    list_display = ['id', 'username', 'created_at']
    search_fields = ['credential__username']
    raw_id_fields = ['credential']
