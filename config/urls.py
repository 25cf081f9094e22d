"""
URL configuration for the Sales API.
"""
import logging

from django.contrib import admin
from django.db import connection, DatabaseError
from django.http import JsonResponse
from django.urls import path, include

logger = logging.getLogger(__name__)


def health_check(request):
    """Liveness plus a database round trip; 503 when the database is unreachable."""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except DatabaseError as e:
        logger.error(f"Health check failed: {e}")
        return JsonResponse({'status': 'degraded', 'service': 'sales-api', 'database': 'unavailable'},
                            status=503)
    return JsonResponse({'status': 'healthy', 'service': 'sales-api', 'database': 'ok'})


urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health_check, name='health-check'),
    path('api/', include('accounts.urls')),
    path('api/', include('catalog.urls')),
    path('api/', include('carts.urls')),
    path('api/', include('orders.urls')),
]
