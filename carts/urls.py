"""
URL routing for cart API endpoints.
"""
from django.urls import path
from . import views

app_name = 'carts'

urlpatterns = [
    path('carts/', views.CartListCreateView.as_view(), name='cart-list'),
    path('carts/<int:pk>/', views.CartDetailView.as_view(), name='cart-detail'),
    path('carts/<int:pk>/items/', views.LineItemCreateView.as_view(), name='cart-items'),
    path('items/<int:pk>/', views.LineItemDetailView.as_view(), name='line-item-detail'),
]
