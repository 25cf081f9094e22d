"""
URL routing for account API endpoints.
"""
from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    # Customers
    path('customers/', views.CustomerRegisterView.as_view(), name='customer-register'),
    path('customers/login/', views.CustomerLoginView.as_view(), name='customer-login'),
    path('customers/<int:pk>/', views.CustomerDetailView.as_view(), name='customer-detail'),
    path('customers/<int:pk>/password/', views.CustomerPasswordView.as_view(), name='customer-password'),

    # Administrators
    path('administrators/', views.AdministratorRegisterView.as_view(), name='administrator-register'),
    path('administrators/login/', views.AdministratorLoginView.as_view(), name='administrator-login'),
    path('administrators/<int:pk>/password/', views.AdministratorPasswordView.as_view(),
         name='administrator-password'),
]
