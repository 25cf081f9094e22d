"""
Tests for the shared API plumbing.

Test Cases:
1. Domain errors map to HTTP statuses and structured bodies
2. Principal kind header selects the credential namespace
3. Login and password change throttling with Redis, and failing open without it
4. Health check
"""
import base64
from unittest.mock import MagicMock, patch

from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.test import APITestCase

from accounts import services as accounts
from core.exception_handler import sales_exception_handler
from core.exceptions import (
    NotFound,
    OutOfStock,
    CartAlreadyPurchased,
    CartNotPurchased,
    InvalidCredential,
    InvalidArgument,
    CheckoutUnavailable,
    LockTimeout,
    ConcurrentUpdate,
)


class ExceptionHandlerTestCase(TestCase):
    """Test cases for the DRF exception handler."""

    def test_status_mapping(self):
        cases = (
            (NotFound('cart', 7), status.HTTP_404_NOT_FOUND),
            (OutOfStock(3, 6, 5, 'add line item'), status.HTTP_409_CONFLICT),
            (CartAlreadyPurchased(7, 'purchase'), status.HTTP_409_CONFLICT),
            (CartNotPurchased(7), status.HTTP_409_CONFLICT),
            (InvalidCredential('customer', 'jdoe', 'authenticate'), status.HTTP_401_UNAUTHORIZED),
            (InvalidArgument('Size', '50', 'parse'), status.HTTP_400_BAD_REQUEST),
            (CheckoutUnavailable(7), status.HTTP_503_SERVICE_UNAVAILABLE),
            (LockTimeout('cart', 7, 'add line item'), status.HTTP_503_SERVICE_UNAVAILABLE),
            (ConcurrentUpdate('line item', 4, 'update line item'), status.HTTP_503_SERVICE_UNAVAILABLE),
        )
        for exc, expected in cases:
            with self.subTest(error=exc.__class__.__name__):
                response = sales_exception_handler(exc, {})
                self.assertEqual(response.status_code, expected)
                self.assertEqual(response.data['error'], exc.__class__.__name__)

    def test_body_carries_entity_and_action(self):
        response = sales_exception_handler(CartAlreadyPurchased(7, 'add line item'), {})

        self.assertEqual(response.data['entity'], 'cart')
        self.assertEqual(response.data['id'], 7)
        self.assertEqual(response.data['action'], 'add line item')
        self.assertIn('already been purchased', response.data['detail'])

    def test_out_of_stock_hides_available_units(self):
        response = sales_exception_handler(OutOfStock(3, 6, 5, 'purchase'), {})

        self.assertNotIn('available', response.data)
        self.assertNotIn(' 5', response.data['detail'])

    def test_transient_error_sets_retry_after(self):
        response = sales_exception_handler(CheckoutUnavailable(7), {})

        self.assertEqual(response['Retry-After'], '1')

    def test_other_errors_use_drf_handler(self):
        response = sales_exception_handler(ValidationError({'quantity': 'bad'}), {})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.assertIsNone(sales_exception_handler(ValueError('boom'), {}))


class PrincipalAuthenticationTestCase(APITestCase):
    """Test cases for Basic authentication with a principal kind."""

    def setUp(self):
        accounts.register_customer(
            username='shared', password='customer-pass', first_names='Jane',
            last_names='Doe', document_type='CC',
        )
        accounts.register_administrator('shared', 'admin-pass')

    def request_stats(self, password, kind=None):
        token = base64.b64encode(f'shared:{password}'.encode()).decode()
        headers = {'HTTP_AUTHORIZATION': f'Basic {token}'}
        if kind is not None:
            headers['HTTP_X_PRINCIPAL_KIND'] = kind
        self.client.credentials(**headers)
        return self.client.get('/api/orders/stats/')

    def test_customer_is_default_kind(self):
        self.assertEqual(self.request_stats('customer-pass').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.request_stats('admin-pass').status_code, status.HTTP_401_UNAUTHORIZED)

    def test_administrator_kind(self):
        response = self.request_stats('admin-pass', kind='Administrator')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_unknown_kind(self):
        response = self.request_stats('admin-pass', kind='robot')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


@override_settings(RATE_LIMIT_ENABLED=True, LOGIN_RATE_LIMIT=2, LOGIN_RATE_WINDOW_SECONDS=60)
class LoginThrottleTestCase(APITestCase):
    """Test cases for Redis login throttling."""

    def setUp(self):
        self.customer = accounts.register_customer(
            username='jdoe', password='right', first_names='Jane',
            last_names='Doe', document_type='CC',
        )
        self.credentials = {'username': 'jdoe', 'password': 'right'}

    def test_throttled_after_limit(self):
        client = MagicMock()
        client.incr.side_effect = [1, 2, 3]
        client.ttl.return_value = 42

        with patch('core.rate_limiting.get_redis_client', return_value=client):
            first = self.client.post('/api/customers/login/', self.credentials, format='json')
            second = self.client.post('/api/customers/login/', self.credentials, format='json')
            third = self.client.post('/api/customers/login/', self.credentials, format='json')

        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(first['X-RateLimit-Remaining'], '1')
        self.assertEqual(second['X-RateLimit-Remaining'], '0')
        self.assertEqual(third.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertEqual(third['Retry-After'], '42')
        client.expire.assert_called_once_with('login_throttle:CustomerLoginView:127.0.0.1', 60)

    def test_password_change_throttled(self):
        """
        Test: Guessing the current password through the password endpoint is throttled.

        Given: A limit of 2 attempts per window
        When: Two wrong guesses, then the right password
        Then: The third attempt gets 429 and the password is unchanged
        """
        client = MagicMock()
        client.incr.side_effect = [1, 2, 3]
        client.ttl.return_value = 42
        url = f'/api/customers/{self.customer.id}/password/'

        with patch('core.rate_limiting.get_redis_client', return_value=client):
            first = self.client.put(url, {'password': 'guess1', 'new_password': 'new'}, format='json')
            second = self.client.put(url, {'password': 'guess2', 'new_password': 'new'}, format='json')
            third = self.client.put(url, {'password': 'right', 'new_password': 'new'}, format='json')

        self.assertEqual(first.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(second.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(third.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        client.expire.assert_called_once_with('login_throttle:CustomerPasswordView:127.0.0.1', 60)
        self.assertEqual(accounts.login_customer('jdoe', 'right'), self.customer)

    def test_administrator_password_change_throttled(self):
        administrator = accounts.register_administrator('admin', 'admin-pass')
        client = MagicMock()
        client.incr.return_value = 3
        client.ttl.return_value = 10

        with patch('core.rate_limiting.get_redis_client', return_value=client):
            response = self.client.put(
                f'/api/administrators/{administrator.id}/password/',
                {'password': 'admin-pass', 'new_password': 'new'}, format='json',
            )

        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertEqual(accounts.login_administrator('admin', 'admin-pass'), administrator)

    def test_fails_open_without_redis(self):
        with patch('core.rate_limiting.get_redis_client', return_value=None):
            response = self.client.post('/api/customers/login/', self.credentials, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)


class HealthCheckTestCase(TestCase):
    def test_health_check(self):
        response = self.client.get('/health/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'healthy')
