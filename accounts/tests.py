"""
Tests for the credential store and account endpoints.

Test Cases:
1. Passwords are stored hashed and verified one-way
2. Password change requires the current password
3. Authentication distinguishes unknown users from wrong passwords
4. Usernames are unique per principal kind
5. Account API registration, login and password change
"""
import base64
from unittest.mock import patch

from django.db import OperationalError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from accounts import services
from accounts.models import Credential, Customer, DocumentType
from carts.services import create_cart
from core.exceptions import NotFound, InvalidCredential, InvalidArgument, LockTimeout


def basic_auth(username, password):
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return f"Basic {token}"


class CredentialStoreTestCase(TestCase):
    """Test cases for password hashing and verification."""

    def setUp(self):
        self.customer = services.register_customer(
            username='jdoe',
            password='right',
            first_names='Jane',
            last_names='Doe',
            document_type='CC',
            document_number='1020304050',
        )
        self.credential = self.customer.credential

    def test_password_is_stored_as_hash(self):
        self.assertNotEqual(self.credential.password_hash, 'right')
        self.assertNotIn('right', self.credential.password_hash)
        self.assertTrue(services.verify(self.credential, 'right'))
        self.assertFalse(services.verify(self.credential, 'wrong'))

    def test_same_password_gets_different_salts(self):
        other = services.register_customer(
            username='other', password='right', first_names='Other',
            last_names='Person', document_type='CC',
        )
        self.assertNotEqual(self.credential.password_hash, other.credential.password_hash)

    def test_change_password_with_wrong_old_password(self):
        """
        Test: Password change is refused when the current password is wrong.

        Given: Actual password is "right"
        When: Changing password with old password "wrong"
        Then: InvalidCredential, hash unchanged, "right" still verifies
        """
        original_hash = self.credential.password_hash

        with self.assertRaises(InvalidCredential):
            services.change_password(self.credential, 'wrong', 'new')

        self.credential.refresh_from_db()
        self.assertEqual(self.credential.password_hash, original_hash)
        self.assertTrue(services.verify(self.credential, 'right'))
        self.assertFalse(services.verify(self.credential, 'new'))

    def test_change_password_success(self):
        services.change_password(self.credential, 'right', 'new')

        self.credential.refresh_from_db()
        self.assertTrue(services.verify(self.credential, 'new'))
        self.assertFalse(services.verify(self.credential, 'right'))

    def test_password_change_lock_timeout(self):
        original_hash = self.credential.password_hash

        with patch.object(Credential.objects, 'select_for_update',
                          side_effect=OperationalError('database is locked')):
            with self.assertRaises(LockTimeout) as context:
                services.change_password(self.credential, 'right', 'new')

        self.assertEqual(context.exception.identifier, self.credential.pk)
        self.assertEqual(Credential.objects.get(pk=self.credential.pk).password_hash, original_hash)

    def test_empty_password_rejected(self):
        with self.assertRaises(InvalidArgument):
            services.set_password(self.credential, '')

    def test_authenticate_success(self):
        credential = services.authenticate(Credential.Kind.CUSTOMER, 'jdoe', 'right')
        self.assertEqual(credential.pk, self.credential.pk)
        self.assertEqual(services.login_customer('jdoe', 'right'), self.customer)

    def test_authenticate_unknown_username(self):
        with self.assertRaises(NotFound):
            services.authenticate(Credential.Kind.CUSTOMER, 'nobody', 'right')

    def test_authenticate_wrong_password(self):
        with self.assertRaises(InvalidCredential) as context:
            services.authenticate(Credential.Kind.CUSTOMER, 'jdoe', 'wrong')

        self.assertNotIn(self.credential.password_hash, str(context.exception))

    def test_authenticate_is_case_sensitive(self):
        with self.assertRaises(NotFound):
            services.authenticate(Credential.Kind.CUSTOMER, 'JDOE', 'right')

    def test_authenticate_checks_principal_kind(self):
        with self.assertRaises(NotFound):
            services.login_administrator('jdoe', 'right')

    def test_username_unique_per_kind(self):
        with self.assertRaises(InvalidArgument) as context:
            services.register_customer(
                username='jdoe', password='x', first_names='J', last_names='D',
                document_type='CC',
            )
        self.assertIn('already taken', str(context.exception))
        self.assertEqual(Customer.objects.count(), 1)

    def test_same_username_allowed_across_kinds(self):
        administrator = services.register_administrator('jdoe', 'admin-pass')

        self.assertEqual(services.login_administrator('jdoe', 'admin-pass'), administrator)
        self.assertEqual(services.login_customer('jdoe', 'right'), self.customer)

    def test_invalid_document_type(self):
        with self.assertRaises(InvalidArgument) as context:
            services.register_customer(
                username='bad', password='x', first_names='B', last_names='D',
                document_type='XX',
            )
        self.assertIn('XX', str(context.exception))
        self.assertFalse(Credential.objects.filter(username='bad').exists())

    def test_update_customer(self):
        customer = services.update_customer(
            self.customer.id, first_names='Janet', document_type='PP'
        )

        self.assertEqual(customer.first_names, 'Janet')
        self.assertEqual(customer.document_type, DocumentType.PP)
        self.assertEqual(customer.full_name, 'Janet Doe')

    def test_update_customer_to_taken_username(self):
        services.register_customer(
            username='taken', password='x', first_names='T', last_names='K',
            document_type='CC',
        )
        with self.assertRaises(InvalidArgument):
            services.update_customer(self.customer.id, username='taken')

    def test_find_customers_by_username(self):
        self.assertEqual(services.find_customers_by_username('jdoe'), [self.customer])
        self.assertEqual(services.find_customers_by_username('nobody'), [])

    def test_delete_customer(self):
        services.delete_customer(self.customer.id)

        self.assertFalse(Customer.objects.filter(id=self.customer.id).exists())
        self.assertFalse(Credential.objects.filter(id=self.credential.id).exists())

    def test_delete_customer_with_carts_refused(self):
        create_cart(self.customer.id)

        with self.assertRaises(InvalidArgument):
            services.delete_customer(self.customer.id)
        self.assertTrue(Customer.objects.filter(id=self.customer.id).exists())

    def test_get_missing_customer(self):
        with self.assertRaises(NotFound):
            services.get_customer(99999)


class AccountAPITestCase(APITestCase):
    """Test cases for account endpoints."""

    def setUp(self):
        self.customer = services.register_customer(
            username='jdoe', password='right', first_names='Jane',
            last_names='Doe', document_type='CC',
        )
        self.administrator = services.register_administrator('admin', 'admin-pass')

    def test_register_customer(self):
        response = self.client.post('/api/customers/', {
            'username': 'new',
            'password': 'secret',
            'first_names': 'New',
            'last_names': 'Customer',
            'document_type': 'CC',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['full_name'], 'New Customer')
        self.assertNotIn('password', response.data)
        self.assertNotIn('password_hash', response.data)

    def test_register_customer_bad_document_type(self):
        response = self.client.post('/api/customers/', {
            'username': 'new', 'password': 'secret', 'first_names': 'N',
            'last_names': 'C', 'document_type': 'ZZ',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'InvalidArgument')

    def test_register_customer_lowercase_document_type(self):
        response = self.client.post('/api/customers/', {
            'username': 'new', 'password': 'secret', 'first_names': 'N',
            'last_names': 'C', 'document_type': 'cc',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Credential.objects.filter(username='new').exists())

    def test_login(self):
        response = self.client.post('/api/customers/login/',
                                    {'username': 'jdoe', 'password': 'right'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], self.customer.id)

    def test_login_wrong_password(self):
        response = self.client.post('/api/customers/login/',
                                    {'username': 'jdoe', 'password': 'wrong'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'InvalidCredential')

    def test_login_unknown_user(self):
        response = self.client.post('/api/customers/login/',
                                    {'username': 'nobody', 'password': 'x'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_change_password(self):
        url = f'/api/customers/{self.customer.id}/password/'

        response = self.client.put(url, {'password': 'wrong', 'new_password': 'new'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        response = self.client.put(url, {'password': 'right', 'new_password': 'new'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(services.login_customer('jdoe', 'new'), self.customer)

    def test_profile_requires_owner(self):
        url = f'/api/customers/{self.customer.id}/'

        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.credentials(HTTP_AUTHORIZATION=basic_auth('jdoe', 'right'))
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'jdoe')

    def test_bad_basic_credentials(self):
        self.client.credentials(HTTP_AUTHORIZATION=basic_auth('jdoe', 'wrong'))
        response = self.client.get(f'/api/customers/{self.customer.id}/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_register_administrator_requires_administrator(self):
        payload = {'username': 'second', 'password': 'pass'}

        response = self.client.post('/api/administrators/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.credentials(HTTP_AUTHORIZATION=basic_auth('jdoe', 'right'))
        response = self.client.post('/api/administrators/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.credentials(
            HTTP_AUTHORIZATION=basic_auth('admin', 'admin-pass'),
            HTTP_X_PRINCIPAL_KIND='administrator',
        )
        response = self.client.post('/api/administrators/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['username'], 'second')
