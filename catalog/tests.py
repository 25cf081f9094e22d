"""
Tests for the product catalog.

Test Cases:
1. Point-in-time stock checks at their boundaries
2. Unconditional decrement and the non-negative stock constraint
3. Enumeration parsing, including bare shoe sizes
4. Price changes re-price open carts only
5. Product API read access and administrator-only writes
"""
import base64
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.db import IntegrityError, OperationalError, transaction
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from accounts import services as accounts
from accounts.models import Credential, Customer, DocumentType
from carts import services as carts
from catalog import services
from catalog.models import Product, Category, Gender, Size
from core.choices import parse_choice
from core.exceptions import NotFound, InvalidArgument, LockTimeout
from orders.checkout import purchase


def make_product(name='Road Runner', price='10.00', units=10, **extra):
    fields = {
        'name': name,
        'price': Decimal(price),
        'available_units': units,
        'category': Category.RUNNING,
        'gender': Gender.U,
        'size': Size.T40,
    }
    fields.update(extra)
    return Product.objects.create(**fields)


class StockCheckTestCase(TestCase):
    """Test cases for is_available, reserve_check and decrement."""

    def test_is_available(self):
        self.assertTrue(services.is_available(make_product(units=1)))
        self.assertFalse(services.is_available(make_product(units=0)))

    def test_reserve_check_boundaries(self):
        product = make_product(units=5)

        self.assertTrue(services.reserve_check(product, 1))
        self.assertTrue(services.reserve_check(product, 5))
        self.assertFalse(services.reserve_check(product, 6))

    def test_reserve_check_without_stock(self):
        product = make_product(units=0)

        self.assertFalse(services.reserve_check(product, 0))
        self.assertFalse(services.reserve_check(product, 1))

    def test_reserve_check_does_not_hold_units(self):
        product = make_product(units=5)

        services.reserve_check(product, 5)

        product.refresh_from_db()
        self.assertEqual(product.available_units, 5)

    def test_decrement(self):
        product = make_product(units=5)

        services.decrement(product, 3)

        self.assertEqual(product.available_units, 2)
        self.assertEqual(Product.objects.get(id=product.id).available_units, 2)

    def test_decrement_to_zero(self):
        product = make_product(units=4)

        services.decrement(product, 4)

        self.assertEqual(product.available_units, 0)
        self.assertTrue(product.is_out_of_stock)

    def test_database_refuses_negative_stock(self):
        """
        Test: Decrement does not clamp, the database constraint refuses the write.

        Given: A product with 5 units
        When: Decrementing by 6 without a prior check
        Then: IntegrityError, units remain 5
        """
        product = make_product(units=5)

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                services.decrement(product, 6)

        self.assertEqual(Product.objects.get(id=product.id).available_units, 5)


class ChoiceParsingTestCase(TestCase):
    """Test cases for enumeration parsing."""

    def test_size_accepts_bare_number(self):
        self.assertEqual(parse_choice(Size, '38', prefix='T'), Size.T38)
        self.assertEqual(parse_choice(Size, 38, prefix='T'), Size.T38)
        self.assertEqual(parse_choice(Size, 'T38', prefix='T'), Size.T38)

    def test_members_match_exactly(self):
        self.assertEqual(parse_choice(Category, 'RUNNING'), Category.RUNNING)
        for choices, raw in ((Category, 'running'), (Gender, 'f'), (Category, ' RUNNING '), (Size, 't38')):
            with self.subTest(choices=choices.__name__, raw=raw):
                with self.assertRaises(InvalidArgument):
                    parse_choice(choices, raw, prefix='T' if choices is Size else None)

    def test_lowercase_document_type_rejected(self):
        with self.assertRaises(InvalidArgument):
            parse_choice(DocumentType, 'cc')

    def test_unknown_member_rejected(self):
        for choices, raw in ((Size, '50'), (Category, 'SANDAL'), (Gender, 'X'), (Size, '')):
            with self.subTest(choices=choices.__name__, raw=raw):
                with self.assertRaises(InvalidArgument):
                    parse_choice(choices, raw, prefix='T' if choices is Size else None)


class ProductServiceTestCase(TestCase):
    """Test cases for product management and search."""

    def setUp(self):
        self.customer = accounts.register_customer(
            username='jdoe', password='secret', first_names='Jane',
            last_names='Doe', document_type='CC',
        )

    def test_create_product_parses_enumerations(self):
        product = services.create_product(
            name='Oxford', price='89.90', available_units=3,
            category='FORMAL', gender='M', size='42',
        )

        self.assertEqual(product.category, Category.FORMAL)
        self.assertEqual(product.gender, Gender.M)
        self.assertEqual(product.size, Size.T42)
        self.assertEqual(product.price, Decimal('89.90'))

    def test_create_product_missing_field(self):
        with self.assertRaises(InvalidArgument):
            services.create_product(name='Oxford', price='10', category='FORMAL', gender='M')

    def test_create_product_negative_values(self):
        with self.assertRaises(InvalidArgument):
            services.create_product(name='Oxford', price='-1', category='FORMAL',
                                    gender='M', size='40')
        with self.assertRaises(InvalidArgument):
            services.create_product(name='Oxford', price='1', category='FORMAL',
                                    gender='M', size='40', available_units=-2)

    def test_get_missing_product(self):
        with self.assertRaises(NotFound):
            services.get_product(99999)

    def test_find_products_filters(self):
        runner = make_product(name='Runner', size=Size.T38, gender=Gender.F)
        make_product(name='Runner', size=Size.T41, gender=Gender.M)
        make_product(name='Oxford', category=Category.FORMAL, size=Size.T38)

        self.assertEqual(len(services.find_products(name='Runner')), 2)
        self.assertEqual(len(services.find_products(size='38')), 2)
        self.assertEqual(services.find_products(name='Runner', gender='F', size='T38'), [runner])
        self.assertEqual(len(services.find_products(category='FORMAL')), 1)
        self.assertEqual(len(services.find_products()), 3)

    def test_find_products_rejects_unknown_category(self):
        with self.assertRaises(InvalidArgument):
            services.find_products(category='SANDAL')

    def test_price_change_reprices_open_carts(self):
        """
        Test: A price change flows into open carts but not purchased ones.

        Given: Product at $10, an open cart with 2 units, a purchased cart with 1 unit
        When: Price changes to $15
        Then: Open cart subtotal and total are $30; purchased cart and order keep $10
        """
        product = make_product(price='10.00', units=10)
        open_cart = carts.create_cart(self.customer.id)
        open_item = carts.add_line_item(open_cart.id, product.id, 2)
        sold_cart = carts.create_cart(self.customer.id)
        sold_item = carts.add_line_item(sold_cart.id, product.id, 1)
        order = purchase(sold_cart.id)

        services.update_product(product.id, price='15.00')

        open_item.refresh_from_db()
        open_cart.refresh_from_db()
        self.assertEqual(open_item.subtotal, Decimal('30.00'))
        self.assertEqual(open_cart.total, Decimal('30.00'))

        sold_item.refresh_from_db()
        sold_cart.refresh_from_db()
        order.refresh_from_db()
        self.assertEqual(sold_item.subtotal, Decimal('10.00'))
        self.assertEqual(sold_cart.total, Decimal('10.00'))
        self.assertEqual(order.total, Decimal('10.00'))

    def test_update_without_price_change_keeps_cart_totals(self):
        product = make_product(price='10.00', units=10)
        cart = carts.create_cart(self.customer.id)
        carts.add_line_item(cart.id, product.id, 2)

        updated = services.update_product(product.id, name='Renamed', available_units=3)

        cart.refresh_from_db()
        self.assertEqual(updated.name, 'Renamed')
        self.assertEqual(updated.available_units, 3)
        self.assertEqual(cart.total, Decimal('20.00'))

    def test_price_change_lock_timeout(self):
        """
        Test: A re-price that cannot lock the open carts in time is retryable.

        Given: An open cart holding the product, and cart locks that time out
        When: Changing the price
        Then: LockTimeout naming the product; price and cart total unchanged
        """
        product = make_product(price='10.00', units=10)
        cart = carts.create_cart(self.customer.id)
        carts.add_line_item(cart.id, product.id, 2)

        with patch('carts.services._lock_carts',
                   side_effect=OperationalError('canceling statement due to lock timeout')):
            with self.assertRaises(LockTimeout) as context:
                services.update_product(product.id, price='15.00')

        self.assertEqual(context.exception.entity, 'product')
        self.assertEqual(context.exception.identifier, product.id)
        product.refresh_from_db()
        cart.refresh_from_db()
        self.assertEqual(product.price, Decimal('10.00'))
        self.assertEqual(cart.total, Decimal('20.00'))

    def test_update_unknown_field(self):
        product = make_product()
        with self.assertRaises(InvalidArgument):
            services.update_product(product.id, colour='red')

    def test_delete_product_in_cart_refused(self):
        product = make_product()
        cart = carts.create_cart(self.customer.id)
        carts.add_line_item(cart.id, product.id, 1)

        with self.assertRaises(InvalidArgument):
            services.delete_product(product.id)
        self.assertTrue(Product.objects.filter(id=product.id).exists())

    def test_delete_product(self):
        product = make_product()
        services.delete_product(product.id)
        self.assertFalse(Product.objects.filter(id=product.id).exists())


class ProductAPITestCase(APITestCase):
    """Test cases for product endpoints."""

    def setUp(self):
        accounts.register_administrator('admin', 'admin-pass')
        self.product = make_product(name='Runner', size=Size.T38)
        self.payload = {
            'name': 'Derby',
            'price': '120.00',
            'available_units': 4,
            'category': 'FORMAL',
            'gender': 'M',
            'size': '41',
        }

    def authenticate_admin(self):
        token = base64.b64encode(b'admin:admin-pass').decode()
        self.client.credentials(HTTP_AUTHORIZATION=f'Basic {token}',
                                HTTP_X_PRINCIPAL_KIND='administrator')

    def test_list_is_public(self):
        response = self.client.get('/api/products/', {'size': '38'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['size'], 'T38')

    def test_list_rejects_unknown_category(self):
        response = self.client.get('/api/products/', {'category': 'SANDAL'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'InvalidArgument')

    def test_create_requires_administrator(self):
        response = self.client.post('/api/products/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.authenticate_admin()
        response = self.client.post('/api/products/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['size'], 'T41')

    def test_patch_product(self):
        self.authenticate_admin()
        response = self.client.patch(f'/api/products/{self.product.id}/',
                                     {'available_units': 0}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_out_of_stock'])

    def test_missing_product(self):
        response = self.client.get('/api/products/99999/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'NotFound')


class SeedDataCommandTestCase(TestCase):
    """Test cases for the seed_data management command."""

    def test_seed_data(self):
        call_command('seed_data', products=12, customers=3, admin_password='seed-pass', stdout=StringIO())

        self.assertEqual(Product.objects.count(), 12)
        self.assertEqual(Customer.objects.count(), 3)
        self.assertEqual(accounts.login_customer('customer1', 'password123').credential.username,
                         'customer1')
        self.assertIsNotNone(accounts.login_administrator('admin', 'seed-pass'))

    def test_seed_data_clear(self):
        call_command('seed_data', products=5, customers=2, stdout=StringIO())
        call_command('seed_data', '--clear', products=4, customers=1, stdout=StringIO())

        self.assertEqual(Product.objects.count(), 4)
        self.assertEqual(Credential.objects.filter(kind=Credential.Kind.CUSTOMER).count(), 1)
        self.assertEqual(Credential.objects.filter(kind=Credential.Kind.ADMINISTRATOR).count(), 1)
