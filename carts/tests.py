"""
Tests for cart and line item bookkeeping.

Test Cases:
1. Subtotals and totals stay exact across add, update and remove
2. Stock checks reject oversized line items and leave the cart unchanged
3. Line items can move between open carts
4. Purchased carts refuse every mutation
5. Lock timeouts and concurrent moves fail retryably and change nothing
6. Cart API ownership rules
"""
import base64
from decimal import Decimal
from unittest.mock import patch

from django.db import OperationalError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from accounts import services as accounts
from carts import services
from carts.models import Cart, LineItem
from catalog.models import Product, Category, Gender, Size
from core.exceptions import (
    NotFound,
    OutOfStock,
    CartAlreadyPurchased,
    InvalidArgument,
    LockTimeout,
    ConcurrentUpdate,
)
from orders.checkout import purchase


def make_customer(username='jdoe', password='secret'):
    return accounts.register_customer(
        username=username, password=password, first_names='Jane',
        last_names='Doe', document_type='CC',
    )


def make_product(name='Road Runner', price='20.00', units=5):
    return Product.objects.create(
        name=name,
        price=Decimal(price),
        available_units=units,
        category=Category.RUNNING,
        gender=Gender.U,
        size=Size.T40,
    )


class CartServiceTestCase(TestCase):
    """Test cases for cart mutations."""

    def setUp(self):
        self.customer = make_customer()
        self.product = make_product(price='20.00', units=5)
        self.cart = services.create_cart(self.customer.id)

    def assertTotalIsSum(self, cart):
        cart.refresh_from_db()
        expected = sum((item.subtotal for item in cart.items.all()), Decimal('0.00'))
        self.assertEqual(cart.total, expected)
        for item in cart.items.select_related('product'):
            self.assertEqual(item.subtotal, item.quantity * item.product.price)

    def test_create_cart(self):
        self.assertFalse(self.cart.purchased)
        self.assertEqual(self.cart.total, Decimal('0.00'))
        self.assertEqual(services.find_carts_by_customer(self.customer.id), [self.cart])

    def test_create_cart_unknown_customer(self):
        with self.assertRaises(NotFound):
            services.create_cart(99999)

    def test_add_line_item(self):
        item = services.add_line_item(self.cart.id, self.product.id, 3)

        self.assertEqual(item.subtotal, Decimal('60.00'))
        self.cart.refresh_from_db()
        self.assertEqual(self.cart.total, Decimal('60.00'))

    def test_add_does_not_touch_stock(self):
        services.add_line_item(self.cart.id, self.product.id, 3)

        self.product.refresh_from_db()
        self.assertEqual(self.product.available_units, 5)

    def test_add_exact_available_units(self):
        services.add_line_item(self.cart.id, self.product.id, 5)
        self.assertTotalIsSum(self.cart)

    def test_add_exceeding_stock(self):
        """
        Test: Adding more units than available is rejected.

        Given: Product with 5 units, cart total $20
        When: Adding a line item with quantity 6
        Then: OutOfStock, cart total still $20, no new line item
        """
        services.add_line_item(self.cart.id, self.product.id, 1)

        with self.assertRaises(OutOfStock) as context:
            services.add_line_item(self.cart.id, self.product.id, 6)

        self.assertEqual(context.exception.requested, 6)
        self.assertEqual(context.exception.available, 5)
        self.cart.refresh_from_db()
        self.assertEqual(self.cart.total, Decimal('20.00'))
        self.assertEqual(self.cart.items.count(), 1)

    def test_add_product_without_stock(self):
        empty = make_product(name='Sold Out', units=0)

        with self.assertRaises(OutOfStock):
            services.add_line_item(self.cart.id, empty.id, 1)

    def test_add_invalid_quantity(self):
        for quantity in (0, -1, 1.5, True, '2'):
            with self.subTest(quantity=quantity):
                with self.assertRaises(InvalidArgument):
                    services.add_line_item(self.cart.id, self.product.id, quantity)

    def test_add_unknown_references(self):
        with self.assertRaises(NotFound):
            services.add_line_item(99999, self.product.id, 1)
        with self.assertRaises(NotFound):
            services.add_line_item(self.cart.id, 99999, 1)

    def test_same_product_twice(self):
        services.add_line_item(self.cart.id, self.product.id, 2)
        services.add_line_item(self.cart.id, self.product.id, 3)

        self.assertEqual(self.cart.items.count(), 2)
        self.cart.refresh_from_db()
        self.assertEqual(self.cart.total, Decimal('100.00'))

    def test_total_tracks_every_mutation(self):
        other = make_product(name='Oxford', price='7.50', units=10)

        first = services.add_line_item(self.cart.id, self.product.id, 2)
        self.assertTotalIsSum(self.cart)
        second = services.add_line_item(self.cart.id, other.id, 4)
        self.assertTotalIsSum(self.cart)
        services.update_line_item(first.id, 1, other.id, self.cart.id)
        self.assertTotalIsSum(self.cart)
        services.remove_line_item(second.id)
        self.assertTotalIsSum(self.cart)

        self.cart.refresh_from_db()
        self.assertEqual(self.cart.total, Decimal('7.50'))

    def test_update_line_item_quantity(self):
        item = services.add_line_item(self.cart.id, self.product.id, 1)

        item = services.update_line_item(item.id, 4, self.product.id, self.cart.id)

        self.assertEqual(item.quantity, 4)
        self.assertEqual(item.subtotal, Decimal('80.00'))
        self.cart.refresh_from_db()
        self.assertEqual(self.cart.total, Decimal('80.00'))

    def test_update_line_item_exceeding_stock(self):
        item = services.add_line_item(self.cart.id, self.product.id, 1)

        with self.assertRaises(OutOfStock):
            services.update_line_item(item.id, 6, self.product.id, self.cart.id)

        item.refresh_from_db()
        self.assertEqual(item.quantity, 1)

    def test_move_line_item_between_carts(self):
        """
        Test: Moving a line item re-sums both carts.

        Given: Cart A with a $40 line item, empty cart B
        When: The line item is moved to B
        Then: A total is $0, B total is $40
        """
        other_cart = services.create_cart(self.customer.id)
        item = services.add_line_item(self.cart.id, self.product.id, 2)

        services.update_line_item(item.id, 2, self.product.id, other_cart.id)

        self.cart.refresh_from_db()
        other_cart.refresh_from_db()
        self.assertEqual(self.cart.total, Decimal('0.00'))
        self.assertEqual(other_cart.total, Decimal('40.00'))
        self.assertEqual(services.find_line_items(cart_id=other_cart.id), [LineItem.objects.get(id=item.id)])

    def test_remove_line_item(self):
        item = services.add_line_item(self.cart.id, self.product.id, 2)
        services.add_line_item(self.cart.id, self.product.id, 1)

        cart = services.remove_line_item(item.id)

        self.assertEqual(cart.total, Decimal('20.00'))
        with self.assertRaises(NotFound):
            services.get_line_item(item.id)

    def test_find_line_items_by_product(self):
        other = make_product(name='Oxford', price='7.50', units=10)
        services.add_line_item(self.cart.id, self.product.id, 1)
        services.add_line_item(self.cart.id, other.id, 1)

        self.assertEqual(len(services.find_line_items(product_id=other.id)), 1)
        self.assertEqual(len(services.find_line_items(cart_id=self.cart.id)), 2)

    def test_reassign_open_cart(self):
        other_customer = make_customer(username='other')

        cart = services.reassign_customer(self.cart.id, other_customer.id)

        self.assertEqual(cart.customer_id, other_customer.id)
        self.assertEqual(services.find_carts_by_customer(self.customer.id), [])

    def test_delete_open_cart(self):
        services.add_line_item(self.cart.id, self.product.id, 1)

        services.delete_cart(self.cart.id)

        self.assertFalse(Cart.objects.filter(id=self.cart.id).exists())
        self.assertFalse(LineItem.objects.filter(cart_id=self.cart.id).exists())


class PurchasedCartTestCase(TestCase):
    """Test cases for the frozen state of a purchased cart."""

    def setUp(self):
        self.customer = make_customer()
        self.product = make_product(price='20.00', units=10)
        self.cart = services.create_cart(self.customer.id)
        self.item = services.add_line_item(self.cart.id, self.product.id, 2)
        purchase(self.cart.id)
        self.open_cart = services.create_cart(self.customer.id)

    def assertCartUnchanged(self):
        self.cart.refresh_from_db()
        self.assertTrue(self.cart.purchased)
        self.assertEqual(self.cart.total, Decimal('40.00'))
        self.assertEqual(list(self.cart.items.values_list('id', flat=True)), [self.item.id])

    def test_add_refused(self):
        with self.assertRaises(CartAlreadyPurchased):
            services.add_line_item(self.cart.id, self.product.id, 1)
        self.assertCartUnchanged()

    def test_update_refused(self):
        with self.assertRaises(CartAlreadyPurchased):
            services.update_line_item(self.item.id, 1, self.product.id, self.cart.id)
        self.assertCartUnchanged()

    def test_move_out_refused(self):
        with self.assertRaises(CartAlreadyPurchased):
            services.update_line_item(self.item.id, 2, self.product.id, self.open_cart.id)
        self.assertCartUnchanged()

    def test_move_in_refused(self):
        item = services.add_line_item(self.open_cart.id, self.product.id, 1)

        with self.assertRaises(CartAlreadyPurchased):
            services.update_line_item(item.id, 1, self.product.id, self.cart.id)
        self.assertCartUnchanged()

    def test_remove_refused(self):
        with self.assertRaises(CartAlreadyPurchased):
            services.remove_line_item(self.item.id)
        self.assertCartUnchanged()

    def test_delete_refused(self):
        with self.assertRaises(CartAlreadyPurchased):
            services.delete_cart(self.cart.id)
        self.assertCartUnchanged()

    def test_reassign_refused(self):
        other_customer = make_customer(username='other')

        with self.assertRaises(CartAlreadyPurchased):
            services.reassign_customer(self.cart.id, other_customer.id)

        self.cart.refresh_from_db()
        self.assertEqual(self.cart.customer_id, self.customer.id)


class LockContentionTestCase(TestCase):
    """Test cases for mutations that lose a race for their rows."""

    def setUp(self):
        self.customer = make_customer()
        self.product = make_product(price='20.00', units=10)
        self.cart = services.create_cart(self.customer.id)
        self.item = services.add_line_item(self.cart.id, self.product.id, 1)
        self.other_cart = services.create_cart(self.customer.id)

    def move_after_lookup(self, destination, then_purchase=False):
        """
        Wrap get_line_item so the item changes carts (and the destination is
        optionally purchased) after the caller has read its current cart.
        """
        original = services.get_line_item

        def lookup(item_id):
            item = original(item_id)
            LineItem.objects.filter(id=item_id).update(cart=destination)
            Cart.objects.get(id=item.cart_id).recalculate_total()
            destination.recalculate_total()
            if then_purchase:
                purchase(destination.id)
            return item

        return patch('carts.services.get_line_item', side_effect=lookup)

    def test_update_after_item_moved_to_purchased_cart(self):
        """
        Test: An update racing a move into a purchased cart changes nothing.

        Given: An item read in open cart A, then moved to cart B and B purchased
        When: Updating the item to quantity 3 in cart A
        Then: ConcurrentUpdate; the item stays in B with quantity 1, B's total is kept
        """
        with self.move_after_lookup(self.other_cart, then_purchase=True):
            with self.assertRaises(ConcurrentUpdate):
                services.update_line_item(self.item.id, 3, self.product.id, self.cart.id)

        self.item.refresh_from_db()
        self.other_cart.refresh_from_db()
        self.assertEqual(self.item.cart_id, self.other_cart.id)
        self.assertEqual(self.item.quantity, 1)
        self.assertEqual(self.item.subtotal, Decimal('20.00'))
        self.assertTrue(self.other_cart.purchased)
        self.assertEqual(self.other_cart.total, Decimal('20.00'))
        self.assertEqual(self.other_cart.order.total, Decimal('20.00'))

    def test_remove_after_item_moved(self):
        with self.move_after_lookup(self.other_cart):
            with self.assertRaises(ConcurrentUpdate):
                services.remove_line_item(self.item.id)

        self.assertTrue(LineItem.objects.filter(id=self.item.id, cart=self.other_cart).exists())
        self.other_cart.refresh_from_db()
        self.assertEqual(self.other_cart.total, Decimal('20.00'))

    def test_lock_timeout_on_add(self):
        """
        Test: A lock wait that times out outside checkout is retryable.

        Given: The cart row lock cannot be acquired in time
        When: Adding a line item
        Then: LockTimeout naming the cart, and the cart is unchanged
        """
        timeout = OperationalError('canceling statement due to lock timeout')

        with patch('carts.services._lock_carts', side_effect=timeout):
            with self.assertRaises(LockTimeout) as context:
                services.add_line_item(self.cart.id, self.product.id, 2)

        self.assertEqual(context.exception.identifier, self.cart.id)
        self.assertEqual(context.exception.action, 'add line item')
        self.assertIsInstance(context.exception.__cause__, OperationalError)
        self.assertEqual(LineItem.objects.filter(cart=self.cart).count(), 1)
        self.cart.refresh_from_db()
        self.assertEqual(self.cart.total, Decimal('20.00'))

    def test_lock_timeout_on_every_cart_mutation(self):
        timeout = OperationalError('database is locked')
        other_customer = make_customer(username='other')
        mutations = (
            ('update line item', lambda: services.update_line_item(
                self.item.id, 2, self.product.id, self.other_cart.id)),
            ('remove line item', lambda: services.remove_line_item(self.item.id)),
            ('delete cart', lambda: services.delete_cart(self.cart.id)),
            ('reassign customer', lambda: services.reassign_customer(self.cart.id, other_customer.id)),
        )

        with patch('carts.services._lock_carts', side_effect=timeout):
            for action, mutate in mutations:
                with self.subTest(action=action):
                    with self.assertRaises(LockTimeout) as context:
                        mutate()
                    self.assertEqual(context.exception.action, action)

        self.item.refresh_from_db()
        self.assertEqual(self.item.cart_id, self.cart.id)
        self.assertEqual(self.item.quantity, 1)


class CartAPITestCase(APITestCase):
    """Test cases for cart endpoints."""

    def setUp(self):
        self.customer = make_customer('jdoe', 'secret')
        self.other = make_customer('other', 'secret')
        self.product = make_product(price='20.00', units=5)
        self.login('jdoe', 'secret')

    def login(self, username, password):
        token = base64.b64encode(f'{username}:{password}'.encode()).decode()
        self.client.credentials(HTTP_AUTHORIZATION=f'Basic {token}')

    def test_cart_flow(self):
        response = self.client.post('/api/carts/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        cart_id = response.data['id']

        response = self.client.post(f'/api/carts/{cart_id}/items/',
                                    {'product_id': self.product.id, 'quantity': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['subtotal'], '60.00')

        response = self.client.get(f'/api/carts/{cart_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], '60.00')
        self.assertFalse(response.data['purchased'])
        self.assertIsNone(response.data['order_id'])

        response = self.client.get('/api/carts/')
        self.assertEqual([c['id'] for c in response.data], [cart_id])

    def test_out_of_stock_conflict(self):
        cart = services.create_cart(self.customer.id)

        response = self.client.post(f'/api/carts/{cart.id}/items/',
                                    {'product_id': self.product.id, 'quantity': 6}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'OutOfStock')

    def test_purchased_cart_conflict(self):
        cart = services.create_cart(self.customer.id)
        item = services.add_line_item(cart.id, self.product.id, 1)
        purchase(cart.id)

        response = self.client.delete(f'/api/items/{item.id}/')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'CartAlreadyPurchased')

    def test_other_customers_cart_forbidden(self):
        cart = services.create_cart(self.other.id)

        response = self.client.get(f'/api/carts/{cart.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.post(f'/api/carts/{cart.id}/items/',
                                    {'product_id': self.product.id, 'quantity': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(LineItem.objects.filter(cart=cart).count(), 0)

    def test_lock_timeout_is_service_unavailable(self):
        cart = services.create_cart(self.customer.id)

        with patch('carts.services._lock_carts',
                   side_effect=OperationalError('canceling statement due to lock timeout')):
            response = self.client.post(f'/api/carts/{cart.id}/items/',
                                        {'product_id': self.product.id, 'quantity': 1}, format='json')

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['error'], 'LockTimeout')
        self.assertEqual(response['Retry-After'], '1')
        self.assertEqual(LineItem.objects.filter(cart=cart).count(), 0)

    def test_anonymous_request(self):
        self.client.credentials()

        response = self.client.post('/api/carts/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_missing_cart(self):
        response = self.client.get('/api/carts/99999/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
