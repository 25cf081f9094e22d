"""
Tests for checkout and the order ledger.

Test Cases:
1. Purchase records an order and deducts stock
2. A cart is purchased at most once
3. Insufficient stock at checkout rolls everything back
4. Orders are immutable snapshots
5. Ledger queries by customer and inclusive date range
6. Concurrent purchases never oversell
"""
import base64
import threading
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.db import connection, OperationalError
from django.test import TestCase, TransactionTestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from accounts import services as accounts
from carts import services as carts
from carts.models import Cart
from catalog.models import Product, Category, Gender, Size
from core.exceptions import (
    SalesError,
    NotFound,
    OutOfStock,
    AlreadyPurchased,
    CartNotPurchased,
    CheckoutUnavailable,
    InvalidArgument,
)
from orders import services
from orders.checkout import purchase
from orders.models import Order
from orders.tasks import send_order_confirmation, generate_daily_order_report


def make_customer(username='jdoe', password='secret', first_names='Jane', last_names='Doe'):
    return accounts.register_customer(
        username=username, password=password, first_names=first_names,
        last_names=last_names, document_type='CC',
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


class CheckoutTestCase(TestCase):
    """Test cases for the purchase transition."""

    def setUp(self):
        self.customer = make_customer()
        self.product = make_product(price='20.00', units=5)
        self.cart = carts.create_cart(self.customer.id)

    def test_purchase(self):
        """
        Test: A purchase records the order and deducts stock.

        Given: Product at $20 with 5 units, cart holding 3 units
        When: The cart is purchased
        Then: 2 units remain, the order total is $60 under the customer's full name
        """
        carts.add_line_item(self.cart.id, self.product.id, 3)
        self.cart.refresh_from_db()
        self.assertEqual(self.cart.total, Decimal('60.00'))

        order = purchase(self.cart.id)

        self.product.refresh_from_db()
        self.cart.refresh_from_db()
        self.assertEqual(self.product.available_units, 2)
        self.assertTrue(self.cart.purchased)
        self.assertEqual(order.cart_id, self.cart.id)
        self.assertEqual(order.total, Decimal('60.00'))
        self.assertEqual(order.customer_name, 'Jane Doe')
        self.assertEqual(order.item_count, 1)

    def test_purchase_twice(self):
        """
        Test: The second purchase of a cart is rejected.

        Given: A cart holding 3 of 5 units, already purchased
        When: Purchasing it again
        Then: AlreadyPurchased, stock deducted only once, one order
        """
        carts.add_line_item(self.cart.id, self.product.id, 3)
        purchase(self.cart.id)

        with self.assertRaises(AlreadyPurchased):
            purchase(self.cart.id)

        self.product.refresh_from_db()
        self.assertEqual(self.product.available_units, 2)
        self.assertEqual(Order.objects.filter(cart=self.cart).count(), 1)

    def test_purchase_exact_stock(self):
        carts.add_line_item(self.cart.id, self.product.id, 5)

        purchase(self.cart.id)

        self.product.refresh_from_db()
        self.assertEqual(self.product.available_units, 0)

    def test_purchase_unknown_cart(self):
        with self.assertRaises(NotFound):
            purchase(99999)

    def test_purchase_empty_cart(self):
        order = purchase(self.cart.id)

        self.assertEqual(order.total, Decimal('0.00'))
        self.assertEqual(order.item_count, 0)

    def test_stock_revalidated_at_checkout(self):
        """
        Test: Stock sold elsewhere after the add is caught at checkout.

        Given: Cart holding 3 units, stock then dropped to 1
        When: The cart is purchased
        Then: OutOfStock, cart open, no order, stock still 1
        """
        carts.add_line_item(self.cart.id, self.product.id, 3)
        Product.objects.filter(id=self.product.id).update(available_units=1)

        with self.assertRaises(OutOfStock):
            purchase(self.cart.id)

        self.cart.refresh_from_db()
        self.product.refresh_from_db()
        self.assertFalse(self.cart.purchased)
        self.assertFalse(Order.objects.filter(cart=self.cart).exists())
        self.assertEqual(self.product.available_units, 1)

    def test_no_partial_deduction(self):
        plentiful = make_product(name='Oxford', price='10.00', units=50)
        carts.add_line_item(self.cart.id, plentiful.id, 10)
        carts.add_line_item(self.cart.id, self.product.id, 5)
        Product.objects.filter(id=self.product.id).update(available_units=4)

        with self.assertRaises(OutOfStock):
            purchase(self.cart.id)

        plentiful.refresh_from_db()
        self.assertEqual(plentiful.available_units, 50)

    def test_repeated_product_demand_is_summed(self):
        carts.add_line_item(self.cart.id, self.product.id, 3)
        carts.add_line_item(self.cart.id, self.product.id, 3)

        with self.assertRaises(OutOfStock) as context:
            purchase(self.cart.id)

        self.assertEqual(context.exception.requested, 6)
        self.product.refresh_from_db()
        self.assertEqual(self.product.available_units, 5)

    def test_two_carts_same_product(self):
        """
        Test: Two carts each passing the add check cannot both be purchased.

        Given: Product with 5 units, two carts holding 3 units each
        When: Both carts are purchased one after the other
        Then: First succeeds, second raises OutOfStock, 2 units remain
        """
        other_cart = carts.create_cart(self.customer.id)
        carts.add_line_item(self.cart.id, self.product.id, 3)
        carts.add_line_item(other_cart.id, self.product.id, 3)

        purchase(self.cart.id)
        with self.assertRaises(OutOfStock):
            purchase(other_cart.id)

        self.product.refresh_from_db()
        other_cart.refresh_from_db()
        self.assertEqual(self.product.available_units, 2)
        self.assertFalse(other_cart.purchased)

    def test_order_exists_iff_purchased(self):
        other_cart = carts.create_cart(self.customer.id)
        carts.add_line_item(self.cart.id, self.product.id, 1)
        carts.add_line_item(other_cart.id, self.product.id, 1)
        purchase(self.cart.id)

        for cart in Cart.objects.all():
            with self.subTest(cart=cart.id):
                self.assertEqual(cart.purchased, Order.objects.filter(cart=cart).exists())

    def test_lock_timeout_is_transient(self):
        with patch('orders.checkout._purchase_locked', side_effect=OperationalError('database is locked')):
            with self.assertRaises(CheckoutUnavailable):
                purchase(self.cart.id)

        self.cart.refresh_from_db()
        self.assertFalse(self.cart.purchased)

    def test_confirmation_queued_after_commit(self):
        carts.add_line_item(self.cart.id, self.product.id, 1)

        with patch('orders.tasks.send_order_confirmation.delay') as delay:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                order = purchase(self.cart.id)

        self.assertEqual(len(callbacks), 1)
        delay.assert_called_once_with(order.id)

    def test_confirmation_failure_keeps_order(self):
        carts.add_line_item(self.cart.id, self.product.id, 1)

        with patch('orders.tasks.send_order_confirmation.delay', side_effect=ConnectionError('broker down')):
            with self.captureOnCommitCallbacks(execute=True):
                order = purchase(self.cart.id)

        self.assertTrue(Order.objects.filter(id=order.id).exists())


class OrderLedgerTestCase(TestCase):
    """Test cases for order snapshots and ledger queries."""

    def setUp(self):
        self.customer = make_customer()
        self.other = make_customer(username='other', first_names='John', last_names='Roe')
        self.product = make_product(price='20.00', units=50)

    def buy(self, customer, quantity=1):
        cart = carts.create_cart(customer.id)
        carts.add_line_item(cart.id, self.product.id, quantity)
        return purchase(cart.id)

    def test_record_order_for_open_cart(self):
        cart = carts.create_cart(self.customer.id)

        with self.assertRaises(CartNotPurchased):
            services.record_order(cart)
        self.assertFalse(Order.objects.exists())

    def test_order_is_immutable(self):
        order = self.buy(self.customer)
        order.total = Decimal('1.00')

        with self.assertRaises(ValueError):
            order.save()

        order.refresh_from_db()
        self.assertEqual(order.total, Decimal('20.00'))

    def test_customer_name_is_a_snapshot(self):
        order = self.buy(self.customer)

        accounts.update_customer(self.customer.id, first_names='Janet')

        order.refresh_from_db()
        self.assertEqual(order.customer_name, 'Jane Doe')

    def test_find_by_customer(self):
        first = self.buy(self.customer)
        second = self.buy(self.customer, 2)
        self.buy(self.other)

        orders = services.find_by_customer(self.customer.id)

        self.assertEqual({o.id for o in orders}, {first.id, second.id})
        self.assertEqual(services.find_by_customer(99999), [])

    def test_find_by_date_range_is_inclusive(self):
        today = timezone.localdate()
        recent = self.buy(self.customer)
        old = self.buy(self.other)
        Order.objects.filter(id=old.id).update(created_at=timezone.now() - timedelta(days=3))
        old_day = today - timedelta(days=3)

        self.assertEqual([o.id for o in services.find_by_date_range(today, today)], [recent.id])
        self.assertEqual([o.id for o in services.find_by_date_range(old_day, old_day)], [old.id])
        self.assertEqual([o.id for o in services.find_by_date_range(old_day, today)], [old.id, recent.id])
        self.assertEqual(services.find_by_date_range(old_day + timedelta(days=1), today - timedelta(days=1)), [])

    def test_find_by_date_range_reversed(self):
        today = timezone.localdate()

        with self.assertRaises(InvalidArgument):
            services.find_by_date_range(today, today - timedelta(days=1))

    def test_order_summary(self):
        order = self.buy(self.customer, 3)

        summary = services.get_order_summary(order.id)

        self.assertEqual(summary['customer_name'], 'Jane Doe')
        self.assertEqual(summary['total'], '60.00')
        self.assertEqual(summary['item_count'], 1)
        self.assertEqual(summary['items'][0]['quantity'], 3)
        self.assertEqual(summary['items'][0]['product_name'], 'Road Runner')

    def test_format_amount_fixes_scale(self):
        # SQLite aggregates come back as Decimal('40') or floats.
        cases = (
            (Decimal('40'), '40.00'),
            (40.0, '40.00'),
            (Decimal('26.666666'), '26.67'),
            (Decimal('0.005'), '0.01'),
            (None, '0.00'),
        )
        for value, expected in cases:
            with self.subTest(value=value):
                self.assertEqual(services.format_amount(value), expected)

    def test_get_missing_order(self):
        with self.assertRaises(NotFound):
            services.get_order(99999)


class OrderTaskTestCase(TestCase):
    """Test cases for Celery tasks, run synchronously."""

    def setUp(self):
        customer = make_customer()
        product = make_product(price='20.00', units=5)
        cart = carts.create_cart(customer.id)
        carts.add_line_item(cart.id, product.id, 2)
        self.order = purchase(cart.id)

    def test_send_order_confirmation(self):
        result = send_order_confirmation(self.order.id)

        self.assertEqual(result['status'], 'success')
        self.assertEqual(result['order_id'], self.order.id)

    def test_send_order_confirmation_missing_order(self):
        result = send_order_confirmation(99999)

        self.assertEqual(result['status'], 'error')

    def test_daily_report(self):
        report = generate_daily_order_report(day=timezone.localdate())

        self.assertEqual(report['total_orders'], 1)
        self.assertEqual(report['total_revenue'], '40.00')
        self.assertEqual(report['avg_order_value'], '40.00')

    def test_daily_report_defaults_to_yesterday(self):
        report = generate_daily_order_report()

        self.assertEqual(report['total_orders'], 0)
        self.assertEqual(report['day'], str(timezone.localdate() - timedelta(days=1)))


class ConcurrentCheckoutTestCase(TransactionTestCase):
    """
    Concurrent purchases against real row locks.
    Uses TransactionTestCase for proper multi-threading support.
    """

    def setUp(self):
        customer = make_customer()
        self.product = make_product(name='Limited Stock Product', price='50.00', units=10)
        self.carts = []
        for _ in range(2):
            cart = carts.create_cart(customer.id)
            carts.add_line_item(cart.id, self.product.id, 8)
            self.carts.append(cart)

    def test_concurrent_purchases_no_overselling(self):
        """
        Test: Concurrent purchases don't oversell stock.

        Given: 10 units in stock, two carts of 8 units each
        When: Both carts are purchased concurrently
        Then: At most one succeeds, stock is 2 or 10, never negative;
              the other is out of stock or told to retry, whatever the backend's locking
        """
        results = {}

        def buy(cart_id):
            try:
                purchase(cart_id)
                results[cart_id] = 'PURCHASED'
            except SalesError as e:
                results[cart_id] = e.__class__.__name__
            finally:
                connection.close()

        threads = [threading.Thread(target=buy, args=(cart.id,)) for cart in self.carts]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.product.refresh_from_db()
        purchased = sum(1 for r in results.values() if r == 'PURCHASED')

        self.assertLessEqual(purchased, 1)
        self.assertGreaterEqual(self.product.available_units, 0)
        self.assertEqual(self.product.available_units, 10 - 8 * purchased)
        self.assertEqual(Order.objects.count(), purchased)
        self.assertEqual(len(results), 2)
        for outcome in results.values():
            self.assertIn(outcome, ('PURCHASED', 'OutOfStock', 'CheckoutUnavailable'))


class OrderAPITestCase(APITestCase):
    """Test cases for checkout and ledger endpoints."""

    def setUp(self):
        self.customer = make_customer('jdoe', 'secret')
        self.other = make_customer('other', 'secret', 'John', 'Roe')
        accounts.register_administrator('admin', 'admin-pass')
        self.product = make_product(price='20.00', units=5)
        self.cart = carts.create_cart(self.customer.id)
        carts.add_line_item(self.cart.id, self.product.id, 3)

    def login(self, username, password, kind='customer'):
        token = base64.b64encode(f'{username}:{password}'.encode()).decode()
        self.client.credentials(HTTP_AUTHORIZATION=f'Basic {token}', HTTP_X_PRINCIPAL_KIND=kind)

    def test_purchase_endpoint(self):
        self.login('jdoe', 'secret')

        response = self.client.post(f'/api/carts/{self.cart.id}/purchase/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total'], '60.00')
        self.assertEqual(response.data['customer_name'], 'Jane Doe')

        response = self.client.post(f'/api/carts/{self.cart.id}/purchase/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'CartAlreadyPurchased')

        self.product.refresh_from_db()
        self.assertEqual(self.product.available_units, 2)

    def test_purchase_other_customers_cart(self):
        self.login('other', 'secret')

        response = self.client.post(f'/api/carts/{self.cart.id}/purchase/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.cart.refresh_from_db()
        self.assertFalse(self.cart.purchased)

    def test_purchase_out_of_stock(self):
        Product.objects.filter(id=self.product.id).update(available_units=2)
        self.login('jdoe', 'secret')

        response = self.client.post(f'/api/carts/{self.cart.id}/purchase/')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'OutOfStock')

    def test_customer_sees_only_own_orders(self):
        order = purchase(self.cart.id)
        other_cart = carts.create_cart(self.other.id)
        purchase(other_cart.id)
        self.login('jdoe', 'secret')

        response = self.client.get('/api/orders/', {'customer_id': self.other.id})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([o['id'] for o in response.data], [order.id])

    def test_order_date_range(self):
        order = purchase(self.cart.id)
        today = timezone.localdate().isoformat()
        self.login('admin', 'admin-pass', 'administrator')

        response = self.client.get('/api/orders/', {'start': today, 'end': today})
        self.assertEqual([o['id'] for o in response.data], [order.id])

        response = self.client.get('/api/orders/', {'start': today})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_order_detail(self):
        order = purchase(self.cart.id)

        self.login('other', 'secret')
        response = self.client.get(f'/api/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.login('jdoe', 'secret')
        response = self.client.get(f'/api/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'][0]['quantity'], 3)

    def test_stats_require_administrator(self):
        purchase(self.cart.id)

        self.login('jdoe', 'secret')
        response = self.client.get('/api/orders/stats/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.login('admin', 'admin-pass', 'administrator')
        response = self.client.get('/api/orders/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_orders'], 1)
        self.assertEqual(response.data['total_revenue'], '60.00')
        self.assertEqual(response.data['avg_order_value'], '60.00')
