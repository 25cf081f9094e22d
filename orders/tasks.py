"""
Celery tasks for order processing.

Tasks:
    - send_order_confirmation: Notify the customer once a purchase has committed
    - generate_daily_order_report: Ledger statistics for one calendar day
"""
import logging
from datetime import timedelta

from celery import shared_task
from django.db.models import Sum, Count, Avg
from django.utils import timezone

from core.exceptions import NotFound

logger = logging.getLogger(__name__)


def _framed(title: str, lines) -> str:
    rule = '-' * 48
    return '\n'.join([rule, title, rule, *lines, rule])


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(ConnectionError,),
    retry_backoff=True
)
def send_order_confirmation(self, order_id: int):
    """
    Runs after the checkout transaction commits, so the order is final.

    Returns:
        Dict with the outcome; a missing order is reported, not retried.
    """
    from orders.services import get_order_summary

    try:
        summary = get_order_summary(order_id)
    except NotFound:
        logger.error(f"Order #{order_id} not found for confirmation")
        return {'status': 'error', 'message': f'Order {order_id} not found'}

    body = [
        f"Customer: {summary['customer_name']} (#{summary['customer_id']})",
        f"Cart: #{summary['cart_id']}",
        f"Placed: {summary['created_at']}",
    ]
    body.extend(
        f"  {item['quantity']} x {item['product_name']}: ${item['subtotal']}"
        for item in summary['items']
    )
    body.append(f"Total paid: ${summary['total']}")

    logger.info(_framed(f"Purchase confirmed - order #{summary['id']}", body))

    return {
        'status': 'success',
        'order_id': summary['id'],
        'message': f'Confirmation sent for order {order_id}'
    }


@shared_task
def generate_daily_order_report(day=None):
    """
    Count and revenue of the orders created on ``day`` (yesterday by default).

    Scheduled by Celery Beat, see CELERY_BEAT_SCHEDULE.
    """
    from orders.models import Order
    from orders.services import format_amount

    if day is None:
        day = timezone.localdate() - timedelta(days=1)

    stats = Order.objects.filter(created_at__date=day).aggregate(
        total_orders=Count('id'),
        customers=Count('cart__customer', distinct=True),
        total_revenue=Sum('total'),
        avg_order_value=Avg('total'),
    )
    stats['total_revenue'] = format_amount(stats['total_revenue'])
    stats['avg_order_value'] = format_amount(stats['avg_order_value'])
    stats['day'] = str(day)

    logger.info(_framed(f"Daily orders - {day}", [
        f"Orders: {stats['total_orders']}",
        f"Customers: {stats['customers']}",
        f"Revenue: ${stats['total_revenue']}",
        f"Average order: ${stats['avg_order_value']}",
    ]))

    return stats
