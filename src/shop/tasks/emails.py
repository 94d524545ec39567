from logging import getLogger

from celery import shared_task
from django.apps import apps
from django.conf import settings
from django.core.mail import send_mail

logger = getLogger(__name__)


def _order_lines(order) -> str:
    return '\n'.join(
        f'  {item.quantity} x {item.product_name} @ R{item.unit_price}'
        f' = R{item.total_price}'
        for item in order.items.all()
    )


def _locker_text(order) -> str:
    details = order.locker_details or {}
    if not details:
        return ''
    return (
        f'\nCollect from PUDO locker {details.get("code", "")}: '
        f'{details.get("name", "")}, {details.get("address", "")}\n')


@shared_task
def send_order_confirmation(order_pk: int):
    """
    Sent once an order is written, both for EFT orders and for card
    payments confirmed by the YoCo webhook. A copy goes to the shop admin.
    """
    OrderModelRef = apps.get_model('shop', 'Order')
    order = OrderModelRef.objects.get(pk=order_pk)
    subject = f'Order confirmation {order.order_number}'
    message = (
        f'Hi {order.customer_name},\n\n'
        f'Thank you for your order {order.order_number}.\n\n'
        f'{_order_lines(order)}\n\n'
        f'Subtotal: R{order.subtotal}\n'
        f'Shipping: R{order.shipping_cost}\n'
        f'Credit used: R{order.credit_used}\n'
        f'Total: R{order.total_amount}\n'
        f'{_locker_text(order)}\n'
        f'Track your order at {settings.SITE_URL}/orders/{order.pk}\n'
    )
    recipients = [order.customer_email]
    if settings.ADMIN_EMAIL:
        recipients.append(settings.ADMIN_EMAIL)
    send_mail(subject, message, settings.EMAIL_FROM, recipients)
    logger.info(f'Sent confirmation for order {order.order_number}')


@shared_task
def send_order_status_update(order_pk: int):
    OrderModelRef = apps.get_model('shop', 'Order')
    order = OrderModelRef.objects.get(pk=order_pk)
    message = (
        f'Hi {order.customer_name},\n\n'
        f'Your order {order.order_number} is now {order.status}.\n'
    )
    if order.tracking_number:
        message += f'Tracking number: {order.tracking_number}\n'
    send_mail(
        f'Order {order.order_number} {order.status}', message,
        settings.EMAIL_FROM, [order.customer_email])


@shared_task
def send_credit_notification(credit_transaction_pk: int):
    """ Tells a customer an item was unavailable and credit was issued. """
    CreditTransactionModelRef = apps.get_model('shop', 'CreditTransaction')
    credit = CreditTransactionModelRef.objects.select_related(
        'user', 'order', 'supplier_order').get(pk=credit_transaction_pk)
    product_name = credit.supplier_order.product_name \
        if credit.supplier_order else ''
    order_number = credit.order.order_number if credit.order else ''
    message = (
        f'Hi {credit.user.full_name_or_email},\n\n'
        f'Unfortunately "{product_name}" from order {order_number} is no '
        'longer available from our supplier.\n'
        f'We have added R{credit.amount} store credit to your account. It is '
        'applied automatically at your next checkout.\n\n'
        f'Available credit: R{credit.user.available_credit}\n'
    )
    send_mail(
        f'Store credit for order {order_number}', message,
        settings.EMAIL_FROM, [credit.user.email])
