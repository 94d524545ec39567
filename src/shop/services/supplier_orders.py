from logging import getLogger

import requests
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from shop.constants.status import SUPPLIER_ORDER_STATUS, URL_VALIDATION_STATUS
from shop.exceptions import CreditError
from shop.models import SupplierOrder
from shop.tasks.emails import send_credit_notification

logger = getLogger(__name__)


def check_supplier_url(url: str) -> bool:
    """ A supplier URL is valid when a HEAD request answers 2xx or 3xx. """
    if not url:
        return False
    try:
        res = requests.head(
            url, allow_redirects=False,
            timeout=settings.SUPPLIER_URL_CHECK_TIMEOUT,
            headers={'User-Agent': settings.GEOCODER_USER_AGENT})
    except requests.exceptions.RequestException as e:
        logger.info(f'Supplier URL check failed for {url}: {e}')
        return False
    return 200 <= res.status_code < 400


def validate_supplier_url(supplier_order: SupplierOrder) -> SupplierOrder:
    valid = check_supplier_url(supplier_order.supplier_url)
    supplier_order.url_validation_status = (
        URL_VALIDATION_STATUS.valid if valid else URL_VALIDATION_STATUS.invalid)
    supplier_order.url_last_checked = timezone.now()
    supplier_order.save(update_fields=[
        'url_validation_status', 'url_last_checked', 'modified'])
    return supplier_order


def issue_credit(supplier_order: SupplierOrder):
    """
    Credit the customer and queue the notification email once the
    transaction commits.
    """
    credit = supplier_order.issue_credit()
    supplier_order.customer_notified = True
    supplier_order.save(update_fields=['customer_notified', 'modified'])
    transaction.on_commit(
        lambda: send_credit_notification.delay(credit.pk))
    logger.info(
        f'Issued R{credit.amount} credit for supplier order {supplier_order.pk}')
    return credit


@transaction.atomic
def change_status(supplier_order: SupplierOrder, status: str, notes: str = '',
                  supplier_order_number: str = None, expected_delivery=None):
    """
    Move a supplier order along its workflow. Entering `unavailable`
    credits the customer when no credit was issued for the item yet.
    Raises TransitionNotAllowed for illegal moves.
    """
    kwargs = {}
    if status == SUPPLIER_ORDER_STATUS.ordered:
        kwargs['supplier_order_number'] = supplier_order_number
    supplier_order.transition_to(status, **kwargs)
    if supplier_order_number:
        supplier_order.supplier_order_number = supplier_order_number
    if expected_delivery:
        supplier_order.expected_delivery = expected_delivery
    if notes:
        supplier_order.admin_notes = '\n'.join(
            filter(None, (supplier_order.admin_notes, notes)))
    supplier_order.save()

    credit = None
    if status == SUPPLIER_ORDER_STATUS.unavailable:
        try:
            credit = issue_credit(supplier_order)
        except CreditError as e:
            logger.warning(
                f'No credit issued for supplier order {supplier_order.pk}: {e}')
    return credit
