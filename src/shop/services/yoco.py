"""
YoCo card payments: hosted checkout creation and webhook handling.

Webhooks are signed the Svix way: HMAC-SHA256 over
`{webhook-id}.{webhook-timestamp}.{raw body}` keyed with the base64 part of
the `whsec_` secret, sent base64 encoded as `v1,<signature>` entries.
"""
import base64
import binascii
import hashlib
import hmac
import json
import time
import uuid
from decimal import Decimal, ROUND_HALF_UP
from logging import getLogger
from typing import List, Tuple

import requests
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction

from shop.constants.status import (
    ORDER_EVENT, ORDER_STATUS, PAYMENT_METHOD, PAYMENT_STATUS
)
from shop.exceptions import YocoError
from shop.models import Order
from shop.services.checkout import (
    calculate_totals, enrich_lines, money, place_order, price_lines,
    resolve_locker
)
from shop.services.pudo import get_locker_by_code

logger = getLogger(__name__)

SECRET_PREFIX = 'whsec_'
SIGNATURE_VERSION = 'v1,'
CHECKOUT_TIMEOUT = 30


class YOCO_EVENT:
    payment_succeeded = 'payment.succeeded'
    payment_failed = 'payment.failed'
    payment_refunded = 'payment.refunded'


def calculate_transaction_fee(amount_cents: int) -> dict:
    """ YoCo charges 2.95% plus R2.00 per card transaction. """
    percentage = Decimal(settings.YOCO_FEE_PERCENTAGE)
    fee_cents = (Decimal(amount_cents) * percentage / Decimal('100')).quantize(
        Decimal('1'), rounding=ROUND_HALF_UP) + settings.YOCO_FEE_FIXED_CENTS
    return {
        'fee_amount': money(fee_cents / Decimal('100')),
        'fee_percentage': percentage,
    }


def is_valid_timestamp(timestamp: str, now: float = None) -> bool:
    try:
        sent_at = int(timestamp)
    except (TypeError, ValueError):
        return False
    now = time.time() if now is None else now
    return abs(now - sent_at) <= settings.YOCO_WEBHOOK_TOLERANCE


def _secret_key(secret: str) -> bytes:
    if secret.startswith(SECRET_PREFIX):
        secret = secret[len(SECRET_PREFIX):]
    return base64.b64decode(secret)


def compute_signature(webhook_id: str, timestamp: str, body: bytes,
                      secret: str = None) -> str:
    secret = settings.YOCO_WEBHOOK_SECRET if secret is None else secret
    signed_content = f'{webhook_id}.{timestamp}.'.encode() + body
    digest = hmac.new(
        _secret_key(secret), signed_content, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def _header_signatures(header: str) -> List[str]:
    signatures = []
    for entry in header.split(' '):
        if entry.startswith(SIGNATURE_VERSION):
            entry = entry[len(SIGNATURE_VERSION):]
        if entry:
            signatures.append(entry)
    return signatures


def verify_webhook(headers, body: bytes):
    """
    Raise YocoError carrying the HTTP status to answer with when the
    request isn't a genuine, fresh YoCo webhook.
    """
    webhook_id = headers.get('webhook-id')
    timestamp = headers.get('webhook-timestamp')
    signature = headers.get('webhook-signature')
    if not (webhook_id and timestamp and signature):
        raise YocoError('Missing webhook headers', status_code=400)
    if not is_valid_timestamp(timestamp):
        raise YocoError('Invalid timestamp', status_code=400)
    if not settings.YOCO_WEBHOOK_SECRET:
        logger.error('YOCO_WEBHOOK_SECRET is not configured')
        raise YocoError('Webhook secret not configured', status_code=500)

    try:
        expected = compute_signature(webhook_id, timestamp, body)
    except (binascii.Error, ValueError):
        logger.error('YOCO_WEBHOOK_SECRET is not valid base64')
        raise YocoError('Webhook secret not configured', status_code=500)

    if not any(
        hmac.compare_digest(expected.encode(), candidate.encode())
        for candidate in _header_signatures(signature)
    ):
        raise YocoError('Invalid signature', status_code=403)


def create_checkout(amount_cents: int, metadata: dict, success_url: str,
                    cancel_url: str, failure_url: str,
                    currency: str = 'ZAR', line_items: list = None) -> dict:
    if not settings.YOCO_SECRET_KEY:
        raise YocoError('YoCo secret key not configured', status_code=500)

    data = {
        'amount': amount_cents,
        'currency': currency,
        'successUrl': success_url,
        'cancelUrl': cancel_url,
        'failureUrl': failure_url,
        'metadata': metadata,
    }
    if line_items:
        data['lineItems'] = line_items
    try:
        res = requests.post(
            f'{settings.YOCO_API_URL}/checkouts',
            json=data,
            headers={
                'Authorization': f'Bearer {settings.YOCO_SECRET_KEY}',
                'Idempotency-Key': str(uuid.uuid4()),
            },
            timeout=CHECKOUT_TIMEOUT,
        )
    except requests.exceptions.RequestException as e:
        logger.error(f'YoCo checkout request failed: {e}')
        raise YocoError(f'YoCo API error: {e}', status_code=502)

    if not res.ok:
        logger.error(f'YoCo checkout failed ({res.status_code}): {res.text}')
        raise YocoError(
            f'YoCo checkout failed with status {res.status_code}',
            status_code=502, payload=res.text)
    return res.json()


def parse_cart_data(metadata: dict) -> dict:
    try:
        cart = json.loads(metadata.get('cartData') or '')
    except (TypeError, ValueError):
        raise YocoError('Invalid cart data in payment metadata', status_code=400)
    if not isinstance(cart, dict):
        raise YocoError('Invalid cart data in payment metadata', status_code=400)
    return cart


def cart_items(cart: dict) -> List[dict]:
    raw_items = cart.get('items') or cart.get('orderItems') or []
    items = []
    for raw in raw_items:
        try:
            items.append({
                'product_id': int(raw['productId']),
                'quantity': int(raw['quantity']),
                'unit_price': Decimal(str(raw['unitPrice'])),
                'product_name': raw.get('productName', ''),
                'product_sku': raw.get('productSku', ''),
                'selected_attributes': raw.get('selectedAttributes') or {},
                'attribute_display_text': raw.get('attributeDisplayText', ''),
            })
        except (KeyError, TypeError, ValueError, ArithmeticError):
            raise YocoError('Invalid cart item in payment metadata', status_code=400)
    if not items:
        raise YocoError('Cart data has no items', status_code=400)
    return items


def _customer(metadata: dict):
    customer_id = metadata.get('customerId')
    if not customer_id:
        return None
    try:
        return get_user_model().objects.filter(pk=int(customer_id)).first()
    except (TypeError, ValueError):
        return None


@transaction.atomic
def handle_payment_succeeded(payment: dict) -> Tuple[Order, bool]:
    """
    Create the paid order described by a `payment.succeeded` payload.
    Returns `(order, created)`; a checkout that already produced an order
    returns that order untouched.
    """
    metadata = payment.get('metadata') or {}
    checkout_id = metadata.get('checkoutId') or metadata.get('tempCheckoutId')
    email = metadata.get('customerEmail')
    if not checkout_id:
        raise YocoError('Missing checkout id in payment metadata', status_code=400)
    if not email:
        raise YocoError('Missing customer email in payment metadata', status_code=400)
    try:
        validate_email(email)
    except ValidationError:
        raise YocoError(
            f'Invalid customer email in payment metadata: {email}',
            status_code=400)

    existing = Order.objects.select_for_update().filter(
        yoco_checkout_id=checkout_id).first()
    if existing is not None:
        logger.info(f'Checkout {checkout_id} already produced order {existing.pk}')
        return existing, False

    cart = parse_cart_data(metadata)
    lines = enrich_lines(cart_items(cart))
    address = cart.get('shippingAddress') or {}
    locker = cart.get('lockerDetails') or {}
    locker_code = locker.get('code') or None
    if locker_code and get_locker_by_code(locker_code) is None:
        logger.warning(f'Paid order references unknown locker {locker_code}')
        locker_code = None
    fees = calculate_transaction_fee(int(payment.get('amount') or 0))
    shipping_cost = cart.get('shippingCost')
    shipping_cost = money(shipping_cost) if isinstance(shipping_cost, (int, float)) \
        else None

    order = place_order(
        lines,
        customer={
            'name': metadata.get('customerFullName') or cart.get('customerName'),
            'email': email,
            'phone': metadata.get('customerPhone') or cart.get('customerPhone'),
            'address': ', '.join(filter(None, (
                address.get('addressLine1'), address.get('addressLine2')))),
            'city': address.get('city', ''),
            'postal_code': address.get('postalCode', ''),
        },
        user=_customer(metadata),
        locker_code=locker_code,
        locker_details=locker,
        shipping_cost=shipping_cost,
        payment_method=PAYMENT_METHOD.card,
        payment_status=PAYMENT_STATUS.payment_received,
        status=ORDER_STATUS.processing,
        event_type=ORDER_EVENT.order_created_after_payment,
        history_notes=(
            f'Order created after successful card payment. Payment ID: '
            f'{payment.get("id")}. Transaction fee: R{fees["fee_amount"]} '
            f'({fees["fee_percentage"]}%)'),
        shipping_method=cart.get('shippingMethod') or 'pudo',
        yoco_checkout_id=checkout_id,
        yoco_payment_id=payment.get('id') or '',
        transaction_fee_amount=fees['fee_amount'],
        transaction_fee_percentage=fees['fee_percentage'],
    )
    logger.info(
        f'Created order {order.order_number} from YoCo payment {payment.get("id")}')
    return order, True


def checkout_metadata(checkout_id: str, user, cart: dict) -> dict:
    return {
        'checkoutId': checkout_id,
        'customerId': str(user.pk),
        'customerEmail': user.email,
        'customerFullName': user.get_full_name() or user.email,
        'customerPhone': cart.get('customerPhone') or user.phone,
        'cartData': json.dumps(cart, default=str),
    }


def start_checkout(user, items: List[dict], shipping: dict,
                   locker_code: str = None) -> dict:
    """
    Price the cart on the server and open a YoCo hosted checkout. The cart
    travels in the checkout metadata and comes back with the payment
    webhook, which is when the order is written.
    """
    lines = price_lines(items)
    locker_details = resolve_locker(locker_code)[1]
    totals = calculate_totals(lines)
    checkout_id = f'chk_{uuid.uuid4().hex}'
    cart = {
        'items': [
            {
                'productId': line['product'].pk,
                'productName': line['product_name'],
                'productSku': line['product_sku'],
                'quantity': line['quantity'],
                'unitPrice': float(line['unit_price']),
                'selectedAttributes': line['selected_attributes'],
                'attributeDisplayText': line['attribute_display_text'],
            }
            for line in lines
        ],
        'shippingCost': float(totals['shipping_cost']),
        'shippingMethod': 'pudo',
        'shippingAddress': {
            'addressLine1': shipping.get('address', ''),
            'city': shipping.get('city', ''),
            'postalCode': shipping.get('postal_code', ''),
        },
        'lockerDetails': locker_details,
        'customerName': shipping.get('name') or user.full_name_or_email,
        'customerPhone': shipping.get('phone') or user.phone,
    }
    amount_cents = int(totals['total_amount'] * 100)
    response = create_checkout(
        amount_cents,
        metadata=checkout_metadata(checkout_id, user, cart),
        success_url=f'{settings.SITE_URL}/payment-success?checkoutId={checkout_id}',
        cancel_url=f'{settings.SITE_URL}/cart',
        failure_url=f'{settings.SITE_URL}/payment-failed?checkoutId={checkout_id}',
        line_items=[
            {
                'displayName': line['product_name'],
                'quantity': line['quantity'],
                'pricingDetails': {'price': int(line['unit_price'] * 100)},
            }
            for line in lines
        ],
    )
    logger.info(
        f'Opened YoCo checkout {response.get("id")} for {checkout_id} '
        f'(R{totals["total_amount"]})')
    return {
        'checkout_id': checkout_id,
        'yoco_checkout_id': response.get('id'),
        'redirect_url': response.get('redirectUrl'),
        'amount': totals['total_amount'],
    }
