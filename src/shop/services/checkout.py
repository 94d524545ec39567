"""
Order placement shared by the EFT order endpoint and the YoCo webhook.
"""
from decimal import Decimal, ROUND_HALF_UP
from logging import getLogger
from typing import List, Optional

from django.conf import settings
from django.db import transaction

from shop.constants.status import (
    ORDER_EVENT, ORDER_STATUS, PAYMENT_METHOD, PAYMENT_STATUS
)
from shop.exceptions import CreditError, ShopError
from shop.models import (
    CreditTransaction, Order, OrderItem, Product, SupplierOrder
)
from shop.services.pudo import get_locker_by_code
from shop.tasks.emails import send_order_confirmation

logger = getLogger(__name__)

CENTS = Decimal('0.01')


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def default_shipping_cost() -> Decimal:
    return money(settings.SHOP_DEFAULT_SHIPPING_COST)


def attribute_display_text(selected_attributes: dict) -> str:
    return ', '.join(
        f'{name}: {", ".join(value) if isinstance(value, list) else value}'
        for name, value in (selected_attributes or {}).items()
    )


def price_lines(items: List[dict]) -> List[dict]:
    """
    Price `[{product_id, quantity, selected_attributes?}]` from the live
    catalog. Inactive or unknown products raise ShopError.
    """
    product_ids = [item['product_id'] for item in items]
    products = Product.objects.active().in_bulk(product_ids)
    lines = []
    for item in items:
        product = products.get(item['product_id'])
        if product is None:
            raise ShopError(f'Product {item["product_id"]} is not available')
        selected = item.get('selected_attributes') or {}
        lines.append({
            'product': product,
            'product_name': product.name,
            'product_sku': product.sku,
            'product_image_url': product.main_image_url,
            'quantity': int(item['quantity']),
            'unit_price': money(product.current_price),
            'selected_attributes': selected,
            'attribute_display_text': attribute_display_text(selected),
        })
    return lines


def enrich_lines(items: List[dict]) -> List[dict]:
    """
    Lines paid for through the gateway keep the price the customer paid.
    Name, SKU and image come from the live product when it still exists.
    """
    product_ids = [item['product_id'] for item in items]
    products = Product.objects.in_bulk(product_ids)
    lines = []
    for item in items:
        product = products.get(item['product_id'])
        selected = item.get('selected_attributes') or {}
        lines.append({
            'product': product,
            'product_name': (
                product.name if product
                else item.get('product_name') or f'Product ID {item["product_id"]}'),
            'product_sku': product.sku if product else item.get('product_sku', ''),
            'product_image_url': (
                product.main_image_url if product
                else item.get('product_image_url', '')),
            'quantity': int(item['quantity']),
            'unit_price': money(item['unit_price']),
            'selected_attributes': selected,
            'attribute_display_text': (
                item.get('attribute_display_text')
                or attribute_display_text(selected)),
        })
    return lines


def calculate_totals(lines: List[dict], shipping_cost: Decimal = None,
                     credit: Decimal = Decimal('0')) -> dict:
    subtotal = sum(
        (line['unit_price'] * line['quantity'] for line in lines), Decimal('0'))
    if shipping_cost is None:
        shipping_cost = default_shipping_cost()
    vat_amount = money(
        (subtotal + shipping_cost) * Decimal(settings.SHOP_VAT_RATE))
    gross = subtotal + shipping_cost + vat_amount
    credit = min(money(credit), gross)
    return {
        'subtotal': money(subtotal),
        'shipping_cost': money(shipping_cost),
        'vat_amount': vat_amount,
        'credit_used': credit,
        'total_amount': money(gross - credit),
    }


def resolve_locker(locker_code: Optional[str]):
    if not locker_code:
        return None, {}
    locker = get_locker_by_code(locker_code)
    if locker is None:
        raise ShopError(f'Unknown or inactive PUDO locker: {locker_code}')
    return locker, locker.to_details()


@transaction.atomic
def place_order(lines: List[dict], customer: dict, user=None,
                locker_code: str = None, locker_details: dict = None,
                shipping_cost: Decimal = None, credit_to_use: Decimal = None,
                payment_method: str = PAYMENT_METHOD.eft,
                payment_status: str = PAYMENT_STATUS.pending,
                status: str = ORDER_STATUS.pending,
                event_type: str = ORDER_EVENT.order_created,
                history_notes: str = '', **order_fields) -> Order:
    """
    Write an order with its lines, status history and supplier orders.
    Credit is capped at the customer's balance and the order value. The
    confirmation email goes out once the transaction commits.
    """
    if not lines:
        raise ShopError('An order needs at least one item')

    locker, snapshot = resolve_locker(locker_code)
    if locker_details:
        snapshot = dict(snapshot, **locker_details)

    credit = Decimal('0')
    if credit_to_use and user is not None:
        credit = min(money(credit_to_use), user.available_credit)
    totals = calculate_totals(lines, shipping_cost, credit)

    order = Order.objects.create(
        user=user,
        customer_name=customer.get('name') or getattr(user, 'full_name_or_email', ''),
        customer_email=customer.get('email') or getattr(user, 'email', ''),
        customer_phone=customer.get('phone') or getattr(user, 'phone', ''),
        shipping_address=customer.get('address', ''),
        shipping_city=customer.get('city', ''),
        shipping_postal_code=customer.get('postal_code', ''),
        selected_locker=locker,
        locker_details=snapshot,
        payment_method=payment_method,
        payment_status=payment_status,
        status=status,
        **totals,
        **order_fields,
    )
    for line in lines:
        OrderItem.objects.create(
            order=order,
            product=line['product'],
            product_name=line['product_name'],
            product_sku=line['product_sku'] or '',
            product_image_url=line['product_image_url'] or '',
            quantity=line['quantity'],
            unit_price=line['unit_price'],
            selected_attributes=line['selected_attributes'],
            attribute_display_text=line['attribute_display_text'],
        )

    if totals['credit_used'] > 0:
        try:
            CreditTransaction.objects.use(
                user, totals['credit_used'], order=order,
                description=f'Credit applied to order {order.order_number}')
        except CreditError:
            logger.warning(
                f'Credit for order {order.order_number} exceeded the balance')
            raise

    order.record_history(event_type, notes=history_notes)
    SupplierOrder.objects.create_for_order(order)
    logger.info(
        f'Order {order.order_number} placed: {len(lines)} lines, '
        f'total R{order.total_amount}')

    transaction.on_commit(lambda: send_order_confirmation.delay(order.pk))
    return order
