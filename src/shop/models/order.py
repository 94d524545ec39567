import secrets
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import JSONField
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from django_fsm import FSMField, transition
from model_utils.fields import MonitorField
from model_utils.models import TimeStampedModel

from shop.constants.status import (
    ORDER_STATUS, PAYMENT_STATUS, PAYMENT_METHOD
)


def generate_order_number() -> str:
    return f"TMY-{timezone.localdate():%Y%m%d}-{secrets.token_hex(3).upper()}"


class OrderQuerySet(models.QuerySet):
    def for_tracking_number(self, tracking_number: str):
        return self.filter(
            models.Q(tracking_number=tracking_number) |
            models.Q(shipments__tracking_number=tracking_number)
        ).distinct()


class Order(TimeStampedModel):
    STATUS_CHOICES = (
        (ORDER_STATUS.pending, _('pending')),
        (ORDER_STATUS.confirmed, _('confirmed')),
        (ORDER_STATUS.processing, _('processing')),
        (ORDER_STATUS.shipped, _('shipped')),
        (ORDER_STATUS.delivered, _('delivered')),
        (ORDER_STATUS.cancelled, _('cancelled')),
    )
    PAYMENT_STATUS_CHOICES = (
        (PAYMENT_STATUS.pending, _('pending')),
        (PAYMENT_STATUS.paid, _('paid')),
        (PAYMENT_STATUS.payment_received, _('payment received')),
        (PAYMENT_STATUS.failed, _('failed')),
    )
    PAYMENT_METHOD_CHOICES = (
        (PAYMENT_METHOD.eft, _('EFT')),
        (PAYMENT_METHOD.card, _('card')),
    )

    order_number = models.CharField(
        _('order number'), max_length=32, unique=True,
        default=generate_order_number)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True,
        blank=True, related_name='orders', verbose_name=_('customer'))
    status = FSMField(
        choices=STATUS_CHOICES, default=ORDER_STATUS.pending,
        verbose_name=_('order status'))
    status_changed = MonitorField(monitor='status')
    payment_status = models.CharField(
        max_length=20, choices=PAYMENT_STATUS_CHOICES,
        default=PAYMENT_STATUS.pending)
    payment_method = models.CharField(
        max_length=10, choices=PAYMENT_METHOD_CHOICES,
        default=PAYMENT_METHOD.eft)

    customer_name = models.CharField(max_length=255)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=32, blank=True, default='')

    shipping_address = models.CharField(max_length=500, blank=True, default='')
    shipping_city = models.CharField(max_length=255, blank=True, default='')
    shipping_postal_code = models.CharField(
        max_length=15, blank=True, default='')
    shipping_method = models.CharField(max_length=50, default='pudo')
    selected_locker = models.ForeignKey(
        'shop.PudoLocker', on_delete=models.SET_NULL, null=True, blank=True,
        related_name='orders', verbose_name=_('pickup locker'))
    locker_details = JSONField(default=dict, blank=True)

    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    shipping_cost = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0'))
    vat_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0'))
    credit_used = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0'))
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)

    yoco_checkout_id = models.CharField(
        max_length=255, unique=True, null=True, blank=True)
    yoco_payment_id = models.CharField(max_length=255, blank=True, default='')
    transaction_fee_amount = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True)
    transaction_fee_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True)

    tracking_number = models.CharField(max_length=255, blank=True, default='')
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default='')

    objects = OrderQuerySet.as_manager()

    class Meta:
        verbose_name = _('order')
        ordering = ('-created', )

    def __str__(self):
        return self.order_number

    @property
    def count(self) -> int:
        return sum(item.quantity for item in self.items.all())

    # status transitions
    @transition(
        field=status, source=ORDER_STATUS.pending,
        target=ORDER_STATUS.confirmed)
    def confirm(self):
        pass

    @transition(
        field=status, source=[ORDER_STATUS.pending, ORDER_STATUS.confirmed],
        target=ORDER_STATUS.processing)
    def process(self):
        pass

    @transition(
        field=status,
        source=[ORDER_STATUS.confirmed, ORDER_STATUS.processing],
        target=ORDER_STATUS.shipped)
    def ship(self, tracking_number: str = None):
        if tracking_number:
            self.tracking_number = tracking_number
        self.shipped_at = timezone.now()

    @transition(
        field=status, source=ORDER_STATUS.shipped,
        target=ORDER_STATUS.delivered)
    def deliver(self):
        self.delivered_at = timezone.now()

    @transition(
        field=status,
        source=[
            ORDER_STATUS.pending, ORDER_STATUS.confirmed,
            ORDER_STATUS.processing],
        target=ORDER_STATUS.cancelled)
    def cancel(self):
        pass

    def get_transition(self, status: str):
        return {
            ORDER_STATUS.confirmed: self.confirm,
            ORDER_STATUS.processing: self.process,
            ORDER_STATUS.shipped: self.ship,
            ORDER_STATUS.delivered: self.deliver,
            ORDER_STATUS.cancelled: self.cancel,
        }[status]

    def transition_to(self, status: str, **kwargs):
        """
        Run the transition that leads to `status`. Raises
        TransitionNotAllowed when the current status can't reach it.
        """
        self.get_transition(status)(**kwargs)

    def mark_payment_received(self):
        self.payment_status = PAYMENT_STATUS.payment_received
        if self.status != ORDER_STATUS.processing:
            self.process()

    def record_history(self, event_type: str, changed_by=None, notes: str = '',
                       previous_status: str = None,
                       previous_payment_status: str = None):
        return self.history.create(
            status=self.status,
            payment_status=self.payment_status,
            previous_status=previous_status,
            previous_payment_status=previous_payment_status,
            changed_by=changed_by,
            event_type=event_type,
            notes=notes or '',
            tracking_number=self.tracking_number,
        )


class OrderItem(TimeStampedModel):
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE,
        related_name='items', verbose_name=_('order'))
    product = models.ForeignKey(
        'shop.Product', on_delete=models.SET_NULL, null=True, blank=True,
        related_name='order_items', verbose_name=_('product'))
    product_name = models.CharField(max_length=255)
    product_sku = models.CharField(max_length=100, blank=True, default='')
    product_image_url = models.CharField(
        max_length=1000, blank=True, default='')
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    total_price = models.DecimalField(max_digits=10, decimal_places=2)
    selected_attributes = JSONField(default=dict, blank=True)
    attribute_display_text = models.CharField(
        max_length=500, blank=True, default='')

    class Meta:
        verbose_name = _('order item')
        ordering = ('order', 'pk', )

    def __str__(self):
        return f'{self.quantity} x {self.product_name}'

    def save(self, *args, **kwargs):
        self.total_price = self.unit_price * self.quantity
        super().save(*args, **kwargs)


class OrderStatusHistory(TimeStampedModel):
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE, related_name='history',
        verbose_name=_('order'))
    status = models.CharField(max_length=20)
    payment_status = models.CharField(max_length=20, blank=True, default='')
    previous_status = models.CharField(max_length=20, null=True, blank=True)
    previous_payment_status = models.CharField(
        max_length=20, null=True, blank=True)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True,
        blank=True, related_name='+')
    event_type = models.CharField(max_length=50)
    notes = models.TextField(blank=True, default='')
    tracking_number = models.CharField(max_length=255, blank=True, default='')

    class Meta:
        verbose_name = _('order status history')
        verbose_name_plural = _('order status history')
        ordering = ('created', 'pk', )

    def __str__(self):
        return f'{self.order_id}: {self.previous_status} -> {self.status}'
