from decimal import Decimal

from django.db import models
from django.db.models import JSONField
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from django_fsm import FSMField, transition
from model_utils.fields import MonitorField
from model_utils.models import TimeStampedModel

from shop.constants.status import SHIPMENT_STATUS


class OrderShipmentQuerySet(models.QuerySet):
    def outstanding(self):
        return self.exclude(
            status__in=[SHIPMENT_STATUS.delivered, SHIPMENT_STATUS.cancelled])


class OrderShipment(TimeStampedModel):
    """ A parcel sent for part of an order, usually one per supplier. """
    STATUS_CHOICES = (
        (SHIPMENT_STATUS.pending, _('pending')),
        (SHIPMENT_STATUS.processing, _('processing')),
        (SHIPMENT_STATUS.shipped, _('shipped')),
        (SHIPMENT_STATUS.delivered, _('delivered')),
        (SHIPMENT_STATUS.cancelled, _('cancelled')),
    )

    order = models.ForeignKey(
        'shop.Order', on_delete=models.CASCADE, related_name='shipments',
        verbose_name=_('order'))
    supplier = models.ForeignKey(
        'shop.Supplier', on_delete=models.SET_NULL, null=True, blank=True,
        related_name='shipments', verbose_name=_('supplier'))
    status = FSMField(
        choices=STATUS_CHOICES, default=SHIPMENT_STATUS.pending,
        verbose_name=_('shipment status'))
    status_changed = MonitorField(monitor='status')
    cost = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0'))
    tracking_number = models.CharField(max_length=255, blank=True, default='')
    display_label = models.CharField(max_length=255, blank=True, default='')
    locker_code = models.CharField(max_length=64, blank=True, default='')
    items = JSONField(default=list, blank=True)
    estimated_delivery = models.DateField(null=True, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    objects = OrderShipmentQuerySet.as_manager()

    class Meta:
        verbose_name = _('order shipment')
        ordering = ('order', 'pk', )

    def __str__(self):
        return self.display_label or f'Shipment {self.pk} of {self.order_id}'

    @transition(
        field=status, source=SHIPMENT_STATUS.pending,
        target=SHIPMENT_STATUS.processing)
    def process(self):
        pass

    @transition(
        field=status,
        source=[SHIPMENT_STATUS.pending, SHIPMENT_STATUS.processing],
        target=SHIPMENT_STATUS.shipped)
    def ship(self, tracking_number: str = None):
        if tracking_number:
            self.tracking_number = tracking_number
        self.shipped_at = timezone.now()

    @transition(
        field=status, source=SHIPMENT_STATUS.shipped,
        target=SHIPMENT_STATUS.delivered)
    def deliver(self):
        self.delivered_at = timezone.now()

    @transition(
        field=status,
        source=[SHIPMENT_STATUS.pending, SHIPMENT_STATUS.processing],
        target=SHIPMENT_STATUS.cancelled)
    def cancel(self):
        pass

    def get_transition(self, status: str):
        return {
            SHIPMENT_STATUS.processing: self.process,
            SHIPMENT_STATUS.shipped: self.ship,
            SHIPMENT_STATUS.delivered: self.deliver,
            SHIPMENT_STATUS.cancelled: self.cancel,
        }[status]

    def transition_to(self, status: str, **kwargs):
        self.get_transition(status)(**kwargs)
