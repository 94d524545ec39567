from decimal import Decimal

from django.conf import settings
from django.db import models, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from django_fsm import FSMField, transition
from model_utils.fields import MonitorField
from model_utils.models import TimeStampedModel

from shop.constants.status import (
    SUPPLIER_ORDER_STATUS, URL_VALIDATION_STATUS, CREDIT_TRANSACTION_TYPE
)
from shop.exceptions import CreditError


class SupplierOrderModelManager(models.Manager):
    def create_for_order(self, order):
        """ One supplier order per order line. """
        supplier_orders = []
        for item in order.items.select_related('product').all():
            product = item.product
            unit_cost = item.unit_price
            if product is not None and product.cost_price is not None:
                unit_cost = product.cost_price
            supplier_orders.append(self.model(
                order_item=item,
                order=order,
                product=product,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_cost=unit_cost,
                supplier_url=product.supplier_url if product else '',
            ))
        return self.bulk_create(supplier_orders)


class SupplierOrder(TimeStampedModel):
    STATUS_CHOICES = (
        (SUPPLIER_ORDER_STATUS.pending, _('pending')),
        (SUPPLIER_ORDER_STATUS.ordered, _('ordered')),
        (SUPPLIER_ORDER_STATUS.received, _('received')),
        (SUPPLIER_ORDER_STATUS.unavailable, _('unavailable')),
    )
    URL_VALIDATION_CHOICES = (
        (URL_VALIDATION_STATUS.unchecked, _('unchecked')),
        (URL_VALIDATION_STATUS.valid, _('valid')),
        (URL_VALIDATION_STATUS.invalid, _('invalid')),
    )

    order_item = models.OneToOneField(
        'shop.OrderItem', on_delete=models.CASCADE,
        related_name='supplier_order', verbose_name=_('order item'))
    order = models.ForeignKey(
        'shop.Order', on_delete=models.CASCADE,
        related_name='supplier_orders', verbose_name=_('order'))
    product = models.ForeignKey(
        'shop.Product', on_delete=models.SET_NULL, null=True, blank=True,
        related_name='supplier_orders', verbose_name=_('product'))
    product_name = models.CharField(max_length=255, blank=True, default='')

    status = FSMField(
        choices=STATUS_CHOICES, default=SUPPLIER_ORDER_STATUS.pending,
        verbose_name=_('supplier status'))
    status_changed = MonitorField(monitor='status')
    supplier_order_number = models.CharField(
        max_length=255, blank=True, default='')
    supplier_order_date = models.DateTimeField(null=True, blank=True)
    expected_delivery = models.DateField(null=True, blank=True)

    unit_cost = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0'))
    quantity = models.PositiveIntegerField(default=1)

    supplier_url = models.URLField(max_length=1000, blank=True, default='')
    url_validation_status = models.CharField(
        max_length=20, choices=URL_VALIDATION_CHOICES,
        default=URL_VALIDATION_STATUS.unchecked)
    url_last_checked = models.DateTimeField(null=True, blank=True)

    admin_notes = models.TextField(blank=True, default='')
    customer_notified = models.BooleanField(default=False)

    objects = SupplierOrderModelManager()

    class Meta:
        verbose_name = _('supplier order')
        ordering = ('-created', )

    def __str__(self):
        return f'{self.order_id}/{self.order_item_id} ({self.status})'

    @property
    def credit_amount(self) -> Decimal:
        return self.unit_cost * self.quantity

    @property
    def has_credit(self) -> bool:
        return self.credit_transactions.filter(
            transaction_type=CREDIT_TRANSACTION_TYPE.earned).exists()

    @transition(
        field=status, source=SUPPLIER_ORDER_STATUS.pending,
        target=SUPPLIER_ORDER_STATUS.ordered)
    def mark_ordered(self, supplier_order_number: str = None):
        if supplier_order_number:
            self.supplier_order_number = supplier_order_number
        self.supplier_order_date = timezone.now()

    @transition(
        field=status, source=SUPPLIER_ORDER_STATUS.ordered,
        target=SUPPLIER_ORDER_STATUS.received)
    def mark_received(self):
        pass

    @transition(
        field=status,
        source=[SUPPLIER_ORDER_STATUS.pending, SUPPLIER_ORDER_STATUS.ordered],
        target=SUPPLIER_ORDER_STATUS.unavailable)
    def mark_unavailable(self):
        pass

    @transition(
        field=status, source=SUPPLIER_ORDER_STATUS.unavailable,
        target=SUPPLIER_ORDER_STATUS.pending)
    def reset(self):
        pass

    def get_transition(self, status: str):
        return {
            SUPPLIER_ORDER_STATUS.ordered: self.mark_ordered,
            SUPPLIER_ORDER_STATUS.received: self.mark_received,
            SUPPLIER_ORDER_STATUS.unavailable: self.mark_unavailable,
            SUPPLIER_ORDER_STATUS.pending: self.reset,
        }[status]

    def transition_to(self, status: str, **kwargs):
        self.get_transition(status)(**kwargs)

    @transaction.atomic
    def issue_credit(self) -> 'CreditTransaction':
        """
        Credit the customer for an item the supplier can't deliver.
        Each supplier order earns credit at most once.
        """
        if self.status != SUPPLIER_ORDER_STATUS.unavailable:
            raise CreditError(
                'Credit can only be generated for unavailable items.')
        # Lock the row so concurrent requests can't both pass the check
        SupplierOrder.objects.select_for_update().get(pk=self.pk)
        if self.has_credit:
            raise CreditError('Credit was already generated for this item.')
        user = self.order.user
        if user is None:
            raise CreditError('Order has no customer account to credit.')
        return CreditTransaction.objects.earn(
            user, self.credit_amount, order=self.order, supplier_order=self,
            description=(
                f'Credit for unavailable item: {self.product_name} '
                f'(order {self.order.order_number})'),
        )


class CustomerCredit(TimeStampedModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE,
        related_name='credit', verbose_name=_('customer'))
    total_credit_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0'))
    available_credit_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0'))

    class Meta:
        verbose_name = _('customer credit')

    def __str__(self):
        return f'{self.user}: R{self.available_credit_amount}'


class CreditTransactionModelManager(models.Manager):
    def earn(self, user, amount: Decimal, **kwargs):
        credit, created = CustomerCredit.objects.get_or_create(user=user)
        CustomerCredit.objects.filter(pk=credit.pk).update(
            total_credit_amount=F('total_credit_amount') + amount,
            available_credit_amount=F('available_credit_amount') + amount,
        )
        return self.create(
            user=user, amount=amount,
            transaction_type=CREDIT_TRANSACTION_TYPE.earned, **kwargs)

    def use(self, user, amount: Decimal, **kwargs):
        credit, created = CustomerCredit.objects.select_for_update().get_or_create(
            user=user)
        if amount > credit.available_credit_amount:
            raise CreditError('Insufficient credit balance.')
        CustomerCredit.objects.filter(pk=credit.pk).update(
            available_credit_amount=F('available_credit_amount') - amount,
        )
        return self.create(
            user=user, amount=amount,
            transaction_type=CREDIT_TRANSACTION_TYPE.used, **kwargs)


class CreditTransaction(TimeStampedModel):
    TRANSACTION_TYPE_CHOICES = (
        (CREDIT_TRANSACTION_TYPE.earned, _('earned')),
        (CREDIT_TRANSACTION_TYPE.used, _('used')),
        (CREDIT_TRANSACTION_TYPE.refund, _('refund')),
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE,
        related_name='credit_transactions', verbose_name=_('customer'))
    order = models.ForeignKey(
        'shop.Order', on_delete=models.SET_NULL, null=True, blank=True,
        related_name='credit_transactions')
    supplier_order = models.ForeignKey(
        SupplierOrder, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='credit_transactions')
    transaction_type = models.CharField(
        max_length=10, choices=TRANSACTION_TYPE_CHOICES)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    description = models.TextField(blank=True, default='')

    objects = CreditTransactionModelManager()

    class Meta:
        verbose_name = _('credit transaction')
        ordering = ('-created', )

    def __str__(self):
        return f'{self.transaction_type} R{self.amount} ({self.user})'
