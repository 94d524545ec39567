from decimal import Decimal

from django.db import models
from django.db.models import F, JSONField, Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from model_utils.models import TimeStampedModel

from shop.constants.status import PROMOTION_TYPE


class PromotionQuerySet(models.QuerySet):
    def running(self, at=None):
        at = at or timezone.now()
        return self.filter(is_active=True, start_date__lte=at, end_date__gte=at)

    def due_for_activation(self, at=None):
        """
        Inactive promotions whose window has opened since they were last
        saved. One switched off by hand inside its window stays off.
        """
        at = at or timezone.now()
        return self.filter(
            is_active=False, start_date__lte=at, end_date__gte=at,
            modified__lt=F('start_date'))

    def due_for_deactivation(self, at=None):
        at = at or timezone.now()
        return self.filter(is_active=True).filter(
            Q(end_date__lt=at) | Q(start_date__gt=at))


class Promotion(TimeStampedModel):
    name = models.CharField(_('promotion name'), max_length=255)
    description = models.TextField(blank=True, default='')
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    is_active = models.BooleanField(default=False)
    promotion_type = models.CharField(
        max_length=30, choices=PROMOTION_TYPE,
        default=PROMOTION_TYPE.percentage)
    discount_value = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True)
    minimum_order_value = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True)
    rules = JSONField(default=dict, blank=True)

    objects = PromotionQuerySet.as_manager()

    class Meta:
        verbose_name = _('promotion')
        ordering = ('-start_date', )

    def __str__(self):
        return self.name

    @property
    def is_running(self) -> bool:
        now = timezone.now()
        return self.is_active and self.start_date <= now <= self.end_date


class ProductPromotion(TimeStampedModel):
    product = models.ForeignKey(
        'shop.Product', on_delete=models.CASCADE, related_name='promotions',
        verbose_name=_('product'))
    promotion = models.ForeignKey(
        Promotion, on_delete=models.CASCADE, related_name='products',
        verbose_name=_('promotion'))
    discount_override = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True)
    promotional_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True)

    class Meta:
        verbose_name = _('product promotion')
        unique_together = ('product', 'promotion', )

    def __str__(self):
        return f'{self.promotion} / {self.product}'

    @property
    def effective_price(self) -> Decimal:
        """ Price a customer pays for the product under this promotion. """
        if self.promotional_price is not None:
            return self.promotional_price
        base = self.product.current_price
        discount = self.discount_override
        if discount is None:
            discount = self.promotion.discount_value
        if discount is None:
            return base
        if self.promotion.promotion_type == PROMOTION_TYPE.fixed_amount:
            return max(base - discount, Decimal('0'))
        if self.promotion.promotion_type == PROMOTION_TYPE.percentage:
            return (base * (Decimal('100') - discount) / Decimal('100')).quantize(
                Decimal('0.01'))
        return base
