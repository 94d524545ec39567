from decimal import Decimal

from django.db import models
from django.db.models import JSONField
from django.utils.translation import gettext_lazy as _
from model_utils.models import TimeStampedModel

from shop.constants.status import ATTRIBUTE_TYPE


class Attribute(TimeStampedModel):
    name = models.CharField(_('name'), max_length=100, unique=True)
    display_name = models.CharField(_('display name'), max_length=255)
    description = models.TextField(blank=True, default='')
    attribute_type = models.CharField(
        max_length=20, choices=ATTRIBUTE_TYPE, default=ATTRIBUTE_TYPE.select)
    validation_rules = JSONField(default=dict, blank=True)
    is_required = models.BooleanField(default=False)
    is_filterable = models.BooleanField(default=False)
    is_comparable = models.BooleanField(default=False)
    is_swatch = models.BooleanField(default=False)
    display_in_product_summary = models.BooleanField(default=False)
    sort_order = models.IntegerField(default=0)

    class Meta:
        verbose_name = _('attribute')
        ordering = ('sort_order', 'display_name', )

    def __str__(self):
        return self.display_name or self.name


class AttributeOption(TimeStampedModel):
    attribute = models.ForeignKey(
        Attribute, on_delete=models.CASCADE, related_name='options',
        verbose_name=_('attribute'))
    value = models.CharField(_('value'), max_length=255)
    display_value = models.CharField(
        _('display value'), max_length=255, blank=True)
    metadata = JSONField(default=dict, blank=True)
    sort_order = models.IntegerField(default=0)

    class Meta:
        verbose_name = _('attribute option')
        unique_together = ('attribute', 'value', )
        ordering = ('attribute', 'sort_order', 'pk', )

    def __str__(self):
        return f'{self.attribute.name}: {self.display_value}'

    def save(self, *args, **kwargs):
        if not self.display_value:
            self.display_value = self.value
        super().save(*args, **kwargs)


class ProductAttribute(TimeStampedModel):
    product = models.ForeignKey(
        'shop.Product', on_delete=models.CASCADE, related_name='attributes',
        verbose_name=_('product'))
    attribute = models.ForeignKey(
        Attribute, on_delete=models.CASCADE, related_name='product_attributes',
        verbose_name=_('attribute'))
    override_display_name = models.CharField(
        max_length=255, blank=True, default='')
    override_description = models.TextField(blank=True, default='')
    is_required = models.BooleanField(default=False)
    selected_options = JSONField(default=list, blank=True)
    text_value = models.TextField(blank=True, default='')
    # Per-option pricing is not supported; kept at zero for clients that read it
    price_adjustment = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0'))
    sort_order = models.IntegerField(default=0)

    class Meta:
        verbose_name = _('product attribute')
        unique_together = ('product', 'attribute', )
        ordering = ('product', 'sort_order', 'pk', )

    def __str__(self):
        return f'{self.product_id}:{self.attribute.name}'

    @property
    def display_name(self) -> str:
        return self.override_display_name or self.attribute.display_name
