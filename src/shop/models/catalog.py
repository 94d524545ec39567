from decimal import Decimal
from typing import Optional

from django.core.validators import MinValueValidator
from django.db import models, transaction
from django.db.models import JSONField
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from model_utils.models import TimeStampedModel
from mptt.models import MPTTModel, TreeForeignKey
from taggit.managers import TaggableManager

from shop.models.base import AuthStampedModel
from shop.utils.slug import unique_slugify


PRICE_VALIDATORS = [MinValueValidator(Decimal('0'))]


class Category(MPTTModel, TimeStampedModel):
    """ Product categories """
    name = models.CharField(max_length=255)
    slug = models.SlugField(unique=True, blank=True, max_length=255)
    description = models.TextField(blank=True, default='')
    image_url = models.URLField(max_length=500, blank=True, default='')
    icon = models.CharField(max_length=64, blank=True, default='')
    parent = TreeForeignKey(
        'self', on_delete=models.CASCADE,
        null=True, blank=True,
        related_name="children")
    is_active = models.BooleanField(default=True)
    display_order = models.IntegerField(default=0)

    class MPTTMeta:
        order_insertion_by = ['name']

    class Meta:
        verbose_name = _("category")
        verbose_name_plural = _("categories")

    def __str__(self):
        return f"{self.name}"

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slugify(Category, self.name, exclude_pk=self.pk)
        super().save(*args, **kwargs)


class Supplier(TimeStampedModel):
    name = models.CharField(_('name'), max_length=255)
    email = models.EmailField(blank=True, default='')
    phone = models.CharField(max_length=32, blank=True, default='')
    contact_name = models.CharField(max_length=255, blank=True, default='')
    website = models.URLField(max_length=500, blank=True, default='')
    notes = models.TextField(blank=True, default='')
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = _('supplier')
        ordering = ('name', )

    def __str__(self):
        return self.name


class ProductQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def in_category(self, category: Category):
        return self.filter(
            category__in=category.get_descendants(include_self=True))


class Product(TimeStampedModel, AuthStampedModel):
    name = models.CharField(_('name'), max_length=255)
    slug = models.SlugField(unique=True, max_length=255)
    sku = models.CharField(max_length=100, blank=True, default='')
    description = models.TextField(blank=True, default='')
    short_description = models.CharField(
        max_length=500, blank=True, default='')

    category = models.ForeignKey(
        Category, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='products', verbose_name=_('category'))
    supplier = models.ForeignKey(
        Supplier, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='products', verbose_name=_('supplier'))
    catalog_id = models.PositiveIntegerField(null=True, blank=True)
    brand = models.CharField(max_length=255, blank=True, default='')
    tags = TaggableManager(blank=True)

    price = models.DecimalField(
        _('regular price'), max_digits=10, decimal_places=2,
        validators=PRICE_VALIDATORS)
    sale_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=PRICE_VALIDATORS)
    cost_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=PRICE_VALIDATORS)
    compare_at_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=PRICE_VALIDATORS)
    minimum_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=PRICE_VALIDATORS)
    discount = models.DecimalField(
        _('markup percentage'), max_digits=6, decimal_places=2,
        null=True, blank=True)
    discount_label = models.CharField(max_length=100, blank=True, default='')

    stock = models.IntegerField(default=0)
    minimum_order = models.PositiveIntegerField(default=1)

    is_active = models.BooleanField(default=True)
    is_featured = models.BooleanField(default=False)
    is_flash_deal = models.BooleanField(default=False)
    flash_deal_end = models.DateTimeField(null=True, blank=True)
    free_shipping = models.BooleanField(default=False)

    weight = models.DecimalField(
        _('weight in kg'), max_digits=8, decimal_places=3,
        null=True, blank=True)
    dimensions = models.CharField(max_length=100, blank=True, default='')

    image_url = models.CharField(max_length=1000, blank=True, default='')
    additional_images = JSONField(default=list, blank=True)
    required_attribute_ids = JSONField(default=list, blank=True)

    display_order = models.IntegerField(default=999)
    special_sale_text = models.CharField(max_length=255, blank=True, default='')
    special_sale_start = models.DateTimeField(null=True, blank=True)
    special_sale_end = models.DateTimeField(null=True, blank=True)

    meta_title = models.CharField(max_length=255, blank=True, default='')
    meta_description = models.TextField(blank=True, default='')
    meta_keywords = models.CharField(max_length=500, blank=True, default='')
    canonical_url = models.URLField(max_length=500, blank=True, default='')

    supplier_url = models.URLField(max_length=1000, blank=True, default='')
    supplier_available = models.BooleanField(default=True)

    rating = models.DecimalField(
        max_digits=3, decimal_places=2, default=Decimal('0'))
    review_count = models.PositiveIntegerField(default=0)

    objects = ProductQuerySet.as_manager()

    class Meta:
        verbose_name = _('product')
        ordering = ('display_order', '-created', )

    def __str__(self):
        return f'{self.name}'

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slugify(
                Product, self.name or 'product', exclude_pk=self.pk)
        super().save(*args, **kwargs)

    @property
    def current_price(self) -> Decimal:
        if self.sale_price is not None:
            return self.sale_price
        return self.price

    @property
    def main_image(self) -> Optional['ProductImage']:
        return self.images.filter(is_main=True).first() or self.images.first()

    @property
    def main_image_url(self) -> str:
        if self.image_url:
            return self.image_url
        image = self.main_image
        return image.url if image else ''

    def active_promotions(self):
        now = timezone.now()
        return self.promotions.filter(
            promotion__is_active=True,
            promotion__start_date__lte=now,
            promotion__end_date__gte=now,
        ).select_related('promotion')


class ProductImage(TimeStampedModel):
    product = models.ForeignKey(
        Product, related_name='images', on_delete=models.CASCADE)
    url = models.CharField(_('image url'), max_length=1000)
    object_key = models.CharField(max_length=1000, blank=True, default='')
    is_main = models.BooleanField(default=False)
    has_bg_removed = models.BooleanField(default=False)
    sort_order = models.IntegerField(default=0)

    class Meta:
        verbose_name = _('product image')
        ordering = ('sort_order', 'pk', )

    def __str__(self):
        return self.url

    @transaction.atomic
    def save(self, *args, **kwargs):
        if self.is_main:
            ProductImage.objects.filter(
                product_id=self.product_id, is_main=True
            ).exclude(pk=self.pk).update(is_main=False)
        super().save(*args, **kwargs)

