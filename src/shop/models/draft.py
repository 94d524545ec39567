from typing import List, Optional, Iterable

from django.conf import settings
from django.db import models
from django.db.models import JSONField
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from django_fsm import FSMField, transition
from model_utils.fields import MonitorField
from model_utils.models import TimeStampedModel

from shop.constants.status import DRAFT_STATUS, WIZARD_STEP


# Fields a wizard step is allowed to write
WIZARD_STEP_FIELDS = {
    WIZARD_STEP.basic_info: (
        'name', 'slug', 'sku', 'category', 'supplier', 'catalog_id',
        'brand', 'tags', 'is_active', 'is_featured',
    ),
    WIZARD_STEP.description: (
        'description', 'short_description', 'weight', 'dimensions',
    ),
    WIZARD_STEP.pricing: (
        'regular_price', 'sale_price', 'cost_price', 'markup_percentage',
        'minimum_price', 'stock_level', 'minimum_order', 'free_shipping',
        'is_flash_deal', 'flash_deal_end', 'discount_label',
        'special_sale_text', 'special_sale_start', 'special_sale_end',
        'supplier_url', 'supplier_available', 'display_order',
    ),
    WIZARD_STEP.images: (
        'image_urls', 'image_object_keys', 'main_image_index',
    ),
    WIZARD_STEP.attributes: (
        'selected_attributes',
    ),
    WIZARD_STEP.seo: (
        'meta_title', 'meta_description', 'meta_keywords', 'canonical_url',
    ),
}


class ProductDraftQuerySet(models.QuerySet):
    def visible_to(self, user):
        if user.is_staff:
            return self
        return self.filter(created_by=user)

    def unpublished_for(self, product):
        return self.filter(original_product=product).exclude(
            draft_status=DRAFT_STATUS.published)


class ProductDraft(TimeStampedModel):
    """
    Mutable staging copy of a product, edited step by step in the admin
    wizard. Publishing copies it onto a live `Product`; the draft keeps a
    pointer to that product so later publications update it in place.
    """
    STATUS_CHOICES = (
        (DRAFT_STATUS.draft, _('draft')),
        (DRAFT_STATUS.in_review, _('in review')),
        (DRAFT_STATUS.ready_to_publish, _('ready to publish')),
        (DRAFT_STATUS.published, _('published')),
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True,
        blank=True, related_name='product_drafts',
        verbose_name=_('created by'))
    original_product = models.ForeignKey(
        'shop.Product', on_delete=models.SET_NULL, null=True, blank=True,
        related_name='drafts', verbose_name=_('published product'))
    draft_status = FSMField(
        choices=STATUS_CHOICES, default=DRAFT_STATUS.draft,
        verbose_name=_('draft status'))
    status_changed = MonitorField(monitor='draft_status')

    # basic info
    name = models.CharField(max_length=255, blank=True, default='')
    slug = models.SlugField(max_length=255, blank=True, default='')
    sku = models.CharField(max_length=100, blank=True, default='')
    category = models.ForeignKey(
        'shop.Category', on_delete=models.SET_NULL, null=True, blank=True,
        related_name='drafts')
    supplier = models.ForeignKey(
        'shop.Supplier', on_delete=models.SET_NULL, null=True, blank=True,
        related_name='drafts')
    catalog_id = models.PositiveIntegerField(null=True, blank=True)
    brand = models.CharField(max_length=255, blank=True, default='')
    tags = JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    is_featured = models.BooleanField(default=False)

    # description
    description = models.TextField(blank=True, default='')
    short_description = models.CharField(
        max_length=500, blank=True, default='')
    weight = models.DecimalField(
        max_digits=8, decimal_places=3, null=True, blank=True)
    dimensions = models.CharField(max_length=100, blank=True, default='')

    # pricing
    regular_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True)
    sale_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True)
    cost_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True)
    markup_percentage = models.DecimalField(
        max_digits=6, decimal_places=2, null=True, blank=True)
    minimum_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True)
    stock_level = models.IntegerField(default=0)
    minimum_order = models.PositiveIntegerField(default=1)
    free_shipping = models.BooleanField(default=False)
    is_flash_deal = models.BooleanField(default=False)
    flash_deal_end = models.DateTimeField(null=True, blank=True)
    discount_label = models.CharField(max_length=100, blank=True, default='')
    special_sale_text = models.CharField(max_length=255, blank=True, default='')
    special_sale_start = models.DateTimeField(null=True, blank=True)
    special_sale_end = models.DateTimeField(null=True, blank=True)
    supplier_url = models.URLField(max_length=1000, blank=True, default='')
    supplier_available = models.BooleanField(default=True)
    display_order = models.IntegerField(null=True, blank=True)

    # images
    image_urls = JSONField(default=list, blank=True)
    image_object_keys = JSONField(default=list, blank=True)
    main_image_index = models.PositiveIntegerField(default=0)

    # attributes: {"<attribute id>": ["<option value>", ...]}
    selected_attributes = JSONField(default=dict, blank=True)

    # seo
    meta_title = models.CharField(max_length=255, blank=True, default='')
    meta_description = models.TextField(blank=True, default='')
    meta_keywords = models.CharField(max_length=500, blank=True, default='')
    canonical_url = models.URLField(max_length=500, blank=True, default='')

    # workflow
    wizard_progress = JSONField(default=dict, blank=True)
    completed_steps = JSONField(default=list, blank=True)
    version = models.PositiveIntegerField(default=1)
    change_history = JSONField(default=list, blank=True)
    published_at = models.DateTimeField(null=True, blank=True)
    published_version = models.PositiveIntegerField(default=0)

    objects = ProductDraftQuerySet.as_manager()

    class Meta:
        verbose_name = _('product draft')
        ordering = ('-modified', )

    def __str__(self):
        return f'{self.name or "Untitled draft"} ({self.draft_status})'

    # status transitions
    @transition(
        field=draft_status, source=DRAFT_STATUS.draft,
        target=DRAFT_STATUS.in_review)
    def submit_for_review(self):
        pass

    @transition(
        field=draft_status, source=DRAFT_STATUS.in_review,
        target=DRAFT_STATUS.ready_to_publish)
    def mark_ready(self):
        pass

    @transition(
        field=draft_status,
        source=[
            DRAFT_STATUS.in_review, DRAFT_STATUS.ready_to_publish,
            DRAFT_STATUS.published],
        target=DRAFT_STATUS.draft)
    def return_to_draft(self):
        pass

    @transition(field=draft_status, source='*', target=DRAFT_STATUS.published)
    def mark_published(self, product):
        self.original_product = product
        self.published_at = timezone.now()
        self.published_version += 1

    # history
    def record_change(self, user=None, action: str = 'updated',
                      fields: Optional[Iterable[str]] = None,
                      bump_version: bool = True):
        if bump_version:
            self.version += 1
        self.change_history = list(self.change_history or []) + [{
            'timestamp': timezone.now().isoformat(),
            'user': getattr(user, 'pk', None),
            'action': action,
            'fields': sorted(fields or []),
        }]

    def mark_step(self, step: str, completed: bool = True):
        progress = dict(self.wizard_progress or {})
        progress[step] = completed
        self.wizard_progress = progress
        steps = list(self.completed_steps or [])
        if completed and step not in steps:
            steps.append(step)
        self.completed_steps = steps

    @property
    def missing_steps(self) -> List[str]:
        completed = set(self.completed_steps or [])
        return [step for step in WIZARD_STEP.REQUIRED if step not in completed]

    # images
    @property
    def images(self) -> List[dict]:
        keys = list(self.image_object_keys or [])
        return [
            {
                'url': url,
                'object_key': keys[index] if index < len(keys) and keys[index] else url,
                'is_main': index == self.main_image_index,
            }
            for index, url in enumerate(self.image_urls or [])
        ]

    def add_image(self, url: str, object_key: str = ''):
        keys = self._padded_keys()
        keys.append(object_key or url)
        self.image_urls = list(self.image_urls or []) + [url]
        self.image_object_keys = keys

    def remove_image(self, index: int):
        urls = list(self.image_urls or [])
        if index < 0 or index >= len(urls):
            raise IndexError(index)
        keys = self._padded_keys()
        del urls[index]
        del keys[index]
        self.image_urls = urls
        self.image_object_keys = keys
        if index < self.main_image_index:
            self.main_image_index -= 1
        elif index == self.main_image_index or self.main_image_index >= len(urls):
            self.main_image_index = 0

    def reorder_images(self, order: List[int]):
        urls = list(self.image_urls or [])
        if sorted(order) != list(range(len(urls))):
            raise ValueError('order must be a permutation of the image indexes')
        keys = self._padded_keys()
        self.image_urls = [urls[i] for i in order]
        self.image_object_keys = [keys[i] for i in order]
        self.main_image_index = order.index(self.main_image_index) \
            if self.main_image_index < len(urls) else 0

    def _padded_keys(self) -> List[str]:
        urls = list(self.image_urls or [])
        keys = list(self.image_object_keys or [])
        keys += urls[len(keys):]
        return keys[:len(urls)]
