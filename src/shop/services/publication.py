"""
Draft -> product publication.

`publish_product_draft` copies a `ProductDraft` onto a live `Product`
together with its image and attribute rows. All writes happen inside one
transaction: any failure leaves both the product tables and the draft
untouched. A draft that was published before updates its product in place,
so republishing never creates duplicates.
"""
from decimal import Decimal
from logging import getLogger
from typing import Dict, List, Tuple

from django.db import transaction
from django.utils.text import slugify

from shop.constants.status import WIZARD_STEP
from shop.exceptions import PublicationError
from shop.models import (
    Attribute, Product, ProductAttribute, ProductDraft, ProductImage
)
from shop.utils.slug import unique_slugify

logger = getLogger(__name__)

DEFAULT_PRODUCT_NAME = 'Untitled Product'
DEFAULT_DISPLAY_ORDER = 999

# Draft fields copied verbatim onto the product
DIRECT_FIELDS = (
    'sku', 'description', 'short_description', 'category', 'supplier',
    'catalog_id', 'brand', 'sale_price', 'cost_price', 'minimum_price',
    'minimum_order', 'is_active', 'is_featured', 'is_flash_deal',
    'flash_deal_end', 'free_shipping', 'weight', 'dimensions',
    'discount_label', 'special_sale_text', 'special_sale_start',
    'special_sale_end', 'meta_title', 'meta_description', 'meta_keywords',
    'canonical_url', 'supplier_url', 'supplier_available',
)

# Required before a draft may be published: (draft field, public name)
PUBLISH_REQUIRED_FIELDS = (
    ('name', 'name'),
    ('category_id', 'category'),
    ('regular_price', 'regular_price'),
)

# Optional prices that may not be negative on a live product
PRICE_FIELDS = ('sale_price', 'cost_price', 'minimum_price')


def build_product_data(draft: ProductDraft) -> dict:
    """ Map every draft field onto the matching product field. """
    images = draft.images
    main_image = _main_image_index(draft)
    data = {field: getattr(draft, field) for field in DIRECT_FIELDS}
    data.update({
        'name': draft.name or DEFAULT_PRODUCT_NAME,
        'price': draft.regular_price,
        'discount': draft.markup_percentage,
        'stock': draft.stock_level,
        'image_url': images[main_image]['url'] if images else '',
        'additional_images': [
            image['url'] for index, image in enumerate(images)
            if index != main_image
        ],
        'required_attribute_ids': sorted(_attribute_ids(draft)),
        'display_order': (
            draft.display_order if draft.display_order is not None
            else DEFAULT_DISPLAY_ORDER),
    })
    return data


def missing_publish_fields(draft: ProductDraft) -> List[str]:
    return [
        public_name for field, public_name in PUBLISH_REQUIRED_FIELDS
        if getattr(draft, field) in (None, '')
    ]


def price_errors(draft: ProductDraft) -> List[str]:
    errors = []
    if draft.regular_price is not None and draft.regular_price <= 0:
        errors.append('regular_price must be greater than 0')
    for field in PRICE_FIELDS:
        value = getattr(draft, field)
        if value is not None and value < 0:
            errors.append(f'{field} cannot be negative')
    if draft.sale_price is not None and draft.regular_price is not None and \
            draft.sale_price >= draft.regular_price:
        errors.append('sale_price must be less than regular_price')
    return errors


@transaction.atomic
def publish_product_draft(draft_id: int, user=None) -> Product:
    try:
        draft = ProductDraft.objects.select_for_update().get(pk=draft_id)
    except ProductDraft.DoesNotExist:
        raise PublicationError(f'Draft {draft_id} not found')

    missing = missing_publish_fields(draft)
    if missing:
        raise PublicationError(
            f'Missing required fields: {", ".join(missing)}')
    invalid = price_errors(draft)
    if invalid:
        raise PublicationError(f'Invalid prices: {"; ".join(invalid)}')

    data = build_product_data(draft)
    product = _existing_product(draft)
    if product is None:
        product = Product(created_by=user)
    for field, value in data.items():
        setattr(product, field, value)
    product.modified_by = user
    product.slug = unique_slugify(
        Product, draft.slug or data['name'], exclude_pk=product.pk)
    product.save()
    product.tags.set(list(draft.tags or []))

    _replace_images(product, draft)
    _replace_attributes(product, draft)

    republished = draft.published_version > 0
    draft.mark_published(product)
    draft.record_change(user, action='published', fields=['draft_status'])
    draft.save()

    logger.info(
        f'{"Republished" if republished else "Published"} draft {draft.pk} '
        f'as product {product.pk} (version {draft.published_version})')
    return product


def _existing_product(draft: ProductDraft):
    if draft.original_product_id is None:
        return None
    return Product.objects.select_for_update().filter(
        pk=draft.original_product_id).first()


def _main_image_index(draft: ProductDraft) -> int:
    count = len(draft.image_urls or [])
    if 0 <= draft.main_image_index < count:
        return draft.main_image_index
    return 0


def _replace_images(product: Product, draft: ProductDraft):
    product.images.all().delete()
    main_image = _main_image_index(draft)
    ProductImage.objects.bulk_create([
        ProductImage(
            product=product,
            url=image['url'],
            object_key=image['object_key'],
            is_main=index == main_image,
            sort_order=index,
        )
        for index, image in enumerate(draft.images)
    ])


def _attribute_ids(draft: ProductDraft, only_selected: bool = False) -> List[int]:
    attribute_ids = []
    for key, options in (draft.selected_attributes or {}).items():
        if only_selected and not options:
            continue
        try:
            attribute_ids.append(int(key))
        except (TypeError, ValueError):
            raise PublicationError(f'Invalid attribute id: {key}')
    return attribute_ids


def _replace_attributes(product: Product, draft: ProductDraft):
    product.attributes.all().delete()
    selected = {
        key: options for key, options in (draft.selected_attributes or {}).items()
        if options
    }
    attribute_ids = _attribute_ids(draft, only_selected=True)
    attributes = Attribute.objects.in_bulk(attribute_ids)
    unknown = [pk for pk in attribute_ids if pk not in attributes]
    if unknown:
        raise PublicationError(
            f'Unknown attribute ids: {", ".join(map(str, unknown))}')

    ProductAttribute.objects.bulk_create([
        ProductAttribute(
            product=product,
            attribute=attributes[int(key)],
            is_required=attributes[int(key)].is_required,
            selected_options=list(options),
            price_adjustment=Decimal('0'),
            sort_order=index,
        )
        for index, (key, options) in enumerate(selected.items())
    ])


def check_publish_readiness(draft: ProductDraft) -> dict:
    missing = missing_publish_fields(draft)
    if not draft.image_urls:
        missing.append('images')
    required_steps = draft.missing_steps
    return {
        'ready': not missing,
        'missing_fields': missing,
        'required_steps': required_steps,
    }


def validate_draft_step(draft: ProductDraft, step: str) -> Dict[str, str]:
    """ Return `{field: error}` for the given wizard step. """
    errors = {}
    if step == WIZARD_STEP.basic_info:
        if not draft.name:
            errors['name'] = 'Product name is required'
        if not draft.slug:
            errors['slug'] = 'Product slug is required'
        if draft.category_id is None:
            errors['category'] = 'Category is required'
    elif step == WIZARD_STEP.pricing:
        if draft.regular_price is None or draft.regular_price <= 0:
            errors['regular_price'] = 'Regular price must be greater than 0'
        if draft.sale_price is not None:
            if draft.sale_price <= 0:
                errors['sale_price'] = 'Sale price must be greater than 0'
            elif draft.regular_price is not None and \
                    draft.sale_price >= draft.regular_price:
                errors['sale_price'] = \
                    'Sale price must be less than regular price'
        if draft.cost_price is not None and draft.cost_price < 0:
            errors['cost_price'] = 'Cost price cannot be negative'
    elif step == WIZARD_STEP.images:
        if not draft.image_urls:
            errors['images'] = 'At least one image is required'
    elif step == WIZARD_STEP.attributes:
        keys = list((draft.selected_attributes or {}).keys())
        try:
            ids = {int(key) for key in keys}
        except (TypeError, ValueError):
            errors['selected_attributes'] = 'Attribute ids must be integers'
        else:
            known = set(Attribute.objects.filter(
                pk__in=ids).values_list('pk', flat=True))
            if ids - known:
                errors['selected_attributes'] = (
                    'Unknown attribute ids: '
                    f'{", ".join(map(str, sorted(ids - known)))}')
    elif step == WIZARD_STEP.seo:
        if len(draft.meta_title or '') > 70:
            errors['meta_title'] = 'Meta title must be at most 70 characters'
        if len(draft.meta_description or '') > 160:
            errors['meta_description'] = \
                'Meta description must be at most 160 characters'
    return errors


def validate_draft(draft: ProductDraft, step: str = None) -> Tuple[bool, Dict]:
    steps = [step] if step else list(WIZARD_STEP.ALL)
    errors = {}
    for current in steps:
        step_errors = validate_draft_step(draft, current)
        if step_errors:
            errors[current] = step_errors
        else:
            draft.mark_step(current)
    return not errors, errors


def create_draft_from_product(product: Product, user=None) -> ProductDraft:
    """
    Open a draft mirroring a live product. An unpublished draft that
    already points at the product is returned instead of a new one.
    """
    existing = ProductDraft.objects.unpublished_for(product).first()
    if existing is not None:
        return existing

    images = list(product.images.all())
    main_index = next(
        (index for index, image in enumerate(images) if image.is_main), 0)
    selected_attributes = {
        str(pa.attribute_id): list(pa.selected_options or [])
        for pa in product.attributes.all()
    }
    draft = ProductDraft(
        created_by=user,
        original_product=product,
        name=product.name,
        slug=product.slug or slugify(product.name),
        regular_price=product.price,
        markup_percentage=product.discount,
        stock_level=product.stock,
        display_order=product.display_order,
        tags=list(product.tags.names()),
        image_urls=[image.url for image in images] or (
            [product.image_url] + list(product.additional_images or [])
            if product.image_url else []),
        image_object_keys=[image.object_key or image.url for image in images],
        main_image_index=main_index,
        selected_attributes=selected_attributes,
        published_version=1,
        published_at=product.modified,
        completed_steps=list(WIZARD_STEP.REQUIRED),
        wizard_progress={step: True for step in WIZARD_STEP.REQUIRED},
    )
    for field in DIRECT_FIELDS:
        setattr(draft, field, getattr(product, field))
    draft.record_change(
        user, action='created_from_product', bump_version=False)
    draft.save()
    return draft
