from decimal import Decimal

from django.test import TestCase

from shop import factories
from shop.constants.status import DRAFT_STATUS, WIZARD_STEP
from shop.exceptions import PublicationError
from shop.models import Product, ProductAttribute, ProductImage
from shop.services.publication import (
    build_product_data,
    check_publish_readiness,
    create_draft_from_product,
    publish_product_draft,
    validate_draft,
)


class PublishProductDraftTest(TestCase):
    def setUp(self):
        self.admin = factories.AdminUserFactory()
        self.draft = factories.ProductDraftFactory(
            created_by=self.admin,
            name='Linen Shirt',
            slug='linen-shirt',
            sku='LS-001',
            image_urls=['https://cdn.test/a.png', 'https://cdn.test/b.png'],
            image_object_keys=['drafts/a.png', 'drafts/b.png'],
            main_image_index=1,
        )

    def test_first_publication_creates_product(self):
        product = publish_product_draft(self.draft.pk, user=self.admin)

        self.draft.refresh_from_db()
        self.assertEqual(product.name, 'Linen Shirt')
        self.assertEqual(product.slug, 'linen-shirt')
        self.assertEqual(product.price, Decimal('199.99'))
        self.assertEqual(product.stock, 10)
        self.assertEqual(product.created_by, self.admin)
        self.assertEqual(product.image_url, 'https://cdn.test/b.png')
        self.assertEqual(product.additional_images, ['https://cdn.test/a.png'])
        self.assertEqual(
            sorted(product.tags.names()), ['new', 'summer'])

        self.assertEqual(self.draft.draft_status, DRAFT_STATUS.published)
        self.assertEqual(self.draft.original_product, product)
        self.assertEqual(self.draft.published_version, 1)
        self.assertIsNotNone(self.draft.published_at)

    def test_images_are_copied_with_one_main(self):
        product = publish_product_draft(self.draft.pk, user=self.admin)

        images = list(product.images.order_by('sort_order'))
        self.assertEqual(len(images), 2)
        self.assertEqual([i.object_key for i in images],
                         ['drafts/a.png', 'drafts/b.png'])
        self.assertEqual([i.is_main for i in images], [False, True])

    def test_republish_updates_same_product(self):
        product = publish_product_draft(self.draft.pk, user=self.admin)
        self.draft.refresh_from_db()
        self.draft.name = 'Linen Shirt v2'
        self.draft.regular_price = Decimal('249.00')
        self.draft.image_urls = ['https://cdn.test/c.png']
        self.draft.image_object_keys = ['drafts/c.png']
        self.draft.main_image_index = 0
        self.draft.save()

        republished = publish_product_draft(self.draft.pk, user=self.admin)

        self.draft.refresh_from_db()
        self.assertEqual(republished.pk, product.pk)
        self.assertEqual(Product.objects.count(), 1)
        self.assertEqual(republished.name, 'Linen Shirt v2')
        self.assertEqual(republished.price, Decimal('249.00'))
        self.assertEqual(
            ProductImage.objects.filter(product=product).count(), 1)
        self.assertEqual(self.draft.published_version, 2)

    def test_missing_required_fields_are_reported(self):
        self.draft.category = None
        self.draft.regular_price = None
        self.draft.save()

        with self.assertRaisesMessage(
                PublicationError,
                'Missing required fields: category, regular_price'):
            publish_product_draft(self.draft.pk, user=self.admin)

        self.draft.refresh_from_db()
        self.assertEqual(self.draft.draft_status, DRAFT_STATUS.draft)
        self.assertFalse(Product.objects.exists())

    def test_unknown_draft(self):
        with self.assertRaises(PublicationError):
            publish_product_draft(999999, user=self.admin)

    def test_unknown_attribute_rolls_back(self):
        self.draft.selected_attributes = {'424242': ['red']}
        self.draft.save()

        with self.assertRaises(PublicationError):
            publish_product_draft(self.draft.pk, user=self.admin)

        self.draft.refresh_from_db()
        self.assertEqual(self.draft.draft_status, DRAFT_STATUS.draft)
        self.assertFalse(Product.objects.exists())
        self.assertFalse(ProductImage.objects.exists())

    def test_failed_republish_leaves_product_untouched(self):
        colour = factories.AttributeFactory(name='colour')
        self.draft.selected_attributes = {str(colour.pk): ['red']}
        self.draft.save()
        product = publish_product_draft(self.draft.pk, user=self.admin)

        self.draft.refresh_from_db()
        self.draft.name = 'Linen Shirt v2'
        self.draft.regular_price = Decimal('249.00')
        self.draft.image_urls = ['https://cdn.test/c.png']
        self.draft.image_object_keys = ['drafts/c.png']
        self.draft.main_image_index = 0
        self.draft.selected_attributes = {
            str(colour.pk): ['blue'], '424242': ['large']}
        self.draft.save()

        with self.assertRaises(PublicationError):
            publish_product_draft(self.draft.pk, user=self.admin)

        product.refresh_from_db()
        self.draft.refresh_from_db()
        self.assertEqual(product.name, 'Linen Shirt')
        self.assertEqual(product.price, Decimal('199.99'))
        self.assertEqual(
            list(product.images.order_by('sort_order')
                 .values_list('object_key', flat=True)),
            ['drafts/a.png', 'drafts/b.png'])
        row = ProductAttribute.objects.get(product=product)
        self.assertEqual(row.selected_options, ['red'])
        self.assertEqual(self.draft.published_version, 1)
        self.assertEqual(self.draft.draft_status, DRAFT_STATUS.published)

    def test_negative_price_is_rejected(self):
        self.draft.regular_price = Decimal('-10.00')
        self.draft.save()

        with self.assertRaisesMessage(
                PublicationError, 'regular_price must be greater than 0'):
            publish_product_draft(self.draft.pk, user=self.admin)

        self.assertFalse(Product.objects.exists())

    def test_sale_price_must_be_below_regular_price(self):
        self.draft.sale_price = Decimal('250.00')
        self.draft.save()

        with self.assertRaisesMessage(
                PublicationError, 'sale_price must be less than regular_price'):
            publish_product_draft(self.draft.pk, user=self.admin)

        self.draft.refresh_from_db()
        self.assertEqual(self.draft.draft_status, DRAFT_STATUS.draft)
        self.assertFalse(Product.objects.exists())

    def test_negative_cost_price_is_rejected(self):
        self.draft.cost_price = Decimal('-1.00')
        self.draft.save()

        with self.assertRaisesMessage(
                PublicationError, 'cost_price cannot be negative'):
            publish_product_draft(self.draft.pk, user=self.admin)

    def test_attributes_with_selected_options_are_copied(self):
        colour = factories.AttributeFactory(name='colour', is_required=True)
        size = factories.AttributeFactory(name='size')
        self.draft.selected_attributes = {
            str(colour.pk): ['red', 'blue'],
            str(size.pk): [],
        }
        self.draft.save()

        product = publish_product_draft(self.draft.pk, user=self.admin)

        rows = ProductAttribute.objects.filter(product=product)
        self.assertEqual(rows.count(), 1)
        row = rows.get()
        self.assertEqual(row.attribute, colour)
        self.assertTrue(row.is_required)
        self.assertEqual(row.selected_options, ['red', 'blue'])
        self.assertEqual(row.price_adjustment, Decimal('0'))
        self.assertEqual(
            product.required_attribute_ids, sorted([colour.pk, size.pk]))

    def test_slug_collision_gets_suffix(self):
        factories.ProductFactory(name='Other', slug='linen-shirt')

        product = publish_product_draft(self.draft.pk, user=self.admin)

        self.assertNotEqual(product.slug, 'linen-shirt')
        self.assertTrue(product.slug.startswith('linen-shirt'))


class BuildProductDataTest(TestCase):
    def test_defaults(self):
        draft = factories.ProductDraftFactory(
            name='', image_urls=[], image_object_keys=[], display_order=None)

        data = build_product_data(draft)

        self.assertEqual(data['name'], 'Untitled Product')
        self.assertEqual(data['display_order'], 999)
        self.assertEqual(data['image_url'], '')
        self.assertEqual(data['additional_images'], [])

    def test_out_of_range_main_image_falls_back_to_first(self):
        draft = factories.ProductDraftFactory(
            image_urls=['https://cdn.test/a.png', 'https://cdn.test/b.png'],
            main_image_index=7)

        data = build_product_data(draft)

        self.assertEqual(data['image_url'], 'https://cdn.test/a.png')
        self.assertEqual(data['additional_images'], ['https://cdn.test/b.png'])


class DraftValidationTest(TestCase):
    def test_pricing_step(self):
        draft = factories.ProductDraftFactory(
            regular_price=Decimal('100'), sale_price=Decimal('120'))

        valid, errors = validate_draft(draft, WIZARD_STEP.pricing)

        self.assertFalse(valid)
        self.assertIn('sale_price', errors[WIZARD_STEP.pricing])
        self.assertNotIn(WIZARD_STEP.pricing, draft.completed_steps)

    def test_valid_step_is_marked_completed(self):
        draft = factories.ProductDraftFactory()

        valid, errors = validate_draft(draft, WIZARD_STEP.basic_info)

        self.assertTrue(valid)
        self.assertEqual(errors, {})
        self.assertIn(WIZARD_STEP.basic_info, draft.completed_steps)
        self.assertTrue(draft.wizard_progress[WIZARD_STEP.basic_info])

    def test_readiness(self):
        draft = factories.ProductDraftFactory(image_urls=[], image_object_keys=[])

        readiness = check_publish_readiness(draft)

        self.assertFalse(readiness['ready'])
        self.assertEqual(readiness['missing_fields'], ['images'])
        self.assertEqual(
            readiness['required_steps'], list(WIZARD_STEP.REQUIRED))


class CreateDraftFromProductTest(TestCase):
    def test_mirrors_product(self):
        admin = factories.AdminUserFactory()
        product = factories.ProductFactory(price=Decimal('300.00'), stock=4)
        factories.ProductImageFactory(product=product, is_main=False)
        factories.ProductImageFactory(product=product, is_main=True)
        attribute = factories.AttributeFactory()
        ProductAttribute.objects.create(
            product=product, attribute=attribute, selected_options=['m'])

        draft = create_draft_from_product(product, user=admin)

        self.assertEqual(draft.original_product, product)
        self.assertEqual(draft.regular_price, Decimal('300.00'))
        self.assertEqual(draft.stock_level, 4)
        self.assertEqual(draft.main_image_index, 1)
        self.assertEqual(len(draft.image_urls), 2)
        self.assertEqual(draft.selected_attributes, {str(attribute.pk): ['m']})
        self.assertEqual(draft.published_version, 1)

    def test_returns_existing_unpublished_draft(self):
        product = factories.ProductFactory()
        first = create_draft_from_product(product)

        second = create_draft_from_product(product)

        self.assertEqual(first.pk, second.pk)
