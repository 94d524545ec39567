from decimal import Decimal

from django.urls import reverse
from rest_framework import status

from shop.constants.status import DRAFT_STATUS, WIZARD_STEP
from shop.models import Product, ProductDraft
from storefront.test import AdminUserTestBase, AuthenticatedUserTestBase


class DraftOwnershipTest(AuthenticatedUserTestBase):
    def test_create_draft_owned_by_caller(self):
        url = reverse('shop:draft-list')
        response = self.client.post(url, {'name': 'My shirt'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        draft = ProductDraft.objects.get(pk=response.data['id'])
        self.assertEqual(draft.created_by, self.user)
        self.assertEqual(draft.draft_status, DRAFT_STATUS.draft)
        self.assertEqual(draft.change_history[0]['action'], 'created')

    def test_customer_only_sees_own_drafts(self):
        own = self.fs.ProductDraftFactory(created_by=self.user)
        other = self.fs.ProductDraftFactory()

        response = self.client.get(reverse('shop:draft-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = [draft['id'] for draft in response.data['results']]
        self.assertEqual(ids, [own.pk])

        response = self.client.get(
            reverse('shop:draft-detail', kwargs={'pk': other.pk}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_from_product_is_admin_only(self):
        product = self.fs.ProductFactory()
        url = reverse('shop:draft-from-product', kwargs={'product_id': product.pk})

        response = self.client.post(url)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_is_rejected(self):
        self.client.credentials()
        response = self.client.get(reverse('shop:draft-list'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class DraftEditingTest(AdminUserTestBase):
    def setUp(self):
        super().setUp()
        self.draft = self.fs.ProductDraftFactory(
            created_by=self.user,
            image_urls=['https://cdn.test/0.png', 'https://cdn.test/1.png',
                        'https://cdn.test/2.png'],
            image_object_keys=['k0', 'k1', 'k2'],
            main_image_index=1,
        )

    def url(self, name, **kwargs):
        return reverse(f'shop:draft-{name}', kwargs={'pk': self.draft.pk, **kwargs})

    def test_admin_sees_every_draft(self):
        self.fs.ProductDraftFactory()
        response = self.client.get(reverse('shop:draft-list'))
        self.assertEqual(response.data['count'], 2)

    def test_filter_by_status(self):
        self.fs.ProductDraftFactory(draft_status=DRAFT_STATUS.in_review)
        response = self.client.get(
            reverse('shop:draft-list'), {'status': DRAFT_STATUS.in_review})
        self.assertEqual(response.data['count'], 1)

    def test_partial_update_bumps_version(self):
        response = self.client.patch(
            self.url('detail'), {'brand': 'Acme'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.draft.refresh_from_db()
        self.assertEqual(self.draft.brand, 'Acme')
        self.assertEqual(self.draft.version, 2)
        self.assertEqual(self.draft.change_history[-1]['fields'], ['brand'])

    def test_editing_published_draft_returns_to_draft(self):
        ProductDraft.objects.filter(pk=self.draft.pk).update(
            draft_status=DRAFT_STATUS.published)

        response = self.client.patch(
            self.url('detail'), {'name': 'Changed'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['draft_status'], DRAFT_STATUS.draft)

    def test_wizard_step_applies_step_fields(self):
        response = self.client.patch(self.url('wizard-step'), {
            'step': WIZARD_STEP.pricing,
            'data': {'regular_price': '120.00', 'stock_level': 3},
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.draft.refresh_from_db()
        self.assertEqual(self.draft.regular_price, Decimal('120.00'))
        self.assertEqual(self.draft.stock_level, 3)
        self.assertTrue(self.draft.wizard_progress[WIZARD_STEP.pricing])

    def test_wizard_step_rejects_foreign_fields(self):
        response = self.client.patch(self.url('wizard-step'), {
            'step': WIZARD_STEP.pricing,
            'data': {'name': 'Sneaky'},
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('data', response.data)

    def test_add_image(self):
        response = self.client.post(self.url('images'), {
            'url': 'https://cdn.test/3.png', 'object_key': 'k3'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.draft.refresh_from_db()
        self.assertEqual(self.draft.image_urls[-1], 'https://cdn.test/3.png')
        self.assertEqual(self.draft.image_object_keys[-1], 'k3')

    def test_remove_image_before_main_shifts_main(self):
        response = self.client.delete(self.url('remove-image', index=0))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.draft.refresh_from_db()
        self.assertEqual(
            self.draft.image_urls,
            ['https://cdn.test/1.png', 'https://cdn.test/2.png'])
        self.assertEqual(self.draft.image_object_keys, ['k1', 'k2'])
        self.assertEqual(self.draft.main_image_index, 0)

    def test_remove_image_out_of_range(self):
        response = self.client.delete(self.url('remove-image', index=9))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_reorder_images_keeps_main(self):
        response = self.client.post(
            self.url('reorder-images'), {'order': [2, 1, 0]}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.draft.refresh_from_db()
        self.assertEqual(self.draft.image_object_keys, ['k2', 'k1', 'k0'])
        self.assertEqual(self.draft.main_image_index, 1)

    def test_reorder_requires_permutation(self):
        response = self.client.post(
            self.url('reorder-images'), {'order': [0, 0, 1]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_validate_step(self):
        ProductDraft.objects.filter(pk=self.draft.pk).update(meta_title='x' * 71)

        response = self.client.post(
            self.url('validate'), {'step': WIZARD_STEP.seo}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['valid'])
        self.assertIn('meta_title', response.data['errors'][WIZARD_STEP.seo])

    def test_validate_all_steps_records_progress(self):
        response = self.client.post(self.url('validate'), {}, format='json')

        self.assertTrue(response.data['valid'])
        self.draft.refresh_from_db()
        self.assertEqual(
            sorted(self.draft.completed_steps), sorted(WIZARD_STEP.ALL))

    def test_publish_check(self):
        response = self.client.get(self.url('publish-check'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['ready'])
        self.assertEqual(response.data['missing_fields'], [])
        self.assertEqual(
            response.data['required_steps'], list(WIZARD_STEP.REQUIRED))

    def test_status_transitions(self):
        response = self.client.patch(
            self.url('status'), {'status': DRAFT_STATUS.in_review}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['draft_status'], DRAFT_STATUS.in_review)

        response = self.client.patch(
            self.url('status'), {'status': DRAFT_STATUS.in_review}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(
            self.url('status'), {'status': DRAFT_STATUS.ready_to_publish},
            format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.data['draft_status'], DRAFT_STATUS.ready_to_publish)

    def test_ready_requires_review_first(self):
        response = self.client.patch(
            self.url('status'), {'status': DRAFT_STATUS.ready_to_publish},
            format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.draft.refresh_from_db()
        self.assertEqual(self.draft.draft_status, DRAFT_STATUS.draft)

    def test_ready_requires_valid_draft(self):
        ProductDraft.objects.filter(pk=self.draft.pk).update(
            draft_status=DRAFT_STATUS.in_review, name='', regular_price=None)

        response = self.client.patch(
            self.url('status'), {'status': DRAFT_STATUS.ready_to_publish},
            format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        errors = response.data['errors']
        self.assertIn('name', errors[WIZARD_STEP.basic_info])
        self.assertIn('regular_price', errors[WIZARD_STEP.pricing])
        self.draft.refresh_from_db()
        self.assertEqual(self.draft.draft_status, DRAFT_STATUS.in_review)

    def test_image_urls_must_be_a_list(self):
        response = self.client.patch(
            self.url('detail'), {'image_urls': 5}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('image_urls', response.data)

    def test_tags_must_be_strings(self):
        response = self.client.patch(
            self.url('detail'), {'tags': [{'name': 'x'}]}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('tags', response.data)

    def test_publish(self):
        response = self.client.post(self.url('publish'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        product = Product.objects.get(pk=response.data['product_id'])
        self.assertEqual(product.created_by, self.user)
        self.assertEqual(
            response.data['draft']['draft_status'], DRAFT_STATUS.published)

    def test_publish_failure(self):
        ProductDraft.objects.filter(pk=self.draft.pk).update(name='')

        response = self.client.post(self.url('publish'))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertIn('name', response.data['error'])

    def test_delete_keeps_published_product(self):
        self.client.post(self.url('publish'))

        response = self.client.delete(self.url('detail'))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(Product.objects.count(), 1)

    def test_from_product(self):
        product = self.fs.ProductFactory()
        url = reverse('shop:draft-from-product', kwargs={'product_id': product.pk})

        response = self.client.post(url)
        again = self.client.post(url)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['original_product'], product.pk)
        self.assertEqual(again.data['id'], response.data['id'])
