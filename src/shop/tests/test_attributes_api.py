from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from shop import factories
from shop.models import Attribute, AttributeOption
from storefront.test import AdminUserTestBase, AuthenticatedUserTestBase


class AttributeAdminTest(AdminUserTestBase):
    def test_create_with_inline_options(self):
        response = self.client.post(reverse('shop:attribute-list'), {
            'name': 'colour',
            'display_name': 'Colour',
            'attribute_type': 'color',
            'is_filterable': True,
            'options': [
                {'value': 'red', 'metadata': {'hex': '#f00'}},
                {'value': 'blue', 'display_value': 'Navy blue'},
            ],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        options = response.data['options']
        self.assertEqual([o['value'] for o in options], ['red', 'blue'])
        self.assertEqual(options[0]['display_value'], 'red')
        self.assertEqual(options[1]['display_value'], 'Navy blue')
        self.assertEqual(options[1]['sort_order'], 1)

    def test_duplicate_name(self):
        self.fs.AttributeFactory(name='size')
        response = self.client.post(reverse('shop:attribute-list'), {
            'name': 'size', 'display_name': 'Size'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_inline_options(self):
        response = self.client.post(reverse('shop:attribute-list'), {
            'name': 'size', 'display_name': 'Size',
            'options': [{'value': 'S'}, {'value': 'S'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Attribute.objects.exists())

    def test_types(self):
        response = self.client.get(reverse('shop:attribute-types'))
        self.assertEqual(
            [t['value'] for t in response.data],
            ['text', 'number', 'select', 'multiselect', 'color', 'size',
             'boolean'])

    def test_with_options(self):
        option = self.fs.AttributeOptionFactory()
        response = self.client.get(reverse('shop:attribute-with-options'))
        self.assertEqual(response.data[0]['options'][0]['id'], option.pk)


class AttributeOptionTest(AdminUserTestBase):
    def setUp(self):
        super().setUp()
        self.attribute = self.fs.AttributeFactory()
        self.list_url = reverse(
            'shop:attribute-option-list',
            kwargs={'attribute_pk': self.attribute.pk})

    def test_create_option(self):
        response = self.client.post(
            self.list_url, {'value': 'XL'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['attribute'], self.attribute.pk)
        self.assertEqual(response.data['display_value'], 'XL')

    def test_value_required(self):
        response = self.client.post(self.list_url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('value', response.data)

    def test_duplicate_value(self):
        self.fs.AttributeOptionFactory(attribute=self.attribute, value='XL')
        response = self.client.post(
            self.list_url, {'value': 'XL'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_is_scoped_to_attribute(self):
        self.fs.AttributeOptionFactory(attribute=self.attribute)
        self.fs.AttributeOptionFactory()

        response = self.client.get(self.list_url)

        self.assertEqual(len(response.data), 1)

    def test_update_and_delete(self):
        option = self.fs.AttributeOptionFactory(attribute=self.attribute)
        url = reverse('shop:attribute-option-detail', kwargs={
            'attribute_pk': self.attribute.pk, 'pk': option.pk})

        response = self.client.patch(
            url, {'display_value': 'Extra large'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['display_value'], 'Extra large')

        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(AttributeOption.objects.filter(pk=option.pk).exists())

    def test_reorder(self):
        first = self.fs.AttributeOptionFactory(attribute=self.attribute)
        second = self.fs.AttributeOptionFactory(attribute=self.attribute)
        url = reverse(
            'shop:attribute-option-reorder',
            kwargs={'attribute_pk': self.attribute.pk})

        response = self.client.post(
            url, {'option_ids': [second.pk, first.pk]}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [o['id'] for o in response.data], [second.pk, first.pk])

    def test_reorder_rejects_foreign_options(self):
        foreign = self.fs.AttributeOptionFactory()
        url = reverse(
            'shop:attribute-option-reorder',
            kwargs={'attribute_pk': self.attribute.pk})

        response = self.client.post(
            url, {'option_ids': [foreign.pk]}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AttributeAccessTest(AuthenticatedUserTestBase):
    def test_customer_cannot_manage(self):
        response = self.client.get(reverse('shop:attribute-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class FilterableAttributesTest(APITestCase):
    def test_public_filterable_list(self):
        colour = factories.AttributeFactory(is_filterable=True)
        factories.AttributeOptionFactory(attribute=colour, value='red')
        factories.AttributeFactory(is_filterable=False)

        response = self.client.get(reverse('shop:attribute-filterable'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([a['id'] for a in response.data], [colour.pk])
        self.assertEqual(response.data[0]['options'][0]['value'], 'red')
