import json
import time
from decimal import Decimal

import mock
import requests
from django.core import mail
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from shop import factories
from shop.constants.status import (
    ORDER_EVENT, ORDER_STATUS, PAYMENT_METHOD, PAYMENT_STATUS, PROMOTION_TYPE
)
from shop.exceptions import YocoError
from shop.models import Order, SupplierOrder
from shop.services import yoco
from storefront.test import AuthenticatedUserTestBase


class WebhookSignatureTest(TestCase):
    def test_compute_signature_is_stable(self):
        first = yoco.compute_signature('msg_1', '1700000000', b'{}')
        second = yoco.compute_signature('msg_1', '1700000000', b'{}')
        other = yoco.compute_signature('msg_2', '1700000000', b'{}')

        self.assertEqual(first, second)
        self.assertNotEqual(first, other)

    def test_timestamp_tolerance(self):
        self.assertTrue(yoco.is_valid_timestamp('1000', now=1100))
        self.assertFalse(yoco.is_valid_timestamp('1000', now=1181))
        self.assertFalse(yoco.is_valid_timestamp('soon'))

    def test_verify_accepts_any_listed_signature(self):
        timestamp = str(int(time.time()))
        signature = yoco.compute_signature('msg_1', timestamp, b'{}')

        yoco.verify_webhook({
            'webhook-id': 'msg_1',
            'webhook-timestamp': timestamp,
            'webhook-signature': f'v1,bm90LWl0 v1,{signature}',
        }, b'{}')

    @override_settings(YOCO_WEBHOOK_SECRET='')
    def test_verify_without_secret(self):
        with self.assertRaises(YocoError) as e:
            yoco.verify_webhook({
                'webhook-id': 'msg_1',
                'webhook-timestamp': str(int(time.time())),
                'webhook-signature': 'v1,abc',
            }, b'{}')
        self.assertEqual(e.exception.status_code, 500)

    def test_transaction_fee(self):
        fee = yoco.calculate_transaction_fee(48500)

        # 2.95% of R485.00 is R14.31, plus R2.00
        self.assertEqual(fee['fee_amount'], Decimal('16.31'))
        self.assertEqual(fee['fee_percentage'], Decimal('2.95'))


class YocoWebhookTest(APITestCase):
    def setUp(self):
        self.url = reverse('shop:yoco_webhook')
        self.customer = factories.UserFactory()
        self.product = factories.ProductFactory(price=Decimal('200.00'))
        self.locker = factories.PudoLockerFactory(code='CG54')

    def payment_event(self, event_type=yoco.YOCO_EVENT.payment_succeeded,
                      checkout_id='chk_1', locker_code='CG54'):
        cart = {
            'items': [{
                'productId': self.product.pk,
                'productName': 'Old name',
                'quantity': 2,
                'unitPrice': 200,
                'selectedAttributes': {'size': 'M'},
            }],
            'shippingCost': 85,
            'shippingAddress': {'addressLine1': '1 Main Rd', 'city': 'Sandton',
                                'postalCode': '2196'},
            'lockerDetails': {'code': locker_code, 'name': 'Sandton City'},
        }
        return {
            'id': 'evt_1',
            'type': event_type,
            'payload': {
                'id': 'p_1',
                'amount': 48500,
                'metadata': {
                    'checkoutId': checkout_id,
                    'customerId': str(self.customer.pk),
                    'customerEmail': self.customer.email,
                    'customerFullName': 'Thandi Nkosi',
                    'cartData': json.dumps(cart),
                },
            },
        }

    def post_event(self, event, webhook_id='msg_1', timestamp=None,
                   signature=None):
        body = json.dumps(event).encode()
        timestamp = timestamp or str(int(time.time()))
        signature = signature or yoco.compute_signature(webhook_id, timestamp, body)
        return self.client.post(
            self.url, body, content_type='application/json',
            HTTP_WEBHOOK_ID=webhook_id,
            HTTP_WEBHOOK_TIMESTAMP=timestamp,
            HTTP_WEBHOOK_SIGNATURE=f'v1,{signature}',
        )

    def test_missing_headers(self):
        response = self.client.post(
            self.url, json.dumps(self.payment_event()),
            content_type='application/json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['error'], 'Missing webhook headers')

    def test_stale_timestamp(self):
        stale = str(int(time.time()) - 600)
        response = self.post_event(self.payment_event(), timestamp=stale)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['error'], 'Invalid timestamp')

    def test_bad_signature(self):
        response = self.post_event(self.payment_event(), signature='Zm9yZ2Vk')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Order.objects.exists())

    def test_payment_succeeded_creates_paid_order(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.post_event(self.payment_event())

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertTrue(data['processed'])
        self.assertEqual(data['status'], 'order_created_and_paid')

        order = Order.objects.get(pk=data['order_id'])
        self.assertEqual(order.user, self.customer)
        self.assertEqual(order.customer_name, 'Thandi Nkosi')
        self.assertEqual(order.payment_method, PAYMENT_METHOD.card)
        self.assertEqual(order.payment_status, PAYMENT_STATUS.payment_received)
        self.assertEqual(order.status, ORDER_STATUS.processing)
        self.assertEqual(order.subtotal, Decimal('400.00'))
        self.assertEqual(order.shipping_cost, Decimal('85.00'))
        self.assertEqual(order.total_amount, Decimal('485.00'))
        self.assertEqual(order.transaction_fee_amount, Decimal('16.31'))
        self.assertEqual(order.yoco_payment_id, 'p_1')
        self.assertEqual(order.selected_locker, self.locker)
        self.assertEqual(order.shipping_city, 'Sandton')

        item = order.items.get()
        self.assertEqual(item.product_name, self.product.name)
        self.assertEqual(item.attribute_display_text, 'size: M')
        self.assertEqual(
            order.history.get().event_type, ORDER_EVENT.order_created_after_payment)
        self.assertEqual(SupplierOrder.objects.filter(order=order).count(), 1)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(self.customer.email, mail.outbox[0].to)

    def test_duplicate_delivery_is_acknowledged(self):
        first = self.post_event(self.payment_event()).json()

        response = self.post_event(self.payment_event(), webhook_id='msg_2')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.json()['processed'])
        self.assertEqual(response.json()['message'], 'Already processed')
        self.assertEqual(response.json()['order_id'], first['order_id'])
        self.assertEqual(Order.objects.count(), 1)

    def test_unknown_locker_keeps_snapshot(self):
        response = self.post_event(self.payment_event(locker_code='GONE'))

        order = Order.objects.get(pk=response.json()['order_id'])
        self.assertIsNone(order.selected_locker)
        self.assertEqual(order.locker_details['code'], 'GONE')

    def test_missing_checkout_id(self):
        event = self.payment_event()
        del event['payload']['metadata']['checkoutId']

        response = self.post_event(event)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Order.objects.exists())

    def test_invalid_customer_email(self):
        event = self.payment_event()
        event['payload']['metadata']['customerEmail'] = 'not-an-email'

        response = self.post_event(event)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Invalid customer email', response.json()['error'])
        self.assertFalse(Order.objects.exists())
        self.assertEqual(len(mail.outbox), 0)

    def test_broken_cart_data(self):
        event = self.payment_event()
        event['payload']['metadata']['cartData'] = '{not json'

        response = self.post_event(event)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('cart data', response.json()['error'])

    def test_failed_payment_is_acknowledged(self):
        response = self.post_event(
            self.payment_event(event_type=yoco.YOCO_EVENT.payment_failed))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.json()['processed'])
        self.assertFalse(Order.objects.exists())

    def test_unhandled_event(self):
        response = self.post_event(self.payment_event(event_type='refund.created'))
        self.assertIn('Unhandled event type', response.json()['message'])

    def test_get_not_allowed(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)


class YocoCheckoutTest(AuthenticatedUserTestBase):
    def setUp(self):
        super().setUp()
        self.url = reverse('shop:yoco-checkout')
        self.product = self.fs.ProductFactory(price=Decimal('150.00'))
        self.locker = self.fs.PudoLockerFactory(code='CG54')

    def payload(self, **kwargs):
        data = {
            'items': [{'product_id': self.product.pk, 'quantity': 2}],
            'customer_phone': '0820000000',
            'locker_code': 'CG54',
        }
        data.update(kwargs)
        return data

    @mock.patch('shop.services.yoco.requests.post')
    def test_opens_checkout(self, post):
        post.return_value = mock.Mock(ok=True, status_code=200)
        post.return_value.json.return_value = {
            'id': 'ch_yoco_1', 'redirectUrl': 'https://pay.yoco.com/ch_yoco_1'}

        response = self.client.post(self.url, self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['yoco_checkout_id'], 'ch_yoco_1')
        self.assertEqual(response.data['amount'], Decimal('385.00'))
        self.assertTrue(response.data['checkout_id'].startswith('chk_'))

        sent = post.call_args[1]['json']
        self.assertEqual(sent['amount'], 38500)
        self.assertEqual(sent['currency'], 'ZAR')
        self.assertEqual(sent['metadata']['checkoutId'], response.data['checkout_id'])
        self.assertEqual(sent['metadata']['customerEmail'], self.user.email)
        cart = json.loads(sent['metadata']['cartData'])
        self.assertEqual(cart['items'][0]['unitPrice'], 150.0)
        self.assertEqual(cart['lockerDetails']['code'], 'CG54')
        # No order until the payment webhook arrives
        self.assertFalse(Order.objects.exists())

    @mock.patch('shop.services.yoco.requests.post')
    def test_gateway_unreachable(self, post):
        post.side_effect = requests.exceptions.ConnectionError('down')

        response = self.client.post(self.url, self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    @mock.patch('shop.services.yoco.requests.post')
    def test_gateway_rejects(self, post):
        post.return_value = mock.Mock(ok=False, status_code=422, text='bad')

        response = self.client.post(self.url, self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    @mock.patch('shop.services.yoco.requests.post')
    def test_unknown_locker(self, post):
        response = self.client.post(
            self.url, self.payload(locker_code='NOPE'), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        post.assert_not_called()

    @override_settings(YOCO_SECRET_KEY='')
    def test_not_configured(self):
        response = self.client.post(self.url, self.payload(), format='json')
        self.assertEqual(
            response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    def test_promotion_requirements_block_checkout(self):
        promotion = self.fs.PromotionFactory(
            promotion_type=PROMOTION_TYPE.buy_x_get_y, rules={'buyQuantity': 3})
        self.fs.ProductPromotionFactory(promotion=promotion, product=self.product)

        response = self.client.post(self.url, self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(len(response.data['violations']), 1)

    def test_requires_login(self):
        self.client.credentials()
        response = self.client.post(self.url, self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
