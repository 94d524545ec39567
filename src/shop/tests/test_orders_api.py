from decimal import Decimal

from django.core import mail
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from shop import factories
from shop.constants.status import (
    ORDER_EVENT, ORDER_STATUS, PAYMENT_STATUS, SHIPMENT_STATUS
)
from shop.models import CreditTransaction, Order, SupplierOrder
from storefront.test import AdminUserTestBase, AuthenticatedUserTestBase


class PlaceOrderTest(AuthenticatedUserTestBase):
    def setUp(self):
        super().setUp()
        self.shirt = self.fs.ProductFactory(
            price=Decimal('150.00'), cost_price=Decimal('90.00'))
        self.cap = self.fs.ProductFactory(
            price=Decimal('120.00'), sale_price=Decimal('100.00'),
            cost_price=None)
        self.locker = self.fs.PudoLockerFactory(code='CG54')
        self.url = reverse('shop:order-list')

    def payload(self, **kwargs):
        data = {
            'items': [
                {'product_id': self.shirt.pk, 'quantity': 2,
                 'selected_attributes': {'size': 'M'}},
                {'product_id': self.cap.pk, 'quantity': 1},
            ],
            'customer_name': 'Thandi Nkosi',
            'customer_phone': '0821234567',
            'locker_code': 'CG54',
        }
        data.update(kwargs)
        return data

    def test_order_is_priced_from_catalog(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.url, self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order = Order.objects.get(pk=response.data['id'])
        self.assertEqual(order.user, self.user)
        self.assertEqual(order.customer_email, self.user.email)
        self.assertEqual(order.status, ORDER_STATUS.pending)
        self.assertEqual(order.payment_status, PAYMENT_STATUS.pending)
        self.assertEqual(order.subtotal, Decimal('400.00'))
        self.assertEqual(order.shipping_cost, Decimal('85.00'))
        self.assertEqual(order.total_amount, Decimal('485.00'))
        self.assertEqual(order.selected_locker, self.locker)
        self.assertEqual(order.locker_details['code'], 'CG54')

        shirt_line = order.items.get(product=self.shirt)
        self.assertEqual(shirt_line.total_price, Decimal('300.00'))
        self.assertEqual(shirt_line.attribute_display_text, 'size: M')

        self.assertEqual(
            list(order.history.values_list('event_type', flat=True)),
            [ORDER_EVENT.order_created])
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(order.order_number, mail.outbox[0].subject)

    def test_supplier_orders_use_cost_price(self):
        response = self.client.post(self.url, self.payload(), format='json')

        supplier_orders = SupplierOrder.objects.filter(
            order_id=response.data['id'])
        self.assertEqual(supplier_orders.count(), 2)
        self.assertEqual(
            supplier_orders.get(product=self.shirt).unit_cost, Decimal('90.00'))
        # Falls back to the price paid when there is no cost price
        self.assertEqual(
            supplier_orders.get(product=self.cap).unit_cost, Decimal('100.00'))

    def test_credit_is_capped_at_balance(self):
        CreditTransaction.objects.earn(self.user, Decimal('50.00'))

        response = self.client.post(
            self.url, self.payload(credit_to_use='80.00'), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order = Order.objects.get(pk=response.data['id'])
        self.assertEqual(order.credit_used, Decimal('50.00'))
        self.assertEqual(order.total_amount, Decimal('435.00'))
        self.user.credit.refresh_from_db()
        self.assertEqual(self.user.credit.available_credit_amount, Decimal('0'))

    def test_inactive_product_is_rejected(self):
        self.cap.is_active = False
        self.cap.save()

        response = self.client.post(self.url, self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Order.objects.exists())

    def test_unknown_locker(self):
        response = self.client.post(
            self.url, self.payload(locker_code='NOPE'), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('NOPE', response.data['error'])

    def test_lists_only_own_orders(self):
        own = self.fs.OrderFactory(user=self.user)
        self.fs.OrderFactory()

        response = self.client.get(self.url)

        self.assertEqual(
            [o['id'] for o in response.data['results']], [own.pk])

    def test_payment_sent(self):
        order = self.fs.OrderFactory(user=self.user)
        url = reverse('shop:order-payment-sent', kwargs={'pk': order.pk})

        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], PAYMENT_STATUS.paid)

        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AdminOrderTest(AdminUserTestBase):
    def setUp(self):
        super().setUp()
        self.order = self.fs.OrderFactory()

    def url(self, name):
        return reverse(f'shop:admin-order-{name}', kwargs={'pk': self.order.pk})

    def test_list_and_filter(self):
        self.fs.OrderFactory(status=ORDER_STATUS.shipped)

        response = self.client.get(
            reverse('shop:admin-order-list'), {'status': ORDER_STATUS.pending})

        self.assertEqual(
            [o['id'] for o in response.data['results']], [self.order.pk])

    def test_customer_cannot_use_admin_routes(self):
        self.authenticate(self.fs.UserFactory())
        response = self.client.get(reverse('shop:admin-order-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_status_flow_records_history(self):
        response = self.client.patch(
            self.url('status'), {'status': ORDER_STATUS.confirmed}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.patch(self.url('status'), {
                'status': ORDER_STATUS.shipped,
                'tracking_number': 'PUDO123',
                'notes': 'Collected by courier',
            }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], ORDER_STATUS.shipped)
        self.assertEqual(response.data['tracking_number'], 'PUDO123')
        self.assertIsNotNone(response.data['shipped_at'])
        last = response.data['history'][-1]
        self.assertEqual(last['previous_status'], ORDER_STATUS.confirmed)
        self.assertEqual(last['changed_by'], self.user.pk)
        self.assertEqual(last['notes'], 'Collected by courier')
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('shipped', mail.outbox[0].subject)

    def test_illegal_transition(self):
        response = self.client.patch(
            self.url('status'), {'status': ORDER_STATUS.delivered}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, ORDER_STATUS.pending)

    def test_shipping_requires_tracking_number(self):
        response = self.client.patch(
            self.url('status'), {'status': ORDER_STATUS.shipped}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancelled_is_final(self):
        self.client.patch(
            self.url('status'), {'status': ORDER_STATUS.cancelled}, format='json')
        response = self.client.patch(
            self.url('status'), {'status': ORDER_STATUS.confirmed}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_tracking_update(self):
        response = self.client.patch(
            self.url('tracking'), {'tracking_number': 'TRK-9'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['tracking_number'], 'TRK-9')
        self.assertEqual(
            response.data['history'][-1]['event_type'],
            ORDER_EVENT.tracking_updated)

    def test_payment_received_needs_customer_confirmation(self):
        response = self.client.post(self.url('payment-received'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        Order.objects.filter(pk=self.order.pk).update(
            payment_status=PAYMENT_STATUS.paid)
        response = self.client.post(self.url('payment-received'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.data['payment_status'], PAYMENT_STATUS.payment_received)
        self.assertEqual(response.data['status'], ORDER_STATUS.processing)


class ShipmentTest(AdminUserTestBase):
    def setUp(self):
        super().setUp()
        self.order = self.fs.OrderFactory(
            status=ORDER_STATUS.shipped, tracking_number='ORDER-TRK')
        self.first = self.fs.OrderShipmentFactory(order=self.order)
        self.second = self.fs.OrderShipmentFactory(order=self.order)

    def status_url(self, shipment):
        return reverse('shop:admin-shipment-status', kwargs={
            'order_pk': self.order.pk, 'pk': shipment.pk})

    def move(self, shipment, *statuses):
        for value in statuses:
            data = {'status': value}
            if value == SHIPMENT_STATUS.shipped:
                data['tracking_number'] = f'SHIP-{shipment.pk}'
            response = self.client.patch(
                self.status_url(shipment), data, format='json')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
        return response

    def test_create_shipment(self):
        supplier = self.fs.SupplierFactory()
        url = reverse(
            'shop:admin-shipment-list', kwargs={'order_pk': self.order.pk})

        response = self.client.post(url, {
            'supplier': supplier.pk, 'display_label': 'From Acme',
            'items': [{'product_name': 'Shirt', 'quantity': 1}],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['order'], self.order.pk)
        self.assertEqual(response.data['status'], SHIPMENT_STATUS.pending)
        self.assertEqual(response.data['supplier_name'], supplier.name)

    def test_order_delivered_after_last_shipment(self):
        self.move(self.first, SHIPMENT_STATUS.shipped, SHIPMENT_STATUS.delivered)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, ORDER_STATUS.shipped)

        with self.captureOnCommitCallbacks(execute=True):
            self.move(
                self.second, SHIPMENT_STATUS.shipped, SHIPMENT_STATUS.delivered)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, ORDER_STATUS.delivered)
        self.assertIsNotNone(self.order.delivered_at)
        self.assertEqual(len(mail.outbox), 1)

    def test_cancelled_shipments_are_ignored(self):
        self.move(self.first, SHIPMENT_STATUS.cancelled)
        self.move(self.second, SHIPMENT_STATUS.shipped, SHIPMENT_STATUS.delivered)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, ORDER_STATUS.delivered)

    def test_illegal_shipment_transition(self):
        response = self.client.patch(
            self.status_url(self.first),
            {'status': SHIPMENT_STATUS.delivered}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class TrackingLookupTest(APITestCase):
    def test_by_order_tracking_number(self):
        order = factories.OrderFactory(tracking_number='TRK-ORDER')

        response = self.client.get(
            reverse('shop:track', kwargs={'tracking_number': 'TRK-ORDER'}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['order_number'], order.order_number)

    def test_by_shipment_tracking_number(self):
        order = factories.OrderFactory()
        factories.OrderShipmentFactory(order=order, tracking_number='TRK-A')
        factories.OrderShipmentFactory(order=order, tracking_number='TRK-A')

        response = self.client.get(
            reverse('shop:track', kwargs={'tracking_number': 'TRK-A'}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['shipments']), 2)

    def test_unknown(self):
        response = self.client.get(
            reverse('shop:track', kwargs={'tracking_number': 'missing'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
