from logging import getLogger

from django.db import transaction
from django.http import Http404
from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from django_fsm import can_proceed
from rest_framework import generics, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from shop.constants.status import ORDER_STATUS, SHIPMENT_STATUS, ORDER_EVENT
from shop.decorators import shop_errors_as_400
from shop.filtersets import OrderFilterSet
from shop.models import Order, OrderShipment
from shop.paginations import StandardResultsSetPagination
from shop.permissions import IsAdmin
from shop.serializers.order import (
    OrderCreateSerializer,
    OrderListSerializer,
    OrderSerializer,
    OrderStatusSerializer,
    OrderTrackingSerializer,
    PaymentReceivedSerializer,
    PaymentSentSerializer,
    TrackingLookupSerializer,
)
from shop.serializers.shipment import ShipmentSerializer, ShipmentStatusSerializer
from shop.services.checkout import place_order, price_lines
from shop.tasks.emails import send_order_status_update

logger = getLogger(__name__)

# Customers hear about these status changes by email
NOTIFY_STATUSES = (ORDER_STATUS.shipped, ORDER_STATUS.delivered)


def order_queryset():
    return Order.objects.prefetch_related('items', 'history', 'shipments')


class OrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet
):
    """ The caller's own orders. New orders are paid by EFT. """
    serializer_class = OrderSerializer
    permission_classes = (IsAuthenticated, )
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return order_queryset().filter(user=self.request.user)

    def get_serializer_class(self):
        serializer_map = {
            'list': OrderListSerializer,
            'create': OrderCreateSerializer,
            'payment_sent': PaymentSentSerializer,
        }
        return serializer_map.get(self.action, self.serializer_class)

    @shop_errors_as_400
    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        order = place_order(
            price_lines(data['items']),
            customer=serializer.customer(),
            user=request.user,
            locker_code=data.get('locker_code') or None,
            credit_to_use=data.get('credit_to_use'),
            notes=data.get('notes', ''),
        )
        return Response(
            OrderSerializer(order_queryset().get(pk=order.pk)).data,
            status=status.HTTP_201_CREATED)

    @action(
        detail=True, methods=['post'],
        url_path='payment-sent', url_name='payment-sent')
    def payment_sent(self, request, *args, **kwargs):
        order = self.get_object()
        serializer = self.get_serializer(order, data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(OrderSerializer(order).data)


class AdminOrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet
):
    serializer_class = OrderSerializer
    permission_classes = (IsAdmin, )
    filter_backends = (DjangoFilterBackend, )
    filterset_class = OrderFilterSet
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return order_queryset()

    def get_serializer_class(self):
        serializer_map = {
            'list': OrderListSerializer,
            'change_status': OrderStatusSerializer,
            'tracking': OrderTrackingSerializer,
            'payment_received': PaymentReceivedSerializer,
        }
        return serializer_map.get(self.action, self.serializer_class)

    def order_response(self, order):
        return Response(OrderSerializer(order_queryset().get(pk=order.pk)).data)

    @action(detail=True, methods=['patch'], url_path='status', url_name='status')
    @shop_errors_as_400
    def change_status(self, request, *args, **kwargs):
        order = self.get_object()
        serializer = self.get_serializer(order, data=request.data)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            order = serializer.save()
            if order.status in NOTIFY_STATUSES:
                transaction.on_commit(
                    lambda: send_order_status_update.delay(order.pk))
        logger.info(f'Order {order.order_number} moved to {order.status}')
        return self.order_response(order)

    @action(
        detail=True, methods=['patch'], url_path='tracking', url_name='tracking')
    def tracking(self, request, *args, **kwargs):
        order = self.get_object()
        serializer = self.get_serializer(order, data=request.data)
        serializer.is_valid(raise_exception=True)
        return self.order_response(serializer.save())

    @action(
        detail=True, methods=['post'],
        url_path='payment-received', url_name='payment-received')
    @shop_errors_as_400
    def payment_received(self, request, *args, **kwargs):
        order = self.get_object()
        serializer = self.get_serializer(order, data=request.data)
        serializer.is_valid(raise_exception=True)
        return self.order_response(serializer.save())


class AdminShipmentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet
):
    """ Shipments of one order, nested under `admin/orders/{id}/shipments/` """
    serializer_class = ShipmentSerializer
    permission_classes = (IsAdmin, )
    pagination_class = None
    http_method_names = ('get', 'post', 'patch', )

    def get_order(self):
        return get_object_or_404(Order, pk=self.kwargs['order_pk'])

    def get_queryset(self):
        return OrderShipment.objects.filter(
            order_id=self.kwargs['order_pk']).select_related('supplier')

    def get_serializer_class(self):
        if self.action == 'change_status':
            return ShipmentStatusSerializer
        return super().get_serializer_class()

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if self.action == 'create':
            context['order'] = self.get_order()
        return context

    @action(detail=True, methods=['patch'], url_path='status', url_name='status')
    @shop_errors_as_400
    def change_status(self, request, *args, **kwargs):
        shipment = self.get_object()
        serializer = self.get_serializer(shipment, data=request.data)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            shipment = serializer.save()
            if shipment.status == SHIPMENT_STATUS.delivered:
                self.deliver_order_when_complete(shipment.order)
        return Response(ShipmentSerializer(shipment).data)

    def deliver_order_when_complete(self, order):
        """ An order is delivered once none of its shipments is outstanding. """
        shipments = order.shipments.exclude(status=SHIPMENT_STATUS.cancelled)
        if not shipments.exists() or shipments.outstanding().exists():
            return
        if not can_proceed(order.deliver):
            logger.info(
                f'All shipments of {order.order_number} delivered but the '
                f'order is {order.status}')
            return
        previous_status = order.status
        order.deliver()
        order.save()
        order.record_history(
            ORDER_EVENT.status_changed,
            changed_by=self.request.user,
            notes='All shipments delivered',
            previous_status=previous_status,
            previous_payment_status=order.payment_status)
        transaction.on_commit(lambda: send_order_status_update.delay(order.pk))


class TrackingView(generics.RetrieveAPIView):
    serializer_class = TrackingLookupSerializer
    permission_classes = (AllowAny, )

    def get_object(self):
        order = Order.objects.for_tracking_number(
            self.kwargs['tracking_number']).prefetch_related('shipments').first()
        if order is None:
            raise Http404('No order with this tracking number')
        return order
