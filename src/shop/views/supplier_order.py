from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from shop.decorators import shop_errors_as_400
from shop.filtersets import SupplierOrderFilterSet
from shop.models import SupplierOrder
from shop.paginations import StandardResultsSetPagination
from shop.permissions import IsAdmin
from shop.serializers.supplier_order import (
    SupplierOrderSerializer, SupplierOrderStatusSerializer
)
from shop.serializers.user import CreditTransactionSerializer
from shop.services import supplier_orders


class SupplierOrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet
):
    queryset = SupplierOrder.objects.select_related('order', 'order_item')\
        .prefetch_related('credit_transactions')
    serializer_class = SupplierOrderSerializer
    permission_classes = (IsAdmin, )
    filter_backends = (DjangoFilterBackend, )
    filterset_class = SupplierOrderFilterSet
    pagination_class = StandardResultsSetPagination

    def get_serializer_class(self):
        if self.action == 'change_status':
            return SupplierOrderStatusSerializer
        return super().get_serializer_class()

    def supplier_order_response(self, supplier_order, status_code=status.HTTP_200_OK):
        supplier_order = self.get_queryset().get(pk=supplier_order.pk)
        return Response(
            SupplierOrderSerializer(supplier_order).data, status=status_code)

    @action(detail=True, methods=['patch'], url_path='status', url_name='status')
    @shop_errors_as_400
    def change_status(self, request, *args, **kwargs):
        supplier_order = self.get_object()
        serializer = self.get_serializer(supplier_order, data=request.data)
        serializer.is_valid(raise_exception=True)
        supplier_orders.change_status(supplier_order, **serializer.validated_data)
        return self.supplier_order_response(supplier_order)

    @action(
        detail=True, methods=['post'],
        url_path='validate-url', url_name='validate-url')
    def validate_url(self, request, *args, **kwargs):
        supplier_order = supplier_orders.validate_supplier_url(self.get_object())
        return self.supplier_order_response(supplier_order)

    @action(
        detail=True, methods=['post'],
        url_path='generate-credit', url_name='generate-credit')
    @shop_errors_as_400
    def generate_credit(self, request, *args, **kwargs):
        credit = supplier_orders.issue_credit(self.get_object())
        return Response(
            CreditTransactionSerializer(credit).data,
            status=status.HTTP_201_CREATED)
