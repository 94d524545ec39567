from django_fsm import can_proceed
from rest_framework import serializers

from shop.constants.status import SUPPLIER_ORDER_STATUS
from shop.models import SupplierOrder
from shop.serializers.user import CreditTransactionSerializer


class SupplierOrderSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(
        source='order.order_number', read_only=True)
    customer_email = serializers.CharField(
        source='order.customer_email', read_only=True)
    customer_name = serializers.CharField(
        source='order.customer_name', read_only=True)
    credit_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, read_only=True)
    credit_transactions = CreditTransactionSerializer(many=True, read_only=True)

    class Meta:
        model = SupplierOrder
        fields = (
            'id', 'order', 'order_number', 'order_item', 'product',
            'product_name', 'customer_name', 'customer_email', 'status',
            'status_changed', 'supplier_order_number', 'supplier_order_date',
            'expected_delivery', 'unit_cost', 'quantity', 'credit_amount',
            'supplier_url', 'url_validation_status', 'url_last_checked',
            'admin_notes', 'customer_notified', 'credit_transactions',
            'created', 'modified', )
        read_only_fields = fields


class SupplierOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=(
        SUPPLIER_ORDER_STATUS.pending, SUPPLIER_ORDER_STATUS.ordered,
        SUPPLIER_ORDER_STATUS.received, SUPPLIER_ORDER_STATUS.unavailable))
    notes = serializers.CharField(required=False, allow_blank=True)
    supplier_order_number = serializers.CharField(
        required=False, allow_blank=True, max_length=255)
    expected_delivery = serializers.DateField(required=False, allow_null=True)

    def validate_status(self, status):
        if not can_proceed(self.instance.get_transition(status)):
            raise serializers.ValidationError(
                f'Cannot move a {self.instance.status} supplier order '
                f'to {status}.')
        return status
