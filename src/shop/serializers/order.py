from django.utils.translation import gettext_lazy as _
from django_fsm import can_proceed
from rest_framework import serializers

from shop.constants.status import ORDER_EVENT, ORDER_STATUS, PAYMENT_STATUS
from shop.models import Order, OrderItem, OrderStatusHistory, Product
from shop.serializers.shipment import ShipmentSerializer


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = (
            'id', 'product', 'product_name', 'product_sku',
            'product_image_url', 'quantity', 'unit_price', 'total_price',
            'selected_attributes', 'attribute_display_text', )


class OrderStatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = (
            'id', 'status', 'payment_status', 'previous_status',
            'previous_payment_status', 'changed_by', 'event_type', 'notes',
            'tracking_number', 'created', )


class OrderListSerializer(serializers.ModelSerializer):
    count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Order
        fields = (
            'id', 'order_number', 'status', 'payment_status', 'payment_method',
            'customer_name', 'customer_email', 'total_amount', 'count',
            'tracking_number', 'created', )


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    history = OrderStatusHistorySerializer(many=True, read_only=True)
    shipments = ShipmentSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        exclude = ('selected_locker', 'modified', )


class OrderLineInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    selected_attributes = serializers.DictField(required=False)


class ShippingInputSerializer(serializers.Serializer):
    """ Customer and delivery fields shared by EFT orders and card checkout """
    items = OrderLineInputSerializer(many=True, allow_empty=False)
    customer_name = serializers.CharField(
        max_length=255, required=False, allow_blank=True)
    customer_phone = serializers.CharField(
        max_length=32, required=False, allow_blank=True)
    shipping_address = serializers.CharField(
        max_length=500, required=False, allow_blank=True)
    shipping_city = serializers.CharField(
        max_length=255, required=False, allow_blank=True)
    shipping_postal_code = serializers.CharField(
        max_length=15, required=False, allow_blank=True)
    locker_code = serializers.CharField(
        max_length=64, required=False, allow_blank=True)

    def validate_items(self, items):
        product_ids = {item['product_id'] for item in items}
        active = set(Product.objects.active().filter(
            pk__in=product_ids).values_list('pk', flat=True))
        if product_ids - active:
            raise serializers.ValidationError(
                'Unavailable products: ' +
                ', '.join(map(str, sorted(product_ids - active))))
        return items

    def customer(self) -> dict:
        data = self.validated_data
        return {
            'name': data.get('customer_name'),
            'phone': data.get('customer_phone'),
            'address': data.get('shipping_address', ''),
            'city': data.get('shipping_city', ''),
            'postal_code': data.get('shipping_postal_code', ''),
        }


class OrderCreateSerializer(ShippingInputSerializer):
    credit_to_use = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class OrderStatusSerializer(serializers.ModelSerializer):
    status = serializers.ChoiceField(
        choices=(
            ORDER_STATUS.confirmed, ORDER_STATUS.processing,
            ORDER_STATUS.shipped, ORDER_STATUS.delivered,
            ORDER_STATUS.cancelled),
        write_only=True)
    tracking_number = serializers.CharField(
        required=False, allow_blank=True, max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True)

    class Meta:
        model = Order
        fields = ('status', 'tracking_number', 'notes', )

    def validate(self, attrs):
        attrs = super().validate(attrs)
        status = attrs['status']
        if not can_proceed(self.instance.get_transition(status)):
            raise serializers.ValidationError({
                'status': (
                    f'Cannot move a {self.instance.status} order to {status}.')
            })
        tracking_number = attrs.get('tracking_number') or \
            self.instance.tracking_number
        if status == ORDER_STATUS.shipped and not tracking_number:
            raise serializers.ValidationError({
                'tracking_number': _('A tracking number is required to ship.')
            })
        return attrs

    def update(self, instance, validated_data):
        previous_status = instance.status
        status = validated_data['status']
        kwargs = {}
        if status == ORDER_STATUS.shipped:
            kwargs['tracking_number'] = validated_data.get('tracking_number')
        elif validated_data.get('tracking_number'):
            instance.tracking_number = validated_data['tracking_number']
        instance.transition_to(status, **kwargs)
        instance.save()
        instance.record_history(
            ORDER_EVENT.status_changed,
            changed_by=self.context['request'].user,
            notes=validated_data.get('notes', ''),
            previous_status=previous_status,
            previous_payment_status=instance.payment_status)
        return instance


class OrderTrackingSerializer(serializers.ModelSerializer):
    tracking_number = serializers.CharField(max_length=255)
    notes = serializers.CharField(
        required=False, allow_blank=True, write_only=True)

    class Meta:
        model = Order
        fields = ('tracking_number', 'notes', )

    def update(self, instance, validated_data):
        instance.tracking_number = validated_data['tracking_number']
        instance.save(update_fields=['tracking_number', 'modified'])
        instance.record_history(
            ORDER_EVENT.tracking_updated,
            changed_by=self.context['request'].user,
            notes=validated_data.get('notes', ''),
            previous_status=instance.status,
            previous_payment_status=instance.payment_status)
        return instance


class PaymentReceivedSerializer(serializers.ModelSerializer):
    notes = serializers.CharField(
        required=False, allow_blank=True, write_only=True)

    class Meta:
        model = Order
        fields = ('notes', )

    def validate(self, attrs):
        if self.instance.payment_status != PAYMENT_STATUS.paid:
            raise serializers.ValidationError(
                _('Payment can only be confirmed for orders marked as paid.'))
        if self.instance.status != ORDER_STATUS.processing and \
                not can_proceed(self.instance.process):
            raise serializers.ValidationError(
                f'A {self.instance.status} order cannot move to processing.')
        return super().validate(attrs)

    def update(self, instance, validated_data):
        previous_status = instance.status
        previous_payment_status = instance.payment_status
        instance.mark_payment_received()
        instance.save()
        instance.record_history(
            ORDER_EVENT.payment_received,
            changed_by=self.context['request'].user,
            notes=validated_data.get('notes', ''),
            previous_status=previous_status,
            previous_payment_status=previous_payment_status)
        return instance


class PaymentSentSerializer(serializers.ModelSerializer):
    """ Customer confirms the EFT transfer was made. """

    class Meta:
        model = Order
        fields = ('payment_status', )
        read_only_fields = ('payment_status', )

    def validate(self, attrs):
        if self.instance.payment_status != PAYMENT_STATUS.pending:
            raise serializers.ValidationError(
                _('This order is not awaiting payment.'))
        if self.instance.status == ORDER_STATUS.cancelled:
            raise serializers.ValidationError(_('This order was cancelled.'))
        return super().validate(attrs)

    def update(self, instance, validated_data):
        previous_payment_status = instance.payment_status
        instance.payment_status = PAYMENT_STATUS.paid
        instance.save(update_fields=['payment_status', 'modified'])
        instance.record_history(
            ORDER_EVENT.payment_sent,
            changed_by=self.context['request'].user,
            notes='Customer marked the EFT payment as sent',
            previous_status=instance.status,
            previous_payment_status=previous_payment_status)
        return instance


class TrackingLookupSerializer(serializers.ModelSerializer):
    shipments = ShipmentSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = (
            'order_number', 'status', 'tracking_number', 'shipped_at',
            'delivered_at', 'shipments', )
