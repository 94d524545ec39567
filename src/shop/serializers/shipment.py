from django.utils.translation import gettext_lazy as _
from django_fsm import can_proceed
from rest_framework import serializers

from shop.constants.status import SHIPMENT_STATUS
from shop.models import OrderShipment


class ShipmentSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(
        source='supplier.name', read_only=True, default=None)

    class Meta:
        model = OrderShipment
        fields = (
            'id', 'order', 'supplier', 'supplier_name', 'status', 'cost',
            'tracking_number', 'display_label', 'locker_code', 'items',
            'estimated_delivery', 'shipped_at', 'delivered_at', 'created',
            'modified', )
        read_only_fields = (
            'order', 'status', 'shipped_at', 'delivered_at', )

    def create(self, validated_data):
        validated_data['order'] = self.context['order']
        return super().create(validated_data)


class ShipmentStatusSerializer(serializers.ModelSerializer):
    status = serializers.ChoiceField(
        choices=(
            SHIPMENT_STATUS.processing, SHIPMENT_STATUS.shipped,
            SHIPMENT_STATUS.delivered, SHIPMENT_STATUS.cancelled),
        write_only=True)
    tracking_number = serializers.CharField(
        required=False, allow_blank=True, max_length=255)

    class Meta:
        model = OrderShipment
        fields = ('status', 'tracking_number', )

    def validate(self, attrs):
        attrs = super().validate(attrs)
        status = attrs['status']
        if not can_proceed(self.instance.get_transition(status)):
            raise serializers.ValidationError({
                'status': (
                    f'Cannot move a {self.instance.status} shipment '
                    f'to {status}.')
            })
        tracking_number = attrs.get('tracking_number') or \
            self.instance.tracking_number
        if status == SHIPMENT_STATUS.shipped and not tracking_number:
            raise serializers.ValidationError({
                'tracking_number': _('A tracking number is required to ship.')
            })
        return attrs

    def update(self, instance, validated_data):
        kwargs = {}
        if validated_data['status'] == SHIPMENT_STATUS.shipped:
            kwargs['tracking_number'] = validated_data.get('tracking_number')
        elif validated_data.get('tracking_number'):
            instance.tracking_number = validated_data['tracking_number']
        instance.transition_to(validated_data['status'], **kwargs)
        instance.save()
        return instance
