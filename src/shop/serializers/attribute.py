from django.db import transaction
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from shop.models import Attribute, AttributeOption


class AttributeOptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = AttributeOption
        fields = (
            'id', 'attribute', 'value', 'display_value', 'metadata',
            'sort_order', )
        read_only_fields = ('attribute', )
        extra_kwargs = {
            'display_value': {'required': False},
        }

    def validate_value(self, value):
        attribute = self.context.get('attribute') or \
            getattr(self.instance, 'attribute', None)
        duplicates = AttributeOption.objects.filter(
            attribute=attribute, value=value)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if attribute is not None and duplicates.exists():
            raise serializers.ValidationError(
                _('This attribute already has an option with this value.'))
        return value

    def create(self, validated_data):
        validated_data['attribute'] = self.context['attribute']
        return super().create(validated_data)


class InlineOptionSerializer(serializers.Serializer):
    value = serializers.CharField(max_length=255)
    display_value = serializers.CharField(
        max_length=255, required=False, allow_blank=True)
    metadata = serializers.JSONField(required=False)
    sort_order = serializers.IntegerField(required=False)


class AttributeSerializer(serializers.ModelSerializer):
    options = InlineOptionSerializer(many=True, required=False, write_only=True)

    class Meta:
        model = Attribute
        fields = (
            'id', 'name', 'display_name', 'description', 'attribute_type',
            'validation_rules', 'is_required', 'is_filterable',
            'is_comparable', 'is_swatch', 'display_in_product_summary',
            'sort_order', 'options', 'created', 'modified', )

    def validate_options(self, options):
        values = [option['value'] for option in options]
        if len(values) != len(set(values)):
            raise serializers.ValidationError(_('Option values must be unique.'))
        return options

    @transaction.atomic
    def create(self, validated_data):
        options = validated_data.pop('options', [])
        attribute = super().create(validated_data)
        for index, option in enumerate(options):
            option.setdefault('sort_order', index)
            AttributeOption.objects.create(attribute=attribute, **option)
        return attribute

    def update(self, instance, validated_data):
        validated_data.pop('options', None)
        return super().update(instance, validated_data)


class AttributeWithOptionsSerializer(serializers.ModelSerializer):
    options = AttributeOptionSerializer(many=True, read_only=True)

    class Meta:
        model = Attribute
        fields = (
            'id', 'name', 'display_name', 'description', 'attribute_type',
            'validation_rules', 'is_required', 'is_filterable',
            'is_comparable', 'is_swatch', 'display_in_product_summary',
            'sort_order', 'options', )


class OptionReorderSerializer(serializers.Serializer):
    option_ids = serializers.ListField(
        child=serializers.IntegerField(), allow_empty=False)

    def validate_option_ids(self, option_ids):
        attribute = self.context['attribute']
        known = set(attribute.options.values_list('pk', flat=True))
        if set(option_ids) - known:
            raise serializers.ValidationError(
                _('Options must belong to this attribute.'))
        return option_ids

    @transaction.atomic
    def save(self):
        for index, option_id in enumerate(self.validated_data['option_ids']):
            AttributeOption.objects.filter(pk=option_id).update(sort_order=index)
        return self.context['attribute'].options.all()
