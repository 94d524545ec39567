from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from shop.models import Product, ProductPromotion, Promotion


class ProductPromotionSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    regular_price = serializers.DecimalField(
        source='product.price', max_digits=10, decimal_places=2,
        read_only=True)
    effective_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = ProductPromotion
        fields = (
            'id', 'product', 'product_name', 'regular_price',
            'discount_override', 'promotional_price', 'effective_price', )


class PromotionSerializer(serializers.ModelSerializer):
    is_running = serializers.BooleanField(read_only=True)
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Promotion
        fields = (
            'id', 'name', 'description', 'start_date', 'end_date',
            'is_active', 'is_running', 'promotion_type', 'discount_value',
            'minimum_order_value', 'rules', 'product_count', 'created',
            'modified', )

    def get_product_count(self, obj):
        return obj.products.count()

    def validate_rules(self, rules):
        if isinstance(rules, dict):
            return rules
        if isinstance(rules, list) and all(isinstance(rule, dict) for rule in rules):
            return rules
        raise serializers.ValidationError(
            _('Rules must be an object or a list of objects.'))

    def validate(self, attrs):
        attrs = super().validate(attrs)
        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start and end and end <= start:
            raise serializers.ValidationError({
                'end_date': _('End date must be after the start date.')
            })
        return attrs


class PromotionDetailSerializer(PromotionSerializer):
    products = ProductPromotionSerializer(many=True, read_only=True)

    class Meta(PromotionSerializer.Meta):
        fields = PromotionSerializer.Meta.fields + ('products', )


class PromotionProductInputSerializer(serializers.Serializer):
    product_id = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.all(), source='product')
    discount_override = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True)
    promotional_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False,
        allow_null=True)


class PromotionProductsSerializer(serializers.Serializer):
    """ Adds products to a promotion, updating overrides of ones already in it """
    products = PromotionProductInputSerializer(many=True, allow_empty=False)

    def save(self):
        promotion = self.context['promotion']
        memberships = []
        for entry in self.validated_data['products']:
            membership, created = ProductPromotion.objects.update_or_create(
                promotion=promotion, product=entry['product'],
                defaults={
                    'discount_override': entry.get('discount_override'),
                    'promotional_price': entry.get('promotional_price'),
                })
            memberships.append(membership)
        return memberships


class CartItemSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False)


class CartValidationSerializer(serializers.Serializer):
    items = CartItemSerializer(many=True, allow_empty=False)

    def validate_items(self, items):
        product_ids = {item['product_id'] for item in items}
        known = set(Product.objects.filter(
            pk__in=product_ids).values_list('pk', flat=True))
        if product_ids - known:
            raise serializers.ValidationError(
                'Unknown products: ' +
                ', '.join(map(str, sorted(product_ids - known))))
        return items
