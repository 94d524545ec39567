from django.utils.translation import gettext_lazy as _
from rest_framework import serializers
from taggit.serializers import TaggitSerializer, TagListSerializerField

from shop.models import (
    Category, Product, ProductAttribute, ProductImage, ProductPromotion,
    Supplier
)


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = (
            'id', 'name', 'slug', 'description', 'image_url', 'icon',
            'parent', 'level', 'is_active', 'display_order', )
        read_only_fields = ('level', )
        extra_kwargs = {
            'slug': {'required': False},
        }


class CategoryTreeSerializer(serializers.ModelSerializer):
    """ Category with its active children, nested all the way down """
    children = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = (
            'id', 'name', 'slug', 'icon', 'image_url', 'level',
            'display_order', 'children', )

    def get_children(self, obj):
        children = obj.get_children().filter(is_active=True)
        return CategoryTreeSerializer(
            children, many=True, context=self.context).data


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = (
            'id', 'name', 'email', 'phone', 'contact_name', 'website',
            'notes', 'is_active', 'created', 'modified', )


class ProductImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductImage
        fields = (
            'id', 'url', 'object_key', 'is_main', 'has_bg_removed',
            'sort_order', )


class ProductAttributeSerializer(serializers.ModelSerializer):
    attribute_name = serializers.CharField(
        source='attribute.name', read_only=True)
    attribute_type = serializers.CharField(
        source='attribute.attribute_type', read_only=True)
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = ProductAttribute
        fields = (
            'id', 'attribute', 'attribute_name', 'attribute_type',
            'display_name', 'override_description', 'is_required',
            'selected_options', 'text_value', 'price_adjustment',
            'sort_order', )


class ProductPromotionSummarySerializer(serializers.ModelSerializer):
    promotion_id = serializers.IntegerField(source='promotion.pk')
    name = serializers.CharField(source='promotion.name')
    promotion_type = serializers.CharField(source='promotion.promotion_type')
    end_date = serializers.DateTimeField(source='promotion.end_date')
    effective_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = ProductPromotion
        fields = (
            'promotion_id', 'name', 'promotion_type', 'end_date',
            'discount_override', 'promotional_price', 'effective_price', )


class ProductSerializer(TaggitSerializer, serializers.ModelSerializer):
    """ List representation, also used for admin writes """
    tags = TagListSerializerField(required=False)
    category_name = serializers.CharField(
        source='category.name', read_only=True, default=None)

    class Meta:
        model = Product
        fields = (
            'id', 'name', 'slug', 'sku', 'description', 'short_description',
            'category', 'category_name', 'supplier', 'catalog_id', 'brand',
            'tags', 'price', 'sale_price', 'cost_price', 'compare_at_price',
            'minimum_price', 'discount', 'discount_label', 'stock',
            'minimum_order', 'is_active', 'is_featured', 'is_flash_deal',
            'flash_deal_end', 'free_shipping', 'weight', 'dimensions',
            'image_url', 'additional_images', 'required_attribute_ids',
            'display_order', 'special_sale_text', 'special_sale_start',
            'special_sale_end', 'meta_title', 'meta_description',
            'meta_keywords', 'canonical_url', 'supplier_url',
            'supplier_available', 'rating', 'review_count', 'created',
            'modified', )
        read_only_fields = ('rating', 'review_count', )
        extra_kwargs = {
            'slug': {'required': False},
        }

    def validate(self, attrs):
        attrs = super().validate(attrs)
        price = attrs.get('price', getattr(self.instance, 'price', None))
        sale_price = attrs.get(
            'sale_price', getattr(self.instance, 'sale_price', None))
        if sale_price is not None and price is not None and sale_price >= price:
            raise serializers.ValidationError({
                'sale_price': _('Sale price must be less than regular price.')
            })
        return attrs

    def create(self, validated_data):
        user = self.context['request'].user
        validated_data['created_by'] = user
        validated_data['modified_by'] = user
        return super().create(validated_data)

    def update(self, instance, validated_data):
        validated_data['modified_by'] = self.context['request'].user
        return super().update(instance, validated_data)


class ProductDetailSerializer(ProductSerializer):
    images = ProductImageSerializer(many=True, read_only=True)
    attributes = ProductAttributeSerializer(many=True, read_only=True)
    active_promotions = serializers.SerializerMethodField()
    current_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, read_only=True)

    class Meta(ProductSerializer.Meta):
        fields = ProductSerializer.Meta.fields + (
            'images', 'attributes', 'active_promotions', 'current_price', )

    def get_active_promotions(self, obj):
        return ProductPromotionSummarySerializer(
            obj.active_promotions(), many=True).data
