from django.shortcuts import get_object_or_404
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from shop.decorators import shop_errors_as_400
from shop.models import ProductPromotion, Promotion
from shop.paginations import StandardResultsSetPagination
from shop.permissions import IsAdmin
from shop.serializers.promotion import (
    CartValidationSerializer,
    ProductPromotionSerializer,
    PromotionDetailSerializer,
    PromotionProductsSerializer,
    PromotionSerializer,
)
from shop.services import promotion_rules


class PromotionViewSet(viewsets.ModelViewSet):
    queryset = Promotion.objects.all()
    serializer_class = PromotionSerializer
    permission_classes = (IsAdmin, )
    pagination_class = StandardResultsSetPagination

    def get_serializer_class(self):
        serializer_map = {
            'retrieve': PromotionDetailSerializer,
            'active': PromotionDetailSerializer,
            'validate_cart': CartValidationSerializer,
            'add_products': PromotionProductsSerializer,
        }
        return serializer_map.get(self.action, self.serializer_class)

    @action(
        detail=False, methods=['get'], url_path='active', url_name='active',
        permission_classes=[AllowAny])
    def active(self, request, *args, **kwargs):
        promotions = Promotion.objects.running().prefetch_related(
            'products__product')
        return Response(self.get_serializer(promotions, many=True).data)

    @action(
        detail=False, methods=['post'],
        url_path='validate-cart', url_name='validate-cart',
        permission_classes=[AllowAny])
    @shop_errors_as_400
    def validate_cart(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(
            promotion_rules.validate_cart(serializer.validated_data['items']))

    @action(
        detail=True, methods=['post'],
        url_path='products', url_name='products')
    def add_products(self, request, *args, **kwargs):
        promotion = self.get_object()
        serializer = PromotionProductsSerializer(
            data=request.data, context={'promotion': promotion})
        serializer.is_valid(raise_exception=True)
        memberships = serializer.save()
        return Response(
            ProductPromotionSerializer(memberships, many=True).data,
            status=status.HTTP_201_CREATED)

    @action(
        detail=True, methods=['delete'],
        url_path=r'products/(?P<product_id>\d+)', url_name='remove-product')
    def remove_product(self, request, product_id=None, *args, **kwargs):
        promotion = self.get_object()
        membership = get_object_or_404(
            ProductPromotion, promotion=promotion, product_id=product_id)
        membership.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
