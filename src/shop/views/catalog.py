from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from shop.filtersets import ProductFilterSet
from shop.models import Category, Product, Supplier
from shop.ordering import ProductOrderingFilter
from shop.paginations import StandardResultsSetPagination
from shop.permissions import IsAdmin, IsAdminOrReadOnly
from shop.serializers.catalog import (
    CategorySerializer,
    CategoryTreeSerializer,
    ProductAttributeSerializer,
    ProductDetailSerializer,
    ProductSerializer,
    SupplierSerializer,
)


class ProductViewSet(viewsets.ModelViewSet):
    """
    Storefront catalogue. Anyone can browse active products; staff see
    every product and manage them through the same routes.
    """
    serializer_class = ProductSerializer
    permission_classes = (IsAdminOrReadOnly, )
    filter_backends = (
        DjangoFilterBackend, ProductOrderingFilter, filters.SearchFilter)
    filterset_class = ProductFilterSet
    search_fields = ['name', 'description', 'sku']
    ordering_fields = ['price', 'name', 'created', 'display_order']
    pagination_class = StandardResultsSetPagination

    def get_serializer_class(self):
        serializer_map = {
            'retrieve': ProductDetailSerializer,
            'by_slug': ProductDetailSerializer,
            'toggle_active': ProductDetailSerializer,
        }
        return serializer_map.get(self.action, self.serializer_class)

    def get_queryset(self):
        qs = Product.objects.select_related('category', 'supplier')
        if self.action in ('retrieve', 'by_slug'):
            qs = qs.prefetch_related('images', 'attributes__attribute', 'tags')
        user = self.request.user
        if user.is_authenticated and user.is_staff:
            return qs
        return qs.active()

    @action(
        detail=False, methods=['get'],
        url_path=r'slug/(?P<slug>[-\w]+)', url_name='slug')
    def by_slug(self, request, slug=None):
        product = get_object_or_404(self.get_queryset(), slug=slug)
        return Response(self.get_serializer(product).data)

    @action(
        detail=True, methods=['patch'],
        url_path='toggle-active', url_name='toggle-active',
        permission_classes=[IsAdmin])
    def toggle_active(self, request, *args, **kwargs):
        product = self.get_object()
        product.is_active = not product.is_active
        product.modified_by = request.user
        product.save(update_fields=['is_active', 'modified_by', 'modified'])
        return Response(self.get_serializer(product).data)

    @action(
        detail=True, methods=['get'],
        url_path='attributes', url_name='attributes',
        permission_classes=[IsAdmin])
    def attributes(self, request, *args, **kwargs):
        product = self.get_object()
        serializer = ProductAttributeSerializer(
            product.attributes.select_related('attribute'), many=True)
        return Response(serializer.data)


class CategoryViewSet(viewsets.ModelViewSet):
    serializer_class = CategorySerializer
    permission_classes = (IsAdminOrReadOnly, )
    pagination_class = None

    def get_queryset(self):
        qs = Category.objects.all()
        user = self.request.user
        if not (user.is_authenticated and user.is_staff):
            qs = qs.filter(is_active=True)
        return qs.order_by('tree_id', 'lft')

    @action(
        detail=False, methods=['get'], url_path='tree', url_name='tree',
        permission_classes=[AllowAny])
    def tree(self, request, *args, **kwargs):
        roots = Category.objects.root_nodes().filter(is_active=True)
        return Response(CategoryTreeSerializer(roots, many=True).data)

    def destroy(self, request, *args, **kwargs):
        category = self.get_object()
        if Product.objects.in_category(category).exists():
            return Response(
                {'error': 'Cannot delete a category that still has products'},
                status=status.HTTP_400_BAD_REQUEST)
        category.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class SupplierViewSet(viewsets.ModelViewSet):
    queryset = Supplier.objects.all()
    serializer_class = SupplierSerializer
    permission_classes = (IsAdmin, )
    filter_backends = (filters.SearchFilter, )
    search_fields = ['name', 'email']
    pagination_class = StandardResultsSetPagination
