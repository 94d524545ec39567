from django.db.models import Q
from django_filters import rest_framework as filters

from shop.models import (
    Category, Order, Product, ProductDraft, PudoLocker, Supplier,
    SupplierOrder
)


class ProductFilterSet(filters.FilterSet):
    slug = filters.CharFilter(lookup_expr='iexact')
    category = filters.ModelChoiceFilter(
        queryset=Category.objects.all(), method='filter_category')
    supplier = filters.ModelChoiceFilter(queryset=Supplier.objects.all())
    featured = filters.BooleanFilter(field_name='is_featured')
    flash_deal = filters.BooleanFilter(field_name='is_flash_deal')
    min_price = filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = filters.NumberFilter(field_name='price', lookup_expr='lte')
    brand = filters.CharFilter(lookup_expr='iexact')
    tag = filters.CharFilter(field_name='tags__name', lookup_expr='iexact')

    class Meta:
        model = Product
        fields = ['slug', 'category', 'supplier', 'brand']

    def filter_category(self, queryset, name, value):
        return queryset.in_category(value)


class ProductDraftFilterSet(filters.FilterSet):
    status = filters.CharFilter(field_name='draft_status')
    search = filters.CharFilter(method='filter_search')

    class Meta:
        model = ProductDraft
        fields = ['status']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(name__icontains=value) | Q(sku__icontains=value) |
            Q(brand__icontains=value))


class OrderFilterSet(filters.FilterSet):
    status = filters.CharFilter()
    payment_status = filters.CharFilter()
    search = filters.CharFilter(method='filter_search')

    class Meta:
        model = Order
        fields = ['status', 'payment_status']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(order_number__icontains=value) |
            Q(customer_name__icontains=value) |
            Q(customer_email__icontains=value) |
            Q(tracking_number__icontains=value))


class SupplierOrderFilterSet(filters.FilterSet):
    status = filters.CharFilter()
    url_validation_status = filters.CharFilter()
    search = filters.CharFilter(method='filter_search')

    class Meta:
        model = SupplierOrder
        fields = ['status', 'url_validation_status']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(order__order_number__icontains=value) |
            Q(product_name__icontains=value) |
            Q(order__customer_email__icontains=value))


class PudoLockerFilterSet(filters.FilterSet):
    city = filters.CharFilter(lookup_expr='icontains')
    search = filters.CharFilter(method='filter_search')

    class Meta:
        model = PudoLocker
        fields = ['city']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(name__icontains=value) | Q(address__icontains=value) |
            Q(code__icontains=value))
