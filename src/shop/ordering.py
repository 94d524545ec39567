from rest_framework.filters import OrderingFilter


class ProductOrderingFilter(OrderingFilter):
    """
    Regular `?ordering=price,-created` plus the storefront aliases
    `newest`, `featured`, `price_low` and `price_high`.
    """
    ordering_aliases = {
        'newest': ('-created', ),
        'featured': ('-is_featured', 'display_order', '-created'),
        'price_low': ('price', ),
        'price_high': ('-price', ),
    }

    def get_ordering(self, request, queryset, view):
        selection = request.query_params.get(self.ordering_param)
        if selection in self.ordering_aliases:
            return list(self.ordering_aliases[selection])
        return super().get_ordering(request, queryset, view)
