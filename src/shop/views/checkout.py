from logging import getLogger

from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from shop.decorators import shop_errors_as_400
from shop.exceptions import YocoError
from shop.serializers.order import ShippingInputSerializer
from shop.services import promotion_rules, yoco

logger = getLogger(__name__)


class YocoCheckoutView(generics.GenericAPIView):
    """
    Opens a YoCo hosted checkout for the caller's cart. The order itself is
    written by the payment webhook.
    """
    serializer_class = ShippingInputSerializer
    permission_classes = (IsAuthenticated, )

    @shop_errors_as_400
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        items = serializer.validated_data['items']

        cart = promotion_rules.validate_cart([
            {'product_id': item['product_id'], 'quantity': item['quantity']}
            for item in items
        ])
        if not cart['can_proceed']:
            return Response({
                'error': cart['message'],
                'violations': cart['violations'],
            }, status=status.HTTP_400_BAD_REQUEST)

        try:
            checkout = yoco.start_checkout(
                request.user, items, serializer.customer(),
                locker_code=serializer.validated_data.get('locker_code') or None)
        except YocoError as e:
            if e.status_code in (None, 400):
                raise
            return Response(
                {'error': str(e)}, status=e.status_code)
        return Response(checkout, status=status.HTTP_201_CREATED)
