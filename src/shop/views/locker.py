from logging import getLogger

import requests
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from shop.decorators import shop_errors_as_400
from shop.filtersets import PudoLockerFilterSet
from shop.models import PudoLocker
from shop.paginations import StandardResultsSetPagination
from shop.permissions import IsAdmin
from shop.serializers.locker import (
    NearestLockerQuerySerializer,
    NearestLockerSerializer,
    PudoLockerSerializer,
)
from shop.services import pudo

logger = getLogger(__name__)


class PudoLockerViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet
):
    queryset = PudoLocker.objects.filter(is_active=True)
    serializer_class = PudoLockerSerializer
    permission_classes = (AllowAny, )
    filter_backends = (DjangoFilterBackend, )
    filterset_class = PudoLockerFilterSet
    pagination_class = StandardResultsSetPagination
    lookup_field = 'code'
    lookup_value_regex = '[^/]+'

    @action(detail=False, methods=['get'], url_path='nearest', url_name='nearest')
    @shop_errors_as_400
    def nearest(self, request, *args, **kwargs):
        query = NearestLockerQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        if params['fallback']:
            found = pudo.find_lockers_with_fallback(
                params['address'],
                preferred_distance=params['max_distance'],
                fallback_distance=params['fallback_distance'],
                limit=params['limit'],
            )
            return Response({
                'count': len(found['lockers']),
                'results': NearestLockerSerializer(found['lockers'], many=True).data,
                'used_fallback': found['used_fallback'],
                'message': found['message'],
            })

        results = pudo.find_nearest_lockers(
            address=params.get('address') or None,
            lat=params.get('lat'),
            lng=params.get('lng'),
            max_distance=params['max_distance'],
            limit=params['limit'],
        )
        return Response({
            'count': len(results),
            'results': NearestLockerSerializer(results, many=True).data,
        })

    @action(
        detail=False, methods=['post'], url_path='sync', url_name='sync',
        permission_classes=[IsAdmin])
    def sync(self, request, *args, **kwargs):
        try:
            result = pudo.sync_lockers()
        except requests.exceptions.RequestException as e:
            logger.error(f'PUDO locker sync failed: {e}')
            return Response(
                {'error': f'PUDO API error: {e}'},
                status=status.HTTP_502_BAD_GATEWAY)
        return Response(result)
