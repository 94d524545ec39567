from django.shortcuts import get_object_or_404
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from shop.constants.status import ATTRIBUTE_TYPE
from shop.models import Attribute, AttributeOption
from shop.permissions import IsAdmin
from shop.serializers.attribute import (
    AttributeOptionSerializer,
    AttributeSerializer,
    AttributeWithOptionsSerializer,
    OptionReorderSerializer,
)


class AttributeViewSet(viewsets.ModelViewSet):
    queryset = Attribute.objects.all()
    serializer_class = AttributeSerializer
    permission_classes = (IsAdmin, )
    pagination_class = None

    def get_serializer_class(self):
        if self.action in ('retrieve', 'with_options', 'filterable'):
            return AttributeWithOptionsSerializer
        return super().get_serializer_class()

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        attribute = serializer.save()
        return Response(
            AttributeWithOptionsSerializer(attribute).data,
            status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'], url_path='types', url_name='types')
    def types(self, request, *args, **kwargs):
        return Response([
            {'value': value, 'label': label}
            for value, label in ATTRIBUTE_TYPE
        ])

    @action(
        detail=False, methods=['get'],
        url_path='with-options', url_name='with-options')
    def with_options(self, request, *args, **kwargs):
        queryset = self.get_queryset().prefetch_related('options')
        return Response(self.get_serializer(queryset, many=True).data)

    @action(
        detail=False, methods=['get'],
        url_path='filterable', url_name='filterable',
        permission_classes=[AllowAny])
    def filterable(self, request, *args, **kwargs):
        queryset = self.get_queryset().filter(
            is_filterable=True).prefetch_related('options')
        return Response(self.get_serializer(queryset, many=True).data)


class AttributeOptionViewSet(viewsets.ModelViewSet):
    """ Options of one attribute, nested under `attributes/{id}/options/` """
    serializer_class = AttributeOptionSerializer
    permission_classes = (IsAdmin, )
    pagination_class = None

    def get_attribute(self):
        return get_object_or_404(Attribute, pk=self.kwargs['attribute_pk'])

    def get_queryset(self):
        return AttributeOption.objects.filter(
            attribute_id=self.kwargs['attribute_pk'])

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if 'attribute_pk' in self.kwargs:
            context['attribute'] = self.get_attribute()
        return context

    @action(
        detail=False, methods=['post'], url_path='reorder', url_name='reorder')
    def reorder(self, request, *args, **kwargs):
        serializer = OptionReorderSerializer(
            data=request.data, context=self.get_serializer_context())
        serializer.is_valid(raise_exception=True)
        options = serializer.save()
        return Response(AttributeOptionSerializer(options, many=True).data)
