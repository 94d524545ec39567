from logging import getLogger

from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from shop.exceptions import PublicationError
from shop.filtersets import ProductDraftFilterSet
from shop.models import Product, ProductDraft
from shop.paginations import StandardResultsSetPagination
from shop.permissions import IsAdmin, IsDraftOwnerOrAdmin
from shop.serializers.draft import (
    DraftImageReorderSerializer,
    DraftImageSerializer,
    DraftStatusSerializer,
    DraftValidateSerializer,
    ProductDraftSerializer,
    WizardStepSerializer,
)
from shop.services.publication import (
    check_publish_readiness,
    create_draft_from_product,
    publish_product_draft,
    validate_draft,
)

logger = getLogger(__name__)


class ProductDraftViewSet(viewsets.ModelViewSet):
    serializer_class = ProductDraftSerializer
    permission_classes = (IsDraftOwnerOrAdmin, )
    filter_backends = (DjangoFilterBackend, )
    filterset_class = ProductDraftFilterSet
    pagination_class = StandardResultsSetPagination
    http_method_names = ('get', 'post', 'patch', 'delete', )

    def get_queryset(self):
        return ProductDraft.objects.visible_to(self.request.user)\
            .select_related('category', 'supplier', 'original_product')\
            .order_by('-modified')

    def get_serializer_class(self):
        serializer_map = {
            'wizard_step': WizardStepSerializer,
            'change_status': DraftStatusSerializer,
            'validate': DraftValidateSerializer,
            'add_image': DraftImageSerializer,
            'reorder_images': DraftImageReorderSerializer,
        }
        return serializer_map.get(self.action, self.serializer_class)

    def draft_response(self, draft, status_code=status.HTTP_200_OK):
        return Response(
            ProductDraftSerializer(
                draft, context=self.get_serializer_context()).data,
            status=status_code)

    @action(
        detail=False, methods=['post'],
        url_path=r'from-product/(?P<product_id>\d+)',
        url_name='from-product', permission_classes=[IsAdmin])
    def from_product(self, request, product_id=None):
        product = get_object_or_404(Product, pk=product_id)
        draft = create_draft_from_product(product, user=request.user)
        return self.draft_response(draft, status.HTTP_201_CREATED)

    @action(
        detail=True, methods=['patch'],
        url_path='wizard-step', url_name='wizard-step')
    def wizard_step(self, request, *args, **kwargs):
        draft = self.get_object()
        serializer = self.get_serializer(draft, data=request.data)
        serializer.is_valid(raise_exception=True)
        return self.draft_response(serializer.save())

    @action(detail=True, methods=['post'], url_path='images', url_name='images')
    def add_image(self, request, *args, **kwargs):
        draft = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        draft.add_image(
            serializer.validated_data['url'],
            serializer.validated_data.get('object_key', ''))
        draft.record_change(request.user, fields=['image_urls'])
        draft.save()
        return self.draft_response(draft, status.HTTP_201_CREATED)

    @action(
        detail=True, methods=['delete'],
        url_path=r'images/(?P<index>\d+)', url_name='remove-image')
    def remove_image(self, request, index=None, *args, **kwargs):
        draft = self.get_object()
        try:
            draft.remove_image(int(index))
        except IndexError:
            return Response(
                {'error': f'No image at index {index}'},
                status=status.HTTP_400_BAD_REQUEST)
        draft.record_change(request.user, fields=['image_urls'])
        draft.save()
        return self.draft_response(draft)

    @action(
        detail=True, methods=['post'],
        url_path='images/reorder', url_name='reorder-images')
    def reorder_images(self, request, *args, **kwargs):
        draft = self.get_object()
        serializer = self.get_serializer(draft, data=request.data)
        serializer.is_valid(raise_exception=True)
        draft.reorder_images(serializer.validated_data['order'])
        draft.record_change(request.user, fields=['image_urls'])
        draft.save()
        return self.draft_response(draft)

    @action(
        detail=True, methods=['post'], url_path='validate', url_name='validate')
    def validate(self, request, *args, **kwargs):
        draft = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        valid, errors = validate_draft(
            draft, serializer.validated_data.get('step'))
        draft.save(update_fields=['wizard_progress', 'completed_steps', 'modified'])
        return Response({'valid': valid, 'errors': errors})

    @action(
        detail=True, methods=['get'],
        url_path='publish-check', url_name='publish-check')
    def publish_check(self, request, *args, **kwargs):
        return Response(check_publish_readiness(self.get_object()))

    @action(detail=True, methods=['patch'], url_path='status', url_name='status')
    def change_status(self, request, *args, **kwargs):
        draft = self.get_object()
        serializer = self.get_serializer(draft, data=request.data)
        serializer.is_valid(raise_exception=True)
        return self.draft_response(serializer.save())

    @action(detail=True, methods=['post'], url_path='publish', url_name='publish')
    def publish(self, request, *args, **kwargs):
        draft = self.get_object()
        try:
            product = publish_product_draft(draft.pk, user=request.user)
        except PublicationError as e:
            logger.info(f'Draft {draft.pk} was not published: {e}')
            return Response(
                {'success': False, 'error': str(e)},
                status=status.HTTP_400_BAD_REQUEST)
        draft.refresh_from_db()
        return Response({
            'success': True,
            'product_id': product.pk,
            'draft': ProductDraftSerializer(
                draft, context=self.get_serializer_context()).data,
        })
