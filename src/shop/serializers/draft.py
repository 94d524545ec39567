from django.utils.translation import gettext_lazy as _
from django_fsm import can_proceed
from rest_framework import serializers

from shop.constants.status import DRAFT_STATUS, WIZARD_STEP
from shop.models import ProductDraft, WIZARD_STEP_FIELDS
from shop.services.publication import validate_draft_step


class ProductDraftSerializer(serializers.ModelSerializer):
    images = serializers.ListField(read_only=True)
    missing_steps = serializers.ListField(read_only=True)
    last_modified = serializers.DateTimeField(source='modified', read_only=True)
    image_urls = serializers.ListField(
        child=serializers.CharField(max_length=1000), required=False)
    image_object_keys = serializers.ListField(
        child=serializers.CharField(max_length=1000, allow_blank=True),
        required=False)
    tags = serializers.ListField(
        child=serializers.CharField(max_length=100), required=False)

    class Meta:
        model = ProductDraft
        exclude = ('modified', )
        read_only_fields = (
            'created_by', 'original_product', 'draft_status', 'status_changed',
            'wizard_progress', 'completed_steps', 'version', 'change_history',
            'published_at', 'published_version', 'created', )

    def validate_selected_attributes(self, selected):
        if not isinstance(selected, dict):
            raise serializers.ValidationError(
                _('Selected attributes must map attribute ids to option lists.'))
        for key, options in selected.items():
            if not str(key).isdigit() or not isinstance(options, list):
                raise serializers.ValidationError(
                    _('Selected attributes must map attribute ids to option lists.'))
        return selected

    def validate(self, attrs):
        attrs = super().validate(attrs)
        urls = attrs.get('image_urls')
        keys = attrs.get('image_object_keys')
        if urls is not None and keys is not None and len(urls) != len(keys):
            raise serializers.ValidationError({
                'image_object_keys': _('Must have one key per image url.')
            })
        return attrs

    def create(self, validated_data):
        user = self.context['request'].user
        draft = ProductDraft(created_by=user, **validated_data)
        draft.record_change(user, action='created', bump_version=False)
        draft.save()
        return draft

    def update(self, instance, validated_data):
        for field, value in validated_data.items():
            setattr(instance, field, value)
        if 'image_urls' in validated_data and \
                'image_object_keys' not in validated_data:
            instance.image_object_keys = instance._padded_keys()
        if instance.draft_status == DRAFT_STATUS.published:
            instance.return_to_draft()
        instance.record_change(
            self.context['request'].user, fields=validated_data.keys())
        instance.save()
        return instance


class WizardStepSerializer(serializers.Serializer):
    step = serializers.ChoiceField(choices=WIZARD_STEP.ALL)
    data = serializers.DictField()

    def validate(self, attrs):
        allowed = set(WIZARD_STEP_FIELDS[attrs['step']])
        unknown = set(attrs['data']) - allowed
        if unknown:
            raise serializers.ValidationError({
                'data': 'Fields not part of this step: ' +
                ', '.join(sorted(unknown))
            })
        fields = ProductDraftSerializer(
            self.instance, data=attrs['data'], partial=True,
            context=self.context)
        fields.is_valid(raise_exception=True)
        attrs['fields'] = fields
        return attrs

    def update(self, instance, validated_data):
        instance = validated_data['fields'].save()
        instance.mark_step(validated_data['step'])
        instance.save(update_fields=['wizard_progress', 'completed_steps', 'modified'])
        return instance


class DraftImageSerializer(serializers.Serializer):
    url = serializers.CharField(max_length=1000)
    object_key = serializers.CharField(
        max_length=1000, required=False, allow_blank=True)


class DraftImageReorderSerializer(serializers.Serializer):
    order = serializers.ListField(child=serializers.IntegerField(min_value=0))

    def validate_order(self, order):
        if sorted(order) != list(range(len(self.instance.image_urls or []))):
            raise serializers.ValidationError(
                _('Order must be a permutation of the current image indexes.'))
        return order


class DraftValidateSerializer(serializers.Serializer):
    step = serializers.ChoiceField(choices=WIZARD_STEP.ALL, required=False)


class DraftStatusSerializer(serializers.ModelSerializer):
    """
    Moves a draft along draft -> in_review -> ready_to_publish and back.
    Publishing has its own endpoint.
    """
    status = serializers.ChoiceField(
        choices=(
            DRAFT_STATUS.draft, DRAFT_STATUS.in_review,
            DRAFT_STATUS.ready_to_publish),
        write_only=True)

    class Meta:
        model = ProductDraft
        fields = ('status', )

    def get_transition(self, status):
        return {
            DRAFT_STATUS.draft: self.instance.return_to_draft,
            DRAFT_STATUS.in_review: self.instance.submit_for_review,
            DRAFT_STATUS.ready_to_publish: self.instance.mark_ready,
        }[status]

    def validate(self, attrs):
        if not can_proceed(self.get_transition(attrs['status'])):
            raise serializers.ValidationError({
                'status': (
                    f'Cannot move a {self.instance.draft_status} draft '
                    f'to {attrs["status"]}.')
            })
        if attrs['status'] == DRAFT_STATUS.ready_to_publish:
            errors = {}
            for step in WIZARD_STEP.ALL:
                step_errors = validate_draft_step(self.instance, step)
                if step_errors:
                    errors[step] = step_errors
            if errors:
                raise serializers.ValidationError({'errors': errors})
        return attrs

    def update(self, instance, validated_data):
        self.get_transition(validated_data['status'])()
        instance.record_change(
            self.context['request'].user, action='status_changed',
            fields=['draft_status'])
        instance.save()
        return instance
