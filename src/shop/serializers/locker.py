from rest_framework import serializers

from shop.models import PudoLocker


class PudoLockerSerializer(serializers.ModelSerializer):
    class Meta:
        model = PudoLocker
        fields = (
            'id', 'code', 'provider', 'name', 'latitude', 'longitude',
            'opening_hours', 'address', 'detailed_address', 'city',
            'postal_code', 'locker_type', 'place', 'box_types', 'is_active',
            'last_synced', )


class NearestLockerSerializer(serializers.Serializer):
    locker = PudoLockerSerializer()
    distance = serializers.FloatField()
    distance_text = serializers.CharField()


class NearestLockerQuerySerializer(serializers.Serializer):
    address = serializers.CharField(required=False, allow_blank=True)
    lat = serializers.FloatField(required=False, min_value=-90, max_value=90)
    lng = serializers.FloatField(required=False, min_value=-180, max_value=180)
    max_distance = serializers.FloatField(
        required=False, default=10, min_value=0.1, max_value=500)
    limit = serializers.IntegerField(
        required=False, default=3, min_value=1, max_value=50)
    fallback = serializers.BooleanField(required=False, default=False)
    fallback_distance = serializers.FloatField(
        required=False, default=100, min_value=0.1, max_value=1000)

    def validate(self, attrs):
        has_coordinates = 'lat' in attrs and 'lng' in attrs
        if not has_coordinates and not attrs.get('address'):
            raise serializers.ValidationError(
                'Provide an address or both lat and lng.')
        if attrs['fallback'] and not attrs.get('address'):
            raise serializers.ValidationError(
                {'fallback': 'Fallback search needs an address.'})
        return attrs
