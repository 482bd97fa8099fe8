# ==================== PARKING/SERIALIZERS.PY ====================
from rest_framework import serializers

from bookings import pricing
from users.serializers import UserSummarySerializer
from utils.distance_calculator import DistanceCalculator
from .models import ParkingSpace


class ParkingSpaceSummarySerializer(serializers.ModelSerializer):
    """Compact space info embedded in booking responses"""

    class Meta:
        model = ParkingSpace
        fields = ['id', 'title', 'address', 'zone_number', 'zone_name', 'operator',
                  'latitude', 'longitude']
        read_only_fields = fields


class ParkingSpaceListSerializer(serializers.ModelSerializer):
    """Simplified serializer for listing parking spaces"""
    owner_name = serializers.CharField(source='owner.get_full_name', read_only=True)
    effective_price_per_minute = serializers.SerializerMethodField()
    distance = serializers.SerializerMethodField()

    class Meta:
        model = ParkingSpace
        fields = ['id', 'title', 'address', 'zone_number', 'zone_name', 'operator',
                  'latitude', 'longitude', 'price_per_minute', 'price_per_hour',
                  'effective_price_per_minute', 'supports_on_demand_booking', 'owner_name', 'distance']

    def get_effective_price_per_minute(self, obj):
        return str(pricing.rate_per_minute(obj))

    def get_distance(self, obj):
        """Distance in km from the ``lat``/``lng`` query params, when given"""
        request = self.context.get('request')
        if request is None or not obj.has_location:
            return None
        try:
            user_location = (float(request.query_params['lat']), float(request.query_params['lng']))
        except (KeyError, TypeError, ValueError):
            return None
        return round(DistanceCalculator.get_distance_km(*user_location, *obj.coordinate), 2)


class ParkingSpaceDetailSerializer(ParkingSpaceListSerializer):
    owner = UserSummarySerializer(read_only=True)

    class Meta(ParkingSpaceListSerializer.Meta):
        fields = ParkingSpaceListSerializer.Meta.fields + [
            'owner', 'gps_tolerance_meters', 'is_active', 'created_at', 'updated_at'
        ]
