# ==================== BOOKINGS/SERIALIZERS.PY ====================
from rest_framework import serializers

from parking.serializers import ParkingSpaceSummarySerializer
from .models import Booking


class SessionRequestSerializer(serializers.Serializer):
    """Input for both the prepare dry run and the start call"""
    parking_space_id = serializers.IntegerField(min_value=1)
    vehicle_plate = serializers.CharField(max_length=20, trim_whitespace=True)
    latitude = serializers.FloatField(min_value=-90, max_value=90, required=False, allow_null=True)
    longitude = serializers.FloatField(min_value=-180, max_value=180, required=False, allow_null=True)
    require_gps_verification = serializers.BooleanField(default=False)

    def validate_vehicle_plate(self, value):
        value = value.replace(' ', '').upper()
        if not value:
            raise serializers.ValidationError('Vehicle plate is required.')
        return value

    def validate(self, data):
        latitude = data.get('latitude')
        longitude = data.get('longitude')
        if (latitude is None) != (longitude is None):
            raise serializers.ValidationError('Latitude and longitude must be given together.')
        if data['require_gps_verification'] and latitude is None:
            raise serializers.ValidationError('A GPS position is required for verification.')
        data['coordinate'] = None if latitude is None else (latitude, longitude)
        return data


class BookingListSerializer(serializers.ModelSerializer):
    parking_space_title = serializers.CharField(source='parking_space.title', read_only=True)

    class Meta:
        model = Booking
        fields = ['id', 'parking_space', 'parking_space_title', 'booking_type', 'status',
                  'start_datetime', 'end_datetime', 'actual_start_time', 'actual_end_time',
                  'vehicle_plate', 'total_price', 'created_at']
        read_only_fields = fields


class BookingDetailSerializer(serializers.ModelSerializer):
    parking_space = ParkingSpaceSummarySerializer(read_only=True)

    class Meta:
        model = Booking
        fields = ['id', 'parking_space', 'booking_type', 'status',
                  'start_datetime', 'end_datetime', 'actual_start_time', 'actual_end_time',
                  'duration_minutes', 'vehicle_plate', 'gps_start_latitude', 'gps_start_longitude',
                  'estimated_price', 'total_price', 'created_at', 'updated_at']
        read_only_fields = fields


class AdmissionDecisionSerializer(serializers.Serializer):
    parking_space = ParkingSpaceSummarySerializer()
    price_per_minute = serializers.DecimalField(max_digits=12, decimal_places=4)
    is_available = serializers.BooleanField()
    gps_verified = serializers.BooleanField()
    can_start = serializers.BooleanField()


class ActiveSessionSerializer(serializers.Serializer):
    booking = BookingDetailSerializer()
    duration_minutes = serializers.IntegerField()
    price_per_minute = serializers.DecimalField(max_digits=12, decimal_places=4)
    estimated_price = serializers.DecimalField(max_digits=10, decimal_places=2)


class PaymentHandleSerializer(serializers.Serializer):
    payment_id = serializers.IntegerField()
    razorpay_order_id = serializers.CharField()
    key_id = serializers.CharField()
    amount = serializers.IntegerField()
    currency = serializers.CharField()


class SessionSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    parking_space = serializers.DictField()
    vehicle = serializers.DictField()
    status = serializers.CharField()
    start_time = serializers.DateTimeField(allow_null=True)
    end_time = serializers.DateTimeField(allow_null=True)
    duration_minutes = serializers.IntegerField()
    duration_seconds = serializers.IntegerField()
    pricing = serializers.SerializerMethodField()
    payment = serializers.DictField(allow_null=True)

    def get_pricing(self, obj):
        pricing = obj['pricing']
        return {
            'parking_price': str(pricing['parking_price']),
            'service_fee': str(pricing['service_fee']),
            'total': str(pricing['total']),
            'currency': pricing['currency'],
            'vat_included': pricing['vat_included'],
        }
