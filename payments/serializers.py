# ==================== PAYMENTS/SERIALIZERS.PY ====================
from rest_framework import serializers
from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    booking_id = serializers.IntegerField(source='booking.id', read_only=True)
    booking_status = serializers.CharField(source='booking.status', read_only=True)
    parking_space = serializers.CharField(source='booking.parking_space.title', read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id', 'booking_id', 'booking_status', 'amount', 'currency', 'status',
            'parking_space', 'razorpay_order_id', 'razorpay_payment_id',
            'completed_at', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class PaymentOrderRequestSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField(min_value=1)
