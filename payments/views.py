# ==================== PAYMENTS/VIEWS.PY ====================
from rest_framework import viewsets, permissions, status as http_status
from rest_framework.decorators import action
from rest_framework.response import Response

from bookings.serializers import PaymentHandleSerializer
from bookings.services import SessionService
from utils.exceptions import NotFoundError
from utils.throttling import PaymentOrderThrottle, PaymentStatusThrottle, RateLimitedViewMixin
from .models import Payment
from .serializers import PaymentOrderRequestSerializer, PaymentSerializer


class PaymentViewSet(RateLimitedViewMixin, viewsets.ViewSet):
    """Payment status and payment retries for the driver's own bookings"""
    permission_classes = [permissions.IsAuthenticated]
    throttle_classes = [PaymentStatusThrottle]
    action_throttles = {
        'create_order': [PaymentOrderThrottle],
    }

    def get_throttles(self):
        throttle_classes = self.action_throttles.get(self.action, self.throttle_classes)
        return [throttle() for throttle in throttle_classes]

    @action(detail=False, methods=['get'])
    def status(self, request):
        """Get payment status for a booking

        Query params: booking_id
        """
        booking_id = request.query_params.get('booking_id')

        try:
            payment = Payment.objects.select_related('booking__parking_space').get(
                booking_id=int(booking_id),
                booking__driver=request.user,
            )
        except (Payment.DoesNotExist, TypeError, ValueError):
            raise NotFoundError('Payment not found.')

        return Response(PaymentSerializer(payment).data)

    @action(detail=False, methods=['post'])
    def create_order(self, request):
        """Create a new Razorpay order for a stopped, unpaid session

        Body: booking_id
        """
        serializer = PaymentOrderRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        handle = SessionService().create_payment_order(serializer.validated_data['booking_id'], request.user)
        return Response(PaymentHandleSerializer(handle).data, status=http_status.HTTP_201_CREATED)
