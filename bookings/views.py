# ============================= BOOKINGS VIEWS =============================
from rest_framework import viewsets, status, permissions, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from utils.throttling import (
    RateLimitedViewMixin,
    SessionPrepareThrottle,
    SessionStartThrottle,
    SessionStopThrottle,
)
from .models import Booking
from .serializers import (
    ActiveSessionSerializer,
    AdmissionDecisionSerializer,
    BookingDetailSerializer,
    BookingListSerializer,
    PaymentHandleSerializer,
    SessionRequestSerializer,
    SessionSummarySerializer,
)
from .services import SessionService


class BookingViewSet(RateLimitedViewMixin, viewsets.ReadOnlyModelViewSet):
    """Driver bookings and the on-demand start/stop parking flow"""

    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [
        DjangoFilterBackend,
        filters.OrderingFilter
    ]
    filterset_fields = ['status', 'booking_type']
    ordering_fields = ['created_at', 'actual_start_time', 'total_price']
    ordering = ['-created_at']

    action_throttles = {
        'prepare': [SessionPrepareThrottle],
        'start': [SessionStartThrottle],
        'stop': [SessionStopThrottle],
    }

    def get_throttles(self):
        throttle_classes = self.action_throttles.get(self.action, self.throttle_classes)
        return [throttle() for throttle in throttle_classes]

    def get_serializer_class(self):
        if self.action == 'list':
            return BookingListSerializer
        return BookingDetailSerializer

    def get_queryset(self):
        return Booking.objects.filter(driver=self.request.user).select_related('parking_space')

    def get_service(self):
        return SessionService()

    @action(detail=False, methods=['post'])
    def prepare(self, request):
        """Check whether a session could start, without starting it

        Body: { "parking_space_id", "vehicle_plate", "latitude", "longitude", "require_gps_verification" }
        """
        serializer = SessionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        decision = self.get_service().prepare(
            data['parking_space_id'], data['coordinate'], data['require_gps_verification']
        )
        return Response(AdmissionDecisionSerializer(decision).data)

    @action(detail=False, methods=['post'])
    def start(self, request):
        """Start an on-demand parking session"""
        serializer = SessionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        booking = self.get_service().start(
            request.user,
            data['parking_space_id'],
            data['vehicle_plate'],
            data['coordinate'],
            data['require_gps_verification'],
        )
        return Response(BookingDetailSerializer(booking).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def stop(self, request, pk=None):
        """Stop a running session; returns the priced booking and a payment handle if one was created"""
        booking, handle = self.get_service().stop(pk, request.user)
        return Response({
            'booking': BookingDetailSerializer(booking).data,
            'payment': PaymentHandleSerializer(handle).data if handle else None,
        })

    @action(detail=True, methods=['get'])
    def summary(self, request, pk=None):
        summary = self.get_service().summary(pk, request.user)
        return Response(SessionSummarySerializer(summary).data)

    @action(detail=False, methods=['get'])
    def active(self, request):
        """Running sessions of the current driver with live price estimates"""
        sessions = self.get_service().active_sessions(request.user)
        return Response(ActiveSessionSerializer(sessions, many=True).data)
