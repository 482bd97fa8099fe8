# ============================= PARKINGSPACE VIEWS =============================
from rest_framework import viewsets, status, permissions, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from utils.distance_calculator import DistanceCalculator
from .models import ParkingSpace
from .serializers import ParkingSpaceListSerializer, ParkingSpaceDetailSerializer
from .filters import ParkingSpaceFilter


class ParkingSpaceViewSet(viewsets.ReadOnlyModelViewSet):
    """Browse active parking spaces"""

    queryset = ParkingSpace.objects.filter(is_active=True).select_related('owner')
    permission_classes = [permissions.AllowAny]
    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter
    ]
    filterset_class = ParkingSpaceFilter
    search_fields = ['title', 'address', 'zone_number', 'zone_name', 'operator']
    ordering_fields = ['created_at', 'price_per_minute', 'price_per_hour']
    ordering = ['-created_at']

    def get_serializer_class(self):
        if self.action in ['list', 'nearby']:
            return ParkingSpaceListSerializer
        return ParkingSpaceDetailSerializer

    @action(detail=False, methods=['get'])
    def nearby(self, request):
        """Search parking spaces near a location
        Query params: lat, lng, radius (in km, default 5)

        Example: /api/v1/parking-spaces/nearby/?lat=59.9139&lng=10.7522&radius=2
        """
        try:
            latitude = float(request.query_params.get('lat'))
            longitude = float(request.query_params.get('lng'))
            radius = float(request.query_params.get('radius', 5))
        except (TypeError, ValueError):
            return Response(
                {'error': 'Invalid latitude, longitude, or radius', 'code': 'invalid'},
                status=status.HTTP_400_BAD_REQUEST
            )

        user_location = (latitude, longitude)
        queryset = self.filter_queryset(self.get_queryset()).filter(
            latitude__isnull=False, longitude__isnull=False
        )
        spaces = []
        for space in queryset:
            distance = DistanceCalculator.get_distance_km(*user_location, *space.coordinate)
            if distance <= radius:
                spaces.append((distance, space))
        spaces.sort(key=lambda pair: pair[0])

        serializer = self.get_serializer([space for _, space in spaces], many=True)
        return Response(serializer.data)
